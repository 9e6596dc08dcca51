"""
Test cases for frame pacing.
"""
import asyncio
import unittest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from signspeak.scheduling import FrameThrottle, put_latest


class TestFrameThrottle(unittest.TestCase):

    def test_interval(self):
        throttle = FrameThrottle(interval_ms=30)
        self.assertTrue(throttle.ready(10.0))
        self.assertFalse(throttle.ready(10.01))
        self.assertFalse(throttle.ready(10.03))
        self.assertTrue(throttle.ready(10.031))

    def test_reset(self):
        throttle = FrameThrottle(interval_ms=30)
        throttle.ready(1.0)
        throttle.reset()
        self.assertTrue(throttle.ready(1.001))


class TestPutLatest(unittest.IsolatedAsyncioTestCase):

    async def test_keeps_newest_frame(self):
        frame_queue = asyncio.Queue(maxsize=1)
        put_latest(frame_queue, "old")
        put_latest(frame_queue, "new")

        self.assertEqual(frame_queue.qsize(), 1)
        self.assertEqual(await frame_queue.get(), "new")


if __name__ == '__main__':
    unittest.main()
