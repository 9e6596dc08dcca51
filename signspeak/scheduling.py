"""
Frame pacing helpers for the capture loop.
"""
import asyncio
from typing import Any, Optional


class FrameThrottle:
    """Lets a frame through only when more than `interval_ms` has passed since the last one."""

    def __init__(self, interval_ms: int = 30):
        self.interval_s = interval_ms / 1000.0
        self.last_run: Optional[float] = None

    def ready(self, t_now: float) -> bool:
        if self.last_run is not None and t_now - self.last_run <= self.interval_s:
            return False
        self.last_run = t_now
        return True

    def reset(self) -> None:
        self.last_run = None


def put_latest(frame_queue: "asyncio.Queue[Any]", item: Any) -> None:
    """Put `item` on a bounded queue, dropping the oldest entry when it is full."""
    if frame_queue.full():
        try:
            frame_queue.get_nowait()
        except asyncio.QueueEmpty:
            pass
    frame_queue.put_nowait(item)
