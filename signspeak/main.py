"""
Main application: webcam preview driving a sign-to-speech session.
"""
import argparse
import asyncio
import logging
import time
from typing import Optional

import cv2
import numpy as np

from .classifier import KNNGestureClassifier
from .config import Cfg, load_config
from .errors import CollaboratorUnavailableError, TrainingInProgressError
from .landmarks import HandsTracker, draw_hands
from .scheduling import FrameThrottle, put_latest
from .session import ASL_SUGGESTIONS, SignSpeakSession
from .speech import make_speech_output
from .storage import GestureLibraryStore, JsonKeyValueStore
from .types import DELETE_LABEL, NOTHING_LABEL, SPEAK_LABEL

logger = logging.getLogger(__name__)

TEACH_KEYS = {ord(str(i + 1)): word for i, word in enumerate(ASL_SUGGESTIONS)}
TEACH_KEYS.update({ord('n'): NOTHING_LABEL, ord('d'): DELETE_LABEL, ord('s'): SPEAK_LABEL})


class SignSpeakApp:
    """Camera capture, throttled frame queue and preview window around a session."""

    def __init__(self, cfg: Cfg):
        """Initialize the application with configuration."""
        self.cfg = cfg
        self.camera_index = cfg.camera.index
        self.cap: Optional[cv2.VideoCapture] = None
        self.session: Optional[SignSpeakSession] = None
        self.throttle = FrameThrottle(cfg.app.frame_interval_ms)
        self.frame_queue: "asyncio.Queue[np.ndarray]" = asyncio.Queue(maxsize=1)
        self.running = False

    def _open_camera(self) -> None:
        self.cap = cv2.VideoCapture(self.camera_index)
        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.cfg.camera.width)
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.cfg.camera.height)
        self.cap.set(cv2.CAP_PROP_FPS, self.cfg.camera.fps)

        if not self.cap.isOpened():
            raise RuntimeError(f"Failed to open camera {self.camera_index}")

    async def _create_session(self) -> SignSpeakSession:
        """Start the vision and classification pipeline, retrying until it comes up."""
        retry_s = self.cfg.app.retry_delay_ms / 1000.0
        while True:
            try:
                logger.info("🧠 Loading brain...")
                classifier = KNNGestureClassifier(k=self.cfg.classifier.k)
                logger.info("👀 Starting vision...")
                tracker = HandsTracker(
                    max_num_hands=self.cfg.mediapipe.max_num_hands,
                    model_complexity=self.cfg.mediapipe.model_complexity,
                    min_detection_conf=self.cfg.mediapipe.min_detection_confidence,
                    min_tracking_conf=self.cfg.mediapipe.min_tracking_confidence
                )
            except CollaboratorUnavailableError as e:
                logger.error("❌ %s. Retrying in %.1fs...", e, retry_s)
                await asyncio.sleep(retry_s)
                continue

            library = GestureLibraryStore(JsonKeyValueStore(self.cfg.storage.path), key=self.cfg.storage.key)
            return SignSpeakSession(
                self.cfg,
                tracker=tracker,
                classifier=classifier,
                speech=make_speech_output(self.cfg.speech),
                library=library,
            )

    async def _consume_frames(self) -> None:
        """Single consumer: frames are classified strictly one after another."""
        while self.running:
            frame = await self.frame_queue.get()
            try:
                await self.session.handle_frame(frame)
            except Exception as e:
                logger.exception("❌ Frame processing failed: %s", e)

    def _switch_camera(self) -> None:
        primary, alternate = self.cfg.camera.index, self.cfg.camera.alternate_index
        self.camera_index = alternate if self.camera_index == primary else primary
        self.session.switch_camera()
        while not self.frame_queue.empty():
            self.frame_queue.get_nowait()
        self.throttle.reset()
        self.cap.release()
        self._open_camera()
        logger.info("🔄 Switched to camera %d", self.camera_index)

    def _teach(self, label: str) -> None:
        try:
            self.session.teach(label)
        except (ValueError, TrainingInProgressError) as e:
            logger.warning("⚠️ %s", e)

    def _handle_key(self, key: int) -> bool:
        """React to a key press; returns False to quit."""
        if key == ord('q'):
            return False
        if key == ord(' '):
            self.session.speak()
        elif key in (8, ord('b')):
            self.session.delete_last_word()
        elif key == ord('c'):
            self.session.clear_sentence()
        elif key == ord('x'):
            self._switch_camera()
        elif key == ord('l'):
            logger.info("📚 Library: %s", ", ".join(self.session.saved_gestures) or "(empty)")
        elif key in TEACH_KEYS:
            self._teach(TEACH_KEYS[key])
        return True

    def _draw_overlay(self, frame: np.ndarray) -> np.ndarray:
        session = self.session
        if self.cfg.display.show_landmarks and session.last_hands:
            frame = draw_hands(frame, session.last_hands)

        if self.cfg.display.mirror_user_camera and self.camera_index == self.cfg.camera.index:
            frame = cv2.flip(frame, 1)

        height, width = frame.shape[:2]
        cv2.putText(frame, f"{session.current_gesture} {session.confidence_pct}%", (10, 30),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.8, (0, 255, 0), 2)
        cv2.putText(frame, session.status, (10, 60), cv2.FONT_HERSHEY_SIMPLEX, 0.6, (255, 255, 255), 1)
        sentence = " ".join(session.sentence) or "..."
        cv2.putText(frame, sentence, (10, height - 50), cv2.FONT_HERSHEY_SIMPLEX, 0.8, (255, 255, 255), 2)
        cv2.putText(frame, "SPACE speak | b del | c clear | 1-8/n/d/s teach | x cam | q quit",
                    (10, height - 20), cv2.FONT_HERSHEY_SIMPLEX, 0.45, (170, 170, 170), 1)

        if session.timer_display:
            cv2.putText(frame, session.timer_display, (width // 2 - 60, height // 2),
                        cv2.FONT_HERSHEY_SIMPLEX, 3.0, (255, 255, 0), 6)
        return frame

    async def run(self, teach_label: Optional[str] = None, forget_label: Optional[str] = None) -> None:
        """Run the main application loop."""
        self.session = await self._create_session()
        self._open_camera()

        if forget_label:
            self.session.delete_gesture(forget_label.upper())
        if teach_label:
            self._teach(teach_label)

        logger.info("Starting %s (gestures: %s)", self.cfg.display.window_name,
                    ", ".join(self.session.saved_gestures) or "none yet")
        self.running = True
        consumer = asyncio.create_task(self._consume_frames())

        try:
            while self.running:
                ret, frame = await asyncio.to_thread(self.cap.read)
                if not ret:
                    logger.error("Failed to read frame from camera")
                    break

                t_now = time.monotonic()
                self.session.tick(t_now)
                if self.throttle.ready(t_now):
                    put_latest(self.frame_queue, frame)

                cv2.imshow(self.cfg.display.window_name, self._draw_overlay(frame.copy()))

                key = cv2.waitKey(1) & 0xFF
                if key != 0xFF and not self._handle_key(key):
                    break

                await asyncio.sleep(0)
        finally:
            self.running = False
            consumer.cancel()
            self.session.close()
            self.cap.release()
            cv2.destroyAllWindows()


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Sign language to speech assistant")
    parser.add_argument("--config", help="Path to a YAML config file")
    parser.add_argument("--teach", metavar="LABEL", help="Start teaching LABEL right away")
    parser.add_argument("--forget", metavar="LABEL", help="Delete LABEL from the gesture library")
    parser.add_argument("--speech", choices=["pyttsx3", "elevenlabs", "console"],
                        help="Override the speech backend")
    return parser.parse_args(argv)


async def main(argv=None) -> None:
    """Entry point for the application."""
    args = parse_args(argv)
    cfg = load_config(args.config)
    if args.speech:
        cfg.speech.backend = args.speech

    app = SignSpeakApp(cfg)
    await app.run(teach_label=args.teach, forget_label=args.forget)


def run(argv=None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    try:
        asyncio.run(main(argv))
    except KeyboardInterrupt:
        logger.info("Application interrupted by user")


if __name__ == "__main__":
    run()
