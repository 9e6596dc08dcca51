"""
Sign-to-speech session: ties tracking, classification, training and the sentence together.
"""
import asyncio
import logging
import time
from typing import Callable, List, Optional, Sequence

import numpy as np

from .config import Cfg
from .errors import SpeechUnavailableError
from .features import encode_hands
from .stabilizer import SentenceBuilder
from .storage import GestureLibraryStore
from .training import CaptureFinished, CaptureStarted, CountdownTick, TrainingEvent, TrainingSession
from .types import (
    DeleteLastWord,
    GestureClassifierProto,
    HandLandmarks,
    LandmarkProviderProto,
    SentenceCommand,
    SpeakSentence,
    SpeechOutputProto,
)

logger = logging.getLogger(__name__)

ASL_SUGGESTIONS = ["HELLO", "YES", "NO", "THANK YOU", "I LOVE YOU", "HELP", "BATHROOM", "EAT"]

NO_HAND = "No Hand"
STATUS_READY = "System Ready"


class SignSpeakSession:
    """
    Single owner of all mutable assistant state.

    Frames are handled one at a time under an asyncio lock. Countdown, capture
    and cooldown deadlines are checked against the session clock on the same
    loop, so no timer can interleave with a classification.
    """

    def __init__(self, cfg: Cfg, tracker: LandmarkProviderProto,
                 classifier: GestureClassifierProto, speech: SpeechOutputProto,
                 library: GestureLibraryStore,
                 clock: Callable[[], float] = time.monotonic):
        self.cfg = cfg
        self.tracker = tracker
        self.classifier = classifier
        self.speech = speech
        self.library = library
        self.clock = clock

        self.builder = SentenceBuilder(cfg, speech)
        self.training = TrainingSession(cfg, classifier)
        self.saved_gestures: List[str] = library.restore(classifier)

        self.alive = True
        self.generation = 0
        self._lock = asyncio.Lock()

        # Display state
        self.current_gesture = "--"
        self.confidence_pct = 0
        self.status = STATUS_READY
        self.timer_display: Optional[str] = None
        self._status_reset_at: Optional[float] = None
        self.last_hands: List[HandLandmarks] = []

    @property
    def sentence(self) -> List[str]:
        return self.builder.words

    def _now(self, t_now: Optional[float]) -> float:
        return self.clock() if t_now is None else t_now

    def _set_status(self, text: str, t_now: float, reset_after_ms: Optional[int] = None) -> None:
        self.status = text
        self._status_reset_at = None if reset_after_ms is None else t_now + reset_after_ms / 1000.0

    async def handle_frame(self, frame: np.ndarray,
                           t_now: Optional[float] = None) -> Optional[SentenceCommand]:
        """
        Detect hands in `frame` and run the result through the session.

        Results that come back after close() or a camera switch are dropped.
        """
        if not self.alive:
            return None

        async with self._lock:
            generation = self.generation
            hands = await asyncio.to_thread(self.tracker.process, frame)
            if not self.alive or generation != self.generation:
                logger.debug("Discarding stale detection result")
                return None
            return self.handle_hands(hands, t_now)

    def handle_hands(self, hands: Sequence[HandLandmarks],
                     t_now: Optional[float] = None) -> Optional[SentenceCommand]:
        """Process the hands detected in one frame."""
        t_now = self._now(t_now)
        self.tick(t_now)
        self.last_hands = list(hands)

        if not hands:
            self.current_gesture = NO_HAND
            self.confidence_pct = 0
            return None

        vector = encode_hands(hands)
        self.training.feed(vector)

        if self.classifier.num_classes == 0:
            return None

        result = self.classifier.predict(vector)
        if result.confidence <= self.cfg.stabilizer.confidence_threshold:
            return None

        self.current_gesture = result.label
        self.confidence_pct = round(result.confidence * 100)

        try:
            command = self.builder.process(result, t_now, training_active=self.training.training_active)
        except SpeechUnavailableError as e:
            logger.error("❌ %s", e)
            self._set_status("Speech not supported", t_now)
            return None
        except Exception as e:
            logger.exception("❌ Speech failed: %s", e)
            self._set_status("Speech failed", t_now, reset_after_ms=2000)
            return None

        if isinstance(command, SpeakSentence):
            self._set_status("🔊 SPEAKING...", t_now, reset_after_ms=2000)
        elif isinstance(command, DeleteLastWord):
            self._set_status("⬅️ Deleted Word", t_now, reset_after_ms=1000)
        return command

    def tick(self, t_now: Optional[float] = None) -> List[TrainingEvent]:
        """Advance training and status deadlines."""
        t_now = self._now(t_now)
        if self._status_reset_at is not None and t_now >= self._status_reset_at:
            self._set_status("Ready", t_now)

        events = self.training.tick(t_now)
        for event in events:
            self._on_training_event(event, t_now)
        return events

    def teach(self, label: str, t_now: Optional[float] = None) -> TrainingEvent:
        """
        Start teaching `label`.

        Raises:
            ValueError: If the label is empty
            TrainingInProgressError: If another label is being taught
        """
        t_now = self._now(t_now)
        event = self.training.start(label.strip().upper(), t_now)
        self._on_training_event(event, t_now)
        return event

    def _on_training_event(self, event: TrainingEvent, t_now: float) -> None:
        if isinstance(event, CountdownTick):
            self.timer_display = str(event.remaining)
            self._set_status(f"Ready... {event.remaining}", t_now)
        elif isinstance(event, CaptureStarted):
            self.timer_display = "GO!"
            self._set_status(f"Learning '{event.label}'...", t_now)
            if event.label not in self.saved_gestures:
                self.saved_gestures.append(event.label)
        elif isinstance(event, CaptureFinished):
            self.timer_display = None
            self._set_status("Saved.", t_now)
            self.library.save(self.classifier)

    def delete_gesture(self, label: str) -> None:
        """Forget a taught gesture; unknown labels are ignored."""
        if self.classifier.num_classes > 0:
            self.classifier.clear_label(label)
        self.library.save(self.classifier)
        if label in self.saved_gestures:
            self.saved_gestures.remove(label)

    def speak(self, t_now: Optional[float] = None) -> Optional[str]:
        """Speak the sentence now, bypassing gesture cooldowns."""
        t_now = self._now(t_now)
        try:
            text = self.builder.speak()
        except SpeechUnavailableError as e:
            logger.error("❌ %s", e)
            self._set_status("Speech not supported", t_now)
            return None
        except Exception as e:
            logger.exception("❌ Speech failed: %s", e)
            self._set_status("Speech failed", t_now, reset_after_ms=2000)
            return None
        self._set_status("🔊 SPEAKING...", t_now, reset_after_ms=2000)
        return text

    def delete_last_word(self, t_now: Optional[float] = None) -> Optional[str]:
        t_now = self._now(t_now)
        removed = self.builder.delete_last_word()
        self._set_status("⬅️ Deleted Word", t_now, reset_after_ms=1000)
        return removed

    def clear_sentence(self) -> None:
        self.builder.clear()

    def switch_camera(self) -> None:
        """Drop in-flight results and pending training for the old camera."""
        self.generation += 1
        self.training.cancel()
        self.builder.stabilizer.reset()
        self.timer_display = None
        self.status = "Switching..."
        self._status_reset_at = None

    def close(self) -> None:
        """Tear the session down; later results are ignored."""
        if not self.alive:
            return
        self.alive = False
        self.generation += 1
        self.training.cancel()
        self.builder.stabilizer.reset()
        self.speech.cancel()
        logger.info("🧹 Session closed")
