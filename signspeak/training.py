"""
Teach session state machine: Idle -> CountingDown(n) -> Capturing -> Idle.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Union

import numpy as np

from .config import Cfg
from .errors import TrainingInProgressError
from .types import GestureClassifierProto

logger = logging.getLogger(__name__)


class TrainingPhase(Enum):
    IDLE = "idle"
    COUNTING_DOWN = "counting_down"
    CAPTURING = "capturing"


@dataclass
class CountdownTick:
    """Seconds left before capture starts."""
    remaining: int


@dataclass
class CaptureStarted:
    """Capture window opened for a label."""
    label: str


@dataclass
class CaptureFinished:
    """Capture window closed."""
    label: str
    examples: int


TrainingEvent = Union[CountdownTick, CaptureStarted, CaptureFinished]


class TrainingSession:
    """
    Collects classifier examples for one label at a time.

    Time is passed in by the caller on every call, so countdown and capture
    deadlines are evaluated on the same thread as frame handling.
    """

    def __init__(self, cfg: Cfg, classifier: GestureClassifierProto):
        self.cfg = cfg
        self.classifier = classifier
        self.phase = TrainingPhase.IDLE
        self.label: Optional[str] = None
        self.remaining = 0
        self.examples_added = 0
        self._started_at = 0.0
        self._capture_started_at = 0.0

    @property
    def training_active(self) -> bool:
        """True only while examples are being captured."""
        return self.phase is TrainingPhase.CAPTURING

    @property
    def is_idle(self) -> bool:
        return self.phase is TrainingPhase.IDLE

    def start(self, label: str, t_now: float) -> TrainingEvent:
        """
        Begin a teach session for `label`.

        Args:
            label: Gesture name to teach
            t_now: Current timestamp in seconds

        Returns:
            The first event: a countdown tick, or CaptureStarted if there is
            no preparation time

        Raises:
            ValueError: If the label is empty
            TrainingInProgressError: If a session is already running
        """
        if not label:
            raise ValueError("Gesture label must not be empty")
        if not self.is_idle:
            raise TrainingInProgressError(f"Already teaching {self.label!r}")

        self.label = label
        self.examples_added = 0
        self._started_at = t_now

        prep = self.cfg.training.prep_seconds
        if prep <= 0:
            return self._begin_capture(t_now)

        self.phase = TrainingPhase.COUNTING_DOWN
        self.remaining = prep
        logger.info("⏳ Teaching %r in %d...", label, prep)
        return CountdownTick(remaining=prep)

    def tick(self, t_now: float) -> List[TrainingEvent]:
        """Advance countdown and capture deadlines; returns the transitions that happened."""
        events: List[TrainingEvent] = []

        if self.phase is TrainingPhase.COUNTING_DOWN:
            prep = self.cfg.training.prep_seconds
            remaining = prep - int(t_now - self._started_at)
            if remaining <= 0:
                events.append(self._begin_capture(self._started_at + prep))
            elif remaining != self.remaining:
                self.remaining = remaining
                events.append(CountdownTick(remaining=remaining))

        if self.phase is TrainingPhase.CAPTURING:
            capture_s = self.cfg.training.capture_ms / 1000.0
            if t_now - self._capture_started_at >= capture_s:
                events.append(self._finish())

        return events

    def feed(self, vector: np.ndarray) -> bool:
        """Add `vector` as an example of the label being captured, if capturing."""
        if not self.training_active:
            return False
        self.classifier.add_example(vector, self.label)
        self.examples_added += 1
        return True

    def cancel(self) -> None:
        """Abort the current session without keeping it as finished."""
        if not self.is_idle:
            logger.info("Cancelled teaching %r", self.label)
        self.phase = TrainingPhase.IDLE
        self.label = None
        self.remaining = 0

    def _begin_capture(self, t_start: float) -> CaptureStarted:
        self.phase = TrainingPhase.CAPTURING
        self.remaining = 0
        self._capture_started_at = t_start
        logger.info("🎬 Learning %r...", self.label)
        return CaptureStarted(label=self.label)

    def _finish(self) -> CaptureFinished:
        event = CaptureFinished(label=self.label, examples=self.examples_added)
        logger.info("✅ Captured %d examples of %r", event.examples, event.label)
        self.phase = TrainingPhase.IDLE
        self.label = None
        return event
