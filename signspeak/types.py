"""
Type definitions for the sign-to-speech assistant.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Protocol, Sequence, Tuple, Union, runtime_checkable

import numpy as np


Landmark = Tuple[float, float, float]
HandLandmarks = Sequence[Landmark]

# Labels with special meaning to the stabilizer
SPEAK_LABEL = "SPEAK"
DELETE_LABEL = "DELETE"
NOTHING_LABEL = "NOTHING"
CONTROL_LABELS = (SPEAK_LABEL, DELETE_LABEL)


@dataclass
class ClassificationResult:
    """Best label for a feature vector plus the confidence for every known label."""
    label: str
    confidences: Dict[str, float] = field(default_factory=dict)

    @property
    def confidence(self) -> float:
        """Confidence of the reported label."""
        return self.confidences.get(self.label, 0.0)


@dataclass
class AppendWord:
    """Command to append a word to the sentence."""
    word: str


@dataclass
class DeleteLastWord:
    """Command to remove the last word of the sentence."""


@dataclass
class SpeakSentence:
    """Command to read the sentence out loud."""


@dataclass
class ClearSentence:
    """Command to empty the sentence."""


SentenceCommand = Union[AppendWord, DeleteLastWord, SpeakSentence, ClearSentence]


@runtime_checkable
class LandmarkProviderProto(Protocol):
    """Detects hands in a frame."""

    def process(self, frame: np.ndarray) -> List[List[Landmark]]:
        """Return 0..2 hands, 21 (x, y, z) points each."""
        ...


@runtime_checkable
class GestureClassifierProto(Protocol):
    """Maps feature vectors to gesture labels and learns from examples."""

    @property
    def labels(self) -> List[str]:
        ...

    @property
    def num_classes(self) -> int:
        ...

    def predict(self, vector: np.ndarray) -> ClassificationResult:
        ...

    def add_example(self, vector: np.ndarray, label: str) -> None:
        ...

    def clear_label(self, label: str) -> None:
        ...

    def export_examples(self) -> Dict[str, List[float]]:
        ...

    def import_examples(self, blob: Mapping[str, Sequence[float]]) -> None:
        ...


@runtime_checkable
class SpeechOutputProto(Protocol):
    """Renders text as audio, at most one utterance at a time."""

    def speak(self, text: str) -> None:
        """Interrupt any current utterance and speak `text`."""
        ...

    def cancel(self) -> None:
        """Stop the current utterance, if any."""
        ...


@runtime_checkable
class KeyValueStoreProto(Protocol):
    """String key-value store used for persistence."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...
