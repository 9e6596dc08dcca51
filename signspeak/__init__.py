"""
Sign Speak

A Python assistant that reads webcam frames, detects hand landmarks using MediaPipe,
classifies taught gestures with a KNN model and turns stable gestures into a
spoken sentence.
"""

__version__ = "0.1.0"

from .types import (
    AppendWord,
    ClassificationResult,
    ClearSentence,
    DeleteLastWord,
    SpeakSentence,
    GestureClassifierProto,
    LandmarkProviderProto,
    SpeechOutputProto,
)
from .config import load_config, Cfg
from .features import encode_hands, FEATURE_SIZE
from .classifier import KNNGestureClassifier
from .stabilizer import GestureStabilizer, Sentence, SentenceBuilder
from .training import TrainingSession, TrainingPhase

__all__ = [
    "AppendWord",
    "ClassificationResult",
    "ClearSentence",
    "DeleteLastWord",
    "SpeakSentence",
    "GestureClassifierProto",
    "LandmarkProviderProto",
    "SpeechOutputProto",
    "load_config",
    "Cfg",
    "encode_hands",
    "FEATURE_SIZE",
    "KNNGestureClassifier",
    "GestureStabilizer",
    "Sentence",
    "SentenceBuilder",
    "TrainingSession",
    "TrainingPhase",
]
