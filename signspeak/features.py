"""
Feature encoding of hand landmarks for the gesture classifier.
"""
from typing import Sequence

import numpy as np

from .types import HandLandmarks

NUM_LANDMARKS = 21
NUM_COORDS = 3
MAX_HANDS = 2
HAND_FEATURES = NUM_LANDMARKS * NUM_COORDS  # 63
FEATURE_SIZE = MAX_HANDS * HAND_FEATURES  # 126


def encode_hand(landmarks: HandLandmarks) -> np.ndarray:
    """
    Encode one hand relative to its wrist.

    Args:
        landmarks: 21 (x, y, z) hand landmarks, index 0 is the wrist

    Returns:
        Flat array of 63 values, (point - wrist) for every landmark
    """
    points = np.asarray(landmarks, dtype=np.float32).reshape(-1, NUM_COORDS)
    return (points - points[0]).reshape(-1)


def encode_hands(hands: Sequence[HandLandmarks]) -> np.ndarray:
    """
    Encode up to two hands into a fixed-length feature vector.

    Hands are taken in the order the tracker reported them; anything past the
    second hand is ignored and a missing hand leaves its slots at zero.

    Args:
        hands: Detected hands, each a sequence of 21 (x, y, z) landmarks

    Returns:
        Array of FEATURE_SIZE float32 values
    """
    values = np.zeros(FEATURE_SIZE, dtype=np.float32)
    for hand_index, landmarks in enumerate(hands[:MAX_HANDS]):
        offset = hand_index * HAND_FEATURES
        values[offset:offset + HAND_FEATURES] = encode_hand(landmarks)
    return values
