"""
Hand landmark detection using MediaPipe.
"""
import logging

import cv2
import mediapipe as mp
import numpy as np
from typing import List

from .errors import CollaboratorUnavailableError
from .types import Landmark

logger = logging.getLogger(__name__)


class HandsTracker:
    """Hand landmark tracker using MediaPipe Hands."""

    def __init__(self, max_num_hands: int = 2, model_complexity: int = 1,
                 min_detection_conf: float = 0.5, min_tracking_conf: float = 0.5):
        """
        Initialize the hands tracker.

        Args:
            max_num_hands: Maximum number of hands to detect
            model_complexity: MediaPipe hand model complexity (0 or 1)
            min_detection_conf: Minimum confidence for hand detection
            min_tracking_conf: Minimum confidence for hand tracking

        Raises:
            CollaboratorUnavailableError: If MediaPipe Hands cannot be started
        """
        try:
            self.mp_hands = mp.solutions.hands
            self.mp_drawing = mp.solutions.drawing_utils
            self.hands = self.mp_hands.Hands(
                static_image_mode=False,
                max_num_hands=max_num_hands,
                model_complexity=model_complexity,
                min_detection_confidence=min_detection_conf,
                min_tracking_confidence=min_tracking_conf
            )
        except (AttributeError, RuntimeError, OSError) as e:
            raise CollaboratorUnavailableError(f"MediaPipe Hands unavailable: {e}") from e
        logger.info("✅ MediaPipe Hands ready (max_num_hands=%d)", max_num_hands)

    def process(self, frame_bgr: np.ndarray) -> List[List[Landmark]]:
        """
        Process a frame and return hand landmarks.

        Args:
            frame_bgr: Input frame in BGR format

        Returns:
            One list of 21 (x, y, z) coordinates per detected hand, possibly empty
        """
        frame_rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
        results = self.hands.process(frame_rgb)

        if not results.multi_hand_landmarks:
            return []

        return [
            [(lm.x, lm.y, lm.z) for lm in hand_landmarks.landmark]
            for hand_landmarks in results.multi_hand_landmarks
        ]

    def close(self) -> None:
        """Release the MediaPipe graph."""
        self.hands.close()


def draw_hands(frame: np.ndarray, hands: List[List[Landmark]]) -> np.ndarray:
    """
    Draw hand skeletons on the frame.

    Args:
        frame: Input frame
        hands: Hands as returned by HandsTracker.process

    Returns:
        Frame with landmarks and connections drawn
    """
    height, width = frame.shape[:2]
    connections = mp.solutions.hands.HAND_CONNECTIONS

    for landmarks in hands:
        points = [(int(x * width), int(y * height)) for x, y, _ in landmarks]
        for start, end in connections:
            cv2.line(frame, points[start], points[end], (0, 255, 0), 4)
        for px, py in points:
            cv2.circle(frame, (px, py), 5, (0, 0, 255), -1)

    return frame
