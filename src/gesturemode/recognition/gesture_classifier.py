"""
Open/Closed Hand Classifier
============================

Turns one frame's landmark set into a raw gesture signal and a pointer.

The extension test is a plain y-coordinate comparison: a finger counts as
open when its tip sits strictly above its PIP joint on screen. It assumes an
upright, camera-facing hand and is deliberately rotation sensitive.
"""

import logging
from typing import Optional, Tuple

import numpy as np

from ..core.types import (
    Classification,
    LandmarkIndex,
    LandmarkSet,
    PointerState,
    RawGesture,
)

logger = logging.getLogger(__name__)


class GestureClassifier:
    """
    Rule-based open/closed hand classifier.

    Example:
        >>> classifier = GestureClassifier()
        >>> result = classifier.classify(landmarks)
        >>> result.gesture, result.pointer
    """

    # (tip, pip) pairs tested for extension
    TESTED_FINGERS: Tuple[Tuple[LandmarkIndex, LandmarkIndex], ...] = (
        (LandmarkIndex.INDEX_TIP, LandmarkIndex.INDEX_PIP),
        (LandmarkIndex.MIDDLE_TIP, LandmarkIndex.MIDDLE_PIP),
    )

    def classify(self, landmarks: Optional[LandmarkSet]) -> Classification:
        """
        Classify a single frame.

        Args:
            landmarks: Primary hand landmarks, or None when no hand was found

        Returns:
            Classification with the raw gesture and pointer state
        """
        if not landmarks:
            return Classification(RawGesture.UNDETERMINED, PointerState.neutral())

        pointer = self.pointer_from(landmarks)
        gesture = RawGesture.OPEN if self.is_open(landmarks) else RawGesture.CLOSED

        logger.debug("Classified %s at (%.3f, %.3f)", gesture.value, pointer.x, pointer.y)
        return Classification(gesture, pointer)

    @staticmethod
    def pointer_from(landmarks: LandmarkSet) -> PointerState:
        """Centroid of all landmarks."""
        coords = np.asarray([(lm.x, lm.y) for lm in landmarks], dtype=np.float64)
        center_x, center_y = coords.mean(axis=0)
        return PointerState(float(center_x), float(center_y), True)

    @staticmethod
    def finger_open(landmarks: LandmarkSet, tip: LandmarkIndex, pip: LandmarkIndex) -> bool:
        # smaller y = higher on screen
        return landmarks[tip].y < landmarks[pip].y

    def is_open(self, landmarks: LandmarkSet) -> bool:
        return all(self.finger_open(landmarks, tip, pip) for tip, pip in self.TESTED_FINGERS)
