"""
Hand Detection Module - MediaPipe Tasks API
=============================================

Wraps the MediaPipe HandLandmarker in VIDEO running mode. Only the first
detected hand is reported, reduced to its 21 normalized (x, y) points.
"""

import logging
import threading
import urllib.request
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

import numpy as np

import mediapipe as mp
from mediapipe.tasks import python
from mediapipe.tasks.python import vision

from ..core.errors import DetectorError, PredictionError
from ..core.types import LANDMARK_COUNT, Landmark, LandmarkSet

logger = logging.getLogger(__name__)

# Model download URL
HAND_LANDMARKER_MODEL_URL = "https://storage.googleapis.com/mediapipe-models/hand_landmarker/hand_landmarker/float16/1/hand_landmarker.task"
DEFAULT_MODEL_PATH = Path.home() / ".cache" / "gesturemode" / "hand_landmarker.task"

# Skeleton connections for drawing
HAND_CONNECTIONS = [
    (0, 1), (1, 2), (2, 3), (3, 4),           # Thumb
    (0, 5), (5, 6), (6, 7), (7, 8),           # Index
    (5, 9), (9, 10), (10, 11), (11, 12),      # Middle
    (9, 13), (13, 14), (14, 15), (15, 16),    # Ring
    (13, 17), (17, 18), (18, 19), (19, 20),   # Pinky
    (0, 17),                                   # Palm base
]


@dataclass
class HandDetectorConfig:
    """HandLandmarker settings; confidences are in [0, 1]."""
    model_path: str = ""   # empty: DEFAULT_MODEL_PATH
    delegate: str = "GPU"  # GPU | CPU
    num_hands: int = 1
    min_detection_confidence: float = 0.5
    min_presence_confidence: float = 0.5
    min_tracking_confidence: float = 0.5

    @classmethod
    def from_dict(cls, config: dict) -> "HandDetectorConfig":
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in config.items() if k in known}
        if "delegate" in values:
            values["delegate"] = str(values["delegate"]).upper()
        if values.get("model_path") is None:
            values.pop("model_path", None)
        return cls(**values)


def download_model(url: str, target: Path) -> bool:
    """Fetch the model to `target` unless it is already there."""
    if target.exists():
        return True

    partial = target.with_suffix(target.suffix + ".part")
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        logger.info("Fetching hand landmarker model into %s", target)
        urllib.request.urlretrieve(url, str(partial))
        partial.replace(target)
    except OSError as e:
        logger.error("Hand landmarker model download failed: %s", e)
        if partial.exists():
            partial.unlink()
        return False
    return True


class HandDetector:
    """
    Owned handle around a MediaPipe HandLandmarker.

    create() loads the model once; detect() is called from the scheduler
    thread only; close() is idempotent and safe before create(). close()
    waits for an in-flight detect() to return before releasing the handle.

    Example:
        >>> detector = HandDetector(HandDetectorConfig())
        >>> detector.create()
        >>> landmarks = detector.detect(rgb_image, timestamp_ms)
        >>> detector.close()
    """

    def __init__(self, config: Optional[HandDetectorConfig] = None):
        self.config = config or HandDetectorConfig()
        self._landmarker: Optional[vision.HandLandmarker] = None
        self._last_timestamp_ms = -1
        self._lock = threading.Lock()

    @property
    def is_ready(self) -> bool:
        return self._landmarker is not None

    def create(self) -> "HandDetector":
        """
        Load the hand landmarker.

        Raises:
            DetectorError: model missing and not downloadable, or the
                landmarker could not be created on any delegate
        """
        if self._landmarker is not None:
            return self

        model_path = Path(self.config.model_path or DEFAULT_MODEL_PATH)
        if not model_path.exists():
            if not download_model(HAND_LANDMARKER_MODEL_URL, model_path):
                raise DetectorError("Could not download hand landmarker model")

        delegates = [self.config.delegate]
        if self.config.delegate != "CPU":
            delegates.append("CPU")

        last_error = None
        for delegate in delegates:
            try:
                self._landmarker = vision.HandLandmarker.create_from_options(
                    self._options(str(model_path), delegate))
            except Exception as e:
                logger.warning("HandLandmarker creation failed on %s delegate: %s", delegate, e)
                last_error = e
                continue

            logger.info("HandLandmarker initialized with model: %s (delegate=%s)", model_path, delegate)
            self._last_timestamp_ms = -1
            return self

        raise DetectorError("Failed to initialize HandLandmarker: {}".format(last_error))

    def close(self) -> None:
        """Release the landmarker. Idempotent."""
        with self._lock:
            landmarker, self._landmarker = self._landmarker, None
            if landmarker is None:
                return
            try:
                landmarker.close()
            except Exception as e:
                logger.warning("Error closing HandLandmarker: %s", e)
        logger.info("HandLandmarker closed")

    def detect(self, image: np.ndarray, timestamp_ms: int) -> Optional[LandmarkSet]:
        """
        Detect the primary hand in an RGB frame.

        Args:
            image: RGB image as numpy array (H, W, 3)
            timestamp_ms: Monotonic frame timestamp in milliseconds

        Returns:
            The first hand's landmark set, or None when no hand is visible

        Raises:
            PredictionError: the landmarker is not ready or inference failed
        """
        with self._lock:
            if self._landmarker is None:
                raise PredictionError("HandLandmarker not initialized")

            # VIDEO mode rejects non-increasing timestamps
            if timestamp_ms <= self._last_timestamp_ms:
                timestamp_ms = self._last_timestamp_ms + 1
            self._last_timestamp_ms = timestamp_ms

            try:
                mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=image)
                result = self._landmarker.detect_for_video(mp_image, timestamp_ms)
            except Exception as e:
                raise PredictionError(str(e)) from e

        if not result.hand_landmarks:
            return None

        hand = result.hand_landmarks[0]
        if len(hand) != LANDMARK_COUNT:
            logger.warning("Discarding hand with %d landmarks", len(hand))
            return None
        return tuple(Landmark(x=lm.x, y=lm.y) for lm in hand)

    def _options(self, model_path: str, delegate: str) -> "vision.HandLandmarkerOptions":
        base_options = python.BaseOptions(
            model_asset_path=model_path,
            delegate=getattr(python.BaseOptions.Delegate, delegate),
        )
        return vision.HandLandmarkerOptions(
            base_options=base_options,
            running_mode=vision.RunningMode.VIDEO,
            num_hands=self.config.num_hands,
            min_hand_detection_confidence=self.config.min_detection_confidence,
            min_hand_presence_confidence=self.config.min_presence_confidence,
            min_tracking_confidence=self.config.min_tracking_confidence,
        )

    def __enter__(self):
        return self.create()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
