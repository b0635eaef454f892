"""
Shared fixtures: synthetic hands and in-memory camera/detector doubles.
"""

import sys
from pathlib import Path

import numpy as np
import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from gesturemode.capture.camera import Frame
from gesturemode.core.errors import PredictionError
from gesturemode.core.types import Landmark


def create_hand_landmarks(index_up: bool = True, middle_up: bool = True, base_x: float = 0.5, base_y: float = 0.7):
    """
    Build a 21-point upright hand.

    Args:
        index_up: Index tip above its PIP joint
        middle_up: Middle tip above its PIP joint

    Returns:
        Tuple of Landmark
    """
    landmarks = [Landmark(base_x, base_y)]  # Wrist

    # Thumb (1-4)
    for i in range(1, 5):
        landmarks.append(Landmark(base_x - 0.03 * i, base_y - 0.02 * i))

    # Index, middle, ring, pinky: MCP, PIP, DIP, TIP
    fingers = [
        (-0.05, index_up),
        (0.0, middle_up),
        (0.05, False),
        (0.1, False),
    ]
    for x_off, up in fingers:
        x = base_x + x_off
        landmarks.append(Landmark(x, base_y - 0.10))  # MCP
        landmarks.append(Landmark(x, base_y - 0.16))  # PIP
        if up:
            landmarks.append(Landmark(x, base_y - 0.22))  # DIP
            landmarks.append(Landmark(x, base_y - 0.28))  # TIP above PIP
        else:
            landmarks.append(Landmark(x, base_y - 0.12))  # DIP curled
            landmarks.append(Landmark(x, base_y - 0.08))  # TIP below PIP

    return tuple(landmarks)


class FakeCamera:
    """Capture source double that always has a frame buffered."""

    def __init__(self, ready: bool = True):
        self.acquire_calls = 0
        self.release_calls = 0
        self.error = None
        self._ready = ready
        self._running = False
        self._ts = 0

    def acquire(self):
        self.acquire_calls += 1
        if self.error is not None:
            raise self.error
        self._running = True
        return self

    def release(self):
        self.release_calls += 1
        self._running = False

    @property
    def is_ready(self):
        return self._ready

    def read(self):
        if not self._ready:
            return None
        self._ts += 33
        return Frame(image=np.zeros((4, 4, 3), dtype=np.uint8), timestamp_ms=self._ts, frame_number=self._ts // 33)


class FakeDetector:
    """
    Detector double returning scripted results.

    Each script item is a landmark tuple, None (no hand) or an Exception
    instance, which is raised as a PredictionError. Once the script runs
    out, the last item repeats.
    """

    def __init__(self, script=None, ready: bool = True):
        self.script = list(script or [None])
        self.create_calls = 0
        self.close_calls = 0
        self.detect_calls = 0
        self.create_error = None
        self._ready = ready

    def create(self):
        self.create_calls += 1
        if self.create_error is not None:
            raise self.create_error
        self._ready = True
        return self

    def close(self):
        self.close_calls += 1
        self._ready = False

    @property
    def is_ready(self):
        return self._ready

    def detect(self, image, timestamp_ms):
        idx = min(self.detect_calls, len(self.script) - 1)
        self.detect_calls += 1
        item = self.script[idx]
        if isinstance(item, Exception):
            raise PredictionError(str(item))
        return item


@pytest.fixture
def open_hand():
    return create_hand_landmarks(index_up=True, middle_up=True)


@pytest.fixture
def closed_hand():
    return create_hand_landmarks(index_up=False, middle_up=False)


@pytest.fixture
def fake_camera():
    return FakeCamera()
