"""
Shared domain types for the gesture mode controller.

Centralizes enums, data classes, and type definitions used across modules
to eliminate circular imports and ensure type consistency.
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import NamedTuple, Optional, Sequence, Tuple


# =============================================================================
# Landmarks
# =============================================================================

LANDMARK_COUNT = 21


class LandmarkIndex(IntEnum):
    """Hand landmark indices following MediaPipe convention."""
    WRIST = 0
    THUMB_CMC = 1
    THUMB_MCP = 2
    THUMB_IP = 3
    THUMB_TIP = 4
    INDEX_MCP = 5
    INDEX_PIP = 6
    INDEX_DIP = 7
    INDEX_TIP = 8
    MIDDLE_MCP = 9
    MIDDLE_PIP = 10
    MIDDLE_DIP = 11
    MIDDLE_TIP = 12
    RING_MCP = 13
    RING_PIP = 14
    RING_DIP = 15
    RING_TIP = 16
    PINKY_MCP = 17
    PINKY_PIP = 18
    PINKY_DIP = 19
    PINKY_TIP = 20


class Landmark(NamedTuple):
    """A single landmark point with normalized coordinates."""
    x: float  # 0.0 to 1.0, normalized by image width
    y: float  # 0.0 to 1.0, normalized by image height, 0 at the top

    def to_pixel(self, width: int, height: int) -> Tuple[int, int]:
        """Convert normalized coordinates to pixel coordinates."""
        return (int(self.x * width), int(self.y * height))


# One hand; always LANDMARK_COUNT points in MediaPipe order
LandmarkSet = Tuple[Landmark, ...]


def make_landmark_set(points: Sequence[Tuple[float, float]]) -> LandmarkSet:
    """Build an immutable landmark set from (x, y) pairs."""
    if len(points) != LANDMARK_COUNT:
        raise ValueError("Expected {} landmarks, got {}".format(LANDMARK_COUNT, len(points)))
    return tuple(Landmark(float(x), float(y)) for x, y in points)


# =============================================================================
# Gesture / Mode
# =============================================================================

class RawGesture(Enum):
    """Instantaneous per-frame gesture signal."""
    OPEN = "open"
    CLOSED = "closed"
    UNDETERMINED = "undetermined"


class Mode(Enum):
    """The two visual states the presentation renders against."""
    FORMED = "formed"
    CHAOS = "chaos"

    @property
    def opposite(self) -> "Mode":
        return Mode.CHAOS if self is Mode.FORMED else Mode.FORMED


# =============================================================================
# Data Containers
# =============================================================================

@dataclass(frozen=True)
class PointerState:
    """Per-cycle pointer output. Neutral center when no hand is present."""
    x: float = 0.5
    y: float = 0.5
    detected: bool = False

    @staticmethod
    def neutral() -> "PointerState":
        return PointerState(0.5, 0.5, False)


@dataclass(frozen=True)
class ModeTransition:
    """Emitted once when the debouncer switches mode."""
    old: Mode
    new: Mode
    cycle: int = 0


@dataclass(frozen=True)
class ModeSnapshot:
    """Debouncer state carried from one cycle into the next."""
    mode: Mode = Mode.FORMED
    open_run: int = 0
    closed_run: int = 0


@dataclass(frozen=True)
class Classification:
    """Gesture classifier output for one cycle."""
    gesture: RawGesture
    pointer: PointerState


@dataclass(frozen=True)
class CycleResult:
    """Everything a single detect -> classify -> debounce pass produced."""
    cycle: int
    classification: Classification
    snapshot: ModeSnapshot
    transitions: Tuple[ModeTransition, ...] = ()
    landmarks: Optional[LandmarkSet] = None
    error: Optional[str] = None
    requested_mode: Optional[Mode] = None  # manual request applied this cycle

    @property
    def transition(self) -> Optional[ModeTransition]:
        """Last transition of this cycle, if any."""
        return self.transitions[-1] if self.transitions else None

    @property
    def mode(self) -> Mode:
        return self.snapshot.mode

    @property
    def pointer(self) -> PointerState:
        return self.classification.pointer
