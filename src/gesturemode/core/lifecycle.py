"""
Lifecycle phases of the gesture controller and the status strings shown
to the user for each of them.

    UNINITIALIZED -> DETECTOR_READY -> CAPTURE_READY -> RUNNING -> STOPPED
                  \\________________\\________________> FAILED ---^

STOPPED may be set up again from the start.
"""

import logging
from enum import Enum

from .errors import LifecycleError
from .types import Mode

logger = logging.getLogger(__name__)

STATUS_INITIALIZING = "initializing"
STATUS_READY = "ready — awaiting hand"
STATUS_NO_HAND = "no hand detected"
STATUS_STOPPED = "stopped"


def mode_status(mode: Mode) -> str:
    return "{} active".format(mode.name)


class LifecyclePhase(Enum):
    UNINITIALIZED = "uninitialized"
    DETECTOR_READY = "detector_ready"
    CAPTURE_READY = "capture_ready"
    RUNNING = "running"
    STOPPED = "stopped"
    FAILED = "failed"


_TRANSITIONS = {
    LifecyclePhase.UNINITIALIZED: {LifecyclePhase.DETECTOR_READY, LifecyclePhase.FAILED, LifecyclePhase.STOPPED},
    LifecyclePhase.DETECTOR_READY: {LifecyclePhase.CAPTURE_READY, LifecyclePhase.FAILED, LifecyclePhase.STOPPED},
    LifecyclePhase.CAPTURE_READY: {LifecyclePhase.RUNNING, LifecyclePhase.FAILED, LifecyclePhase.STOPPED},
    LifecyclePhase.RUNNING: {LifecyclePhase.STOPPED},
    LifecyclePhase.FAILED: {LifecyclePhase.STOPPED},
    LifecyclePhase.STOPPED: {LifecyclePhase.DETECTOR_READY, LifecyclePhase.FAILED},
}


class Lifecycle:
    """Current phase plus a checked single-step transition."""

    def __init__(self):
        self._phase = LifecyclePhase.UNINITIALIZED

    @property
    def phase(self) -> LifecyclePhase:
        return self._phase

    def can_advance(self, target: LifecyclePhase) -> bool:
        return target in _TRANSITIONS[self._phase]

    def advance(self, target: LifecyclePhase) -> None:
        if target is self._phase:
            return
        if not self.can_advance(target):
            raise LifecycleError("Illegal lifecycle transition {} -> {}".format(
                self._phase.value, target.value))
        logger.debug("Lifecycle: %s -> %s", self._phase.value, target.value)
        self._phase = target
