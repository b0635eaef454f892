"""
Run-count debouncer for the FORMED / CHAOS mode switch.

Each cycle feeds one raw gesture signal together with the current mode
snapshot and receives the next snapshot back:

    FORMED + OPEN      -> open_run += 1, closed_run = 0, switch once open_run > threshold
    FORMED + otherwise -> closed_run += 1, open_run = 0
    CHAOS  + CLOSED    -> closed_run += 1, open_run = 0, switch once closed_run > threshold
    CHAOS  + otherwise -> open_run += 1, closed_run = 0

The counter that could trigger a switch is reset to 0 as soon as the switch
happens. At most one counter is non-zero at any time.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from ..core.types import Mode, ModeSnapshot, ModeTransition, RawGesture

logger = logging.getLogger(__name__)


@dataclass
class DebouncerConfig:
    """Debouncer configuration."""
    confidence_threshold: int = 5  # Consecutive cycles that must be exceeded

    @classmethod
    def from_dict(cls, config: dict) -> "DebouncerConfig":
        """Create config from dictionary."""
        return cls(
            confidence_threshold=int(config.get("confidence_threshold", 5)),
        )


class ModeDebouncer:
    """Hysteretic two-state mode switch driven by raw gesture signals."""

    def __init__(self, config: Optional[DebouncerConfig] = None):
        self.config = config or DebouncerConfig()
        if self.config.confidence_threshold < 0:
            raise ValueError("confidence_threshold must be non-negative")

    @property
    def threshold(self) -> int:
        return self.config.confidence_threshold

    def step(
        self,
        snapshot: ModeSnapshot,
        gesture: RawGesture,
        cycle: int = 0,
    ) -> Tuple[ModeSnapshot, Optional[ModeTransition]]:
        """
        Advance the state machine by one cycle.

        Args:
            snapshot: Mode and run counters observed by this cycle
            gesture: Raw gesture signal for this cycle
            cycle: Cycle index, stamped onto any emitted transition

        Returns:
            Tuple of (next_snapshot, transition or None)
        """
        mode = snapshot.mode
        open_run, closed_run = snapshot.open_run, snapshot.closed_run

        if mode is Mode.FORMED:
            if gesture is RawGesture.OPEN:
                open_run, closed_run = open_run + 1, 0
                if open_run > self.threshold:
                    return self._switch(mode, cycle)
            else:
                open_run, closed_run = 0, closed_run + 1
        else:
            if gesture is RawGesture.CLOSED:
                open_run, closed_run = 0, closed_run + 1
                if closed_run > self.threshold:
                    return self._switch(mode, cycle)
            else:
                open_run, closed_run = open_run + 1, 0

        return ModeSnapshot(mode, open_run, closed_run), None

    def force(self, snapshot: ModeSnapshot, mode: Mode, cycle: int = 0) -> Tuple[ModeSnapshot, Optional[ModeTransition]]:
        """Set the mode directly (manual toggle). Clears both run counters."""
        if mode is snapshot.mode:
            return ModeSnapshot(mode), None
        logger.info("Mode forced: %s -> %s", snapshot.mode.value, mode.value)
        return ModeSnapshot(mode), ModeTransition(snapshot.mode, mode, cycle)

    def _switch(self, mode: Mode, cycle: int) -> Tuple[ModeSnapshot, ModeTransition]:
        new_mode = mode.opposite
        logger.info("Switching to %s mode (cycle %d)", new_mode.value.upper(), cycle)
        return ModeSnapshot(new_mode), ModeTransition(mode, new_mode, cycle)
