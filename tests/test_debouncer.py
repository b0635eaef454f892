"""
Tests for Mode Debouncer
=========================
"""

import random

import pytest

from gesturemode.control.debouncer import DebouncerConfig, ModeDebouncer
from gesturemode.core.types import Mode, ModeSnapshot, RawGesture

OPEN = RawGesture.OPEN
CLOSED = RawGesture.CLOSED
NONE = RawGesture.UNDETERMINED


def feed(debouncer, signals, snapshot=None):
    """Run signals through the debouncer; return (final snapshot, [(cycle, transition)])."""
    snapshot = snapshot or ModeSnapshot()
    transitions = []
    for cycle, signal in enumerate(signals, start=1):
        snapshot, transition = debouncer.step(snapshot, signal, cycle)
        if transition is not None:
            transitions.append((cycle, transition))
    return snapshot, transitions


class TestDebouncerConfig:

    def test_default_threshold(self):
        assert DebouncerConfig().confidence_threshold == 5

    def test_from_dict(self):
        assert DebouncerConfig.from_dict({"confidence_threshold": 3}).confidence_threshold == 3

    def test_negative_threshold_rejected(self):
        with pytest.raises(ValueError):
            ModeDebouncer(DebouncerConfig(confidence_threshold=-1))


class TestModeDebouncer:

    @pytest.fixture
    def debouncer(self):
        return ModeDebouncer()

    def test_initial_mode_formed(self):
        assert ModeSnapshot().mode is Mode.FORMED

    def test_open_run_switches_on_sixth(self, debouncer):
        snapshot, transitions = feed(debouncer, [OPEN] * 6)

        assert len(transitions) == 1
        cycle, transition = transitions[0]
        assert cycle == 6
        assert (transition.old, transition.new) == (Mode.FORMED, Mode.CHAOS)
        assert snapshot == ModeSnapshot(Mode.CHAOS, 0, 0)

    def test_five_open_do_not_switch(self, debouncer):
        snapshot, transitions = feed(debouncer, [OPEN] * 5)

        assert transitions == []
        assert snapshot == ModeSnapshot(Mode.FORMED, 5, 0)

    def test_long_open_run_switches_exactly_once(self, debouncer):
        snapshot, transitions = feed(debouncer, [OPEN] * 30)

        assert [c for c, _ in transitions] == [6]
        assert snapshot.mode is Mode.CHAOS

    def test_closed_run_switches_back(self, debouncer):
        start = ModeSnapshot(Mode.CHAOS)
        snapshot, transitions = feed(debouncer, [CLOSED] * 6, start)

        assert len(transitions) == 1
        cycle, transition = transitions[0]
        assert cycle == 6
        assert (transition.old, transition.new) == (Mode.CHAOS, Mode.FORMED)
        assert snapshot == ModeSnapshot(Mode.FORMED, 0, 0)

    def test_opposing_signal_breaks_run(self, debouncer):
        _, transitions = feed(debouncer, [OPEN] * 5 + [CLOSED] + [OPEN] * 5)

        assert transitions == []

    def test_undetermined_breaks_open_run(self, debouncer):
        snapshot, transitions = feed(debouncer, [OPEN] * 5 + [NONE] + [OPEN] * 5)

        assert transitions == []
        assert snapshot.open_run == 5

    def test_undetermined_never_switches_to_formed(self, debouncer):
        snapshot, transitions = feed(debouncer, [NONE] * 50, ModeSnapshot(Mode.CHAOS))

        assert transitions == []
        assert snapshot.mode is Mode.CHAOS
        assert snapshot.closed_run == 0

    def test_closed_in_formed_counts_without_switching(self, debouncer):
        snapshot, transitions = feed(debouncer, [CLOSED] * 10)

        assert transitions == []
        assert snapshot == ModeSnapshot(Mode.FORMED, 0, 10)

    def test_alternating_never_switches(self, debouncer):
        _, transitions = feed(debouncer, [OPEN, CLOSED] * 10)

        assert transitions == []

    def test_round_trip(self, debouncer):
        snapshot, transitions = feed(debouncer, [OPEN] * 6 + [CLOSED] * 6)

        assert [c for c, _ in transitions] == [6, 12]
        assert snapshot.mode is Mode.FORMED

    def test_custom_threshold(self):
        debouncer = ModeDebouncer(DebouncerConfig(confidence_threshold=2))
        _, transitions = feed(debouncer, [OPEN] * 3)

        assert [c for c, _ in transitions] == [3]

    def test_zero_threshold_switches_immediately(self):
        debouncer = ModeDebouncer(DebouncerConfig(confidence_threshold=0))
        _, transitions = feed(debouncer, [OPEN])

        assert [c for c, _ in transitions] == [1]

    def test_counters_mutually_exclusive(self, debouncer):
        rng = random.Random(42)
        snapshot = ModeSnapshot()
        for cycle in range(500):
            signal = rng.choice([OPEN, CLOSED, NONE])
            snapshot, _ = debouncer.step(snapshot, signal, cycle)
            assert snapshot.open_run >= 0 and snapshot.closed_run >= 0
            assert snapshot.open_run == 0 or snapshot.closed_run == 0

    def test_step_does_not_mutate_input(self, debouncer):
        start = ModeSnapshot()
        debouncer.step(start, OPEN)

        assert start == ModeSnapshot()

    def test_force_switches_and_clears(self, debouncer):
        snapshot, transition = debouncer.force(ModeSnapshot(Mode.FORMED, 4, 0), Mode.CHAOS, cycle=9)

        assert snapshot == ModeSnapshot(Mode.CHAOS, 0, 0)
        assert (transition.old, transition.new, transition.cycle) == (Mode.FORMED, Mode.CHAOS, 9)

    def test_force_same_mode_no_transition(self, debouncer):
        snapshot, transition = debouncer.force(ModeSnapshot(Mode.CHAOS, 2, 0), Mode.CHAOS)

        assert transition is None
        assert snapshot == ModeSnapshot(Mode.CHAOS)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
