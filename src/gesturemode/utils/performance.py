"""
Performance Monitoring Module
==============================

Rolling cycle-rate and per-stage timing for the gesture loop.
"""

import time
import logging
import threading
from collections import defaultdict, deque
from contextlib import contextmanager
from dataclasses import dataclass
from functools import partial
from typing import Optional

logger = logging.getLogger(__name__)


class Timer:
    """
    Stopwatch over time.perf_counter().

    Example:
        >>> with Timer("detect") as t:
        ...     detector.detect(image, ts)
        >>> t.elapsed_ms
    """

    def __init__(self, name: str = ""):
        self.name = name
        self._started: Optional[float] = None
        self._stopped: Optional[float] = None

    def start(self) -> "Timer":
        self._started = time.perf_counter()
        self._stopped = None
        return self

    def stop(self) -> float:
        """Freeze the timer; returns seconds since start()."""
        self._stopped = time.perf_counter()
        return self.elapsed

    @property
    def elapsed(self) -> float:
        """Seconds since start(), still counting until stop()."""
        if self._started is None:
            return 0.0
        end = self._stopped if self._stopped is not None else time.perf_counter()
        return end - self._started

    @property
    def elapsed_ms(self) -> float:
        return self.elapsed * 1000

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False


@dataclass
class PerformanceMetrics:
    """Point-in-time copy of the monitor's figures."""
    cycles_per_second: float = 0.0
    cycle_interval_ms: float = 0.0
    cycle_time_ms: float = 0.0       # one detect, classify, debounce pass
    detection_time_ms: float = 0.0
    total_cycles: int = 0
    failed_cycles: int = 0


def _mean(values) -> float:
    return sum(values) / len(values) if values else 0.0


class PerformanceMonitor:
    """
    Windowed statistics for the scheduler loop.

    The cycle interval is the time between two cycle_complete() calls, so
    the reported rate already includes the scheduler's inter-cycle wait.
    Stage timings come from measure() blocks. All methods are thread-safe.
    """

    def __init__(self, window_size: int = 30):
        self.window_size = window_size
        self._lock = threading.Lock()
        self.reset()

    def reset(self) -> None:
        with self._lock:
            self._intervals = deque(maxlen=self.window_size)
            self._stages = defaultdict(partial(deque, maxlen=self.window_size))
            self._previous: Optional[float] = None
            self._total = 0
            self._failed = 0

    def cycle_complete(self, failed: bool = False) -> None:
        now = time.perf_counter()
        with self._lock:
            if self._previous is not None:
                self._intervals.append(now - self._previous)
            self._previous = now
            self._total += 1
            self._failed += int(failed)

    @contextmanager
    def measure(self, stage: str):
        """Time the enclosed block under `stage`, even if it raises."""
        started = time.perf_counter()
        try:
            yield
        finally:
            elapsed = time.perf_counter() - started
            with self._lock:
                self._stages[stage].append(elapsed)

    @property
    def cycle_interval_ms(self) -> float:
        with self._lock:
            return _mean(self._intervals) * 1000

    @property
    def cycles_per_second(self) -> float:
        interval = self.cycle_interval_ms
        return 1000.0 / interval if interval > 0 else 0.0

    def stage_time_ms(self, stage: str) -> float:
        with self._lock:
            return _mean(self._stages.get(stage, ())) * 1000

    def get_metrics(self) -> PerformanceMetrics:
        with self._lock:
            total, failed = self._total, self._failed
        return PerformanceMetrics(
            cycles_per_second=self.cycles_per_second,
            cycle_interval_ms=self.cycle_interval_ms,
            cycle_time_ms=self.stage_time_ms("cycle"),
            detection_time_ms=self.stage_time_ms("detection"),
            total_cycles=total,
            failed_cycles=failed,
        )

    def get_report(self) -> str:
        m = self.get_metrics()
        return "\n".join([
            "Performance Report",
            "=" * 40,
            "Cycle rate: {:.1f}/s ({:.1f}ms interval)".format(m.cycles_per_second, m.cycle_interval_ms),
            "Cycle time: {:.2f}ms avg".format(m.cycle_time_ms),
            "Detection: {:.2f}ms avg".format(m.detection_time_ms),
            "Cycles: {} total, {} failed".format(m.total_cycles, m.failed_cycles),
        ]) + "\n"
