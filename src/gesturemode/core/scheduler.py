"""
Frame scheduler: drives detect -> classify -> debounce -> publish.

One worker thread runs the cycle. After every completed pass it waits a
fixed minimum delay before starting the next one, so a slow detector
stretches the cadence instead of piling up work. At most one detection is
ever in flight.

Cancellation flips a per-run event that is checked before a cycle starts
and again before its result is committed; a result that completes after
stop() is discarded. A worker that is still inside detection when stop()
gives up waiting is kept: the next start() waits for it to finish, and
after_exit() callbacks only run once no worker is alive.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional

from ..control.debouncer import ModeDebouncer
from ..core.errors import PredictionError
from ..core.types import CycleResult, Mode, ModeSnapshot
from ..recognition.gesture_classifier import GestureClassifier
from ..utils.performance import PerformanceMonitor

logger = logging.getLogger(__name__)


@dataclass
class SchedulerConfig:
    """Scheduler timing configuration."""
    min_delay_ms: int = 60        # Wait after each completed cycle
    idle_poll_ms: int = 5         # Wait while camera or detector are not ready
    frame_timeout_s: float = 5.0  # Readiness gate before the loop may start
    stop_timeout_s: float = 2.0   # How long stop() waits for an in-flight cycle

    @classmethod
    def from_dict(cls, config: dict) -> "SchedulerConfig":
        """Create config from dictionary."""
        return cls(
            min_delay_ms=config.get("min_delay_ms", 60),
            idle_poll_ms=config.get("idle_poll_ms", 5),
            frame_timeout_s=config.get("frame_timeout_s", 5.0),
            stop_timeout_s=config.get("stop_timeout_s", 2.0),
        )


class FrameScheduler:
    """
    Cancellable periodic task around a single gesture cycle.

    The scheduler owns the mode snapshot: each cycle receives the snapshot
    committed by the previous one and produces the next. Camera and detector
    are borrowed; their lifecycle belongs to the caller.

    Example:
        >>> scheduler = FrameScheduler(camera, detector, on_result=sink)
        >>> scheduler.start()
        >>> ...
        >>> scheduler.stop()
    """

    def __init__(
        self,
        camera,
        detector,
        on_result: Callable[[CycleResult], None],
        classifier: Optional[GestureClassifier] = None,
        debouncer: Optional[ModeDebouncer] = None,
        config: Optional[SchedulerConfig] = None,
        performance: Optional[PerformanceMonitor] = None,
    ):
        self.config = config or SchedulerConfig()
        self._camera = camera
        self._detector = detector
        self._on_result = on_result
        self._classifier = classifier or GestureClassifier()
        self._debouncer = debouncer or ModeDebouncer()
        self._perf = performance or PerformanceMonitor()

        self._snapshot = ModeSnapshot()
        self._cycle = 0
        self._pending_mode: Optional[Mode] = None
        self._pending_lock = threading.Lock()

        self._thread: Optional[threading.Thread] = None  # latest worker, kept until it exits
        self._cancel: Optional[threading.Event] = None

        self._exit_lock = threading.Lock()
        self._active_workers = 0
        self._after_exit: List[Callable[[], None]] = []

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> ModeSnapshot:
        return self._snapshot

    @property
    def mode(self) -> Mode:
        return self._snapshot.mode

    @property
    def cycle(self) -> int:
        """Index of the last committed cycle."""
        return self._cycle

    @property
    def is_running(self) -> bool:
        return self._cancel is not None and not self._cancel.is_set()

    @property
    def is_idle(self) -> bool:
        """No worker thread alive, including one finishing a cancelled cycle."""
        with self._exit_lock:
            return self._active_workers == 0

    @property
    def prerequisites_met(self) -> bool:
        return self._camera.is_ready and self._detector.is_ready

    def request_mode(self, mode: Mode) -> None:
        """Queue a forced mode; applied by the next committed cycle."""
        with self._pending_lock:
            self._pending_mode = mode

    def force_mode(self, mode: Mode):
        """Apply a forced mode immediately. Only valid while stopped."""
        if self.is_running:
            raise RuntimeError("force_mode() while running; use request_mode()")
        snapshot, transition = self._debouncer.force(self._snapshot, mode, self._cycle)
        self._snapshot = snapshot
        return transition

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """
        Start the worker loop. No-op if already running.

        If the worker of an earlier run is still blocked in detection, the
        new worker waits for it before its first cycle.
        """
        if self.is_running:
            return

        previous = self._thread
        cancel = threading.Event()
        self._cancel = cancel
        self._perf.reset()
        with self._exit_lock:
            self._active_workers += 1
        self._thread = threading.Thread(
            target=self._run, args=(cancel, previous), name="frame-scheduler", daemon=True)
        self._thread.start()
        logger.info("Frame scheduler started (min delay %dms)", self.config.min_delay_ms)

    def stop(self, timeout: Optional[float] = None) -> bool:
        """
        Cancel the loop; no further cycle is committed. Idempotent.

        Returns:
            True once the worker has exited, False if it is still inside a
            detection call after `timeout` seconds (default stop_timeout_s)
        """
        cancel, self._cancel = self._cancel, None
        if cancel is not None:
            cancel.set()
            logger.info("Frame scheduler stopped after %d cycles", self._cycle)
        return self.join(self.config.stop_timeout_s if timeout is None else timeout)

    cancel = stop

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the worker to exit. Returns False if it is still alive."""
        thread = self._thread
        if thread is None:
            return True
        if thread is threading.current_thread():
            return False

        thread.join(timeout=timeout)
        if thread.is_alive():
            logger.warning("Scheduler worker still inside detection; it exits when the call returns")
            return False
        if self._thread is thread:
            self._thread = None
        return True

    def after_exit(self, callback: Callable[[], None]) -> None:
        """
        Run `callback` once no worker thread is alive.

        Runs immediately when idle, otherwise on the last exiting worker.
        Used to release the camera and detector only after their last use.
        """
        with self._exit_lock:
            if self._active_workers:
                self._after_exit.append(callback)
                return
        callback()

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    def tick(self) -> Optional[CycleResult]:
        """Run and commit one cycle on the calling thread."""
        result = self.run_cycle()
        if result is not None:
            self._commit(result)
        return result

    def run_cycle(self) -> Optional[CycleResult]:
        """
        Compute one cycle without committing it.

        A queued mode request is applied to the result but stays queued
        until the result is committed.

        Returns:
            CycleResult, or None when camera or detector are not ready
        """
        if not self.prerequisites_met:
            return None
        frame = self._camera.read()
        if frame is None:
            return None

        with self._perf.measure("cycle"):
            cycle = self._cycle + 1
            snapshot = self._snapshot
            transitions = []

            with self._pending_lock:
                requested = self._pending_mode
            if requested is not None:
                snapshot, forced = self._debouncer.force(snapshot, requested, cycle)
                if forced is not None:
                    transitions.append(forced)

            landmarks = None
            error = None
            try:
                with self._perf.measure("detection"):
                    landmarks = self._detector.detect(frame.rgb, frame.timestamp_ms)
            except PredictionError as e:
                logger.error("Prediction error (cycle %d): %s", cycle, e)
                error = str(e)

            classification = self._classifier.classify(landmarks)
            snapshot, transition = self._debouncer.step(snapshot, classification.gesture, cycle)
            if transition is not None:
                transitions.append(transition)

        return CycleResult(
            cycle=cycle,
            classification=classification,
            snapshot=snapshot,
            transitions=tuple(transitions),
            landmarks=landmarks,
            error=error,
            requested_mode=requested,
        )

    def _commit(self, result: CycleResult) -> None:
        with self._pending_lock:
            if result.requested_mode is not None and self._pending_mode is result.requested_mode:
                self._pending_mode = None
        self._snapshot = result.snapshot
        self._cycle = result.cycle
        self._perf.cycle_complete(failed=result.error is not None)
        self._on_result(result)

    def _run(self, cancel: threading.Event, previous: Optional[threading.Thread]) -> None:
        try:
            if previous is not None and previous.is_alive():
                logger.info("Waiting for the previous scheduler worker to finish its cycle")
                previous.join()
            self._loop(cancel)
        finally:
            self._worker_exited()

    def _loop(self, cancel: threading.Event) -> None:
        idle = self.config.idle_poll_ms / 1000.0
        delay = self.config.min_delay_ms / 1000.0

        while not cancel.is_set():
            try:
                result = self.run_cycle()
            except Exception:
                logger.exception("Unexpected error in gesture cycle")
                cancel.wait(delay)
                continue

            if cancel.is_set():
                break

            if result is None:
                cancel.wait(idle)
                continue

            try:
                self._commit(result)
            except Exception:
                logger.exception("Error publishing cycle %d", result.cycle)
            cancel.wait(delay)

    def _worker_exited(self) -> None:
        with self._exit_lock:
            self._active_workers -= 1
            callbacks = []
            if self._active_workers == 0:
                callbacks, self._after_exit = self._after_exit, []

        for callback in callbacks:
            try:
                callback()
            except Exception:
                logger.exception("Error in scheduler exit callback")
