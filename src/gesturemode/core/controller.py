"""
Gesture controller: owns the detector handle, the camera stream and the
frame scheduler, walks them through the lifecycle, and publishes mode,
pointer and status to the presentation sink through the event bus.

Setup runs as explicit single steps:

    load_detector()  UNINITIALIZED  -> DETECTOR_READY
    open_camera()    DETECTOR_READY -> CAPTURE_READY
    start_loop()     CAPTURE_READY  -> RUNNING

Any failure moves to FAILED, releases what was acquired and leaves the
gesture feature inert; it never raises to the host. teardown() is safe
from every phase and may be called repeatedly.
"""

import logging
import time
import threading
from typing import Callable, Optional

from ..capture.camera import Camera, Frame
from ..control.debouncer import ModeDebouncer
from ..detection.hand_detector import HandDetector
from ..recognition.gesture_classifier import GestureClassifier
from ..utils.config import AppConfig
from ..utils.logger import ModeLogger, log_timing
from ..utils.performance import PerformanceMonitor
from .errors import CaptureError, DetectorError
from .events import EventBus, Events
from .lifecycle import (
    STATUS_INITIALIZING,
    STATUS_NO_HAND,
    STATUS_READY,
    STATUS_STOPPED,
    Lifecycle,
    LifecyclePhase,
    mode_status,
)
from .scheduler import FrameScheduler
from .types import CycleResult, LandmarkSet, Mode, PointerState

logger = logging.getLogger(__name__)


class GestureController:
    """
    Hand-gesture mode controller.

    Example:
        >>> controller = GestureController(AppConfig())
        >>> controller.on_mode_change(lambda mode: print(mode))
        >>> controller.on_hand_position(lambda x, y, detected: ...)
        >>> controller.setup()
        >>> ...
        >>> controller.teardown()
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        bus: Optional[EventBus] = None,
        camera: Optional[Camera] = None,
        detector: Optional[HandDetector] = None,
    ):
        self.config = config or AppConfig()
        self.bus = bus or EventBus()
        self.performance = PerformanceMonitor()
        self.mode_log = ModeLogger()

        self._camera = camera or Camera(self.config.camera)
        self._detector = detector or HandDetector(self.config.mediapipe)
        self._scheduler = FrameScheduler(
            self._camera,
            self._detector,
            on_result=self._on_cycle,
            classifier=GestureClassifier(),
            debouncer=ModeDebouncer(self.config.recognition),
            config=self.config.scheduler,
            performance=self.performance,
        )

        self._lifecycle = Lifecycle()
        self._detector_created = False
        self._camera_acquired = False
        self._state_lock = threading.Lock()

        self._status = ""
        self._pointer = PointerState.neutral()
        self._landmarks: Optional[LandmarkSet] = None

    # ------------------------------------------------------------------
    # Sink wiring
    # ------------------------------------------------------------------

    def on_mode_change(self, callback: Callable[[Mode], None]) -> None:
        """Register callback(mode) for every mode transition."""
        def handler(mode, **_):
            callback(mode)
        handler.__name__ = getattr(callback, "__name__", "on_mode_change")
        self.bus.subscribe(Events.MODE_CHANGED, handler)

    def on_hand_position(self, callback: Callable[[float, float, bool], None]) -> None:
        """Register callback(x, y, detected), called every cycle."""
        def handler(x, y, detected, **_):
            callback(x, y, detected)
        handler.__name__ = getattr(callback, "__name__", "on_hand_position")
        self.bus.subscribe(Events.POINTER_UPDATED, handler)

    def on_status(self, callback: Callable[[str], None]) -> None:
        def handler(status, **_):
            callback(status)
        handler.__name__ = getattr(callback, "__name__", "on_status")
        self.bus.subscribe(Events.STATUS_CHANGED, handler)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def phase(self) -> LifecyclePhase:
        return self._lifecycle.phase

    @property
    def status(self) -> str:
        return self._status

    @property
    def mode(self) -> Mode:
        return self._scheduler.mode

    @property
    def pointer(self) -> PointerState:
        return self._pointer

    @property
    def landmarks(self) -> Optional[LandmarkSet]:
        """Landmarks of the last committed cycle, for the preview overlay."""
        return self._landmarks

    @property
    def scheduler(self) -> FrameScheduler:
        return self._scheduler

    def latest_frame(self) -> Optional[Frame]:
        return self._camera.read() if self._camera_acquired else None

    # ------------------------------------------------------------------
    # Lifecycle steps
    # ------------------------------------------------------------------

    @log_timing
    def setup(self) -> bool:
        """Run every setup step. Returns False if gesture input is unavailable."""
        if self.phase in (LifecyclePhase.RUNNING, LifecyclePhase.FAILED):
            return self.phase is LifecyclePhase.RUNNING
        return self.load_detector() and self.open_camera() and self.start_loop()

    def load_detector(self) -> bool:
        # A worker from an earlier run may still hold the handles
        self._scheduler.join()
        self._set_status(STATUS_INITIALIZING)
        logger.info("Initializing MediaPipe HandLandmarker...")
        try:
            self._detector.create()
        except DetectorError as e:
            logger.error("Error initializing MediaPipe: %s", e)
            self._fail("hand detection unavailable: {}".format(e))
            return False

        self._detector_created = True
        self._lifecycle.advance(LifecyclePhase.DETECTOR_READY)
        return True

    def open_camera(self) -> bool:
        try:
            self._camera.acquire()
        except CaptureError as e:
            logger.error("Webcam error: %s", e)
            self._fail(e.status)
            return False

        self._camera_acquired = True
        self._lifecycle.advance(LifecyclePhase.CAPTURE_READY)
        return True

    def start_loop(self) -> bool:
        """Wait for the first decoded frame, then start the scheduler."""
        deadline = time.monotonic() + self.config.scheduler.frame_timeout_s
        while not self._camera.is_ready:
            if time.monotonic() >= deadline:
                logger.error("Camera produced no frames within %.1fs",
                             self.config.scheduler.frame_timeout_s)
                self._fail("device unsupported")
                return False
            time.sleep(0.01)

        self._lifecycle.advance(LifecyclePhase.RUNNING)
        self._set_status(STATUS_READY)
        self._scheduler.start()
        logger.info("Webcam video loaded. Gesture loop running.")
        return True

    def teardown(self) -> None:
        """Stop the loop and release camera and detector. Idempotent."""
        if self.phase is LifecyclePhase.STOPPED:
            return

        logger.info("Cleaning up gesture controller...")
        self._scheduler.stop()
        self._release_resources()
        self._landmarks = None
        self._lifecycle.advance(LifecyclePhase.STOPPED)
        self._set_status(STATUS_STOPPED)

    def toggle_mode(self) -> Mode:
        """Manually flip the mode. Returns the requested mode.

        Has no effect once the controller has failed.
        """
        if self.phase is LifecyclePhase.FAILED:
            return self.mode
        target = self.mode.opposite
        with self._state_lock:
            if self._scheduler.is_running:
                self._scheduler.request_mode(target)
                return target
            transition = self._scheduler.force_mode(target)
        if transition is not None:
            self._publish_transition(transition.old, transition.new, transition.cycle)
            self._set_status(mode_status(transition.new))
        return target

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _release_resources(self) -> None:
        """Release camera and detector once the scheduler worker has exited."""
        camera = self._camera if self._camera_acquired else None
        detector = self._detector if self._detector_created else None
        self._camera_acquired = False
        self._detector_created = False
        if camera is None and detector is None:
            return

        def release():
            if camera is not None:
                camera.release()
            if detector is not None:
                detector.close()

        self._scheduler.after_exit(release)

    def _fail(self, status: str) -> None:
        self._scheduler.stop()
        self._release_resources()
        self._landmarks = None
        self._lifecycle.advance(LifecyclePhase.FAILED)
        self._set_status(status)
        self._publish_pointer(PointerState.neutral())

    def _on_cycle(self, result: CycleResult) -> None:
        """Publish one committed cycle. Runs on the scheduler thread."""
        self._landmarks = result.landmarks

        for transition in result.transitions:
            self._publish_transition(transition.old, transition.new, transition.cycle)

        self._publish_pointer(result.pointer)

        if result.error is not None:
            self._set_status(result.error)
        elif not result.pointer.detected:
            self._set_status(STATUS_NO_HAND)
        else:
            self._set_status(mode_status(result.mode))

        self.bus.emit(Events.CYCLE_COMPLETE, result=result)
        if result.error is not None:
            self.bus.emit(Events.PREDICTION_FAILED, error=result.error, cycle=result.cycle)

    def _publish_transition(self, old: Mode, new: Mode, cycle: int) -> None:
        self.mode_log.log_transition(old, new, cycle)
        self.bus.emit(Events.MODE_CHANGED, mode=new, previous=old, cycle=cycle)

    def _publish_pointer(self, pointer: PointerState) -> None:
        self._pointer = pointer
        self.bus.emit(Events.POINTER_UPDATED, x=pointer.x, y=pointer.y, detected=pointer.detected)

    def _set_status(self, status: str) -> None:
        if status == self._status:
            return
        self._status = status
        logger.debug("Status: %s", status)
        self.bus.emit(Events.STATUS_CHANGED, status=status)

    def __enter__(self):
        self.setup()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.teardown()
        return False
