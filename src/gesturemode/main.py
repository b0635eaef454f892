"""
Gesture Mode Controller - Main Application
============================================

Runs the hand-gesture controller against a live camera and reports mode
changes and pointer updates. With the preview enabled, a window shows the
camera feed with the detected hand and the current status.
"""

import argparse
import logging
import signal
import sys
import time
from pathlib import Path
from typing import Optional

import cv2
import numpy as np

from .core.controller import GestureController
from .core.events import Events
from .core.types import Mode
from .utils.config import DEFAULT_CONFIG_PATH, AppConfig, create_app_config, load_config
from .utils.logger import setup_logging
from .utils.visualization import Visualizer

logger = logging.getLogger(__name__)


class ConsoleSink:
    """Presentation sink that logs what a renderer would receive."""

    def __init__(self):
        self.mode = Mode.FORMED
        self._last_detected = None

    def on_mode_change(self, mode: Mode) -> None:
        self.mode = mode
        logger.debug("Sink mode: %s", mode.name)

    def on_hand_position(self, x: float, y: float, detected: bool) -> None:
        if detected != self._last_detected:
            logger.info("Hand %s", "detected" if detected else "lost")
            self._last_detected = detected
        logger.debug("Pointer (%.3f, %.3f) detected=%s", x, y, detected)


class GestureModeApp:
    """
    Wires the controller to a console sink and an optional preview window.

    Keyboard (preview window):
        q/ESC  - Quit
        t      - Toggle mode manually
        p      - Print performance report
    """

    def __init__(self, config: AppConfig, controller: Optional[GestureController] = None):
        self.config = config
        self.controller = controller or GestureController(config)
        self.sink = ConsoleSink()
        self.visualizer = Visualizer(config.visualization)
        self._running = False

        self.controller.on_mode_change(self.sink.on_mode_change)
        self.controller.on_hand_position(self.sink.on_hand_position)
        self.controller.bus.subscribe(Events.STATUS_CHANGED, self._on_status)

    def run(self) -> int:
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

        self._running = True
        try:
            if not self.controller.setup():
                # The host keeps running; only gesture input is off
                logger.warning("Gesture input unavailable: %s", self.controller.status)
            if self.config.preview:
                self._preview_loop()
            else:
                self._wait_loop()
        finally:
            self.controller.teardown()
            if self.config.preview:
                cv2.destroyAllWindows()
            print(self.controller.performance.get_report())
            logger.info("%d mode changes this session", self.controller.mode_log.total_transitions)
        return 0

    def _preview_loop(self) -> None:
        while self._running:
            frame = self.controller.latest_frame()
            if frame is not None:
                display = frame.image.copy()
                self.visualizer.draw_hand(display, self.controller.landmarks)
            else:
                display = self._blank_canvas()
            self.visualizer.draw_panel(
                display,
                self.controller.status,
                detected=self.controller.pointer.detected,
                mode=self.controller.mode,
                cycles_per_second=self.controller.performance.cycles_per_second,
            )
            cv2.imshow(self.config.window_name, display)

            key = cv2.waitKey(15) & 0xFF
            if key == ord('q') or key == 27:
                self._running = False
            elif key == ord('t'):
                self.controller.toggle_mode()
            elif key == ord('p'):
                print(self.controller.performance.get_report())

    def _blank_canvas(self) -> np.ndarray:
        """Black frame at camera size, shown while no camera frame is available."""
        camera = self.config.camera
        return np.zeros((camera.height, camera.width, 3), dtype=np.uint8)

    def _wait_loop(self) -> None:
        while self._running:
            time.sleep(0.1)

    def _on_status(self, status: str, **_) -> None:
        logger.info("Status: %s", status)

    def _signal_handler(self, signum, frame) -> None:
        logger.info(f"Received signal {signum}, shutting down...")
        self._running = False


def _non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError("invalid int value: {!r}".format(value))
    if number < 0:
        raise argparse.ArgumentTypeError("must be >= 0, got {}".format(number))
    return number


def main(argv=None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Hand-gesture FORMED/CHAOS mode controller",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Gestures:
  index + middle finger up (held)   -> CHAOS
  fist (held)                       -> FORMED

Keyboard Controls (preview):
  q/ESC     - Quit
  t         - Toggle mode
  p         - Print performance report
        """
    )
    parser.add_argument("--config", "-c", default=str(DEFAULT_CONFIG_PATH),
                        help="Path to configuration file")
    parser.add_argument("--debug", "-d", action="store_true", help="Enable debug logging")
    parser.add_argument("--no-preview", action="store_true", help="Run without a preview window")
    parser.add_argument("--threshold", type=_non_negative_int, default=None,
                        help="Consecutive cycles a gesture must exceed before switching")
    parser.add_argument("--delay-ms", type=_non_negative_int, default=None,
                        help="Minimum delay between cycles in milliseconds")
    args = parser.parse_args(argv)

    config_dict = load_config(Path(args.config))
    app_config = create_app_config(config_dict)

    if args.debug:
        app_config.log_level = "DEBUG"
    if args.no_preview:
        app_config.preview = False
    if args.threshold is not None:
        app_config.recognition.confidence_threshold = args.threshold
    if args.delay_ms is not None:
        app_config.scheduler.min_delay_ms = args.delay_ms

    setup_logging(app_config.log_level, app_config.log_file)

    app = GestureModeApp(app_config)
    try:
        return app.run()
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    sys.exit(main())
