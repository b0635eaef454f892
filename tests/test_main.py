"""
Tests for the gesturemode application entry point
==================================================
"""

import argparse
import logging
from unittest.mock import patch

import pytest

from conftest import FakeCamera, FakeDetector

from gesturemode.core.controller import GestureController
from gesturemode.core.errors import DetectorError
from gesturemode.core.lifecycle import LifecyclePhase
from gesturemode.core.types import Mode
from gesturemode.main import GestureModeApp, _non_negative_int, main
from gesturemode.utils.config import AppConfig


def failing_app(preview):
    config = AppConfig(preview=preview)
    detector = FakeDetector(ready=False)
    detector.create_error = DetectorError("no model")
    camera = FakeCamera()
    controller = GestureController(config, camera=camera, detector=detector)
    return GestureModeApp(config, controller=controller), camera


@pytest.fixture
def no_signals():
    with patch('gesturemode.main.signal.signal') as mock:
        yield mock


class TestSetupFailure:
    """A failed gesture setup leaves the rest of the app running."""

    def test_keeps_running_without_preview(self, no_signals, caplog):
        app, camera = failing_app(preview=False)

        with patch.object(app, "_wait_loop") as wait_loop, \
                caplog.at_level(logging.WARNING, logger="gesturemode.main"):
            assert app.run() == 0

        wait_loop.assert_called_once()
        assert "Gesture input unavailable" in caplog.text
        assert camera.acquire_calls == 0
        assert app.controller.phase is LifecyclePhase.STOPPED

    def test_preview_shows_status_without_camera(self, no_signals):
        app, _ = failing_app(preview=True)

        with patch('gesturemode.main.cv2') as cv2:
            cv2.waitKey.return_value = ord('q')
            assert app.run() == 0

        cv2.imshow.assert_called_once()
        window, display = cv2.imshow.call_args.args
        assert window == app.config.window_name
        assert display.shape == (app.config.camera.height, app.config.camera.width, 3)
        cv2.destroyAllWindows.assert_called_once()

    def test_toggle_key_ignored_after_failure(self, no_signals):
        app, _ = failing_app(preview=True)
        modes = []
        app.controller.on_mode_change(modes.append)

        with patch('gesturemode.main.cv2') as cv2:
            cv2.waitKey.side_effect = [ord('t'), ord('q')]
            app.run()

        assert modes == []
        assert app.controller.mode is Mode.FORMED


class TestArguments:

    @pytest.mark.parametrize("flag", ["--threshold", "--delay-ms"])
    def test_negative_value_rejected(self, flag):
        with pytest.raises(SystemExit) as exc_info:
            main([flag, "-1"])

        assert exc_info.value.code == 2

    def test_non_integer_rejected(self):
        with pytest.raises(SystemExit) as exc_info:
            main(["--threshold", "five"])

        assert exc_info.value.code == 2

    def test_zero_accepted(self):
        assert _non_negative_int("0") == 0
        assert _non_negative_int("5") == 5

        with pytest.raises(argparse.ArgumentTypeError):
            _non_negative_int("-3")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
