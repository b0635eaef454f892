"""
Tests for Hand Detector wrapper
================================
"""

import threading
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from gesturemode.core.errors import DetectorError, PredictionError
from gesturemode.detection.hand_detector import HandDetector, HandDetectorConfig


def mp_result(hands):
    """Build a HandLandmarkerResult-like object from lists of (x, y)."""
    return SimpleNamespace(hand_landmarks=[
        [SimpleNamespace(x=x, y=y, z=0.0) for x, y in hand] for hand in hands
    ])


@pytest.fixture
def model_file(tmp_path):
    path = tmp_path / "hand_landmarker.task"
    path.write_bytes(b"model")
    return path


@pytest.fixture
def mock_vision():
    with patch('gesturemode.detection.hand_detector.vision') as vision, \
            patch('gesturemode.detection.hand_detector.python'), \
            patch('gesturemode.detection.hand_detector.mp'):
        yield vision


@pytest.fixture
def detector(model_file, mock_vision):
    det = HandDetector(HandDetectorConfig(model_path=str(model_file)))
    det.create()
    yield det
    det.close()


class TestHandDetectorConfig:

    def test_defaults(self):
        config = HandDetectorConfig()

        assert config.num_hands == 1
        assert config.delegate == "GPU"

    def test_from_dict_normalizes_delegate(self):
        config = HandDetectorConfig.from_dict({"delegate": "cpu", "min_detection_confidence": 0.7})

        assert config.delegate == "CPU"
        assert config.min_detection_confidence == 0.7


class TestLifecycle:

    def test_create(self, model_file, mock_vision):
        det = HandDetector(HandDetectorConfig(model_path=str(model_file)))

        assert not det.is_ready
        det.create()

        assert det.is_ready
        assert mock_vision.HandLandmarker.create_from_options.call_count == 1

    def test_create_twice_reuses_handle(self, model_file, mock_vision):
        det = HandDetector(HandDetectorConfig(model_path=str(model_file)))

        det.create()
        det.create()

        assert mock_vision.HandLandmarker.create_from_options.call_count == 1

    def test_gpu_falls_back_to_cpu(self, model_file, mock_vision):
        mock_vision.HandLandmarker.create_from_options.side_effect = [RuntimeError("no GPU"), MagicMock()]
        det = HandDetector(HandDetectorConfig(model_path=str(model_file), delegate="GPU"))

        det.create()

        assert det.is_ready
        assert mock_vision.HandLandmarker.create_from_options.call_count == 2

    def test_all_delegates_fail(self, model_file, mock_vision):
        mock_vision.HandLandmarker.create_from_options.side_effect = RuntimeError("broken model")
        det = HandDetector(HandDetectorConfig(model_path=str(model_file)))

        with pytest.raises(DetectorError):
            det.create()
        assert not det.is_ready

    def test_cpu_delegate_has_no_fallback(self, model_file, mock_vision):
        mock_vision.HandLandmarker.create_from_options.side_effect = RuntimeError("x")
        det = HandDetector(HandDetectorConfig(model_path=str(model_file), delegate="CPU"))

        with pytest.raises(DetectorError):
            det.create()
        assert mock_vision.HandLandmarker.create_from_options.call_count == 1

    def test_missing_model_download_fails(self, tmp_path, mock_vision):
        det = HandDetector(HandDetectorConfig(model_path=str(tmp_path / "missing.task")))

        with patch('gesturemode.detection.hand_detector.download_model', return_value=False):
            with pytest.raises(DetectorError):
                det.create()

    def test_close_idempotent(self, model_file, mock_vision):
        det = HandDetector(HandDetectorConfig(model_path=str(model_file)))
        det.create()
        landmarker = mock_vision.HandLandmarker.create_from_options.return_value

        det.close()
        det.close()

        assert landmarker.close.call_count == 1
        assert not det.is_ready

    def test_close_before_create(self):
        HandDetector().close()


class TestDetect:

    def test_detect_before_create(self):
        with pytest.raises(PredictionError):
            HandDetector().detect(np.zeros((4, 4, 3), dtype=np.uint8), 0)

    def test_first_hand_only(self, detector, mock_vision):
        first = [(0.1 * (i % 10), 0.5) for i in range(21)]
        second = [(0.9, 0.9)] * 21
        landmarker = mock_vision.HandLandmarker.create_from_options.return_value
        landmarker.detect_for_video.return_value = mp_result([first, second])

        landmarks = detector.detect(np.zeros((4, 4, 3), dtype=np.uint8), 100)

        assert len(landmarks) == 21
        assert [(lm.x, lm.y) for lm in landmarks] == first

    def test_no_hand_returns_none(self, detector, mock_vision):
        landmarker = mock_vision.HandLandmarker.create_from_options.return_value
        landmarker.detect_for_video.return_value = mp_result([])

        assert detector.detect(np.zeros((4, 4, 3), dtype=np.uint8), 100) is None

    def test_inference_error_is_prediction_error(self, detector, mock_vision):
        landmarker = mock_vision.HandLandmarker.create_from_options.return_value
        landmarker.detect_for_video.side_effect = RuntimeError("graph failed")

        with pytest.raises(PredictionError):
            detector.detect(np.zeros((4, 4, 3), dtype=np.uint8), 100)

    def test_timestamps_forced_increasing(self, detector, mock_vision):
        landmarker = mock_vision.HandLandmarker.create_from_options.return_value
        landmarker.detect_for_video.return_value = mp_result([])
        image = np.zeros((4, 4, 3), dtype=np.uint8)

        detector.detect(image, 100)
        detector.detect(image, 100)
        detector.detect(image, 50)

        stamps = [c.args[1] for c in landmarker.detect_for_video.call_args_list]
        assert stamps == [100, 101, 102]

    def test_close_waits_for_detect_in_flight(self, detector, mock_vision):
        entered = threading.Event()
        release = threading.Event()
        landmarker = mock_vision.HandLandmarker.create_from_options.return_value

        def slow_inference(image, timestamp_ms):
            entered.set()
            release.wait(timeout=5.0)
            return mp_result([])
        landmarker.detect_for_video.side_effect = slow_inference

        detecting = threading.Thread(
            target=detector.detect, args=(np.zeros((4, 4, 3), dtype=np.uint8), 100))
        detecting.start()
        assert entered.wait(timeout=5.0)

        closing = threading.Thread(target=detector.close)
        closing.start()
        closing.join(timeout=0.05)

        assert closing.is_alive()
        assert landmarker.close.call_count == 0

        release.set()
        detecting.join(timeout=5.0)
        closing.join(timeout=5.0)

        assert not closing.is_alive()
        assert landmarker.close.call_count == 1
        assert not detector.is_ready


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
