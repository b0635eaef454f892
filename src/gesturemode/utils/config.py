"""
Configuration loading.

YAML files are deep-merged over built-in defaults, values are type-checked
against a small schema, and each section is turned into the dataclass
config of the component that consumes it.
"""

import copy
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

import yaml

from ..capture.camera import CameraConfig
from ..control.debouncer import DebouncerConfig
from ..core.scheduler import SchedulerConfig
from ..detection.hand_detector import HandDetectorConfig
from .visualization import VisualizerConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[3] / "config" / "config.yaml"

DEFAULTS = {
    "camera": {
        "device_id": 0,
        "width": 320,
        "height": 240,
        "fps": 30,
        "buffer_size": 1,
        "flip_horizontal": True,
        "warmup_frames": 5,
    },
    "mediapipe": {
        "model_path": "",
        "delegate": "GPU",
        "num_hands": 1,
        "min_detection_confidence": 0.5,
        "min_presence_confidence": 0.5,
        "min_tracking_confidence": 0.5,
    },
    "recognition": {
        "confidence_threshold": 5,
    },
    "scheduler": {
        "min_delay_ms": 60,
        "idle_poll_ms": 5,
        "frame_timeout_s": 5.0,
        "stop_timeout_s": 2.0,
    },
    "logging": {
        "level": "INFO",
        "file": None,
    },
    "preview": {
        "enabled": True,
        "window_name": "Gesture Mode",
    },
}

# Expected types for values that are easy to get wrong in YAML
_CONFIG_SCHEMA = {
    "camera": {"device_id": int, "width": int, "height": int, "fps": int},
    "mediapipe": {
        "delegate": str,
        "num_hands": int,
        "min_detection_confidence": (int, float),
        "min_presence_confidence": (int, float),
        "min_tracking_confidence": (int, float),
    },
    "recognition": {"confidence_threshold": int},
    "scheduler": {
        "min_delay_ms": (int, float),
        "idle_poll_ms": (int, float),
        "frame_timeout_s": (int, float),
        "stop_timeout_s": (int, float),
    },
    "preview": {"enabled": bool},
}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base dict."""
    merged = base.copy()
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def validate(config: dict) -> dict:
    """Replace values of the wrong type with their defaults, with a warning."""
    for section, fields in _CONFIG_SCHEMA.items():
        values = config.get(section)
        if not isinstance(values, dict):
            logger.warning("Config section '%s' is not a mapping, using defaults", section)
            config[section] = dict(DEFAULTS[section])
            continue
        for key, expected in fields.items():
            value = values.get(key)
            # bool is an int subclass; only accept it where bool is expected
            wrong_bool = isinstance(value, bool) and expected is not bool
            if value is not None and (wrong_bool or not isinstance(value, expected)):
                logger.warning("Config %s.%s has invalid value %r, using default %r",
                               section, key, value, DEFAULTS[section][key])
                values[key] = DEFAULTS[section][key]
    return config


def load_config(config_path: Optional[Union[str, Path]] = None) -> dict:
    """Load YAML configuration merged over defaults."""
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    data = {}
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        logger.info("Loaded config from %s", path)
    except FileNotFoundError:
        logger.warning("Config file not found: %s, using defaults", path)
    except yaml.YAMLError as e:
        logger.error("Invalid YAML in %s: %s, using defaults", path, e)

    if not isinstance(data, dict):
        logger.error("Config root in %s is not a mapping, using defaults", path)
        data = {}
    return validate(_deep_merge(copy.deepcopy(DEFAULTS), data))


@dataclass
class AppConfig:
    """Application configuration container."""
    camera: CameraConfig = field(default_factory=CameraConfig)
    mediapipe: HandDetectorConfig = field(default_factory=HandDetectorConfig)
    recognition: DebouncerConfig = field(default_factory=DebouncerConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    visualization: VisualizerConfig = field(default_factory=VisualizerConfig)
    log_level: str = "INFO"
    log_file: Optional[str] = None
    preview: bool = True
    window_name: str = "Gesture Mode"


def create_app_config(config_dict: dict) -> AppConfig:
    """Create AppConfig from configuration dictionary."""
    logging_cfg = config_dict.get("logging", {})
    preview_cfg = config_dict.get("preview", {})
    return AppConfig(
        camera=CameraConfig.from_dict(config_dict.get("camera", {})),
        mediapipe=HandDetectorConfig.from_dict(config_dict.get("mediapipe", {})),
        recognition=DebouncerConfig.from_dict(config_dict.get("recognition", {})),
        scheduler=SchedulerConfig.from_dict(config_dict.get("scheduler", {})),
        visualization=VisualizerConfig.from_dict(config_dict.get("visualization", {})),
        log_level=logging_cfg.get("level", "INFO"),
        log_file=logging_cfg.get("file"),
        preview=preview_cfg.get("enabled", True),
        window_name=preview_cfg.get("window_name", "Gesture Mode"),
    )
