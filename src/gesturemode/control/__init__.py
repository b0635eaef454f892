"""Mode switching module."""
from .debouncer import DebouncerConfig, ModeDebouncer

__all__ = ["DebouncerConfig", "ModeDebouncer"]
