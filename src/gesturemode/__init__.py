"""
Gesture Mode Controller
========================

Turns a live hand-tracking signal into a debounced FORMED/CHAOS mode and a
per-frame pointer for a rendering layer.

Modules:
    - capture: Camera frame acquisition
    - detection: MediaPipe hand landmark detection
    - recognition: Open/closed hand classification
    - control: Mode debouncing
    - core: Types, events, lifecycle, frame scheduler, controller
    - utils: Configuration, logging, performance, preview overlay
"""

from .core.controller import GestureController
from .core.events import EventBus, Events
from .core.types import Mode, PointerState, RawGesture

__version__ = "1.0.0"

__all__ = [
    "GestureController",
    "EventBus",
    "Events",
    "Mode",
    "PointerState",
    "RawGesture",
]
