"""
Event bus between the gesture pipeline and whatever renders it.

The controller publishes mode changes, pointer updates and status text;
a renderer subscribes by event name and never touches cameras or models.

Usage:
    bus = EventBus()
    bus.subscribe(Events.MODE_CHANGED, on_mode)
    bus.emit(Events.MODE_CHANGED, mode=Mode.CHAOS, previous=Mode.FORMED, cycle=6)
"""

import logging
import threading
from typing import Callable, Dict, List, NamedTuple, Optional

logger = logging.getLogger(__name__)


class _Subscription(NamedTuple):
    priority: int
    callback: Callable


def _name(callback: Callable) -> str:
    return getattr(callback, "__name__", repr(callback))


class EventBus:
    """Thread-safe publish/subscribe.

    Delivery is synchronous on the emitting thread, so handlers observe
    events in emit order. Higher priority runs first; equal priorities keep
    subscription order. An exception in a handler is logged and the
    remaining handlers still run.
    """

    def __init__(self):
        self._subscriptions: Dict[str, List[_Subscription]] = {}
        self._lock = threading.Lock()
        self._enabled = True

    def subscribe(self, event_name: str, callback: Callable, priority: int = 0) -> None:
        """Call `callback(**payload)` on every emit of `event_name`."""
        with self._lock:
            subs = self._subscriptions.setdefault(event_name, [])
            position = next((i for i, s in enumerate(subs) if s.priority < priority), len(subs))
            subs.insert(position, _Subscription(priority, callback))
        logger.debug("'%s' <- %s (priority=%d)", event_name, _name(callback), priority)

    def unsubscribe(self, event_name: str, callback: Callable) -> None:
        with self._lock:
            subs = self._subscriptions.get(event_name, [])
            self._subscriptions[event_name] = [s for s in subs if s.callback is not callback]

    def emit(self, event_name: str, **payload) -> None:
        if not self._enabled:
            return

        with self._lock:
            subs = tuple(self._subscriptions.get(event_name, ()))

        for sub in subs:
            try:
                sub.callback(**payload)
            except Exception as e:
                logger.error("Handler %s failed on '%s': %s", _name(sub.callback), event_name, e)

    def disable(self) -> None:
        """Silently drop every emit until enable()."""
        self._enabled = False

    def enable(self) -> None:
        self._enabled = True

    def clear(self, event_name: Optional[str] = None) -> None:
        with self._lock:
            if event_name is None:
                self._subscriptions.clear()
            else:
                self._subscriptions.pop(event_name, None)

    @property
    def listener_count(self) -> int:
        with self._lock:
            return sum(len(subs) for subs in self._subscriptions.values())


class Events:
    """Event names and the payload each one carries."""

    MODE_CHANGED = "mode_changed"            # mode, previous, cycle
    POINTER_UPDATED = "pointer_updated"      # x, y, detected
    STATUS_CHANGED = "status_changed"        # status
    CYCLE_COMPLETE = "cycle_complete"        # result (CycleResult)
    PREDICTION_FAILED = "prediction_failed"  # error, cycle
