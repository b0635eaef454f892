"""
Logging setup, mode-transition history and timing helpers.
"""

import os
import logging
import logging.handlers
import time
from collections import deque
from functools import wraps

CONSOLE_FORMAT = "%(asctime)s  %(levelname)-5s  %(message)s"
FILE_FORMAT = "%(asctime)s [%(levelname)-7s] %(name)-30s | %(message)s"
DATE_FORMAT = "%H:%M:%S"


def setup_logging(level="INFO", log_file=None, max_size_mb=10, backup_count=3):
    """
    Route all records to the console and, if `log_file` is set, to a
    rotating file that always receives DEBUG.
    """
    console_level = getattr(logging, str(level).upper(), logging.INFO)

    root = logging.getLogger()
    root.handlers.clear()

    console = logging.StreamHandler()
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(console)

    root_level = console_level
    if log_file:
        directory = os.path.dirname(log_file)
        if directory:
            os.makedirs(directory, exist_ok=True)
        rotating = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=max_size_mb * 1024 * 1024, backupCount=backup_count)
        rotating.setLevel(logging.DEBUG)
        rotating.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
        root.addHandler(rotating)
        root_level = logging.DEBUG

    root.setLevel(root_level)
    return root


class ModeLogger:
    """Logs mode transitions and keeps the most recent `history_size` of them."""

    def __init__(self, history_size=100):
        self.logger = logging.getLogger("gesturemode.modes")
        self._history = deque(maxlen=history_size)
        self._total = 0

    def log_transition(self, old, new, cycle=None):
        self._history.append({
            "timestamp": time.time(),
            "old": old.name,
            "new": new.name,
            "cycle": cycle,
        })
        self._total += 1
        self.logger.info("Mode: %-6s -> %-6s | cycle %s",
                         old.name, new.name, cycle if cycle is not None else "-")

    def get_history(self, last_n=None):
        if last_n:
            return list(self._history)[-last_n:]
        return list(self._history)

    @property
    def total_transitions(self):
        return self._total


def log_timing(func):
    """Log how long each call to `func` takes, at DEBUG."""
    logger = logging.getLogger(func.__module__)

    @wraps(func)
    def wrapper(*args, **kwargs):
        started = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            logger.debug("%s took %.2fms", func.__name__, (time.perf_counter() - started) * 1000)

    return wrapper
