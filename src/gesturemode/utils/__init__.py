"""Utility modules for logging and performance."""
from .logger import ModeLogger, log_timing, setup_logging
from .performance import PerformanceMonitor, Timer

__all__ = ["ModeLogger", "PerformanceMonitor", "Timer", "log_timing", "setup_logging"]
