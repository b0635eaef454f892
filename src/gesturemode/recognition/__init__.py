"""Gesture recognition module."""
from .gesture_classifier import GestureClassifier

__all__ = ["GestureClassifier"]
