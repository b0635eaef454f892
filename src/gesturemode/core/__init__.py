"""Shared types, events, lifecycle and the frame scheduler."""
