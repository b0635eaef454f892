"""
Visualization Module
=====================

Debug preview for the gesture controller: hand skeleton, detection badge,
status line and usage hints drawn over the camera frame.
"""

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import cv2
import numpy as np

from ..core.types import LandmarkIndex, LandmarkSet, Mode
from ..detection.hand_detector import HAND_CONNECTIONS

FINGERTIPS = (
    LandmarkIndex.THUMB_TIP,
    LandmarkIndex.INDEX_TIP,
    LandmarkIndex.MIDDLE_TIP,
    LandmarkIndex.RING_TIP,
    LandmarkIndex.PINKY_TIP,
)

HINTS = ("open fingers -> CHAOS", "fist -> FORMED")


@dataclass
class VisualizerConfig:
    """Visualization settings."""
    show_landmarks: bool = True
    show_connections: bool = True
    show_hints: bool = True
    show_rate: bool = True

    # Colors (BGR format)
    landmark_color: Tuple[int, int, int] = (0, 0, 255)       # Red
    connection_color: Tuple[int, int, int] = (0, 255, 0)     # Green
    text_color: Tuple[int, int, int] = (55, 175, 212)        # Gold
    detected_color: Tuple[int, int, int] = (0, 180, 0)
    missing_color: Tuple[int, int, int] = (0, 0, 200)

    font_scale: float = 0.5
    font_thickness: int = 1

    @classmethod
    def from_dict(cls, config: dict) -> "VisualizerConfig":
        """Create config from dictionary."""
        colors = config.get("colors", {})
        return cls(
            show_landmarks=config.get("show_landmarks", True),
            show_connections=config.get("show_connections", True),
            show_hints=config.get("show_hints", True),
            show_rate=config.get("show_rate", True),
            landmark_color=tuple(colors.get("landmarks", [0, 0, 255])),
            connection_color=tuple(colors.get("connections", [0, 255, 0])),
            text_color=tuple(colors.get("text", [55, 175, 212])),
            font_scale=config.get("font_scale", 0.5),
            font_thickness=config.get("font_thickness", 1),
        )


def _ascii(text: str) -> str:
    # Hershey fonts only cover ASCII
    return text.replace("—", "-").encode("ascii", "replace").decode("ascii")


class Visualizer:
    """
    Preview overlay renderer.

    Example:
        >>> viz = Visualizer()
        >>> display = frame.image.copy()
        >>> viz.draw_hand(display, landmarks)
        >>> viz.draw_panel(display, status, detected=True, mode=Mode.FORMED)
        >>> cv2.imshow("Gesture Mode", display)
    """

    def __init__(self, config: Optional[VisualizerConfig] = None):
        self.config = config or VisualizerConfig()
        self._font = cv2.FONT_HERSHEY_SIMPLEX

    def draw_hand(self, image: np.ndarray, landmarks: Optional[LandmarkSet]) -> np.ndarray:
        """
        Draw hand skeleton. Nothing is drawn when landmarks is None.

        Args:
            image: BGR image to draw on
            landmarks: Primary hand landmarks

        Returns:
            Image with hand drawn
        """
        if not landmarks:
            return image

        height, width = image.shape[:2]
        points = [lm.to_pixel(width, height) for lm in landmarks]

        if self.config.show_connections:
            for start_idx, end_idx in HAND_CONNECTIONS:
                cv2.line(image, points[start_idx], points[end_idx],
                         self.config.connection_color, 2)

        if self.config.show_landmarks:
            for i, point in enumerate(points):
                radius = 5 if i in FINGERTIPS else 3
                cv2.circle(image, point, radius, self.config.landmark_color, -1)

        return image

    def draw_panel(
        self,
        image: np.ndarray,
        status: str,
        detected: bool,
        mode: Mode,
        cycles_per_second: float = 0.0,
    ) -> np.ndarray:
        """Draw detection badge, status, mode, cycle rate and hints."""
        height, width = image.shape[:2]
        scale, thick = self.config.font_scale, self.config.font_thickness

        badge = "hand detected" if detected else "no hand"
        badge_color = self.config.detected_color if detected else self.config.missing_color
        (tw, th), _ = cv2.getTextSize(badge, self._font, scale, thick)
        cv2.rectangle(image, (8, 8), (16 + tw, 16 + th + 4), badge_color, -1)
        cv2.putText(image, badge, (12, 12 + th), self._font, scale, (255, 255, 255), thick)

        lines = [_ascii(status), "Mode: {}".format(mode.name)]
        if self.config.show_rate:
            lines.append("Rate: {:.1f}/s".format(cycles_per_second))
        self._draw_lines(image, lines, (10, 50))

        if self.config.show_hints:
            y = height - 10 - (len(HINTS) - 1) * 18
            self._draw_lines(image, HINTS, (10, y), line_height=18)

        return image

    def _draw_lines(self, image: np.ndarray, lines: Sequence[str], origin: Tuple[int, int],
                    line_height: int = 20) -> None:
        x, y = origin
        for i, line in enumerate(lines):
            cv2.putText(image, line, (x, y + i * line_height), self._font,
                        self.config.font_scale, self.config.text_color, self.config.font_thickness)
