"""
visualization.py - Status text drawn over the preview.

Only the preview copy is drawn on; saved samples never carry the overlay.
"""

from typing import Sequence, Tuple

import cv2
import numpy as np


DEFAULT_TEXT_COLOR = (255, 255, 255)  # White
DEFAULT_BG_COLOR = (0, 0, 0)          # Black
HIGHLIGHT_COLOR = (0, 255, 0)         # Green


def draw_label_with_background(
    frame: np.ndarray,
    text: str,
    position: Tuple[int, int],
    font_scale: float = 0.5,
    font_thickness: int = 1,
    text_color: Tuple[int, int, int] = DEFAULT_TEXT_COLOR,
    bg_color: Tuple[int, int, int] = DEFAULT_BG_COLOR,
    padding: int = 3,
    alpha: float = 0.6,
) -> np.ndarray:
    """
    Draw text with a semi-transparent background rectangle.

    Args:
        frame: Image to draw on (modified in place).
        text: Text to display.
        position: (x, y) of the text baseline start.
        font_scale: Font size scale.
        font_thickness: Stroke thickness.
        text_color: BGR text color.
        bg_color: BGR background color.
        padding: Padding around the text in pixels.
        alpha: Background opacity (0=transparent, 1=opaque).

    Returns:
        The modified frame.
    """
    font = cv2.FONT_HERSHEY_SIMPLEX
    x, y = position

    (text_width, text_height), baseline = cv2.getTextSize(text, font, font_scale, font_thickness)

    x1 = max(0, x - padding)
    y1 = max(0, y - text_height - padding)
    x2 = min(frame.shape[1], x + text_width + padding)
    y2 = min(frame.shape[0], y + baseline + padding)

    if alpha < 1.0:
        overlay = frame.copy()
        cv2.rectangle(overlay, (x1, y1), (x2, y2), bg_color, -1)
        cv2.addWeighted(overlay, alpha, frame, 1 - alpha, 0, frame)
    else:
        cv2.rectangle(frame, (x1, y1), (x2, y2), bg_color, -1)

    cv2.putText(frame, text, (x, y), font, font_scale, text_color, font_thickness)
    return frame


def draw_status_lines(
    frame: np.ndarray,
    lines: Sequence[str],
    origin: Tuple[int, int] = (10, 20),
    line_height: int = 20,
) -> np.ndarray:
    """Stack status lines from the top-left corner; the first one is highlighted."""
    x, y = origin
    for idx, line in enumerate(lines):
        if not line:
            continue
        draw_label_with_background(
            frame,
            line,
            (x, y),
            text_color=HIGHLIGHT_COLOR if idx == 0 else DEFAULT_TEXT_COLOR,
        )
        y += line_height
    return frame
