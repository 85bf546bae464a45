"""
display.py - OpenCV preview window and keyboard polling.

Closing the window is the only way to end a session: the next show() reports
False and the session stops.
"""

from typing import Optional, Sequence

import cv2
import numpy as np

from dataset_capture.utils.visualization import draw_status_lines


DEFAULT_WINDOW_NAME = "video"


def decode_key(code: int) -> Optional[str]:
    """Turn a cv2.waitKey code into a character, or None when no key arrived."""
    if code is None or code < 0:
        return None
    try:
        return chr(code)
    except (ValueError, OverflowError):
        return None


class PreviewWindow:
    def __init__(self, name: str = DEFAULT_WINDOW_NAME):
        self.name = name
        self._shown = False

    def is_open(self) -> bool:
        try:
            return cv2.getWindowProperty(self.name, cv2.WND_PROP_VISIBLE) >= 1
        except cv2.error:
            return False

    def show(self, frame: np.ndarray, status_lines: Optional[Sequence[str]] = None) -> bool:
        """
        Present a frame.

        Returns:
            False once the user has closed the window or presenting failed.
        """
        if self._shown and not self.is_open():
            return False

        image = frame
        if status_lines:
            image = frame.copy()
            draw_status_lines(image, status_lines)

        try:
            cv2.imshow(self.name, image)
        except cv2.error as exc:
            print(f"[-] Failed to show preview: {exc}")
            return False
        self._shown = True
        return True

    def poll_key(self, timeout_ms: int) -> Optional[str]:
        return decode_key(cv2.waitKey(max(1, int(timeout_ms))))

    def close(self) -> None:
        try:
            cv2.destroyWindow(self.name)
        except cv2.error:
            pass
