"""
video_source.py - Frame sources for the capture session.

Two kinds of source sit behind one interface:
- FilePlayback: a video file, no adjustable properties.
- LiveDevice:   a camera index, with focus control and an autofocus mode that
                is applied once when the device is opened.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

import cv2
import numpy as np

from dataset_capture.errors import DeviceError, FileSystemError


DEFAULT_DEVICE = 0
DEFAULT_FOCUS_VALUE = 500.0

# OpenCV reports -1 for properties the backend does not expose.
_UNSUPPORTED_PROP = -1.0


@dataclass(frozen=True)
class AutoFocus:
    pass


@dataclass(frozen=True)
class FixedFocus:
    value: float = DEFAULT_FOCUS_VALUE


FocusMode = Union[AutoFocus, FixedFocus]


@dataclass(frozen=True)
class FileSourceConfig:
    path: str


@dataclass(frozen=True)
class DeviceSourceConfig:
    device: int = DEFAULT_DEVICE
    focus_mode: FocusMode = field(default_factory=AutoFocus)


SourceConfig = Union[FileSourceConfig, DeviceSourceConfig]


class VideoSource:
    """Common frame-acquisition contract over a cv2.VideoCapture."""

    supports_focus = False

    def __init__(self, cap, description: str):
        self.cap = cap
        self.description = description
        self._released = False

    def dimensions(self) -> Tuple[int, int]:
        """
        Frame size reported by the backend.

        Returns:
            (width, height)

        Raises:
            DeviceError: If either dimension is unavailable.
        """
        try:
            width = int(round(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH)))
            height = int(round(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT)))
        except cv2.error as exc:
            raise DeviceError(f"Failed to query frame size of {self.description}: {exc}") from exc
        if width <= 0 or height <= 0:
            raise DeviceError(f"Invalid frame size {width}x{height} from {self.description}")
        return width, height

    def allocate_frame(self) -> np.ndarray:
        width, height = self.dimensions()
        return np.zeros((height, width, 3), dtype=np.uint8)

    def read_frame(self, frame: np.ndarray) -> bool:
        """
        Read the next frame into `frame` in place.

        Returns:
            False when nothing was read; the buffer is left untouched then.
        """
        try:
            ok, image = self.cap.read(frame)
        except cv2.error:
            return False
        if not ok or image is None:
            return False
        if image is frame:
            return True

        if image.ndim == 2 or image.shape[2] == 1:
            image = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
        elif image.shape[2] == 4:
            image = cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
        if image.shape[:2] != frame.shape[:2]:
            image = cv2.resize(image, (frame.shape[1], frame.shape[0]))
        np.copyto(frame, image, casting="unsafe")
        return True

    def release(self) -> None:
        """Release the backend. Safe to call more than once."""
        if self._released:
            return
        self._released = True
        self.cap.release()

    @property
    def released(self) -> bool:
        return self._released


class FilePlayback(VideoSource):
    def __init__(self, cap, path: str):
        super().__init__(cap, f"file {path}")
        self.path = path


class LiveDevice(VideoSource):
    supports_focus = True

    def __init__(self, cap, device: int, focus_mode: FocusMode):
        super().__init__(cap, f"camera {device}")
        self.device = device
        self.focus_mode = focus_mode

    def apply_focus_mode(self) -> None:
        """Best effort: drivers without focus control simply ignore this."""
        try:
            if isinstance(self.focus_mode, FixedFocus):
                self.cap.set(cv2.CAP_PROP_AUTOFOCUS, 0.0)
                self.cap.set(cv2.CAP_PROP_FOCUS, float(self.focus_mode.value))
            else:
                self.cap.set(cv2.CAP_PROP_AUTOFOCUS, 1.0)
        except cv2.error:
            pass

    def get_focus(self) -> float:
        try:
            value = float(self.cap.get(cv2.CAP_PROP_FOCUS))
        except cv2.error as exc:
            raise DeviceError(f"Failed to read focus of {self.description}: {exc}") from exc
        if value == _UNSUPPORTED_PROP:
            raise DeviceError(f"Focus is not available on {self.description}")
        return value

    def set_focus(self, value: float) -> None:
        try:
            ok = self.cap.set(cv2.CAP_PROP_FOCUS, float(value))
        except cv2.error as exc:
            raise DeviceError(f"Failed to set focus of {self.description}: {exc}") from exc
        if not ok:
            raise DeviceError(f"{self.description} refused focus {value}")


def open_source(config: SourceConfig) -> VideoSource:
    """
    Open the configured source.

    Raises:
        FileSystemError: If a playback file cannot be opened.
        DeviceError: If a camera cannot be opened.
    """
    if isinstance(config, FileSourceConfig):
        print(f"[*] Opening video file {config.path}...")
        cap = cv2.VideoCapture(config.path)
        if not cap.isOpened():
            cap.release()
            raise FileSystemError(f"Could not open video file: {config.path}")
        return FilePlayback(cap, config.path)

    print(f"[*] Opening camera {config.device}...")
    cap = cv2.VideoCapture(int(config.device))
    if not cap.isOpened():
        cap.release()
        raise DeviceError(f"Could not open camera {config.device}")
    source = LiveDevice(cap, int(config.device), config.focus_mode)
    source.apply_focus_mode()
    return source


def format_focus(value: float) -> str:
    """Whole values without a fraction, others at full float precision."""
    if value.is_integer():
        return str(int(value))
    return repr(value)


def describe_focus_mode(focus_mode: Optional[FocusMode]) -> str:
    if isinstance(focus_mode, FixedFocus):
        return f"fixed focus {format_focus(float(focus_mode.value))}"
    if isinstance(focus_mode, AutoFocus):
        return "autofocus"
    return "no focus control"
