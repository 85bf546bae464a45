"""
session.py - The capture loop.

Each iteration reads a frame into one reused buffer, shows it, waits briefly for
a key and dispatches it:

Interactive mode (live camera):
    Enter        print current focus
    - / +        step focus down (never below 0) / up
    a-z A-Z 0-9  save the frame under that label
Batch mode (video file):
    any key      save the frame under that label

Samples go to <store-path>/<label>/<index>.<ext>. The index for a directory is
taken from the reconciled index map and advances on every save attempt.
"""

import enum
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Union

import cv2
import numpy as np

from dataset_capture.display import DEFAULT_WINDOW_NAME, PreviewWindow
from dataset_capture.utils.paths import (
    DEFAULT_IMAGE_EXT,
    canonical_dir,
    ensure_directory,
    final_name,
    find_index_key,
    get_label_dir,
    is_interactive_label,
    is_usable_label,
    normalize_ext,
)
from dataset_capture.video_source import VideoSource, format_focus


INTERACTIVE_POLL_MS = 100
BATCH_POLL_MS = 1

ENTER_KEYS = ("\r", "\n")
FOCUS_STEP = 1.0


class OperatingMode(enum.Enum):
    INTERACTIVE = "interactive"
    BATCH = "batch"


def default_poll_interval(mode: OperatingMode) -> int:
    return INTERACTIVE_POLL_MS if mode is OperatingMode.INTERACTIVE else BATCH_POLL_MS


def mode_for_source(source: VideoSource) -> OperatingMode:
    return OperatingMode.INTERACTIVE if source.supports_focus else OperatingMode.BATCH


def focus_down(focus: float) -> float:
    return max(focus, FOCUS_STEP) - FOCUS_STEP


def focus_up(focus: float) -> float:
    return focus + FOCUS_STEP


def write_image(path: Path, frame: np.ndarray) -> bool:
    """Encode a frame to path. Returns False instead of raising."""
    try:
        return bool(cv2.imwrite(str(path), frame))
    except cv2.error:
        return False


ImageWriter = Callable[[Path, np.ndarray], bool]


@dataclass
class SessionConfig:
    store_path: Union[str, Path]
    mode: OperatingMode
    poll_interval_ms: Optional[int] = None
    ext: str = DEFAULT_IMAGE_EXT
    window_name: str = DEFAULT_WINDOW_NAME
    overlay: bool = False

    def __post_init__(self):
        self.store_path = Path(self.store_path)
        self.ext = normalize_ext(self.ext)
        if self.poll_interval_ms is None:
            self.poll_interval_ms = default_poll_interval(self.mode)
        if self.poll_interval_ms <= 0:
            raise ValueError("poll_interval_ms must be > 0")


class CaptureSession:
    def __init__(
        self,
        source: VideoSource,
        index_map: dict[str, int],
        config: SessionConfig,
        display=None,
        writer: ImageWriter = write_image,
        frame: Optional[np.ndarray] = None,
    ):
        if config.mode is OperatingMode.INTERACTIVE and not source.supports_focus:
            raise ValueError("Interactive mode needs a source with focus control")
        self.source = source
        self.index_map = index_map
        self.config = config
        self.display = display if display is not None else PreviewWindow(config.window_name)
        self.writer = writer
        self.frame = frame if frame is not None else source.allocate_frame()
        self.saved_count = 0
        self.failed_count = 0
        self.last_saved: Optional[Path] = None

    def run(self) -> int:
        """
        Loop until the preview is closed.

        The source is released exactly once, also when a focus command fails
        and its DeviceError propagates.

        Returns:
            Process exit code (0).
        """
        try:
            while self.step():
                pass
        finally:
            self.source.release()
            self.display.close()
        print(f"[*] Session ended: {self.saved_count} saved, {self.failed_count} failed")
        return 0

    def step(self) -> bool:
        """One loop iteration. Returns False when the session should stop."""
        # A failed read keeps the previous frame on screen.
        self.source.read_frame(self.frame)

        if not self.display.show(self.frame, self.status_lines()):
            return False

        key = self.display.poll_key(self.config.poll_interval_ms)
        if key is not None:
            self.dispatch(key)
        return True

    def dispatch(self, key: str) -> Optional[Path]:
        if self.config.mode is OperatingMode.BATCH:
            if not is_usable_label(key):
                print(f"[!] Key {key!r} cannot be used as a label, ignored")
                return None
            return self.record(key)

        if key in ENTER_KEYS:
            self.report_focus()
        elif key == "-":
            self.adjust_focus(focus_down)
        elif key == "+":
            self.adjust_focus(focus_up)
        elif is_interactive_label(key):
            return self.record(key)
        return None

    def report_focus(self) -> float:
        focus = self.source.get_focus()
        print(f"Focus: {format_focus(focus)}")
        return focus

    def adjust_focus(self, step: Callable[[float], float]) -> float:
        focus = step(self.source.get_focus())
        self.source.set_focus(focus)
        print(f"[*] Focus set to {format_focus(focus)}")
        return focus

    def record(self, label: str) -> Path:
        """
        Save the current frame as the next sample of `label`.

        The directory's index advances even when writing fails, so a failed
        save leaves a gap in the numbering.

        Raises:
            PathError: If the label directory cannot be resolved.
        """
        directory = get_label_dir(self.config.store_path, label)
        ensure_directory(directory)
        directory = canonical_dir(directory)

        key = find_index_key(self.index_map, directory)
        index = self.index_map.setdefault(key, 0)
        path = Path(key) / final_name(index, self.config.ext)
        print(f"[+] save img to {path}")
        self.index_map[key] = index + 1

        if self.writer(path, self.frame):
            self.saved_count += 1
            self.last_saved = path
        else:
            self.failed_count += 1
            print(f"[-] Failed to save to {path}")
        return path

    def status_lines(self) -> Optional[list[str]]:
        if not self.config.overlay:
            return None
        if self.config.mode is OperatingMode.INTERACTIVE:
            keys = "a-z A-Z 0-9 = save | Enter = focus | -/+ = adjust focus"
        else:
            keys = "any key = save under that label"
        lines = [f"Mode: {self.config.mode.value} | saved: {self.saved_count}", keys]
        if self.last_saved is not None:
            lines.append(f"Last: {self.last_saved.parent.name}/{self.last_saved.name}")
        return lines
