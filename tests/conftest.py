import cv2
import numpy as np
import pytest

from dataset_capture.video_source import FilePlayback, FixedFocus, LiveDevice


class FakeCapture:
    """Stands in for cv2.VideoCapture."""

    def __init__(
        self,
        width=64,
        height=48,
        focus=0.0,
        opened=True,
        frames=None,
        focus_supported=True,
        accept_set=True,
    ):
        self.props = {
            cv2.CAP_PROP_FRAME_WIDTH: float(width),
            cv2.CAP_PROP_FRAME_HEIGHT: float(height),
            cv2.CAP_PROP_FOCUS: float(focus) if focus_supported else -1.0,
            cv2.CAP_PROP_AUTOFOCUS: 1.0,
        }
        self.width = width
        self.height = height
        self.opened = opened
        self.frames = None if frames is None else list(frames)
        self.accept_set = accept_set
        self.focus_supported = focus_supported
        self.set_calls = []
        self.release_calls = 0

    def isOpened(self):
        return self.opened

    def get(self, prop):
        return self.props.get(prop, 0.0)

    def set(self, prop, value):
        self.set_calls.append((prop, value))
        if not self.accept_set:
            return False
        if prop == cv2.CAP_PROP_FOCUS and not self.focus_supported:
            return False
        self.props[prop] = float(value)
        return True

    def read(self, image=None):
        if self.frames is None:
            frame = np.full((self.height, self.width, 3), 127, dtype=np.uint8)
        elif not self.frames:
            return False, None
        else:
            frame = self.frames.pop(0)
            if frame is None:
                return False, None
        if image is not None and image.shape == frame.shape and image.dtype == frame.dtype:
            image[...] = frame
            return True, image
        return True, frame.copy()

    def release(self):
        self.release_calls += 1


class FakeDisplay:
    """Preview stand-in replaying scripted keys; closes once the script runs out."""

    def __init__(self, keys=()):
        self.keys = list(keys)
        self.shown = 0
        self.closed = 0
        self.timeouts = []
        self.status = []

    def show(self, frame, status_lines=None):
        if not self.keys:
            return False
        self.shown += 1
        self.status.append(status_lines)
        return True

    def poll_key(self, timeout_ms):
        self.timeouts.append(timeout_ms)
        return self.keys.pop(0)

    def close(self):
        self.closed += 1


@pytest.fixture
def fake_capture_cls():
    return FakeCapture


@pytest.fixture
def fake_display_cls():
    return FakeDisplay


@pytest.fixture
def make_device():
    def _make(focus_value=500.0, **capture_kwargs):
        cap = FakeCapture(**capture_kwargs)
        device = LiveDevice(cap, 0, FixedFocus(focus_value))
        device.apply_focus_mode()
        return device

    return _make


@pytest.fixture
def make_playback():
    def _make(**capture_kwargs):
        return FilePlayback(FakeCapture(**capture_kwargs), "clip.mp4")

    return _make


@pytest.fixture
def dataset(tmp_path):
    root = tmp_path / "data"
    root.mkdir()
    return root


def write_sample(path, content):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content.encode("utf-8"))
    return path


@pytest.fixture
def make_sample():
    return write_sample
