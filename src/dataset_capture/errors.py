"""
errors.py - Exception types raised by the capture tool.

Startup code and the focus commands let these propagate; the CLI turns them
into a one-line message and a non-zero exit code.
"""


class CaptureError(Exception):
    """Base class for every failure the tool reports."""


class PathError(CaptureError):
    """A path could not be resolved or a file name had an unexpected shape."""


class FileSystemError(CaptureError):
    """Creating, renaming or scanning files failed."""


class PatternError(CaptureError):
    """A scan pattern could not be built from the configured extension."""


class DeviceError(CaptureError):
    """A video source could not be opened or a property get/set failed."""
