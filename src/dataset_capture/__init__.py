"""Interactive capture of labeled image datasets from cameras and video files."""

__version__ = "0.1.0"
