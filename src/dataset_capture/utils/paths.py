"""
paths.py - Centralized path handling for the labeled dataset tree.

Dataset layout:
    <store-path>/<label-char>/<index>.<ext>

This module keeps the naming rules for sample files, the staging marker used
while renumbering, and label/directory helpers in one place so the reconciler
and the capture session agree on them.
"""

import os
from pathlib import Path
from typing import Dict, Optional, Union

from dataset_capture.errors import PathError, PatternError


DEFAULT_STORE_PATH = "data"
DEFAULT_IMAGE_EXT = "png"

# Appended to a sample name while renumbering. No final name ever ends with it.
STAGING_MARKER = "_"

# Characters that cannot stand alone as a directory name.
_UNUSABLE_LABELS = {"", ".", "\0", "/", os.sep} | ({os.altsep} if os.altsep else set())

_GLOB_SPECIALS = set("*?[]")

PathLike = Union[str, Path]


def normalize_ext(ext: str) -> str:
    """
    Validate an image extension and return it without a leading dot.

    Args:
        ext: Extension such as 'png' or '.jpg'.

    Returns:
        The bare extension.

    Raises:
        PatternError: If the extension cannot form a scan pattern.
    """
    value = str(ext or "").strip()
    if value.startswith("."):
        value = value[1:]
    if not value:
        raise PatternError("Image extension must not be empty")
    if any(ch in _GLOB_SPECIALS for ch in value):
        raise PatternError(f"Image extension contains pattern characters: {ext!r}")
    if "/" in value or os.sep in value or (os.altsep and os.altsep in value):
        raise PatternError(f"Image extension contains a path separator: {ext!r}")
    if value.endswith(STAGING_MARKER):
        raise PatternError(f"Image extension must not end with {STAGING_MARKER!r}: {ext!r}")
    return value


def sample_suffix(ext: str) -> str:
    """Name suffix of committed sample files."""
    return f".{normalize_ext(ext)}"


def staged_suffix(ext: str) -> str:
    """Name suffix of staged sample files."""
    return f".{normalize_ext(ext)}{STAGING_MARKER}"


def final_name(index: int, ext: str) -> str:
    return f"{index}.{ext}"


def staged_name(index: int, ext: str) -> str:
    return f"{index}.{ext}{STAGING_MARKER}"


def strip_staging_marker(name: str) -> str:
    """
    Turn a staged file name back into its final name.

    Raises:
        PathError: If the name is too short or does not carry the marker.
    """
    if len(name) <= len(STAGING_MARKER) or not name.endswith(STAGING_MARKER):
        raise PathError(f"Name is not a staged sample name: {name!r}")
    return name[: -len(STAGING_MARKER)]


def canonical_dir(path: PathLike) -> Path:
    """
    Resolve symlinks and '.'/'..' components of an existing directory.

    Raises:
        PathError: If the directory does not exist or cannot be resolved.
    """
    try:
        resolved = Path(path).resolve(strict=True)
    except (OSError, RuntimeError) as exc:
        raise PathError(f"Cannot resolve directory {path}: {exc}") from exc
    if not resolved.is_dir():
        raise PathError(f"Not a directory: {resolved}")
    return resolved


def index_key(directory: Path) -> str:
    """IndexMap key for an already canonical directory."""
    return str(directory)


def find_index_key(index_map: Dict[str, int], directory: Path) -> str:
    """
    IndexMap key for a canonical directory, matched by on-disk identity.

    Resolving a path does not fold case on case-insensitive filesystems, so
    'data/a' and 'data/A' can resolve to two strings for one directory. An
    existing key naming the same (device, inode) is returned instead of a new
    one so both spellings share a counter.

    Returns:
        The matching existing key, or index_key(directory) when none matches.
    """
    key = index_key(directory)
    if key in index_map:
        return key
    try:
        target = directory.stat()
    except OSError:
        return key
    for existing in index_map:
        try:
            info = os.stat(existing)
        except OSError:
            continue
        if (info.st_dev, info.st_ino) == (target.st_dev, target.st_ino):
            return existing
    return key


def is_usable_label(label: str) -> bool:
    """True when the single character can be used as a directory name."""
    return len(label) == 1 and label not in _UNUSABLE_LABELS


def is_interactive_label(label: str) -> bool:
    """Labels recorded in interactive device mode: a-z, A-Z, 0-9."""
    return len(label) == 1 and label.isascii() and label.isalnum()


def get_label_dir(store_path: PathLike, label: str) -> Path:
    """
    Get the directory holding the samples of one label.

    Args:
        store_path: Dataset root.
        label: Single-character label.

    Returns:
        Path to the label directory (not necessarily existing).
    """
    if not is_usable_label(label):
        raise PathError(f"Label cannot be used as a directory name: {label!r}")
    return Path(store_path) / label


def ensure_directory(path: PathLike) -> Optional[OSError]:
    """
    Create a directory and its parents if missing.

    Returns:
        The error raised while creating it, or None. Callers decide whether
        it matters.
    """
    try:
        Path(path).mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        return exc
    return None
