"""
reconcile.py - Renumber existing samples before a capture session starts.

Every label directory under the dataset root ends up holding 0.<ext> .. N-1.<ext>
and the returned index map says where numbering continues (N).

Renaming happens in two passes so no rename can clobber a file that has not
been processed yet:
  1. stage:  every sample -> <n>.<ext>_   (no final name ends with the marker)
  2. commit: every <n>.<ext>_ -> <n>.<ext>
Staged files left behind by an interrupted run are committed before stage 1 so
they are counted like any other sample.
"""

import os
from pathlib import Path
from typing import Union

from tqdm import tqdm

from dataset_capture.errors import FileSystemError, PathError
from dataset_capture.utils.paths import (
    DEFAULT_IMAGE_EXT,
    index_key,
    normalize_ext,
    sample_suffix,
    staged_name,
    staged_suffix,
    strip_staging_marker,
)


def sample_sort_key(path: Path) -> tuple:
    """Numeric names first in numeric order, everything else by name."""
    stem = path.name.rsplit(".", 1)[0]
    if stem.isascii() and stem.isdigit():
        return (0, int(stem), path.name)
    return (1, 0, path.name)


def _raise_scan_error(exc: OSError) -> None:
    raise FileSystemError(f"Failed to list {exc.filename}: {exc}") from exc


def scan_files(root: Path, suffix: str) -> list[Path]:
    """
    Find files under root whose name ends with suffix.

    Raises:
        FileSystemError: If root or any directory below it cannot be listed.
    """
    found = []
    for dirpath, _dirnames, filenames in os.walk(root, onerror=_raise_scan_error):
        for name in filenames:
            if not name.endswith(suffix):
                continue
            file_path = Path(dirpath) / name
            if file_path.is_file():
                found.append(file_path)
    return found


def group_by_directory(files: list[Path]) -> dict[Path, list[Path]]:
    """Group files by canonical parent directory, each group sorted."""
    groups: dict[Path, list[Path]] = {}
    for file_path in files:
        try:
            parent = file_path.parent.resolve(strict=True)
        except (OSError, RuntimeError) as exc:
            raise PathError(f"Cannot resolve parent of {file_path}: {exc}") from exc
        groups.setdefault(parent, []).append(file_path)
    for directory in groups:
        groups[directory].sort(key=sample_sort_key)
    return groups


def move_file(src: Path, dst: Path) -> bool:
    """
    Rename without overwriting. Failures are printed, not raised.

    Returns:
        True if the file was moved.
    """
    if src == dst:
        return True
    if dst.exists():
        print(f"[!] Not renaming {src} -> {dst}: target already exists")
        return False
    try:
        src.rename(dst)
    except OSError as exc:
        print(f"[!] Failed to rename {src} -> {dst}: {exc}")
        return False
    return True


def commit_staged(root: Path, ext: str) -> int:
    """Strip the staging marker from every staged file under root."""
    committed = 0
    for staged in sorted(scan_files(root, staged_suffix(ext))):
        name = strip_staging_marker(staged.name)
        if move_file(staged, staged.with_name(name)):
            committed += 1
    return committed


def stage_samples(root: Path, ext: str, show_progress: bool = True) -> dict[str, int]:
    groups = group_by_directory(scan_files(root, sample_suffix(ext)))
    index_map: dict[str, int] = {}
    for directory, files in tqdm(
        sorted(groups.items()),
        desc="Staging",
        unit="dir",
        disable=not show_progress,
    ):
        count = 0
        for file_path in files:
            # A failed rename still consumes its index.
            move_file(file_path, file_path.with_name(staged_name(count, ext)))
            count += 1
        index_map[index_key(directory)] = count
    return index_map


def reconcile(
    root_path: Union[str, Path],
    ext: str = DEFAULT_IMAGE_EXT,
    show_progress: bool = True,
) -> dict[str, int]:
    """
    Renumber the samples of every directory under root_path.

    Args:
        root_path: Dataset root. Must exist.
        ext: Image extension of sample files.
        show_progress: Show a tqdm bar while staging.

    Returns:
        Map of canonical directory path -> next free sample index.

    Raises:
        FileSystemError: If the root cannot be resolved or scanned.
        PatternError: If ext cannot form a scan pattern.
    """
    ext = normalize_ext(ext)
    try:
        root = Path(root_path).resolve(strict=True)
    except (OSError, RuntimeError) as exc:
        raise FileSystemError(f"Cannot resolve dataset root {root_path}: {exc}") from exc
    if not root.is_dir():
        raise FileSystemError(f"Dataset root is not a directory: {root}")

    recovered = commit_staged(root, ext)
    if recovered:
        print(f"[!] Recovered {recovered} staged file(s) from an interrupted run")

    index_map = stage_samples(root, ext, show_progress=show_progress)
    commit_staged(root, ext)
    return index_map


def format_index_map(index_map: dict[str, int]) -> str:
    if not index_map:
        return "    (no existing samples)"
    return "\n".join(f"    {directory} -> {count}" for directory, count in sorted(index_map.items()))


def print_index_map(index_map: dict[str, int]) -> None:
    print("[*] Next sample index per directory:")
    print(format_index_map(index_map))
