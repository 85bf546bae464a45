"""
capture_dataset.py - Build a labeled image dataset from a camera or video file.

Usage:
    dataset-capture file --path clip.mp4
    dataset-capture capture --device 0 auto
    dataset-capture --store-path data capture --device 1 focus --value 420

Startup:
    1. Open the source and query its frame size.
    2. Renumber existing samples under --store-path to 0..N-1 per label folder.
    3. Print where numbering continues, then start the preview loop.

Close the preview window to quit.
"""

import argparse
from typing import Optional, Sequence

from dataset_capture import __version__
from dataset_capture.display import DEFAULT_WINDOW_NAME
from dataset_capture.errors import CaptureError, PatternError
from dataset_capture.reconcile import print_index_map, reconcile
from dataset_capture.session import CaptureSession, OperatingMode, SessionConfig, mode_for_source
from dataset_capture.utils.paths import (
    DEFAULT_IMAGE_EXT,
    DEFAULT_STORE_PATH,
    ensure_directory,
    normalize_ext,
)
from dataset_capture.video_source import (
    DEFAULT_DEVICE,
    DEFAULT_FOCUS_VALUE,
    AutoFocus,
    DeviceSourceConfig,
    FileSourceConfig,
    FixedFocus,
    SourceConfig,
    describe_focus_mode,
    open_source,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dataset-capture",
        description="Labeled frame capture tool",
    )
    parser.add_argument(
        "--store-path",
        default=DEFAULT_STORE_PATH,
        help=f"Dataset root; samples go to <store-path>/<label>/<n>.<ext> (default: {DEFAULT_STORE_PATH})",
    )
    parser.add_argument(
        "--ext",
        default=DEFAULT_IMAGE_EXT,
        help=f"Image extension of samples (default: {DEFAULT_IMAGE_EXT})",
    )
    parser.add_argument(
        "--poll-ms",
        type=int,
        default=None,
        help="Key wait per frame in ms (default: 100 for cameras, 1 for files)",
    )
    parser.add_argument("--window-name", default=DEFAULT_WINDOW_NAME, help="Preview window title")
    parser.add_argument("--overlay", action="store_true", help="Draw mode and last saved sample on the preview")
    parser.add_argument("--no-progress", action="store_true", help="Hide the renumbering progress bar")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    sources = parser.add_subparsers(dest="source", required=True, metavar="{file,capture}")

    file_parser = sources.add_parser("file", help="Replay a video file; every key is a label")
    file_parser.add_argument("--path", required=True, help="Video file to play")

    capture_parser = sources.add_parser("capture", help="Live camera with focus control")
    capture_parser.add_argument("--device", type=int, default=DEFAULT_DEVICE, help="Camera index (default: 0)")
    focus_modes = capture_parser.add_subparsers(dest="focus", required=True, metavar="{auto,focus}")
    focus_modes.add_parser("auto", help="Enable autofocus")
    fixed_parser = focus_modes.add_parser("focus", help="Disable autofocus and set a fixed focus")
    fixed_parser.add_argument(
        "--value",
        type=float,
        default=DEFAULT_FOCUS_VALUE,
        help=f"Focus value (default: {DEFAULT_FOCUS_VALUE:g})",
    )
    return parser


def source_config_from_args(args: argparse.Namespace) -> SourceConfig:
    if args.source == "file":
        return FileSourceConfig(path=args.path)
    if args.focus == "auto":
        focus_mode = AutoFocus()
    else:
        focus_mode = FixedFocus(value=float(args.value))
    return DeviceSourceConfig(device=int(args.device), focus_mode=focus_mode)


def build_config(args: argparse.Namespace, mode: OperatingMode) -> SessionConfig:
    return SessionConfig(
        store_path=args.store_path,
        mode=mode,
        poll_interval_ms=args.poll_ms,
        ext=args.ext,
        window_name=args.window_name,
        overlay=bool(args.overlay),
    )


def print_controls(mode: OperatingMode) -> None:
    print("[*] Controls:")
    if mode is OperatingMode.INTERACTIVE:
        print("    a-z, A-Z, 0-9: save frame under that label")
        print("    Enter: print current focus")
        print("    - / +: decrease/increase focus")
    else:
        print("    any key: save frame under that label")
    print("    close the window: quit")


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.poll_ms is not None and args.poll_ms <= 0:
        parser.error("--poll-ms must be > 0")
    try:
        normalize_ext(args.ext)
    except PatternError as exc:
        parser.error(str(exc))

    source_config = source_config_from_args(args)
    try:
        source = open_source(source_config)
    except CaptureError as exc:
        print(f"[-] Error: {exc}")
        return 1

    try:
        mode = mode_for_source(source)
        config = build_config(args, mode)
        frame = source.allocate_frame()
        height, width = frame.shape[:2]
        if isinstance(source_config, DeviceSourceConfig):
            print(f"[*] Camera {source_config.device}: {width}x{height}, {describe_focus_mode(source_config.focus_mode)}")
        else:
            print(f"[*] Video file: {width}x{height}")

        mkdir_error = ensure_directory(config.store_path)
        if mkdir_error is not None:
            print(f"[!] Could not create {config.store_path}: {mkdir_error}")
        index_map = reconcile(config.store_path, config.ext, show_progress=not args.no_progress)
    except CaptureError as exc:
        source.release()
        print(f"[-] Error: {exc}")
        return 1

    print_index_map(index_map)
    print_controls(mode)

    session = CaptureSession(source, index_map, config, frame=frame)
    try:
        return session.run()
    except KeyboardInterrupt:
        print("\n[*] Interrupted by user")
        return 0
    except CaptureError as exc:
        print(f"[-] Error: {exc}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
