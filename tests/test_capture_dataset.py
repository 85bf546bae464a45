import pytest

from dataset_capture import session, video_source
from dataset_capture.capture_dataset import build_config, build_parser, main, source_config_from_args
from dataset_capture.session import OperatingMode
from dataset_capture.video_source import AutoFocus, DeviceSourceConfig, FileSourceConfig, FixedFocus


def parse(*argv):
    return build_parser().parse_args(list(argv))


def test_file_mode_arguments():
    args = parse("file", "--path", "clip.mp4")
    assert args.store_path == "data"
    assert args.ext == "png"
    assert args.poll_ms is None
    assert source_config_from_args(args) == FileSourceConfig(path="clip.mp4")


def test_capture_autofocus_defaults():
    args = parse("capture", "auto")
    assert source_config_from_args(args) == DeviceSourceConfig(device=0, focus_mode=AutoFocus())


def test_capture_fixed_focus_default_value():
    args = parse("--store-path", "shots", "capture", "--device", "2", "focus")
    assert args.store_path == "shots"
    assert source_config_from_args(args) == DeviceSourceConfig(device=2, focus_mode=FixedFocus(500.0))


def test_capture_fixed_focus_value():
    args = parse("capture", "focus", "--value", "12.5")
    assert source_config_from_args(args).focus_mode == FixedFocus(12.5)


def test_build_config_uses_mode_default_poll():
    args = parse("--overlay", "--ext", ".jpg", "file", "--path", "clip.mp4")
    config = build_config(args, OperatingMode.BATCH)
    assert config.poll_interval_ms == 1
    assert config.ext == "jpg"
    assert config.overlay is True


@pytest.mark.parametrize(
    "argv",
    [
        [],
        ["capture"],
        ["file"],
        ["capture", "focus", "--value", "abc"],
        ["--poll-ms", "0", "file", "--path", "x.mp4"],
        ["--ext", "*", "file", "--path", "x.mp4"],
    ],
)
def test_usage_errors_exit_with_code_2(argv):
    with pytest.raises(SystemExit) as excinfo:
        main(argv)
    assert excinfo.value.code == 2


@pytest.fixture
def fake_backend(monkeypatch, fake_capture_cls, fake_display_cls):
    state = {"captures": [], "displays": []}

    def install(keys=(), **capture_kwargs):
        def capture_factory(target):
            cap = fake_capture_cls(**capture_kwargs)
            state["captures"].append(cap)
            return cap

        def display_factory(name):
            display = fake_display_cls(keys)
            state["displays"].append(display)
            return display

        monkeypatch.setattr(video_source.cv2, "VideoCapture", capture_factory)
        monkeypatch.setattr(session, "PreviewWindow", display_factory)
        return state

    return install


def test_main_runs_batch_session(tmp_path, fake_backend, capsys):
    state = fake_backend(keys=["x", "x"])
    store = tmp_path / "data"

    code = main(["--store-path", str(store), "--no-progress", "file", "--path", "clip.mp4"])

    assert code == 0
    assert sorted(p.name for p in (store / "x").iterdir()) == ["0.png", "1.png"]
    assert state["captures"][0].release_calls == 1
    out = capsys.readouterr().out
    assert "Next sample index per directory" in out
    assert "save img to" in out


def test_main_reconciles_before_capturing(tmp_path, fake_backend, make_sample, capsys):
    fake_backend(keys=["a"])
    store = tmp_path / "data"
    make_sample(store / "a" / "x.png", "x")
    make_sample(store / "a" / "y.png", "y")

    code = main(["--store-path", str(store), "--no-progress", "capture", "auto"])

    assert code == 0
    assert sorted(p.name for p in (store / "a").iterdir()) == ["0.png", "1.png", "2.png"]
    assert f"{(store / 'a').resolve()} -> 2" in capsys.readouterr().out


def test_main_reports_focus(tmp_path, fake_backend, capsys):
    fake_backend(keys=["+", "\r"])
    code = main(["--store-path", str(tmp_path / "data"), "--no-progress", "capture", "focus", "--value", "500"])
    assert code == 0
    assert "Focus: 501" in capsys.readouterr().out


def test_main_source_open_failure(tmp_path, fake_backend, capsys):
    fake_backend(opened=False)
    code = main(["--store-path", str(tmp_path / "data"), "file", "--path", "missing.mp4"])
    assert code == 1
    assert "[-] Error" in capsys.readouterr().out


def test_main_dimension_failure_releases_source(tmp_path, fake_backend):
    state = fake_backend(width=0, height=0)
    code = main(["--store-path", str(tmp_path / "data"), "capture", "auto"])
    assert code == 1
    assert state["captures"][0].release_calls == 1
    assert state["displays"] == []


def test_main_reconcile_failure(tmp_path, fake_backend):
    blocker = tmp_path / "data"
    blocker.write_text("not a directory")
    state = fake_backend()
    code = main(["--store-path", str(blocker), "--no-progress", "file", "--path", "clip.mp4"])
    assert code == 1
    assert state["captures"][0].release_calls == 1


def test_main_fatal_focus_failure(tmp_path, fake_backend):
    state = fake_backend(keys=["-"], accept_set=False)
    code = main(["--store-path", str(tmp_path / "data"), "--no-progress", "capture", "auto"])
    assert code == 1
    assert state["captures"][0].release_calls == 1
