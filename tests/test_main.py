import threading
import time

import cv2
import numpy as np
import pytest

from robotmarker import main as app
from robotmarker.geometry import Rect
from robotmarker.main import (
    _LatestCandidates,
    _LatestFrame,
    _PerfStats,
    _start_detection_thread,
)
from robotmarker.marker_detector import CandidateMarker, Symbology
from robotmarker.presence_tracker import PresenceTracker


class _FakeDetector:
    def __init__(self, candidates):
        self.candidates = candidates
        self.calls = 0

    def detect(self, frame):
        self.calls += 1
        return self.candidates


def _wait_for(predicate, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


def test_detection_thread_updates_tracker_once_per_frame() -> None:
    box = Rect(0.4, 0.4, 0.2, 0.2)
    detector = _FakeDetector([CandidateMarker(Symbology.QR, "ROBOT_R1", box)])
    tracker = PresenceTracker()
    latest = _LatestFrame()
    candidates = _LatestCandidates()
    stop = threading.Event()

    thread = _start_detection_thread(
        detector, tracker, latest, candidates, _PerfStats(), stop
    )
    try:
        latest.update(np.zeros((10, 10, 3), dtype=np.uint8))
        assert _wait_for(lambda: tracker.snapshot().present)
        time.sleep(0.05)
    finally:
        stop.set()
        thread.join(timeout=1.0)

    assert not thread.is_alive()
    assert detector.calls == 1
    assert tracker.snapshot().box == box
    assert candidates.snapshot() == detector.candidates


def _write_config(tmp_path, text: str) -> str:
    path = tmp_path / "config.toml"
    path.write_text(text, encoding="utf-8")
    return str(path)


class _FakeCapture:
    def __init__(self):
        self.released = False

    def read(self):
        return False, None

    def release(self):
        self.released = True


def test_main_fails_for_unavailable_camera(tmp_path) -> None:
    config = _write_config(tmp_path, "[camera]\nindex = 9999\n")

    assert app.main(["--config", config, "--no-gui"]) == 1


@pytest.mark.parametrize(
    "text",
    [
        "[tracker]\npersistence_threshold = 0\n",
        '[marker]\nbackend = "vision"\n',
        "[marker]\ntarget_symbology = 1\n",
        "[overlay]\nbounding_box_padding = -1.0\n",
    ],
)
def test_main_fails_for_invalid_settings(tmp_path, monkeypatch, text) -> None:
    opened = []
    monkeypatch.setattr(app, "open_camera", lambda *args: opened.append(args))
    config = _write_config(tmp_path, text)

    assert app.main(["--config", config, "--no-gui"]) == 1
    assert opened == []


def test_main_uses_defaults_when_config_missing(tmp_path, monkeypatch) -> None:
    opened = []

    def fake_open_camera(*args):
        opened.append(args)
        raise RuntimeError("no camera")

    monkeypatch.setattr(app, "open_camera", fake_open_camera)

    code = app.main(["--config", str(tmp_path / "missing.toml"), "--no-gui"])

    assert code == 1
    assert opened == [(0, 0, 0)]


def test_main_releases_camera_when_window_fails(tmp_path, monkeypatch) -> None:
    cap = _FakeCapture()

    def failing_window(**kwargs):
        raise cv2.error("no display")

    monkeypatch.setattr(app, "open_camera", lambda *args: cap)
    monkeypatch.setattr(app, "PreviewWindow", failing_window)
    config = _write_config(tmp_path, "[ui]\nshow_debug = true\n")

    assert app.main(["--config", config]) == 1
    assert cap.released
