"""
robotmarker - live scanner for the robot's QR fiducial.

Main application orchestrating:
- Threaded camera capture (30 FPS)
- Threaded marker detection feeding the presence tracker
- Preview rendering from published tracker snapshots

Architecture:
    Capture Thread → Detection Thread → Main Thread
         ↓                ↓                 ↓
    Latest Frame    Tracker State      Preview / log
"""

import argparse
import threading
import time

import cv2
from loguru import logger

from .camera import open_camera
from .config import load_config, tracker_settings
from .log import configure_logging
from .marker_detector import MarkerDetector
from .overlay import PreviewWindow
from .presence_tracker import PresenceTracker


class _FPSCounter:
    """Simple FPS counter that updates every second."""

    def __init__(self):
        self._count = 0
        self._last_time = time.monotonic()
        self.fps = 0.0

    def tick(self):
        self._count += 1
        now = time.monotonic()
        elapsed = now - self._last_time
        if elapsed >= 1.0:
            self.fps = self._count / elapsed
            self._count = 0
            self._last_time = now


class _PerfStats:
    """Thread-safe container for performance metrics across pipeline stages."""

    def __init__(self):
        self._lock = threading.Lock()
        self.capture_fps = 0.0
        self.detect_fps = 0.0
        self.detect_latency_ms = 0.0
        self.gui_fps = 0.0

    def update_capture(self, fps):
        with self._lock:
            self.capture_fps = fps

    def update_detect(self, fps, latency_ms):
        with self._lock:
            self.detect_fps = fps
            self.detect_latency_ms = latency_ms

    def update_gui(self, fps):
        with self._lock:
            self.gui_fps = fps

    def snapshot(self):
        with self._lock:
            return (
                self.capture_fps,
                self.detect_fps,
                self.detect_latency_ms,
                self.gui_fps,
            )


class _LatestFrame:
    """Thread-safe storage for latest captured frame with version tracking."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._frame = None
        self._version = 0

    def update(self, frame) -> None:
        with self._lock:
            self._frame = frame
            self._version += 1

    def snapshot(self):
        with self._lock:
            return self._frame, self._version


class _LatestCandidates:
    """Raw candidates from the last detected frame, for debug drawing."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._candidates = []

    def update(self, candidates) -> None:
        with self._lock:
            self._candidates = candidates

    def snapshot(self):
        with self._lock:
            return self._candidates


def _start_capture_thread(
    cap,
    latest: _LatestFrame,
    stats: _PerfStats,
    stop: threading.Event,
    *,
    mirror: bool = False,
) -> threading.Thread:
    """Start camera capture thread that continuously reads frames."""

    def run() -> None:
        fps = _FPSCounter()
        failures = 0
        while not stop.is_set():
            ok, frame = cap.read()
            if not ok:
                failures += 1
                if failures == 100:
                    logger.warning("Camera returned no frames for 100 reads")
                time.sleep(0.01)
                continue
            failures = 0
            if mirror:
                frame = cv2.flip(frame, 1)
            latest.update(frame)
            fps.tick()
            stats.update_capture(fps.fps)

    thread = threading.Thread(target=run, name="capture", daemon=True)
    thread.start()
    return thread


def _start_detection_thread(
    detector: MarkerDetector,
    tracker: PresenceTracker,
    latest: _LatestFrame,
    candidates_out: _LatestCandidates,
    stats: _PerfStats,
    stop: threading.Event,
) -> threading.Thread:
    """
    Start detection thread: one tracker update per new frame version.

    This thread is the tracker's only writer.
    """

    def run() -> None:
        last_seen = -1
        fps = _FPSCounter()
        while not stop.is_set():
            frame, version = latest.snapshot()
            if frame is None or version == last_seen:
                time.sleep(0.005)
                continue
            last_seen = version
            t0 = time.monotonic()
            candidates = detector.detect(frame)
            tracker.update(candidates)
            latency_ms = (time.monotonic() - t0) * 1000.0
            fps.tick()
            stats.update_detect(fps.fps, latency_ms)
            candidates_out.update(candidates)

    thread = threading.Thread(target=run, name="detection", daemon=True)
    thread.start()
    return thread


def main(argv=None) -> int:
    """Main application entry point."""
    parser = argparse.ArgumentParser(description="Live robot QR marker scanner")
    parser.add_argument("--config", default="config.toml", help="Path to config TOML")
    parser.add_argument("--no-gui", action="store_true", help="Disable preview window")
    parser.add_argument("--log-level", default=None, help="Override logging level")
    args = parser.parse_args(argv)

    missing_config = False
    try:
        config = load_config(args.config)
    except FileNotFoundError:
        config = {}
        missing_config = True
    configure_logging(args.log_level or config.get("logging", {}).get("level", "INFO"))
    if missing_config:
        logger.warning("Config {} not found, using defaults", args.config)

    cam_cfg = config.get("camera", {})
    marker_cfg = config.get("marker", {})
    overlay_cfg = config.get("overlay", {})
    ui_cfg = config.get("ui", {})

    try:
        settings = tracker_settings(config)
        detector = MarkerDetector(backend=marker_cfg.get("backend", "opencv"))
        cap = open_camera(
            cam_cfg.get("index", 0),
            cam_cfg.get("preferred_width", 0),
            cam_cfg.get("preferred_height", 0),
        )
    except (RuntimeError, ValueError) as exc:
        logger.error("Startup failed: {}", exc)
        return 1

    tracker = PresenceTracker(
        target_payload=settings.target_payload,
        target_symbology=settings.target_symbology,
        persistence_threshold=settings.persistence_threshold,
    )
    logger.info(
        "Scanning for {} ({}), persistence {} frames",
        settings.target_payload,
        settings.target_symbology.value,
        settings.persistence_threshold,
    )

    show_gui = ui_cfg.get("show_debug", True) and not args.no_gui
    latest_frame = _LatestFrame()
    latest_candidates = _LatestCandidates()
    stop_event = threading.Event()
    perf_stats = _PerfStats()
    threads = []
    window = None
    last_frame_version = -1
    gui_fps = _FPSCounter()
    try:
        if show_gui:
            window = PreviewWindow(
                padding=settings.bounding_box_padding,
                label=overlay_cfg.get("label", "Robot R1"),
                show_candidates=overlay_cfg.get("show_candidates", False),
            )
        threads.append(
            _start_capture_thread(
                cap,
                latest_frame,
                perf_stats,
                stop_event,
                mirror=cam_cfg.get("mirror", False),
            )
        )
        threads.append(
            _start_detection_thread(
                detector, tracker, latest_frame, latest_candidates, perf_stats, stop_event
            )
        )

        while True:
            if window is None:
                # Headless: the tracker logs presence edges itself.
                time.sleep(0.1)
                continue

            frame, frame_version = latest_frame.snapshot()
            if frame is None or frame_version == last_frame_version:
                if not window.process_events():
                    break
                time.sleep(0.005)
                continue
            last_frame_version = frame_version

            gui_fps.tick()
            perf_stats.update_gui(gui_fps.fps)
            if not window.render(
                frame.copy(),
                tracker.snapshot(),
                latest_candidates.snapshot(),
                perf_stats=perf_stats,
            ):
                break
    except KeyboardInterrupt:
        logger.info("Interrupted")
    except cv2.error as exc:
        logger.error("Preview failed: {}", exc)
        return 1
    finally:
        stop_event.set()
        for thread in threads:
            thread.join(timeout=1.0)
        cap.release()
        if window:
            window.close()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
