import cv2
import numpy as np
import pytest

from robotmarker.marker_detector import (
    CandidateMarker,
    MarkerDetector,
    Symbology,
    symbology_from_backend,
)
from robotmarker.marker_sheet import make_marker_image
from robotmarker.presence_tracker import PresenceTracker


def _frame_with_marker(payload: str) -> np.ndarray:
    """Marker in the upper-left part of a larger white frame."""
    marker = cv2.cvtColor(np.array(make_marker_image(payload)), cv2.COLOR_RGB2BGR)
    frame = np.full((800, 800, 3), 255, dtype=np.uint8)
    h, w = marker.shape[:2]
    frame[40 : 40 + h, 60 : 60 + w] = marker
    return frame


def test_opencv_backend_finds_marker() -> None:
    detector = MarkerDetector(backend="opencv")

    candidates = detector.detect(_frame_with_marker("ROBOT_R1"))

    assert len(candidates) == 1
    candidate = candidates[0]
    assert candidate.symbology is Symbology.QR
    assert candidate.payload == "ROBOT_R1"
    box = candidate.bounding_box
    assert 0.0 <= box.min_x < box.max_x <= 0.5
    # Marker sits near the top of the image, so high in bottom-left space.
    assert box.max_y > 0.8
    assert box.min_y > 0.3


def test_detected_marker_drives_tracker() -> None:
    detector = MarkerDetector()
    tracker = PresenceTracker()

    state = tracker.update(detector.detect(_frame_with_marker("ROBOT_R1")))

    assert state.present
    assert state.box is not None


def test_other_payload_is_not_tracked() -> None:
    detector = MarkerDetector()
    tracker = PresenceTracker(persistence_threshold=1)

    candidates = detector.detect(_frame_with_marker("ROBOT_R2"))

    assert [c.payload for c in candidates] == ["ROBOT_R2"]
    assert not tracker.update(candidates).present


def test_blank_frame_has_no_candidates() -> None:
    frame = np.full((480, 640, 3), 255, dtype=np.uint8)

    assert MarkerDetector().detect(frame) == []


def test_unknown_backend_rejected() -> None:
    with pytest.raises(ValueError):
        MarkerDetector(backend="vision")


def test_backend_symbology_names() -> None:
    assert symbology_from_backend("QRCODE") is Symbology.QR
    assert symbology_from_backend("QRCode") is Symbology.QR
    assert symbology_from_backend("Code128") is Symbology.CODE128
    assert symbology_from_backend("I25") is Symbology.OTHER


def test_symbology_parse() -> None:
    assert Symbology.parse("QR") is Symbology.QR
    assert Symbology.parse("data-matrix") is Symbology.DATA_MATRIX
    with pytest.raises(ValueError):
        Symbology.parse("hologram")


def test_candidate_equality_ignores_points() -> None:
    from robotmarker.geometry import Rect

    box = Rect(0.1, 0.1, 0.2, 0.2)
    a = CandidateMarker(Symbology.QR, "X", box, points=((1.0, 2.0),))
    b = CandidateMarker(Symbology.QR, "X", box)

    assert a == b
