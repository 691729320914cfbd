"""
Detector adapter: runs a barcode backend on a frame and reports candidates.

Every candidate carries a normalized, bottom-left-origin bounding box so the
rest of the pipeline never sees backend-specific pixel geometry.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple

import cv2
import numpy as np
from loguru import logger

from .geometry import Rect, normalize_quad


class Symbology(str, Enum):
    QR = "qr"
    MICRO_QR = "micro_qr"
    AZTEC = "aztec"
    DATA_MATRIX = "data_matrix"
    PDF417 = "pdf417"
    EAN13 = "ean13"
    CODE128 = "code128"
    OTHER = "other"

    @classmethod
    def parse(cls, name: str) -> "Symbology":
        if not isinstance(name, str):
            raise ValueError(f"Symbology must be a name, got {name!r}")
        key = name.strip().lower().replace("-", "_")
        for member in cls:
            if member.value == key:
                return member
        raise ValueError(f"Unknown symbology: {name!r}")


# Names as reported by pyzbar (ZBarSymbol) and zxing-cpp (BarcodeFormat).
_BACKEND_SYMBOLOGIES = {
    "QRCODE": Symbology.QR,
    "QRCode": Symbology.QR,
    "MicroQRCode": Symbology.MICRO_QR,
    "Aztec": Symbology.AZTEC,
    "DataMatrix": Symbology.DATA_MATRIX,
    "PDF417": Symbology.PDF417,
    "EAN13": Symbology.EAN13,
    "CODE128": Symbology.CODE128,
    "Code128": Symbology.CODE128,
}


def symbology_from_backend(name: str) -> Symbology:
    return _BACKEND_SYMBOLOGIES.get(name, Symbology.OTHER)


@dataclass(frozen=True)
class CandidateMarker:
    symbology: Symbology
    payload: Optional[str]
    bounding_box: Rect  # normalized, origin bottom-left
    points: Tuple[Tuple[float, float], ...] = field(default=(), compare=False)


def _frame_size(frame) -> Tuple[int, int]:
    height, width = frame.shape[:2]
    return width, height


def _candidate(
    symbology: Symbology,
    payload: Optional[str],
    quad_points: Sequence[Tuple[float, float]],
    frame_size: Tuple[int, int],
) -> CandidateMarker:
    return CandidateMarker(
        symbology=symbology,
        payload=payload or None,
        bounding_box=normalize_quad(quad_points, frame_size),
        points=tuple(quad_points),
    )


class MarkerDetector:
    def __init__(self, backend: str = "opencv"):
        self.backend = backend
        self._opencv = None
        self._pyzbar = None
        self._zxingcpp = None

        if backend == "pyzbar":
            try:
                from pyzbar import pyzbar  # type: ignore
            except ImportError as exc:
                raise RuntimeError(
                    "pyzbar is not installed; install it or use backend=opencv"
                ) from exc
            self._pyzbar = pyzbar
        elif backend == "zxingcpp":
            try:
                import zxingcpp  # type: ignore
            except ImportError as exc:
                raise RuntimeError(
                    "zxing-cpp is not installed; pip install zxing-cpp"
                ) from exc
            self._zxingcpp = zxingcpp
        elif backend == "opencv_aruco":
            self._opencv = cv2.QRCodeDetectorAruco()
        elif backend == "opencv":
            self._opencv = cv2.QRCodeDetector()
        else:
            raise ValueError(f"Unknown detector backend: {backend!r}")
        logger.debug("Marker detector backend: {}", backend)

    def detect(self, frame) -> List[CandidateMarker]:
        if self.backend == "pyzbar":
            return _detect_pyzbar(frame, self._pyzbar)
        if self.backend == "zxingcpp":
            return _detect_zxingcpp(frame, self._zxingcpp)
        return _detect_opencv(frame, self._opencv)


def _detect_opencv(frame, detector) -> List[CandidateMarker]:
    candidates: List[CandidateMarker] = []
    size = _frame_size(frame)

    try:
        ok, decoded_info, points, _ = detector.detectAndDecodeMulti(frame)
    except cv2.error as exc:
        logger.debug("detectAndDecodeMulti failed: {}", exc)
        ok, decoded_info, points = False, (), None
    if ok and points is not None:
        for text, quad in zip(decoded_info, points):
            quad_points = [(float(x), float(y)) for x, y in quad]
            candidates.append(_candidate(Symbology.QR, text, quad_points, size))
        return candidates

    try:
        result = detector.detectAndDecode(frame)
    except cv2.error:
        return candidates
    if len(result) == 3:
        text, points, _ = result
    else:
        text, points = result
    if text and points is not None:
        quad_points = [(float(x), float(y)) for x, y in np.reshape(points, (-1, 2))]
        candidates.append(_candidate(Symbology.QR, text, quad_points, size))

    return candidates


def _detect_pyzbar(frame, pyzbar) -> List[CandidateMarker]:
    candidates: List[CandidateMarker] = []
    size = _frame_size(frame)
    gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY) if frame.ndim == 3 else frame
    for obj in pyzbar.decode(gray):
        text = obj.data.decode("utf-8", errors="replace") if obj.data else None
        points = obj.polygon or []
        if points:
            quad_points = [(float(p.x), float(p.y)) for p in points]
        else:
            rect = obj.rect
            quad_points = [
                (float(rect.left), float(rect.top)),
                (float(rect.left + rect.width), float(rect.top)),
                (float(rect.left + rect.width), float(rect.top + rect.height)),
                (float(rect.left), float(rect.top + rect.height)),
            ]
        symbology = symbology_from_backend(str(obj.type))
        candidates.append(_candidate(symbology, text, quad_points, size))
    return candidates


def _detect_zxingcpp(frame, zxingcpp) -> List[CandidateMarker]:
    candidates: List[CandidateMarker] = []
    size = _frame_size(frame)
    for result in zxingcpp.read_barcodes(frame):
        pos = result.position
        quad_points = [
            (float(pos.top_left.x), float(pos.top_left.y)),
            (float(pos.top_right.x), float(pos.top_right.y)),
            (float(pos.bottom_right.x), float(pos.bottom_right.y)),
            (float(pos.bottom_left.x), float(pos.bottom_left.y)),
        ]
        fmt = getattr(result.format, "name", str(result.format))
        candidates.append(
            _candidate(symbology_from_backend(fmt), result.text, quad_points, size)
        )
    return candidates
