"""
OpenCV preview for the robot marker scanner.

Shows the live camera feed with:
- Status banner (green when the robot is present, grey otherwise)
- Padded bounding box and label around the held marker position
- Optional raw candidate polygons from the detector
- Performance stats (CAP/DET/GUI FPS)

Controls:
- Press 'q' or close the window to quit
"""

from typing import Iterable, Optional

import cv2
import numpy as np

from .geometry import Rect, map_to_display
from .marker_detector import CandidateMarker
from .presence_tracker import DetectionState

GREEN = (57, 200, 20)
GREY = (128, 128, 128)
WHITE = (255, 255, 255)
YELLOW = (0, 220, 255)

DETECTED_TEXT = "Robot R1 detected"
NOT_DETECTED_TEXT = "No robot marker detected"


def _draw_banner(frame, present: bool) -> None:
    _, width = frame.shape[:2]
    text = DETECTED_TEXT if present else NOT_DETECTED_TEXT
    color = GREEN if present else GREY
    (text_w, text_h), baseline = cv2.getTextSize(
        text, cv2.FONT_HERSHEY_SIMPLEX, 0.8, 2
    )
    x1 = max(0, (width - text_w) // 2 - 20)
    y1 = 20
    x2 = x1 + text_w + 40
    y2 = y1 + text_h + baseline + 20
    cv2.rectangle(frame, (x1, y1), (x2, y2), color, cv2.FILLED)
    cv2.putText(
        frame,
        text,
        (x1 + 20, y2 - baseline - 10),
        cv2.FONT_HERSHEY_SIMPLEX,
        0.8,
        WHITE,
        2,
        cv2.LINE_AA,
    )


def _draw_box(frame, rect: Rect, label: str) -> None:
    x1, y1, x2, y2 = rect.as_int_corners()
    cv2.rectangle(frame, (x1, y1), (x2, y2), GREEN, 3)

    # Label sits above the box, offset from its left edge.
    (text_w, text_h), baseline = cv2.getTextSize(
        label, cv2.FONT_HERSHEY_SIMPLEX, 0.6, 2
    )
    cx = int(rect.min_x + 50)
    cy = int(rect.min_y - 15)
    lx1 = cx - text_w // 2 - 8
    ly1 = cy - text_h // 2 - 4
    cv2.rectangle(
        frame,
        (lx1, ly1),
        (lx1 + text_w + 16, ly1 + text_h + baseline + 8),
        GREEN,
        cv2.FILLED,
    )
    cv2.putText(
        frame,
        label,
        (lx1 + 8, ly1 + text_h + 4),
        cv2.FONT_HERSHEY_SIMPLEX,
        0.6,
        WHITE,
        2,
        cv2.LINE_AA,
    )


def draw_overlay(
    frame,
    state: DetectionState,
    padding: float = 0.2,
    label: str = "Robot R1",
    candidates: Optional[Iterable[CandidateMarker]] = None,
) -> Optional[Rect]:
    """
    Draw banner, box and candidates onto frame in place.

    The frame itself is the display, so its size is the mapping target.

    Returns:
        The pixel rect drawn for the marker, or None when nothing is held
    """
    height, width = frame.shape[:2]
    for candidate in candidates or ():
        if not candidate.points:
            continue
        pts = np.array([(int(x), int(y)) for x, y in candidate.points], dtype="int32")
        cv2.polylines(frame, [pts], True, YELLOW, 2)

    rect = None
    if state.present and state.box is not None:
        rect = map_to_display(state.box, (width, height), padding)
        _draw_box(frame, rect, label)
    _draw_banner(frame, state.present)
    return rect


class PreviewWindow:
    """Live preview window driven from the main thread."""

    def __init__(
        self,
        padding: float = 0.2,
        label: str = "Robot R1",
        show_candidates: bool = False,
        window_name: str = "Robot marker",
    ):
        self.padding = padding
        self.label = label
        self.show_candidates = show_candidates
        self.window_name = window_name
        cv2.namedWindow(self.window_name, cv2.WINDOW_NORMAL)

    def render(
        self,
        frame,
        state: DetectionState,
        candidates: Iterable[CandidateMarker] = (),
        perf_stats=None,
    ) -> bool:
        """
        Render frame with overlays and display in window.

        Returns:
            True to continue, False if user quit
        """
        draw_overlay(
            frame,
            state,
            padding=self.padding,
            label=self.label,
            candidates=candidates if self.show_candidates else None,
        )

        if perf_stats is not None:
            height = frame.shape[0]
            cap_fps, det_fps, det_ms, gui_fps = perf_stats.snapshot()
            perf_line = (
                f"CAP {cap_fps:.0f}fps | "
                f"DET {det_fps:.0f}fps {det_ms:.0f}ms | "
                f"GUI {gui_fps:.0f}fps | miss {state.miss_streak}"
            )
            cv2.putText(
                frame,
                perf_line,
                (10, height - 12),
                cv2.FONT_HERSHEY_SIMPLEX,
                0.6,
                GREEN,
                2,
                cv2.LINE_AA,
            )

        try:
            visible = cv2.getWindowProperty(self.window_name, cv2.WND_PROP_VISIBLE)
            if visible < 0:
                return False
            cv2.imshow(self.window_name, frame)
            return self._handle_key()
        except cv2.error:
            return True

    def process_events(self) -> bool:
        """Poll keyboard events without rendering a frame."""
        try:
            return self._handle_key()
        except cv2.error:
            return True

    def close(self) -> None:
        cv2.destroyWindow(self.window_name)

    def _handle_key(self) -> bool:
        key = cv2.waitKey(1) & 0xFF
        return key != ord("q")
