"""
Rectangle helpers and coordinate-space transforms.

Two spaces are in play:
- normalized detector space: components in [0, 1], origin bottom-left,
  y grows upward
- display pixel space: origin top-left, y grows downward
"""

from dataclasses import dataclass
from typing import Iterable, Tuple


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    @classmethod
    def from_corners(cls, x1: float, y1: float, x2: float, y2: float) -> "Rect":
        x1, x2 = sorted((x1, x2))
        y1, y2 = sorted((y1, y2))
        return cls(x=x1, y=y1, width=x2 - x1, height=y2 - y1)

    @property
    def min_x(self) -> float:
        return self.x

    @property
    def min_y(self) -> float:
        return self.y

    @property
    def max_x(self) -> float:
        return self.x + self.width

    @property
    def max_y(self) -> float:
        return self.y + self.height

    @property
    def mid_x(self) -> float:
        return self.x + self.width / 2.0

    @property
    def mid_y(self) -> float:
        return self.y + self.height / 2.0

    @property
    def center(self) -> Tuple[float, float]:
        return (self.mid_x, self.mid_y)

    def as_int_corners(self) -> Tuple[int, int, int, int]:
        """Return (x1, y1, x2, y2) rounded for cv2 drawing calls."""
        return (
            int(round(self.min_x)),
            int(round(self.min_y)),
            int(round(self.max_x)),
            int(round(self.max_y)),
        )


def map_to_display(
    box: Rect, display_size: Tuple[float, float], padding: float = 0.2
) -> Rect:
    """
    Map a normalized detection box onto a display, padded on every side.

    Args:
        box: Normalized rect, origin bottom-left
        display_size: (width, height) of the target display in pixels
        padding: Fraction of the scaled box size added on each side

    Returns:
        Pixel rect with top-left origin, centered on the unpadded scaled box

    Note:
        Inputs are not validated. Out-of-range boxes land partly or fully
        off-screen and clipping is left to the renderer.
    """
    display_w, display_h = display_size
    x = box.min_x * display_w
    y = (1.0 - box.max_y) * display_h  # flip: bottom-left -> top-left
    width = box.width * display_w
    height = box.height * display_h

    pad_x = width * padding
    pad_y = height * padding
    return Rect(
        x=x - pad_x,
        y=y - pad_y,
        width=width + pad_x * 2,
        height=height + pad_y * 2,
    )


def normalize_quad(
    points: Iterable[Tuple[float, float]], frame_size: Tuple[int, int]
) -> Rect:
    """
    Convert a pixel polygon (top-left origin) to a normalized bottom-left rect.

    The axis-aligned hull of the polygon is used. A zero-size frame gives a
    zero rect.
    """
    frame_w, frame_h = frame_size
    pts = list(points)
    if not pts or frame_w <= 0 or frame_h <= 0:
        return Rect(0.0, 0.0, 0.0, 0.0)
    xs = [p[0] for p in pts]
    ys = [p[1] for p in pts]
    min_x = min(xs) / frame_w
    max_x = max(xs) / frame_w
    # Top edge in pixels becomes the max y in normalized space.
    min_y = 1.0 - max(ys) / frame_h
    max_y = 1.0 - min(ys) / frame_h
    return Rect(x=min_x, y=min_y, width=max_x - min_x, height=max_y - min_y)
