"""
Debounced presence tracking for the robot marker.

A single missed frame from the detector must not make the marker blink out
of the overlay. The tracker is fast to acquire (one matching frame) and slow
to lose (persistence_threshold consecutive misses). While the marker is held,
the last seen box is kept as-is.

The detection thread is the only writer. Each update publishes a fresh,
immutable DetectionState so readers always get a whole record.
"""

import threading
from dataclasses import dataclass
from typing import Iterable, Optional

from loguru import logger

from .geometry import Rect
from .marker_detector import CandidateMarker, Symbology

DEFAULT_TARGET_PAYLOAD = "ROBOT_R1"
DEFAULT_PERSISTENCE_THRESHOLD = 5


@dataclass(frozen=True)
class DetectionState:
    """Published presence state. box is normalized, origin bottom-left."""

    present: bool = False
    box: Optional[Rect] = None
    miss_streak: int = 0

    @property
    def is_lost(self) -> bool:
        return not self.present


class PresenceTracker:
    """
    Turns per-frame candidate lists into a stable present/box signal.

    States:
    - LOST: initial state, nothing to draw
    - ACQUIRED: marker seen within the last persistence_threshold frames
    """

    def __init__(
        self,
        target_payload: str = DEFAULT_TARGET_PAYLOAD,
        target_symbology: Symbology = Symbology.QR,
        persistence_threshold: int = DEFAULT_PERSISTENCE_THRESHOLD,
    ):
        if persistence_threshold < 1:
            raise ValueError(
                f"persistence_threshold must be >= 1, got {persistence_threshold}"
            )
        self.target_payload = target_payload
        self.target_symbology = target_symbology
        self.persistence_threshold = persistence_threshold
        self._lock = threading.Lock()
        self._state = DetectionState()

    @property
    def state(self) -> DetectionState:
        return self.snapshot()

    def snapshot(self) -> DetectionState:
        with self._lock:
            return self._state

    def find_target(
        self, candidates: Iterable[CandidateMarker]
    ) -> Optional[CandidateMarker]:
        """First candidate with the target symbology and exact payload."""
        for candidate in candidates:
            if (
                candidate.symbology == self.target_symbology
                and candidate.payload == self.target_payload
            ):
                return candidate
        return None

    def update(
        self, candidates: Optional[Iterable[CandidateMarker]]
    ) -> DetectionState:
        # None (detector failure) is treated as an empty frame.
        match = self.find_target(candidates or ())
        previous = self.snapshot()

        if match is not None:
            state = DetectionState(present=True, box=match.bounding_box, miss_streak=0)
        else:
            # Clamped: only reaching the threshold matters.
            miss_streak = min(previous.miss_streak + 1, self.persistence_threshold)
            if miss_streak >= self.persistence_threshold:
                state = DetectionState(present=False, box=None, miss_streak=miss_streak)
            else:
                state = DetectionState(
                    present=previous.present, box=previous.box, miss_streak=miss_streak
                )

        with self._lock:
            self._state = state

        if state.present != previous.present:
            if state.present:
                logger.info("Marker {} acquired", self.target_payload)
            else:
                logger.info(
                    "Marker {} lost after {} missed frames",
                    self.target_payload,
                    state.miss_streak,
                )
        return state

    def reset(self) -> None:
        with self._lock:
            self._state = DetectionState()
