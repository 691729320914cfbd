import tomllib
from dataclasses import dataclass
from pathlib import Path

from .marker_detector import Symbology
from .presence_tracker import DEFAULT_PERSISTENCE_THRESHOLD, DEFAULT_TARGET_PAYLOAD

DEFAULT_BOUNDING_BOX_PADDING = 0.2


@dataclass(frozen=True)
class TrackerSettings:
    target_payload: str = DEFAULT_TARGET_PAYLOAD
    target_symbology: Symbology = Symbology.QR
    persistence_threshold: int = DEFAULT_PERSISTENCE_THRESHOLD
    bounding_box_padding: float = DEFAULT_BOUNDING_BOX_PADDING


def load_config(path: str | Path) -> dict:
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")
    with config_path.open("rb") as f:
        return tomllib.load(f)


def tracker_settings(config: dict) -> TrackerSettings:
    """Build validated tracker/overlay settings from a loaded config dict."""
    marker_cfg = config.get("marker", {})
    tracker_cfg = config.get("tracker", {})
    overlay_cfg = config.get("overlay", {})

    threshold = int(
        tracker_cfg.get("persistence_threshold", DEFAULT_PERSISTENCE_THRESHOLD)
    )
    if threshold < 1:
        raise ValueError(f"tracker.persistence_threshold must be >= 1, got {threshold}")

    padding = float(
        overlay_cfg.get("bounding_box_padding", DEFAULT_BOUNDING_BOX_PADDING)
    )
    if padding < 0:
        raise ValueError(f"overlay.bounding_box_padding must be >= 0, got {padding}")

    return TrackerSettings(
        target_payload=str(marker_cfg.get("target_payload", DEFAULT_TARGET_PAYLOAD)),
        target_symbology=Symbology.parse(marker_cfg.get("target_symbology", "qr")),
        persistence_threshold=threshold,
        bounding_box_padding=padding,
    )
