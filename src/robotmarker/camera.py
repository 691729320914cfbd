"""Camera capture configuration and initialization."""

import cv2
from loguru import logger


def open_camera(
    index: int, preferred_width: int, preferred_height: int
) -> cv2.VideoCapture:
    """
    Open a camera device for continuous marker scanning.

    Args:
        index: Camera device index (0 for default webcam)
        preferred_width: Desired frame width (0 = driver default)
        preferred_height: Desired frame height (0 = driver default)

    Returns:
        Configured VideoCapture object ready for threaded reading

    Note:
        - MJPG keeps USB webcams at 30 FPS
        - Buffer size is 1 frame so the tracker sees the newest frame
    """
    cap = cv2.VideoCapture(index)
    if not cap.isOpened():
        raise RuntimeError(f"Failed to open camera index {index}")

    cap.set(cv2.CAP_PROP_FOURCC, cv2.VideoWriter_fourcc(*"MJPG"))
    if preferred_width and preferred_height:
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, preferred_width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, preferred_height)
    cap.set(cv2.CAP_PROP_FPS, 30)
    cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)

    width = int(cap.get(cv2.CAP_PROP_FRAME_WIDTH))
    height = int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
    logger.info("Camera {} opened at {}x{}", index, width, height)
    return cap
