"""
Reading reference frames from image folders and videos.
"""
import glob
import logging
import os
from typing import NamedTuple, Optional

import cv2
import numpy as np

from interpolation_errors import FrameReadError

logger = logging.getLogger(__name__)


class FramePair(NamedTuple):
    prev: np.ndarray
    curr: np.ndarray
    skipped: Optional[np.ndarray]  # The dropped middle frame, if the folder has one


class VideoProperties(NamedTuple):
    width: int
    height: int
    fps: float
    frame_count: int


def read_image(path):
    image = cv2.imread(str(path))
    if image is None:
        raise FrameReadError(f"Could not open or find the image {path}")
    return image


def read_frame_pair(folder, pattern="*.jpg") -> FramePair:
    """
    Read every other frame of an image sequence.

    Frames 0 and 2 (in sorted filename order) are the references; frame 1
    is the one to be interpolated and is returned for comparison.
    """
    files = sorted(glob.glob(os.path.join(str(folder), pattern)))
    if len(files) < 2:
        raise FrameReadError(f"Need at least two frames matching {pattern} in {folder}, found {len(files)}")

    if len(files) >= 3:
        prev, skipped, curr = (read_image(f) for f in files[:3])
    else:
        prev, curr = (read_image(f) for f in files)
        skipped = None
    logger.debug("Frame pair from %s: %s", folder, files[:3])

    if prev.shape != curr.shape:
        raise FrameReadError(f"Reference frames differ in size: {prev.shape} vs {curr.shape}")
    return FramePair(prev, curr, skipped)


def video_properties(path) -> VideoProperties:
    cap = cv2.VideoCapture(str(path))
    if not cap.isOpened():
        raise FrameReadError(f"Could not open video {path}")
    try:
        return VideoProperties(
            width=int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            height=int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            fps=cap.get(cv2.CAP_PROP_FPS),
            frame_count=int(cap.get(cv2.CAP_PROP_FRAME_COUNT)),
        )
    finally:
        cap.release()


def iter_video_frames(path):
    """Yield the frames of a video in order."""
    cap = cv2.VideoCapture(str(path))
    if not cap.isOpened():
        raise FrameReadError(f"Could not open video {path}")
    try:
        while True:
            ret, frame = cap.read()
            if not ret:
                break
            yield frame
    finally:
        cap.release()
