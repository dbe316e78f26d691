"""
Motion-compensated frame interpolation from block motion.

Pipeline: phase correlation per block -> block matching with neighbor
median prediction -> bidirectional compensation.
"""
import logging
import time
from dataclasses import dataclass
from typing import List, NamedTuple, Optional

import cv2
import numpy as np

from block_matching import BlockMatcher
from interpolation_errors import ConfigError, PreconditionError, ReportSinkError
from motion_compensation import bidirectional_motion_compensation
from motion_field import BLOCK_SIZE, MotionField, block_bounds, grid_shape
from phase_correlation import CENTROID_SIZE, PhaseCorrelation, hanning_window, phase_correlate

logger = logging.getLogger(__name__)


@dataclass
class InterpolationConfig:
    block_size: int = BLOCK_SIZE
    t: float = 0.5                   # Output position (0.0 = previous frame, 1.0 = current frame)
    use_window: bool = True          # Hanning-window blocks before phase correlation
    global_estimation: bool = False  # One frame-wide estimate shared by every block
    centroid_size: int = CENTROID_SIZE

    def validate(self):
        if self.block_size < 1:
            raise ConfigError(f"block_size must be positive, got {self.block_size}")
        if not 0.0 <= self.t <= 1.0:
            raise ConfigError(f"t must be within [0, 1], got {self.t}")
        if self.centroid_size < 1 or self.centroid_size % 2 == 0:
            raise ConfigError(f"centroid_size must be a positive odd number, got {self.centroid_size}")
        return self


class InterpolationResult(NamedTuple):
    frame: np.ndarray
    motion_field: MotionField
    elapsed_ms: float


def to_gray_float(frame):
    """Single-channel float32 copy of a grayscale or BGR frame."""
    frame = np.asarray(frame)
    if frame.ndim == 3 and frame.shape[2] == 1:
        frame = frame[:, :, 0]
    elif frame.ndim == 3 and frame.shape[2] in (3, 4):
        code = cv2.COLOR_BGRA2GRAY if frame.shape[2] == 4 else cv2.COLOR_BGR2GRAY
        frame = cv2.cvtColor(frame, code)
    elif frame.ndim != 2:
        raise PreconditionError(f"Unsupported frame shape {frame.shape}")
    return frame.astype(np.float32)


def _correlate(prev_region, curr_region, config):
    window = hanning_window(prev_region.shape, prev_region.dtype) if config.use_window else None
    return phase_correlate(prev_region, curr_region, window, config.centroid_size)


def estimate_block_motion(prev_gray, curr_gray, config: InterpolationConfig) -> List[List[PhaseCorrelation]]:
    """Phase-correlation estimates for every block, as a rows x cols grid."""
    height, width = prev_gray.shape
    rows, cols = grid_shape(height, width, config.block_size)

    if config.global_estimation:
        estimate = _correlate(prev_gray, curr_gray, config)
        logger.debug("Global motion estimate: %s", estimate)
        return [[estimate] * cols for _ in range(rows)]

    estimates = []
    for row in range(rows):
        line = []
        for col in range(cols):
            y0, y1, x0, x1 = block_bounds(row, col, height, width, config.block_size)
            line.append(_correlate(prev_gray[y0:y1, x0:x1], curr_gray[y0:y1, x0:x1], config))
        estimates.append(line)
    return estimates


def interpolate_frame(prev, curr, config: Optional[InterpolationConfig] = None,
                      prior_field: Optional[MotionField] = None) -> InterpolationResult:
    """
    Synthesize the frame between prev and curr.

    Args:
        prev: Earlier reference frame (grayscale or BGR)
        curr: Later reference frame, same shape and dtype
        config: Interpolation settings
        prior_field: Motion field of the previous frame pair, used to fill
            neighbor predictions not yet available in the current pass

    Returns:
        InterpolationResult with the frame, its motion field and the time taken
    """
    config = (config or InterpolationConfig()).validate()
    prev = np.asarray(prev)
    curr = np.asarray(curr)
    if prev.shape != curr.shape:
        raise PreconditionError(f"Frames differ in size: {prev.shape} vs {curr.shape}")
    if prev.dtype != curr.dtype:
        raise PreconditionError(f"Frames differ in sample type: {prev.dtype} vs {curr.dtype}")

    start = time.perf_counter()
    prev_gray = to_gray_float(prev)
    curr_gray = to_gray_float(curr)

    estimates = estimate_block_motion(prev_gray, curr_gray, config)
    field = BlockMatcher(config.block_size).match(prev_gray, curr_gray, estimates, prior_field)
    frame = bidirectional_motion_compensation(prev, curr, field, config.block_size, config.t)
    elapsed_ms = (time.perf_counter() - start) * 1000.0

    logger.info("Interpolated %dx%d frame (%dx%d blocks) in %.1f ms",
                prev.shape[1], prev.shape[0], field.rows, field.cols, elapsed_ms)
    return InterpolationResult(frame, field, elapsed_ms)


def write_timing_report(path, elapsed_ms):
    """Append the interpolation time to a report file."""
    try:
        with open(path, "a") as report:
            report.write(f"Interpolated frame in :{int(round(elapsed_ms))} milliseconds \n")
    except OSError as e:
        raise ReportSinkError(f"Could not open the report file {path}: {e}") from e
