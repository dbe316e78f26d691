"""
Bidirectional motion compensation: build the in-between frame from both
reference frames and the block motion field.
"""
import numpy as np

from interpolation_errors import PreconditionError
from motion_field import BLOCK_SIZE, MotionField, iter_blocks, round_vector


def _to_dtype(values, dtype):
    if np.issubdtype(dtype, np.integer):
        info = np.iinfo(dtype)
        return np.clip(np.rint(values), info.min, info.max).astype(dtype)
    return values.astype(dtype)


def bidirectional_motion_compensation(prev, curr, field: MotionField, block_size=BLOCK_SIZE, t=0.5):
    """
    Interpolate the frame at fraction t between prev (t=0) and curr (t=1).

    A block moving by v is found at p - t*v in prev and at p + (1-t)*v in
    curr; the two samples are blended with weights (1-t) and t. Sampling
    positions are rounded and clamped to the frame, so edge blocks never
    read outside it.

    Args:
        prev: Previous frame, 2-D or H x W x C
        curr: Current frame, same shape and dtype
        field: Completed motion field of prev with respect to curr
        block_size: Block size the field was computed with
        t: Temporal position of the output frame

    Returns:
        Interpolated frame with the shape and dtype of the inputs
    """
    prev = np.asarray(prev)
    curr = np.asarray(curr)
    if prev.shape != curr.shape or prev.dtype != curr.dtype:
        raise PreconditionError("Reference frames must share shape and sample type")
    if not 0.0 <= t <= 1.0:
        raise PreconditionError(f"Interpolation fraction must be within [0, 1], got {t}")

    height, width = prev.shape[:2]
    expected = MotionField.for_frame(height, width, block_size).shape
    if field.shape != expected or not field.is_complete():
        raise PreconditionError(f"Motion field must be a complete {expected[0]}x{expected[1]} grid")

    prev_f = prev.astype(np.float64)
    curr_f = curr.astype(np.float64)
    output = np.empty_like(prev_f)

    for row, col, (y0, y1, x0, x1) in iter_blocks(height, width, block_size):
        vector = np.asarray(field.get(row, col))
        fdx, fdy = round_vector(vector * t)
        bdx, bdy = round_vector(vector * (1.0 - t))

        ys = np.arange(y0, y1)
        xs = np.arange(x0, x1)
        prev_y = np.clip(ys - fdy, 0, height - 1)[:, np.newaxis]
        prev_x = np.clip(xs - fdx, 0, width - 1)[np.newaxis, :]
        curr_y = np.clip(ys + bdy, 0, height - 1)[:, np.newaxis]
        curr_x = np.clip(xs + bdx, 0, width - 1)[np.newaxis, :]

        output[y0:y1, x0:x1] = (1.0 - t) * prev_f[prev_y, prev_x] + t * curr_f[curr_y, curr_x]

    return _to_dtype(output, prev.dtype)
