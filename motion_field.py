"""
Block grid geometry and the per-block motion vector field.
"""
import math
from typing import Iterator, Tuple

import numpy as np

from interpolation_errors import MotionFieldError

BLOCK_SIZE = 16


def grid_shape(height: int, width: int, block_size: int = BLOCK_SIZE) -> Tuple[int, int]:
    """Number of block rows and columns covering a height x width frame."""
    return math.ceil(height / block_size), math.ceil(width / block_size)


def block_bounds(row, col, height, width, block_size=BLOCK_SIZE):
    """Pixel bounds (y0, y1, x0, x1) of a block, clamped to the frame."""
    y0 = row * block_size
    x0 = col * block_size
    return y0, min(y0 + block_size, height), x0, min(x0 + block_size, width)


def iter_blocks(height, width, block_size=BLOCK_SIZE) -> Iterator[Tuple[int, int, Tuple[int, int, int, int]]]:
    """Yield (row, col, bounds) for every block in raster order."""
    rows, cols = grid_shape(height, width, block_size)
    for row in range(rows):
        for col in range(cols):
            yield row, col, block_bounds(row, col, height, width, block_size)


def round_vector(values):
    """Round to the nearest integer, halves away from zero."""
    values = np.asarray(values, dtype=np.float64)
    return (np.sign(values) * np.floor(np.abs(values) + 0.5)).astype(np.int64)


class MotionField:
    """
    Pre-allocated grid of motion vectors, one (dx, dy) per block.

    Cells start unfinalized (NaN) and are written exactly once. The
    finalized bitmap is what neighbor lookups consult, so a block can only
    ever see vectors that were decided before it.
    """

    def __init__(self, rows: int, cols: int):
        if rows <= 0 or cols <= 0:
            raise MotionFieldError(f"Motion field needs a non-empty grid, got {rows}x{cols}")
        self.rows = rows
        self.cols = cols
        self.vectors = np.full((rows, cols, 2), np.nan, dtype=np.float64)
        self.finalized = np.zeros((rows, cols), dtype=bool)

    @classmethod
    def for_frame(cls, height, width, block_size=BLOCK_SIZE):
        return cls(*grid_shape(height, width, block_size))

    @property
    def shape(self):
        return self.rows, self.cols

    def contains(self, row, col) -> bool:
        return 0 <= row < self.rows and 0 <= col < self.cols

    def is_finalized(self, row, col) -> bool:
        return self.contains(row, col) and bool(self.finalized[row, col])

    def is_complete(self) -> bool:
        return bool(self.finalized.all())

    def set(self, row, col, vector):
        if not self.contains(row, col):
            raise MotionFieldError(f"Block ({row}, {col}) is outside the {self.rows}x{self.cols} grid")
        if self.finalized[row, col]:
            raise MotionFieldError(f"Block ({row}, {col}) already has a motion vector")
        dx, dy = vector
        self.vectors[row, col] = (float(dx), float(dy))
        self.finalized[row, col] = True

    def get(self, row, col) -> Tuple[float, float]:
        if not self.is_finalized(row, col):
            raise MotionFieldError(f"Block ({row}, {col}) has no finalized motion vector")
        dx, dy = self.vectors[row, col]
        return float(dx), float(dy)

    def as_array(self) -> np.ndarray:
        """Copy of the (rows, cols, 2) vector array."""
        return self.vectors.copy()
