"""
Block matching over a small candidate set.

Every block of the previous frame picks one motion vector among its
phase-correlation estimates, the median of its neighbors and the zero
vector, by lowest Sum of Absolute Differences against the current frame.
"""
import logging
from collections import Counter
from typing import List, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from interpolation_errors import PreconditionError
from motion_field import BLOCK_SIZE, MotionField, block_bounds, round_vector
from phase_correlation import PhaseCorrelation

logger = logging.getLogger(__name__)

ZERO_VECTOR = (0.0, 0.0)

# Candidate sources, in tie-break priority order
PRIMARY = "primary"
SECONDARY = "secondary"
MEDIAN = "median"
ZERO = "zero"


class Candidate(NamedTuple):
    vector: Tuple[float, float]
    source: str


def neighbor_positions(row, col, rows, cols) -> List[Tuple[int, int]]:
    """
    The three grid neighbors a block's median is taken over.

    Corner and edge blocks borrow neighbors from the right/below; positions
    falling off the grid are dropped.
    """
    if row == 0 and col == 0:
        # top-left corner
        candidates = [(row, col + 1), (row + 1, col), (row + 1, col + 1)]
    elif col == 0:
        # left edge
        candidates = [(row - 1, col), (row - 1, col + 1), (row, col + 1)]
    elif row == 0:
        # top edge
        candidates = [(row, col - 1), (row + 1, col - 1), (row + 1, col)]
    else:
        candidates = [(row - 1, col - 1), (row - 1, col), (row, col - 1)]
    return [(r, c) for r, c in candidates if 0 <= r < rows and 0 <= c < cols]


def median_vector(vectors: Sequence[Tuple[float, float]]) -> Tuple[float, float]:
    """Component-wise median; the upper middle element for even counts."""
    if not vectors:
        return ZERO_VECTOR
    values = np.asarray(vectors, dtype=np.float64)
    mid = len(values) // 2
    xs = np.partition(values[:, 0], mid)
    ys = np.partition(values[:, 1], mid)
    return float(xs[mid]), float(ys[mid])


def median_neighbor(row, col, field: MotionField, prior_field: Optional[MotionField] = None):
    """
    Median motion vector of a block's available neighbors.

    A neighbor is taken from `field` once it is finalized there, otherwise
    from `prior_field` (a complete field of the previous frame pair) when
    one is given. Neighbors available in neither are skipped.
    """
    if prior_field is not None and prior_field.shape != field.shape:
        prior_field = None

    vectors = []
    for r, c in neighbor_positions(row, col, field.rows, field.cols):
        if field.is_finalized(r, c):
            vectors.append(field.get(r, c))
        elif prior_field is not None and prior_field.is_finalized(r, c):
            vectors.append(prior_field.get(r, c))
    return median_vector(vectors)


def calc_sad(prev_block, row, col, curr, vector, block_size=BLOCK_SIZE) -> float:
    """
    SAD between a previous-frame block and the current frame displaced by vector.

    Pixels whose displaced position leaves the current frame cost the
    absolute value of the previous sample itself.
    """
    prev_block = np.asarray(prev_block)
    if prev_block.ndim != 2 or curr.ndim != 2:
        raise PreconditionError("SAD needs single-channel blocks and frames")
    if prev_block.dtype != curr.dtype:
        raise PreconditionError(f"Block and frame differ in sample type: {prev_block.dtype} vs {curr.dtype}")

    dx, dy = round_vector(vector)
    bh, bw = prev_block.shape
    ys = np.arange(bh) + row * block_size + dy
    xs = np.arange(bw) + col * block_size + dx
    valid_y = (ys >= 0) & (ys < curr.shape[0])
    valid_x = (xs >= 0) & (xs < curr.shape[1])
    inside = valid_y[:, np.newaxis] & valid_x[np.newaxis, :]

    prev_values = prev_block.astype(np.float64)
    sampled = curr[np.clip(ys, 0, curr.shape[0] - 1)[:, np.newaxis],
                   np.clip(xs, 0, curr.shape[1] - 1)[np.newaxis, :]].astype(np.float64)
    cost = np.where(inside, np.abs(prev_values - sampled), np.abs(prev_values))
    return float(cost.sum())


def candidate_set(estimate: PhaseCorrelation, median) -> Tuple[Candidate, ...]:
    return (
        Candidate(tuple(estimate.primary), PRIMARY),
        Candidate(tuple(estimate.secondary), SECONDARY),
        Candidate(tuple(median), MEDIAN),
        Candidate(ZERO_VECTOR, ZERO),
    )


def best_candidate(prev_block, row, col, curr, candidates, block_size=BLOCK_SIZE):
    """Lowest-cost candidate; ties keep the earlier one. Returns (candidate, cost)."""
    best, best_cost = None, None
    for candidate in candidates:
        cost = calc_sad(prev_block, row, col, curr, candidate.vector, block_size)
        if best_cost is None or cost < best_cost:
            best, best_cost = candidate, cost
    return best, best_cost


class BlockMatcher:
    """Raster-order block matcher producing one motion vector per block."""

    def __init__(self, block_size: int = BLOCK_SIZE):
        self.block_size = block_size

    def match(self, prev, curr, estimates, prior_field: Optional[MotionField] = None) -> MotionField:
        """
        Build the motion field of prev with respect to curr.

        Args:
            prev: Previous frame, 2-D float array
            curr: Current frame, same type and size
            estimates: Per-block PhaseCorrelation grid (rows x cols)
            prior_field: Finished field of the previous frame pair, if any

        Returns:
            The completed MotionField
        """
        if prev.shape != curr.shape:
            raise PreconditionError(f"Frames differ in size: {prev.shape} vs {curr.shape}")
        height, width = prev.shape
        field = MotionField.for_frame(height, width, self.block_size)
        if len(estimates) != field.rows or any(len(line) != field.cols for line in estimates):
            raise PreconditionError(f"Expected a {field.rows}x{field.cols} grid of motion estimates")

        wins = Counter()
        for row in range(field.rows):
            for col in range(field.cols):
                y0, y1, x0, x1 = block_bounds(row, col, height, width, self.block_size)
                prev_block = prev[y0:y1, x0:x1]
                median = median_neighbor(row, col, field, prior_field)
                candidates = candidate_set(estimates[row][col], median)
                best, _ = best_candidate(prev_block, row, col, curr, candidates, self.block_size)
                field.set(row, col, best.vector)
                wins[best.source] += 1

        logger.debug("Block matching %dx%d blocks, winners: %s", field.rows, field.cols, dict(wins))
        return field
