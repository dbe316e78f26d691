"""
Renderings of a block motion field for inspection.
"""
import cv2
import numpy as np

from motion_field import BLOCK_SIZE, MotionField, iter_blocks


def visualize_motion_field(field: MotionField, height, width, block_size=BLOCK_SIZE):
    """Convert a block motion field to a BGR image (hue = direction, value = magnitude)."""
    vectors = field.as_array().astype(np.float32)
    vectors = np.nan_to_num(vectors)
    fx = np.ascontiguousarray(vectors[:, :, 0])
    fy = np.ascontiguousarray(vectors[:, :, 1])

    magnitude, angle = cv2.cartToPolar(fx, fy)

    hsv = np.zeros((field.rows, field.cols, 3), dtype=np.uint8)
    hsv[..., 0] = angle * 180 / np.pi / 2
    hsv[..., 1] = 255
    hsv[..., 2] = cv2.normalize(magnitude, None, 0, 255, cv2.NORM_MINMAX).astype(np.uint8)
    blocks_bgr = cv2.cvtColor(hsv, cv2.COLOR_HSV2BGR)

    # One flat tile per block, cut back to the frame size
    tiled = np.repeat(np.repeat(blocks_bgr, block_size, axis=0), block_size, axis=1)
    return tiled[:height, :width]


def draw_motion_vectors(frame, field: MotionField, block_size=BLOCK_SIZE, color=(0, 255, 0)):
    """Draw one arrow per block from its center along its motion vector."""
    canvas = frame.copy()
    if canvas.ndim == 2:
        canvas = cv2.cvtColor(canvas, cv2.COLOR_GRAY2BGR)
    height, width = canvas.shape[:2]

    for row, col, (y0, y1, x0, x1) in iter_blocks(height, width, block_size):
        if not field.is_finalized(row, col):
            continue
        dx, dy = field.get(row, col)
        start = ((x0 + x1) // 2, (y0 + y1) // 2)
        end = (int(round(start[0] + dx)), int(round(start[1] + dy)))
        cv2.arrowedLine(canvas, start, end, color, 1, tipLength=0.3)
    return canvas
