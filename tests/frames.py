"""
Synthetic frames for the interpolation tests.
"""
import cv2
import numpy as np


def textured_image(height, width, seed=0, sigma=2.0):
    """Smooth random texture in [0, 255], float32."""
    rng = np.random.default_rng(seed)
    noise = rng.uniform(0, 255, (height, width)).astype(np.float32)
    blurred = cv2.GaussianBlur(noise, (0, 0), sigma)
    return cv2.normalize(blurred, None, 0, 255, cv2.NORM_MINMAX)


def translated_pair(size, dx, dy, margin=16, seed=0, sigma=1.0):
    """
    Two size x size crops of one texture where the second is the first moved
    by (dx, dy): curr[y, x] == prev[y - dy, x - dx]. Also returns the texture.

    Blocks need fine detail for phase correlation to lock on, so the
    texture is only lightly blurred.
    """
    base = textured_image(size + 2 * margin, size + 2 * margin, seed, sigma)
    prev = base[margin:margin + size, margin:margin + size].copy()
    curr = base[margin - dy:margin - dy + size, margin - dx:margin - dx + size].copy()
    return prev, curr, base
