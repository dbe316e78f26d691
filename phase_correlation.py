"""
Sub-pixel phase correlation between two equally sized grayscale images.

The shift is read from the peak of the inverse transform of the
normalized cross-power spectrum. Unlike cv2.phaseCorrelate this returns
the two strongest peaks, so block matching can fall back on the second
candidate when the first one is a spurious alignment.

Reference: http://en.wikipedia.org/wiki/Phase_correlation
"""
import logging
from typing import NamedTuple, Optional, Tuple

import cv2
import numpy as np

from interpolation_errors import PreconditionError

logger = logging.getLogger(__name__)

CENTROID_SIZE = 5

# Spectrum entries weaker than this fraction of the strongest one carry no phase.
SPECTRUM_FLOOR = 1e-14
FLAT_TOLERANCE = 1e-9


class PhaseCorrelation(NamedTuple):
    """Two candidate displacements (dx, dy) of src2 relative to src1."""
    primary: Tuple[float, float]
    secondary: Tuple[float, float]
    response: float


def _check_inputs(src1, src2, window):
    if src1.dtype != src2.dtype:
        raise PreconditionError(f"Inputs differ in sample type: {src1.dtype} vs {src2.dtype}")
    if src1.dtype not in (np.float32, np.float64):
        raise PreconditionError(f"Phase correlation needs float32 or float64 samples, got {src1.dtype}")
    if src1.ndim != 2 or src2.ndim != 2:
        raise PreconditionError("Phase correlation needs single-channel (2-D) inputs")
    if src1.shape != src2.shape:
        raise PreconditionError(f"Inputs differ in size: {src1.shape} vs {src2.shape}")
    if src1.size == 0:
        raise PreconditionError("Phase correlation needs non-empty inputs")
    if window is not None:
        if window.dtype != src1.dtype or window.shape != src1.shape:
            raise PreconditionError("Window must match the inputs in sample type and size")


def optimal_size(shape):
    """Transform-friendly (rows, cols) at least as large as shape."""
    rows, cols = shape
    return cv2.getOptimalDFTSize(rows), cv2.getOptimalDFTSize(cols)


def pad_to_optimal(src, size=None):
    """Zero-pad src at the bottom/right edges up to the optimal transform size."""
    rows, cols = src.shape
    m, n = size if size is not None else optimal_size(src.shape)
    if (m, n) == (rows, cols):
        return src.copy()
    return cv2.copyMakeBorder(src, 0, m - rows, 0, n - cols, cv2.BORDER_CONSTANT, value=0)


def cross_power_spectrum(fft1, fft2):
    """F1 * conj(F2) / |F1 * conj(F2)|, with vanishing entries set to zero."""
    product = cv2.mulSpectrums(fft1, fft2, 0, conjB=True)
    magnitude = cv2.magnitude(product[..., 0], product[..., 1])
    keep = magnitude > SPECTRUM_FLOOR * magnitude.max()
    normalized = np.zeros_like(product)
    normalized[keep] = product[keep] / magnitude[keep][:, np.newaxis]
    return normalized


def correlation_surface(spectrum):
    """Real part of the unscaled inverse transform, zero shift moved to the center."""
    surface = cv2.idft(spectrum)[..., 0]
    return np.fft.fftshift(surface)


def weighted_centroid(surface, peak, size=CENTROID_SIZE):
    """
    Intensity-weighted centroid of a size x size neighborhood around peak.

    Negative values carry no weight. Returns ((x, y), weight_sum); the
    neighborhood is clipped to the surface.
    """
    px, py = peak
    half = size // 2
    rows, cols = surface.shape
    y0, y1 = max(0, py - half), min(rows, py + half + 1)
    x0, x1 = max(0, px - half), min(cols, px + half + 1)

    weights = np.clip(surface[y0:y1, x0:x1], 0, None)
    total = float(weights.sum())
    if total <= 0:
        return (float(px), float(py)), 0.0

    ys, xs = np.mgrid[y0:y1, x0:x1]
    cx = float((weights * xs).sum() / total)
    cy = float((weights * ys).sum() / total)
    return (cx, cy), total


def phase_correlate(src1, src2, window=None, centroid_size=CENTROID_SIZE) -> PhaseCorrelation:
    """
    Estimate the translation that maps src1 onto src2.

    Args:
        src1: Reference image, 2-D float32/float64
        src2: Displaced image, same type and size as src1
        window: Optional weighting mask (e.g. cv2.createHanningWindow)
        centroid_size: Side of the sub-pixel refinement neighborhood

    Returns:
        PhaseCorrelation with the primary and secondary (dx, dy) shifts and
        the primary peak response normalized by the transform area.
    """
    src1 = np.asarray(src1)
    src2 = np.asarray(src2)
    window = None if window is None else np.asarray(window)
    _check_inputs(src1, src2, window)

    size = optimal_size(src1.shape)
    padded1 = pad_to_optimal(src1.astype(np.float64), size)
    padded2 = pad_to_optimal(src2.astype(np.float64), size)
    if window is not None:
        padded_win = pad_to_optimal(window.astype(np.float64), size)
        padded1 = cv2.multiply(padded_win, padded1)
        padded2 = cv2.multiply(padded_win, padded2)

    fft1 = cv2.dft(padded1, flags=cv2.DFT_COMPLEX_OUTPUT)
    fft2 = cv2.dft(padded2, flags=cv2.DFT_COMPLEX_OUTPUT)
    surface = correlation_surface(cross_power_spectrum(fft1, fft2))

    m, n = size
    center = (float(n // 2), float(m // 2))

    if np.ptp(surface) <= FLAT_TOLERANCE * max(1.0, float(np.abs(surface).max())):
        # No texture to correlate on.
        return PhaseCorrelation((0.0, 0.0), (0.0, 0.0), 0.0)

    # minMaxLoc reports the first maximum in row-major order on ties.
    _, _, _, peak = cv2.minMaxLoc(surface)
    t1, energy = weighted_centroid(surface, peak, centroid_size)

    surface = surface.copy()
    surface[peak[1], peak[0]] = 0
    _, _, _, peak2 = cv2.minMaxLoc(surface)
    t2, _ = weighted_centroid(surface, peak2, centroid_size)

    primary = (center[0] - t1[0], center[1] - t1[1])
    secondary = (center[0] - t2[0], center[1] - t2[1])
    response = energy / (m * n)
    logger.debug("Phase correlation %dx%d: primary=(%.2f, %.2f) secondary=(%.2f, %.2f) response=%.3f",
                 n, m, primary[0], primary[1], secondary[0], secondary[1], response)
    return PhaseCorrelation(primary, secondary, response)


def hanning_window(shape, dtype=np.float32) -> Optional[np.ndarray]:
    """Hanning window for a (rows, cols) region, or None when it is too small to taper."""
    rows, cols = shape
    if rows < 3 or cols < 3:
        return None
    cv_type = cv2.CV_32F if np.dtype(dtype) == np.float32 else cv2.CV_64F
    return cv2.createHanningWindow((cols, rows), cv_type)
