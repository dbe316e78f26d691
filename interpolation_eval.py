"""
Quality of an interpolated frame against the real frame it replaces.
"""
import logging
from typing import NamedTuple

import cv2
import numpy as np

from interpolation_errors import PreconditionError

logger = logging.getLogger(__name__)


class FrameQuality(NamedTuple):
    psnr: float
    mae: float


class EvaluationReport(NamedTuple):
    interpolated: FrameQuality
    averaged: FrameQuality  # Plain 50/50 blend of the references, for comparison


def _check(frame, reference):
    if frame.shape != reference.shape:
        raise PreconditionError(f"Frames differ in size: {frame.shape} vs {reference.shape}")


def psnr(frame, reference, peak=255.0):
    """Peak signal-to-noise ratio in dB; identical frames give a very large value."""
    _check(frame, reference)
    return cv2.PSNR(np.asarray(frame, dtype=np.float64), np.asarray(reference, dtype=np.float64), peak)


def mean_absolute_error(frame, reference):
    _check(frame, reference)
    return float(np.mean(np.abs(np.asarray(frame, dtype=np.float64) - np.asarray(reference, dtype=np.float64))))


def frame_quality(frame, reference, peak=255.0) -> FrameQuality:
    return FrameQuality(psnr(frame, reference, peak), mean_absolute_error(frame, reference))


def evaluate_against_ground_truth(interpolated, prev, curr, ground_truth, peak=255.0) -> EvaluationReport:
    """Compare the interpolated frame and the reference average against the dropped frame."""
    averaged = cv2.addWeighted(np.asarray(prev, dtype=np.float64), 0.5,
                               np.asarray(curr, dtype=np.float64), 0.5, 0)
    report = EvaluationReport(
        interpolated=frame_quality(interpolated, ground_truth, peak),
        averaged=frame_quality(averaged, ground_truth, peak),
    )
    logger.info("PSNR interpolated=%.2f dB, averaged=%.2f dB", report.interpolated.psnr, report.averaged.psnr)
    return report
