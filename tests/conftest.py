"""
Shared synthetic frames for the interpolation tests.
"""
import cv2
import numpy as np
import pytest

from frames import textured_image, translated_pair


@pytest.fixture
def texture():
    return textured_image(64, 64, sigma=1.0)


@pytest.fixture
def shifted_256():
    """256x256 frames translated by (3, -2)"""
    return translated_pair(256, 3, -2)


@pytest.fixture
def bgr_frame():
    gray = textured_image(48, 80, seed=3)
    return cv2.cvtColor(gray.astype(np.uint8), cv2.COLOR_GRAY2BGR)
