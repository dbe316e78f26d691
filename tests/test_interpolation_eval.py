"""
Tests for interpolation quality measurement and motion field renderings.
"""
import numpy as np
import pytest

from interpolation_errors import PreconditionError
from interpolation_eval import evaluate_against_ground_truth, mean_absolute_error, psnr
from motion_field import MotionField
from motion_visualization import draw_motion_vectors, visualize_motion_field


class TestMetrics:
    def test_psnr_known_value(self):
        a = np.zeros((8, 8), dtype=np.uint8)
        b = np.full((8, 8), 255, dtype=np.uint8)
        assert psnr(a, b) == pytest.approx(0.0, abs=1e-6)

    def test_identical_frames_score_high(self, bgr_frame):
        assert psnr(bgr_frame, bgr_frame) > 100
        assert mean_absolute_error(bgr_frame, bgr_frame) == 0.0

    def test_shape_mismatch(self, bgr_frame):
        with pytest.raises(PreconditionError):
            psnr(bgr_frame, bgr_frame[:10])

    def test_evaluation_report(self):
        prev = np.zeros((8, 8), dtype=np.float32)
        curr = np.full((8, 8), 100, dtype=np.float32)
        truth = np.full((8, 8), 10, dtype=np.float32)
        report = evaluate_against_ground_truth(truth, prev, curr, truth)
        assert report.interpolated.mae == 0.0
        assert report.averaged.mae == pytest.approx(40.0)
        assert report.interpolated.psnr > report.averaged.psnr


class TestVisualization:
    def make_field(self):
        field = MotionField(2, 3)
        for r in range(2):
            for c in range(3):
                field.set(r, c, (float(c), float(-r)))
        return field

    def test_field_image_matches_frame_size(self):
        image = visualize_motion_field(self.make_field(), 20, 40, 16)
        assert image.shape == (20, 40, 3)
        assert image.dtype == np.uint8

    def test_arrows_drawn_on_copy(self, bgr_frame):
        original = bgr_frame.copy()
        canvas = draw_motion_vectors(bgr_frame[:32, :48], self.make_field(), 16)
        assert canvas.shape == (32, 48, 3)
        np.testing.assert_array_equal(bgr_frame, original)
        assert (canvas != bgr_frame[:32, :48]).any()

    def test_grayscale_input(self):
        canvas = draw_motion_vectors(np.zeros((32, 48), dtype=np.uint8), self.make_field(), 16)
        assert canvas.shape == (32, 48, 3)
