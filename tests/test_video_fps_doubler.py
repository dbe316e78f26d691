"""
Tests for the command line entry point.
"""
import tempfile

import cv2
import numpy as np
import pytest

import video_fps_doubler
from block_interpolation import InterpolationConfig
from frames import translated_pair
from video_fps_doubler import build_parser, main


def write_sequence(folder):
    prev, curr, _ = translated_pair(64, 2, 0)
    _, middle, _ = translated_pair(64, 1, 0)
    for i, frame in enumerate([prev, middle, curr]):
        cv2.imwrite(str(folder / f"{i}.png"), frame.astype(np.uint8))


class TestParser:
    def test_pair_defaults(self):
        args = build_parser().parse_args(["pair", "frames"])
        assert args.command == "pair"
        assert args.block_size == 16
        assert args.t == 0.5
        assert args.pattern == "*.jpg"
        assert not args.no_window

    def test_video_options(self):
        args = build_parser().parse_args(["--block-size", "8", "--global-estimation", "video", "in.mp4"])
        assert args.command == "video"
        assert args.block_size == 8
        assert args.global_estimation
        assert args.output is None


class TestPairCommand:
    def test_writes_frame_and_report(self, tmp_path, capsys):
        frames = tmp_path / "frames"
        frames.mkdir()
        write_sequence(frames)
        output = tmp_path / "mid.png"
        report = tmp_path / "timing.txt"
        vis = tmp_path / "vis"

        status = main(["--report", str(report), "--vis-folder", str(vis),
                       "pair", str(frames), "--pattern", "*.png", "--output", str(output)])

        assert status == 0
        frame = cv2.imread(str(output))
        assert frame is not None and frame.shape == (64, 64, 3)
        assert report.read_text().startswith("Interpolated frame in :")
        assert (vis / "motion" / "0_field.jpg").exists()
        assert "PSNR vs skipped frame" in capsys.readouterr().out

    def test_missing_frames_fail(self, tmp_path):
        assert main(["pair", str(tmp_path), "--pattern", "*.png"]) == 1

    def test_invalid_config_fails(self, tmp_path):
        assert main(["--t", "2", "pair", str(tmp_path)]) == 1

    def test_unopenable_report_fails(self, tmp_path):
        frames = tmp_path / "frames"
        frames.mkdir()
        write_sequence(frames)
        status = main(["--report", str(tmp_path / "no" / "dir.txt"),
                       "pair", str(frames), "--pattern", "*.png", "--output", str(tmp_path / "mid.png")])
        assert status == 1


def write_clip(path, count=4):
    writer = cv2.VideoWriter(str(path), cv2.VideoWriter_fourcc(*'mp4v'), 10, (64, 64))
    if not writer.isOpened():
        pytest.skip("No mp4v encoder available")
    for dx in range(count):
        _, frame, _ = translated_pair(64, dx, 0)
        writer.write(cv2.cvtColor(frame.astype(np.uint8), cv2.COLOR_GRAY2BGR))
    writer.release()


class TestVideoCommand:
    def test_doubles_frame_count(self, tmp_path, monkeypatch):
        source = tmp_path / "clip.mp4"
        write_clip(source)

        monkeypatch.setattr(video_fps_doubler, "VideoFileClip", None)
        output = tmp_path / "doubled.mp4"
        assert main(["--report", str(tmp_path / "timing.txt"), "video", str(source), "--output", str(output)]) == 0

        cap = cv2.VideoCapture(str(output))
        count = 0
        while cap.read()[0]:
            count += 1
        cap.release()
        assert count == 7
        assert len((tmp_path / "timing.txt").read_text().splitlines()) == 3

    def test_temporary_video_removed_on_unexpected_error(self, tmp_path, monkeypatch):
        source = tmp_path / "clip.mp4"
        write_clip(source)
        scratch = tmp_path / "scratch"
        scratch.mkdir()
        monkeypatch.setattr(tempfile, "tempdir", str(scratch))

        def fail(*args, **kwargs):
            raise RuntimeError("interpolation crashed")

        monkeypatch.setattr(video_fps_doubler, "interpolate_frame", fail)
        with pytest.raises(RuntimeError):
            video_fps_doubler.double_fps_with_block_motion(source, tmp_path / "doubled.mp4", InterpolationConfig())

        assert list(scratch.iterdir()) == []
        assert not (tmp_path / "doubled.mp4").exists()

    def test_temporary_video_removed_after_success(self, tmp_path, monkeypatch):
        source = tmp_path / "clip.mp4"
        write_clip(source)
        scratch = tmp_path / "scratch"
        scratch.mkdir()
        monkeypatch.setattr(tempfile, "tempdir", str(scratch))
        monkeypatch.setattr(video_fps_doubler, "VideoFileClip", None)

        video_fps_doubler.double_fps_with_block_motion(source, tmp_path / "doubled.mp4", InterpolationConfig())

        assert list(scratch.iterdir()) == []
        assert (tmp_path / "doubled.mp4").exists()
