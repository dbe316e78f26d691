import argparse
import logging
import os
import shutil
import sys
import tempfile
from pathlib import Path

import cv2
from tqdm import tqdm

from block_interpolation import InterpolationConfig, interpolate_frame, write_timing_report
from frame_source import iter_video_frames, read_frame_pair, video_properties
from interpolation_errors import InterpolationError
from interpolation_eval import evaluate_against_ground_truth
from motion_visualization import draw_motion_vectors, visualize_motion_field

try:
    from moviepy import VideoFileClip  # MoviePy 2.x
except ImportError:
    print("Warning: MoviePy not found. Audio will not be preserved.")
    VideoFileClip = None

logger = logging.getLogger("video_fps_doubler")


def save_visualizations(output_folder, index, prev_frame, interpolated, result, block_size):
    """Write the reference, interpolated and motion field images for one frame pair"""
    originals_folder = os.path.join(output_folder, "originals")
    interpolated_folder = os.path.join(output_folder, "interpolated")
    motion_folder = os.path.join(output_folder, "motion")
    for folder in (originals_folder, interpolated_folder, motion_folder):
        os.makedirs(folder, exist_ok=True)

    height, width = prev_frame.shape[:2]
    cv2.imwrite(f"{originals_folder}/{index}.jpg", prev_frame)
    cv2.imwrite(f"{interpolated_folder}/{index}.jpg", interpolated)
    cv2.imwrite(f"{motion_folder}/{index}_field.jpg",
                visualize_motion_field(result.motion_field, height, width, block_size))
    cv2.imwrite(f"{motion_folder}/{index}_vectors.jpg",
                draw_motion_vectors(prev_frame, result.motion_field, block_size))


def interpolate_pair(folder, output_path, config, pattern="*.jpg", report_path=None, vis_folder=None):
    """
    Interpolate the middle frame of an every-other-frame image sequence.

    Args:
        folder: Folder holding the frames
        output_path: Where to write the interpolated frame
        config: InterpolationConfig
        pattern: Glob pattern selecting the frames
        report_path: Optional file the interpolation time is appended to
        vis_folder: Optional folder for motion field visualizations
    """
    pair = read_frame_pair(folder, pattern)
    result = interpolate_frame(pair.prev, pair.curr, config)

    if report_path:
        write_timing_report(report_path, result.elapsed_ms)
    if not cv2.imwrite(str(output_path), result.frame):
        raise InterpolationError(f"Could not write interpolated frame to {output_path}")
    if vis_folder:
        save_visualizations(vis_folder, 0, pair.prev, result.frame, result, config.block_size)

    print(f"Interpolated frame in {result.elapsed_ms:.0f} ms, saved to {output_path}")
    if pair.skipped is not None:
        report = evaluate_against_ground_truth(result.frame, pair.prev, pair.curr, pair.skipped)
        print(f"PSNR vs skipped frame: {report.interpolated.psnr:.2f} dB "
              f"(frame averaging: {report.averaged.psnr:.2f} dB)")
    return result


def attach_audio(source_path, silent_path, output_path):
    """Copy the audio track of source_path onto silent_path, falling back to the silent video"""
    try:
        if VideoFileClip is None:
            raise ImportError("MoviePy module not available")

        original_clip = VideoFileClip(source_path)
        new_clip = VideoFileClip(silent_path)
        if original_clip.audio is not None:
            new_clip = new_clip.with_audio(original_clip.audio)
        new_clip.write_videofile(output_path)
        original_clip.close()
        new_clip.close()
        os.unlink(silent_path)
    except Exception as e:
        print(f"Error adding audio: {e}")
        print(f"Saving video without audio to {output_path}")
        if os.path.exists(output_path):
            os.unlink(output_path)
        shutil.copy2(silent_path, output_path)
        os.unlink(silent_path)


def double_fps_with_block_motion(input_path, output_path, config, report_path=None,
                                 vis_folder=None, num_visualize=5):
    """
    Double the FPS of a video by inserting a block-motion interpolated frame
    between every pair of consecutive frames.

    Args:
        input_path: Path to input video
        output_path: Path to save output video
        config: InterpolationConfig
        report_path: Optional file the per-frame interpolation times are appended to
        vis_folder: Optional folder for motion field visualizations
        num_visualize: Number of frame pairs to visualize, from the middle of the video
    """
    props = video_properties(input_path)
    print(f"Input video: {props.width}x{props.height}, {props.fps} FPS, {props.frame_count} frames")

    temp_output = tempfile.NamedTemporaryFile(suffix='.mp4', delete=False).name
    fourcc = cv2.VideoWriter_fourcc(*'mp4v')
    out = cv2.VideoWriter(temp_output, fourcc, props.fps * 2, (props.width, props.height))

    visual_start = max(1, props.frame_count // 2 - num_visualize // 2)
    visual_end = visual_start + num_visualize - 1

    frames = iter_video_frames(input_path)
    prev_frame = next(frames, None)
    if prev_frame is None:
        out.release()
        os.unlink(temp_output)
        raise InterpolationError(f"Failed to read the first frame of {input_path}")
    out.write(prev_frame)

    prior_field = None
    total_ms = 0.0
    pairs = 0
    completed = False
    try:
        with tqdm(total=max(props.frame_count - 1, 0), desc="Processing frames") as pbar:
            for frame_idx, curr_frame in enumerate(frames, start=1):
                result = interpolate_frame(prev_frame, curr_frame, config, prior_field)
                if report_path:
                    write_timing_report(report_path, result.elapsed_ms)
                out.write(result.frame)
                out.write(curr_frame)

                if vis_folder and visual_start <= frame_idx <= visual_end:
                    save_visualizations(vis_folder, frame_idx - visual_start, prev_frame,
                                        result.frame, result, config.block_size)

                prior_field = result.motion_field
                prev_frame = curr_frame
                total_ms += result.elapsed_ms
                pairs += 1
                pbar.update(1)
        completed = True
    finally:
        out.release()
        if not completed:
            os.unlink(temp_output)

    print("Adding audio to the output video...")
    attach_audio(str(input_path), temp_output, str(output_path))

    print(f"Processing complete. Output video saved to {output_path}")
    if pairs:
        print(f"Interpolated {pairs} frames, {total_ms / pairs:.1f} ms per frame")
    print(f"Original FPS: {props.fps}, New FPS: {props.fps * 2}")


def build_parser():
    parser = argparse.ArgumentParser(description='Frame interpolation with block motion estimation')
    parser.add_argument('--block-size', type=int, default=16, help='Block size in pixels (default: 16)')
    parser.add_argument('--t', type=float, default=0.5, help='Output position between the frames (default: 0.5)')
    parser.add_argument('--no-window', action='store_true', help='Disable Hanning windowing in phase correlation')
    parser.add_argument('--global-estimation', action='store_true',
                        help='Use one frame-wide phase correlation estimate for every block')
    parser.add_argument('--report', default=None, help='File the interpolation times are appended to')
    parser.add_argument('--vis-folder', default=None, help='Folder for motion field visualizations')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')
    subparsers = parser.add_subparsers(dest='command', required=True)

    pair = subparsers.add_parser('pair', help='Interpolate the skipped frame of an image sequence')
    pair.add_argument('folder', help='Folder with the frames (frames 1 and 3 are used)')
    pair.add_argument('--output', default='interpolated.jpg', help='Output image file')
    pair.add_argument('--pattern', default='*.jpg', help='Glob pattern of the frames (default: *.jpg)')

    video = subparsers.add_parser('video', help='Double the FPS of a video')
    video.add_argument('input', help='Input video file (MP4)')
    video.add_argument('--output', default=None, help='Output video file')
    video.add_argument('--vis-count', type=int, default=5, help='Number of frame pairs to visualize')
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(asctime)s %(name)s %(levelname)s: %(message)s")

    config = InterpolationConfig(
        block_size=args.block_size,
        t=args.t,
        use_window=not args.no_window,
        global_estimation=args.global_estimation,
    )

    try:
        config.validate()
        if args.command == 'pair':
            interpolate_pair(args.folder, args.output, config, args.pattern, args.report, args.vis_folder)
        else:
            output_path = args.output
            if output_path is None:
                # Create output filename with doubled FPS info
                fps = video_properties(args.input).fps
                input_path = Path(args.input)
                output_filename = f"{input_path.stem}_blocks_to_{int(fps * 2)}{input_path.suffix}"
                output_path = str(input_path.with_name(output_filename))
            double_fps_with_block_motion(args.input, output_path, config, args.report,
                                         args.vis_folder, args.vis_count)
    except InterpolationError as e:
        logger.error("%s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
