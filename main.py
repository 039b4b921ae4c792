#!/usr/bin/env python3
"""
Texture Calibration Toolkit - Main Entry Point
==============================================

Command-line runner that plays the engine's part: it feeds frames into the
calibration pipeline once per loop iteration and displays what comes back.

Modes:
    camera     live frames from an OpenCV capture device
    images     frames read from a directory of images
    synthetic  rendered chessboard views seen by a known camera
"""

import argparse
import json
import logging
import os
import sys

import cv2
import numpy as np

from texcalib import (
    CalibrationPipeline, LatestFrameSource, PixelBuffer, StandardChessboard,
    TextureDisplaySink, VideoCaptureFrameSource, load_config
)
from texcalib.format_bridge import buffer_to_matrix, matrix_to_buffer
from texcalib.frame_source import DisplaySink, bgr_to_rgba
from texcalib.utils import load_images_from_directory, render_pattern_view

logger = logging.getLogger("texcalib.main")


class WindowDisplaySink(DisplaySink):
    """Shows presented frames in an OpenCV window."""

    def __init__(self, window_name: str = "Texture Calibration"):
        self.window_name = window_name

    def present(self, buffer: PixelBuffer) -> None:
        frame = buffer_to_matrix(buffer)
        if frame.ndim == 3 and frame.shape[2] == 4:
            frame = cv2.cvtColor(frame, cv2.COLOR_RGBA2BGR)
        elif frame.ndim == 3:
            frame = cv2.cvtColor(frame, cv2.COLOR_RGB2BGR)
        cv2.imshow(self.window_name, frame)
        cv2.waitKey(1)

    def release(self) -> None:
        cv2.destroyWindow(self.window_name)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Texture Calibration Toolkit")

    parser.add_argument("--mode", choices=['camera', 'images', 'synthetic'],
                        default='camera', help="Where frames come from")
    parser.add_argument("--config", help="Pipeline configuration JSON file")
    parser.add_argument("--device", default="0", help="Capture device index or URL (camera mode)")
    parser.add_argument("--image_dir", help="Directory with calibration images (images mode)")
    parser.add_argument("--xx", type=int, help="Number of corners along chessboard X axis")
    parser.add_argument("--yy", type=int, help="Number of corners along chessboard Y axis")
    parser.add_argument("--square_size", type=float, help="Size of one chessboard square")
    parser.add_argument("--max_frames", type=int, default=0, help="Stop after this many frames (0: no limit)")
    parser.add_argument("--calib_out", help="Write the final camera model to this JSON file")
    parser.add_argument("--show", action="store_true", help="Display processed frames in a window")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    return parser


def build_config(args):
    config = load_config(args.config)
    if any(v is not None for v in (args.xx, args.yy, args.square_size)):
        pattern = config.pattern
        config.pattern = StandardChessboard(
            width=args.xx if args.xx is not None else pattern.width,
            height=args.yy if args.yy is not None else pattern.height,
            square_size=args.square_size if args.square_size is not None else pattern.square_size
        )
    return config


def synthetic_views(pattern, count: int, image_size=(640, 480)):
    """Chessboard views from a fixed camera at slowly varying poses."""
    camera_matrix = np.array([[800.0, 0.0, image_size[0] / 2],
                              [0.0, 800.0, image_size[1] / 2],
                              [0.0, 0.0, 1.0]])
    center = np.array([(pattern.width - 1) * pattern.square_size / 2,
                       (pattern.height - 1) * pattern.square_size / 2, 0.0])
    for i in range(count):
        angle = 2 * np.pi * i / max(count, 1)
        rvec = np.array([0.25 * np.cos(angle), 0.25 * np.sin(angle), 0.05])
        rotation, _ = cv2.Rodrigues(rvec)
        tvec = np.array([0.0, 0.0, 0.6]) - rotation @ center
        yield render_pattern_view(pattern, camera_matrix, rvec, tvec, image_size)


def iter_frames(args, pattern):
    """Yield top-left-origin BGR/gray frames for the images and synthetic modes."""
    if args.mode == 'images':
        for path in load_images_from_directory(args.image_dir):
            image = cv2.imread(path, cv2.IMREAD_COLOR)
            if image is None:
                logger.warning("Could not load image: %s", path)
                continue
            yield image
    else:
        yield from synthetic_views(pattern, args.max_frames or 12)


def run(args) -> int:
    config = build_config(args)
    sink = WindowDisplaySink() if args.show else TextureDisplaySink()

    if args.mode == 'camera':
        device = int(args.device) if str(args.device).isdigit() else args.device
        source = VideoCaptureFrameSource(device)
        with CalibrationPipeline(source, sink, config) as pipeline:
            if not source.is_open:
                print(f"Error: Could not open capture device {args.device}")
                return 1
            try:
                while not args.max_frames or pipeline.frames_processed < args.max_frames:
                    pipeline.tick()
            except KeyboardInterrupt:
                print("Interrupted")
    else:
        if args.mode == 'images' and not args.image_dir:
            print("Error: --image_dir is required in images mode")
            return 1
        source = LatestFrameSource()
        with CalibrationPipeline(source, sink, config) as pipeline:
            for frame in iter_frames(args, config.pattern):
                source.publish(matrix_to_buffer(bgr_to_rgba(frame)))
                pipeline.tick()
                if args.max_frames and pipeline.frames_processed >= args.max_frames:
                    break

    model = pipeline.camera_model
    if model is None:
        print("No calibration: the pattern was never detected")
        return 1

    print(f"Calibration completed from {len(pipeline.correspondences)} detections")
    print(model.format_report())

    if args.calib_out:
        os.makedirs(os.path.dirname(args.calib_out) or '.', exist_ok=True)
        with open(args.calib_out, 'w', encoding='utf-8') as f:
            json.dump(model.to_json(), f, indent=2)
        print(f"✅ Camera model saved to: {args.calib_out}")
    return 0


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    return run(args)


if __name__ == "__main__":
    sys.exit(main())
