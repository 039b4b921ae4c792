#!/usr/bin/env python3
"""
Calibration Image Generator
===========================

Generates a printable chessboard and a set of synthetic camera views of it.
The views can be fed to the command-line runner in images mode.

Generated Images:
- board.png: the chessboard, 100px squares with a one-square border
- view_<n>.png: the board seen by an 800px focal length camera at varying poses

Usage:
    python examples/generate_chessboard_images.py --output_dir data/results/chessboard_images
    python main.py --mode images --image_dir data/results/chessboard_images/views
"""

import os
import sys
import argparse
import json
import cv2
import numpy as np
from datetime import datetime

# Add the project root to the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from texcalib.calibration_patterns import load_pattern_from_json, save_pattern_to_json
from texcalib.utils import render_pattern_view


def ensure_output_directory(output_dir):
    """Ensure the output directories exist."""
    views_dir = os.path.join(output_dir, 'views')
    os.makedirs(views_dir, exist_ok=True)
    return views_dir


def generate_images(output_dir, count=8, image_size=(640, 480)):
    """Generate the board image and ``count`` synthetic views."""
    print("🎨 Calibration Image Generator")
    print("=" * 45)

    start_time = datetime.now()
    print(f"Started at: {start_time.strftime('%Y-%m-%d %H:%M:%S')}")

    views_dir = ensure_output_directory(output_dir)
    print(f"📁 Output directory: {output_dir}")

    pattern = load_pattern_from_json({
        "pattern_id": "standard_chessboard",
        "parameters": {"width": 9, "height": 6, "square_size": 0.026}
    })

    board = pattern.generate_pattern_image(pixel_per_square=100, border_pixels=100)
    cv2.imwrite(os.path.join(output_dir, 'board.png'), board)
    save_pattern_to_json(pattern, os.path.join(output_dir, 'pattern.json'))
    print(f"✅ Board: {board.shape[1]}x{board.shape[0]} pixels")

    camera_matrix = np.array([[800.0, 0.0, image_size[0] / 2],
                              [0.0, 800.0, image_size[1] / 2],
                              [0.0, 0.0, 1.0]])
    center = pattern.generate_object_points().mean(axis=0).astype(np.float64)

    poses = []
    for i in range(count):
        angle = 2 * np.pi * i / count
        rvec = np.array([0.3 * np.cos(angle), 0.3 * np.sin(angle), 0.05 * (i % 3 - 1)])
        rotation, _ = cv2.Rodrigues(rvec)
        tvec = np.array([0.0, 0.0, 0.55 + 0.05 * (i % 2)]) - rotation @ center

        view = render_pattern_view(pattern, camera_matrix, rvec, tvec, image_size)
        filename = f"{i}.png"
        cv2.imwrite(os.path.join(views_dir, filename), view)
        poses.append({'image': filename, 'rvec': rvec.tolist(), 'tvec': tvec.tolist()})
        print(f"   📸 {filename}")

    with open(os.path.join(output_dir, 'ground_truth.json'), 'w') as f:
        json.dump({'camera_matrix': camera_matrix.tolist(), 'poses': poses}, f, indent=2)

    elapsed = (datetime.now() - start_time).total_seconds()
    print(f"\n🎉 Generated {count} views in {elapsed:.1f}s")
    return views_dir


def main():
    parser = argparse.ArgumentParser(description="Generate calibration images")
    parser.add_argument("--output_dir", default=os.path.join('data', 'results', 'chessboard_images'))
    parser.add_argument("--count", type=int, default=8, help="Number of synthetic views")
    args = parser.parse_args()

    generate_images(args.output_dir, args.count)
    return 0


if __name__ == "__main__":
    sys.exit(main())
