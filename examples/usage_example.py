"""
Example: Using the Texture Calibration Toolkit Core Modules
===========================================================

This example shows how a display engine drives the toolkit: it renders
camera frames into a texture, ticks the pipeline once per update, and
draws the texture the pipeline presents into.
"""

import sys
import os
import logging
import numpy as np
import cv2

# Add the toolkit to the Python path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from texcalib import (
    CalibrationPipeline, FormatBridge, PipelineConfig, StandardChessboard,
    SurfaceFrameSource, TargetFormat, Texture2D, TextureDisplaySink, TextureFormat
)
from texcalib.format_bridge import matrix_to_texture
from texcalib.utils import render_pattern_view


def example_format_bridge():
    """Example of moving pixels between engine and vision representations."""
    print("=== Format Bridge Example ===")

    bridge = FormatBridge()
    texture = Texture2D(4, 2, TextureFormat.RGBA32)
    texture.load_raw_texture_data(np.arange(4 * 2 * 4, dtype=np.uint8))

    matrix = bridge.convert(texture, TargetFormat.MATRIX)
    print(f"Texture {texture} -> matrix {matrix.shape}")
    print(f"Texture bottom row == matrix last row: {np.array_equal(matrix[-1].ravel(), texture.data[:16])}")

    gray = bridge.convert(texture, TargetFormat.GRAYSCALE)
    print(f"Grayscale: {gray.shape}")

    colors = bridge.convert(matrix, TargetFormat.COLORS)
    print(f"Packed colors: {len(colors)} records, first = {tuple(colors[0])}")

    restored = bridge.convert(matrix, TargetFormat.TEXTURE)
    print(f"Round trip restores bytes: {restored.get_raw_texture_data() == texture.get_raw_texture_data()}")


def example_engine_session():
    """Example of a calibration session driven through engine textures."""
    print("\n=== Engine Calibration Session Example ===")

    pattern = StandardChessboard(width=9, height=6, square_size=0.026)
    camera_matrix = np.array([[800.0, 0.0, 320.0],
                              [0.0, 800.0, 240.0],
                              [0.0, 0.0, 1.0]])

    camera_texture = Texture2D(640, 480, TextureFormat.RGB24)
    display_texture = Texture2D(1, 1)
    pipeline = CalibrationPipeline(SurfaceFrameSource(camera_texture),
                                   TextureDisplaySink(display_texture),
                                   PipelineConfig(pattern=pattern))

    center = pattern.generate_object_points().mean(axis=0).astype(np.float64)
    with pipeline:
        for rvec in ([0.25, 0.0, 0.0], [0.0, 0.3, 0.05], [-0.2, 0.2, -0.05], [0.15, -0.25, 0.1]):
            rvec = np.array(rvec)
            rotation, _ = cv2.Rodrigues(rvec)
            tvec = np.array([0.0, 0.0, 0.6]) - rotation @ center

            # The engine renders the camera image into its texture...
            view = render_pattern_view(pattern, camera_matrix, rvec, tvec)
            matrix_to_texture(cv2.cvtColor(view, cv2.COLOR_GRAY2RGB), camera_texture)

            # ...and ticks the pipeline from its update loop
            result = pipeline.tick()
            print(f"Frame {pipeline.frames_processed}: detected={result.detected}")

    if pipeline.camera_model is None:
        print("Calibration failed!")
        return

    print("Calibration successful!")
    print(pipeline.camera_model.format_report())
    print(f"Display texture: {display_texture}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.WARNING)

    print("Texture Calibration Toolkit - Usage Examples")
    print("=" * 50)

    example_format_bridge()
    example_engine_session()

    print("\n" + "=" * 50)
    print("Examples completed!")
