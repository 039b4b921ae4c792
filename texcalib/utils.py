"""
Utility functions for camera calibration
========================================

Helpers shared by the command-line runner, the examples and the tests:
image directory listing, and rendering of synthetic chessboard views seen
by a known camera.
"""

import os
import numpy as np
from typing import Tuple
from numpy.typing import ArrayLike
import cv2
from glob import glob

from .calibration_patterns import StandardChessboard


def load_images_from_directory(directory_path, extensions=None):
    """
    List all images in a directory.

    Args:
        directory_path: Path to the directory containing images
        extensions: List of image extensions to look for

    Returns:
        Sorted list of image file paths
    """
    if extensions is None:
        extensions = ['*.jpg', '*.jpeg', '*.png', '*.bmp', '*.tiff', '*.tif']

    image_paths = []
    for ext in extensions:
        image_paths.extend(glob(os.path.join(directory_path, ext)))
        image_paths.extend(glob(os.path.join(directory_path, ext.upper())))

    # Remove duplicates (case-insensitive filesystems can cause duplicates)
    image_paths = list(dict.fromkeys(image_paths))

    # Numeric file names sort by value, others alphabetically after them
    image_paths.sort(key=lambda x: (0, int(os.path.splitext(os.path.basename(x))[0]), x)
                     if os.path.splitext(os.path.basename(x))[0].isdigit() else (1, 0, x))

    return image_paths


def project_pattern_points(pattern: StandardChessboard, camera_matrix: np.ndarray,
                           rvec: ArrayLike, tvec: ArrayLike) -> np.ndarray:
    """Ideal (distortion-free) pixel positions of the pattern corners, (N, 2) float32."""
    projected, _ = cv2.projectPoints(pattern.generate_object_points(),
                                     np.asarray(rvec, dtype=np.float64).reshape(3, 1),
                                     np.asarray(tvec, dtype=np.float64).reshape(3, 1),
                                     np.asarray(camera_matrix, dtype=np.float64), None)
    return projected.reshape(-1, 2).astype(np.float32)


def render_pattern_view(pattern: StandardChessboard, camera_matrix: np.ndarray,
                        rvec: ArrayLike, tvec: ArrayLike,
                        image_size: Tuple[int, int] = (640, 480),
                        pixel_per_square: int = 40) -> np.ndarray:
    """
    Render a grayscale view of a chessboard seen by a pinhole camera.

    The board is drawn with a one-square white border and placed at pose
    (rvec, tvec) in front of a camera with ``camera_matrix`` and no
    distortion. Everything outside the board is white.

    Args:
        pattern: Chessboard to render
        camera_matrix: 3x3 intrinsic matrix
        rvec: Rodrigues rotation of the board
        tvec: Translation of the board origin (first interior corner)
        image_size: (width, height) of the output
        pixel_per_square: Resolution of the flat board texture

    Returns:
        uint8 image of shape (height, width)
    """
    border = pixel_per_square
    board = pattern.generate_pattern_image(pixel_per_square=pixel_per_square, border_pixels=border)

    # Board pixel (u, v) -> board plane (X, Y); corner (i, j) sits between pixels
    scale = pattern.square_size / pixel_per_square
    offset = (0.5 - border - pixel_per_square) * scale
    pixel_to_plane = np.array([[scale, 0.0, offset],
                               [0.0, scale, offset],
                               [0.0, 0.0, 1.0]])

    rotation, _ = cv2.Rodrigues(np.asarray(rvec, dtype=np.float64).reshape(3, 1))
    plane_to_image = np.column_stack((rotation[:, 0], rotation[:, 1],
                                      np.asarray(tvec, dtype=np.float64).reshape(3)))
    homography = np.asarray(camera_matrix, dtype=np.float64) @ plane_to_image @ pixel_to_plane

    return cv2.warpPerspective(board, homography, tuple(image_size),
                               flags=cv2.INTER_LINEAR,
                               borderMode=cv2.BORDER_CONSTANT,
                               borderValue=255)
