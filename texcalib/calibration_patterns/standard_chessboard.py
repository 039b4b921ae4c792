"""
Standard Chessboard Pattern
===========================

Black and white checkerboard with a known grid of interior corners.
"""

import logging
import cv2
import numpy as np
from typing import Tuple, Optional, Dict, Any
from .base import CalibrationPattern, default_subpix_criteria


logger = logging.getLogger(__name__)

DEFAULT_DETECTION_FLAGS = cv2.CALIB_CB_ADAPTIVE_THRESH + cv2.CALIB_CB_NORMALIZE_IMAGE


class StandardChessboard(CalibrationPattern):
    """Standard black and white chessboard pattern (2D planar)."""

    PATTERN_INFO = {
        'id': 'standard_chessboard',
        'name': 'Standard Chessboard',
        'category': 'chessboard'
    }

    def __init__(self, width: int = 9, height: int = 6, square_size: float = 0.026):
        """
        Initialize standard chessboard.

        Args:
            width: Number of internal corners along width (columns - 1)
            height: Number of internal corners along height (rows - 1)
            square_size: Physical size of each square, in the unit the
                calibration results should use (meters by default)
        """
        super().__init__(
            pattern_id="standard_chessboard",
            name="Standard Chessboard",
            description="Traditional black and white checkerboard pattern",
            is_planar=True
        )

        self.validate_dimensions(width, height, min_size=2)
        self.validate_physical_size(square_size, "square_size")

        self._width = width
        self._height = height
        self._square_size = float(square_size)

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def square_size(self) -> float:
        return self._square_size

    @property
    def point_count(self) -> int:
        return self._width * self._height

    def get_pattern_size(self) -> Tuple[int, int]:
        """Get pattern size as (corners along width, corners along height)."""
        return (self._width, self._height)

    def detect_corners(self, image: np.ndarray, **kwargs) -> Tuple[bool, Optional[np.ndarray]]:
        """
        Detect and refine chessboard corners.

        Keyword Args:
            flags: ``cv2.findChessboardCorners`` flags
            criteria: ``cv2.cornerSubPix`` termination criteria
            win_size: Half size of the refinement search window
            zero_zone: Half size of the dead region in the window middle

        Returns:
            (success, corners) with corners as an (N, 1, 2) float32 array or None
        """
        gray = self.ensure_grayscale(image)

        flags = kwargs.get('flags', DEFAULT_DETECTION_FLAGS)
        criteria = kwargs.get('criteria', default_subpix_criteria())
        win_size = tuple(kwargs.get('win_size', (11, 11)))
        zero_zone = tuple(kwargs.get('zero_zone', (-1, -1)))

        try:
            ret, corners = cv2.findChessboardCorners(gray, self.get_pattern_size(), flags=flags)
            if not ret or corners is None:
                return False, None
            corners = cv2.cornerSubPix(gray, corners, win_size, zero_zone, criteria)
        except cv2.error as e:
            # Frames smaller than the adaptive threshold block are rejected by OpenCV
            logger.debug("Chessboard search failed on %sx%s image: %s", gray.shape[1], gray.shape[0], e)
            return False, None
        return True, corners

    def generate_object_points(self) -> np.ndarray:
        """Generate 3D object points for the chessboard (planar, z=0)."""
        return self.generate_planar_object_points(self._width, self._height, self._square_size)

    def draw_corners(self, image: np.ndarray, corners: np.ndarray) -> np.ndarray:
        """Draw chessboard corners using OpenCV's specialized function."""
        if corners is not None:
            corners = np.asarray(corners, dtype=np.float32).reshape(-1, 1, 2)
            cv2.drawChessboardCorners(image, self.get_pattern_size(), corners, True)
        return image

    def generate_pattern_image(self, pixel_per_square: int = 100,
                               border_pixels: int = 0) -> np.ndarray:
        """
        Generate a grayscale chessboard image.

        The top-left square is black. Interior corner (i, j) sits at pixel
        ``(border_pixels + (i + 1) * pixel_per_square, border_pixels + (j + 1) * pixel_per_square)``.

        Args:
            pixel_per_square: Size of each square in pixels (default: 100)
            border_pixels: White border around the pattern in pixels (default: 0)

        Returns:
            uint8 image of shape (rows, cols)
        """
        squares_x = self._width + 1
        squares_y = self._height + 1

        image_width = squares_x * pixel_per_square + 2 * border_pixels
        image_height = squares_y * pixel_per_square + 2 * border_pixels
        image = np.full((image_height, image_width), 255, dtype=np.uint8)

        for row in range(squares_y):
            for col in range(squares_x):
                if (row + col) % 2 == 0:
                    y1 = border_pixels + row * pixel_per_square
                    x1 = border_pixels + col * pixel_per_square
                    image[y1:y1 + pixel_per_square, x1:x1 + pixel_per_square] = 0

        return image

    def _get_parameters_dict(self) -> Dict[str, Any]:
        """Get pattern parameters for JSON serialization."""
        return {
            'width': self._width,
            'height': self._height,
            'square_size': self._square_size,
            'total_corners': self.point_count
        }

    @classmethod
    def from_json(cls, json_data: Dict[str, Any]) -> 'StandardChessboard':
        """Create StandardChessboard from JSON data."""
        params = json_data.get('parameters', {})
        return cls(
            width=params.get('width', 9),
            height=params.get('height', 6),
            square_size=params.get('square_size', 0.026)
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, StandardChessboard):
            return NotImplemented
        return (self._width, self._height, self._square_size) == \
            (other._width, other._height, other._square_size)

    def __hash__(self) -> int:
        return hash((self.pattern_id, self._width, self._height, self._square_size))

    def __repr__(self) -> str:
        return f"StandardChessboard({self._width}x{self._height}, square_size={self._square_size})"
