"""
Base Class for Calibration Patterns
===================================

Abstract base class and shared helpers for the calibration targets the
pipeline can look for. A pattern is fixed for a session: its geometry is set
in the constructor and exposed read-only.
"""

import cv2
import numpy as np
from abc import ABC, abstractmethod
from typing import Tuple, Optional, Dict, Any


class CalibrationPattern(ABC):
    """Abstract base class for calibration patterns used in camera calibration."""

    def __init__(self, pattern_id: str, name: str, description: str, is_planar: bool = True):
        """
        Initialize calibration pattern.

        Args:
            pattern_id: Unique identifier for the pattern type
            name: Human-readable name of the pattern
            description: Description of the pattern
            is_planar: Whether the pattern lies in a single plane (z=0)
        """
        self.pattern_id = pattern_id
        self.name = name
        self.description = description
        self.is_planar = is_planar

    @abstractmethod
    def detect_corners(self, image: np.ndarray, **kwargs) -> Tuple[bool, Optional[np.ndarray]]:
        """
        Detect pattern features in a grayscale image.

        Args:
            image: Single-channel 8-bit image, top-left origin
            **kwargs: Detection parameters (flags, criteria, win_size, zero_zone)

        Returns:
            Tuple of (success, image_points)
        """
        pass

    @abstractmethod
    def generate_object_points(self) -> np.ndarray:
        """
        Generate the 3D object points matching the detected image points.

        Returns:
            (N, 3) float32 array in detection order
        """
        pass

    @abstractmethod
    def draw_corners(self, image: np.ndarray, corners: np.ndarray) -> np.ndarray:
        """Draw detected corners on ``image`` in place and return it."""
        pass

    @abstractmethod
    def generate_pattern_image(self, **kwargs) -> np.ndarray:
        """Render the pattern as a grayscale image."""
        pass

    @property
    @abstractmethod
    def point_count(self) -> int:
        """Number of points a successful detection yields."""
        pass

    # Common utility methods

    def validate_dimensions(self, width: int, height: int, min_size: int = 2):
        """Validate pattern dimensions."""
        if not isinstance(width, int) or not isinstance(height, int):
            raise ValueError("Width and height must be integers")
        if width < min_size or height < min_size:
            raise ValueError(f"Width and height must be at least {min_size}")

    def validate_physical_size(self, size: float, parameter_name: str):
        """Validate physical size parameter."""
        if not isinstance(size, (int, float)) or size <= 0:
            raise ValueError(f"{parameter_name} must be a positive number")

    def generate_planar_object_points(self, width: int, height: int, square_size: float) -> np.ndarray:
        """Generate 3D object points for planar patterns (z=0), x varying fastest."""
        objp = np.zeros((width * height, 3), np.float32)
        objp[:, :2] = np.mgrid[0:width, 0:height].T.reshape(-1, 2)
        objp *= square_size
        return objp

    # JSON serialization methods

    def to_json(self) -> Dict[str, Any]:
        """Convert pattern to JSON representation."""
        return {
            'pattern_id': self.pattern_id,
            'name': self.name,
            'description': self.description,
            'is_planar': self.is_planar,
            'parameters': self._get_parameters_dict()
        }

    @classmethod
    def from_json(cls, json_data: Dict[str, Any]):
        """Create pattern instance from JSON data."""
        raise NotImplementedError("Subclasses must implement from_json method")

    def _get_parameters_dict(self) -> Dict[str, Any]:
        """Get pattern-specific parameters as dictionary (to be overridden)."""
        return {}

    @staticmethod
    def ensure_grayscale(image: np.ndarray) -> np.ndarray:
        """Reject images that are not single-channel 8-bit."""
        if image.ndim == 3 and image.shape[2] == 1:
            image = image[:, :, 0]
        if image.ndim != 2 or image.dtype != np.uint8:
            raise ValueError(f"Expected a single-channel uint8 image, got {image.shape} {image.dtype}")
        return image


def default_subpix_criteria(max_iterations: int = 30, epsilon: float = 0.001) -> Tuple[int, int, float]:
    """Termination criteria for corner refinement: stop at whichever bound is hit first."""
    return (cv2.TERM_CRITERIA_EPS + cv2.TERM_CRITERIA_MAX_ITER, max_iterations, epsilon)
