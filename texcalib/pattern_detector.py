"""
Pattern Detector
================

Finds the interior-corner grid of a calibration pattern in a frame and
refines every corner to sub-pixel accuracy.

A frame without the pattern is a normal outcome: ``detect`` returns None.
"""

import logging
from typing import Dict, Optional

import numpy as np

from .calibration_patterns import CalibrationPattern
from .config import DetectionConfig
from .format_bridge import to_grayscale

logger = logging.getLogger(__name__)


class PatternDetector:
    """
    Thin wrapper over OpenCV's chessboard search and ``cornerSubPix``.

    Refinement stops after ``config.max_iterations`` iterations or once a
    corner moves less than ``config.epsilon``, whichever comes first.
    """

    def __init__(self, config: Optional[DetectionConfig] = None,
                 grayscale_codes: Optional[Dict[int, int]] = None):
        self.config = config or DetectionConfig()
        self.grayscale_codes = grayscale_codes

    def detect(self, frame: np.ndarray, pattern: CalibrationPattern) -> Optional[np.ndarray]:
        """
        Locate the pattern's corners.

        Args:
            frame: Top-left-origin uint8 matrix. Color frames are converted
                to grayscale first.
            pattern: Pattern to look for

        Returns:
            (N, 2) float32 array of ``pattern.point_count`` points in row-major
            grid order, or None if the pattern is not in the frame
        """
        gray = to_grayscale(frame, codes=self.grayscale_codes)

        found, corners = pattern.detect_corners(
            gray,
            flags=self.config.flags,
            criteria=self.config.criteria,
            win_size=self.config.window_size,
            zero_zone=self.config.zero_zone,
        )
        if not found:
            logger.debug("Pattern %s not found in %dx%d frame", pattern.pattern_id,
                         gray.shape[1], gray.shape[0])
            return None

        points = corners.reshape(-1, 2).astype(np.float32)
        if len(points) != pattern.point_count:
            logger.warning("Detector returned %d corners, expected %d", len(points), pattern.point_count)
            return None
        return points

    def draw(self, image: np.ndarray, pattern: CalibrationPattern, points: np.ndarray) -> np.ndarray:
        """Overlay detected corners on ``image`` in place."""
        return pattern.draw_corners(image, points)
