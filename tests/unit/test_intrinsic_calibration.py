#!/usr/bin/env python3
"""
Unit Tests for Intrinsic Camera Calibration
===========================================

This module contains unit tests for CorrespondenceSet, CameraModel and
CalibrationEstimator.

Test Classes:
1. TestCorrespondenceSet:
   - Validates shape checks when frames are added
   - Checks ordering and clearing

2. TestCalibrationEstimator:
   - Recovers a known camera from exact synthetic projections
   - Validates standard, rational, thin prism and tilted distortion models
   - Tests the single-frame case and the error paths

3. TestCameraModel:
   - Operator report and JSON round trip
"""

import unittest
import os
import sys
import numpy as np
import cv2

# Add project root to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from texcalib.calibration_patterns import StandardChessboard
from texcalib.config import CalibrationConfig
from texcalib.exceptions import EmptyBufferError, InsufficientDataError, SizeMismatchError
from texcalib.intrinsic_calibration import (
    CalibrationEstimator, CameraModel, CorrespondenceSet, distortion_model_from_flags
)


CAMERA_MATRIX = np.array([[800.0, 0.0, 320.0],
                          [0.0, 800.0, 240.0],
                          [0.0, 0.0, 1.0]])
IMAGE_SIZE = (640, 480)

POSE_ROTATIONS = [
    [0.25, 0.0, 0.0],
    [0.0, 0.3, 0.05],
    [-0.2, 0.2, -0.05],
    [0.15, -0.25, 0.1],
    [-0.3, -0.1, 0.0],
    [0.05, 0.35, -0.1],
]


def synthetic_correspondences(pattern, rotations, distance=0.6):
    """Exact, distortion-free projections of the pattern at the given board rotations."""
    correspondences = CorrespondenceSet()
    object_points = pattern.generate_object_points()
    center = object_points.mean(axis=0).astype(np.float64)
    for rvec in rotations:
        rvec = np.array(rvec, dtype=np.float64)
        rotation, _ = cv2.Rodrigues(rvec)
        tvec = np.array([0.0, 0.0, distance]) - rotation @ center
        projected, _ = cv2.projectPoints(object_points, rvec, tvec, CAMERA_MATRIX, None)
        correspondences.add(object_points, projected.reshape(-1, 2))
    return correspondences


class TestCorrespondenceSet(unittest.TestCase):
    """Test the accumulated point pairs."""

    def setUp(self):
        self.pattern = StandardChessboard(9, 6, 0.026)

    def test_add_detection(self):
        correspondences = CorrespondenceSet()
        image_points = np.random.rand(54, 2).astype(np.float32) * 100

        correspondences.add_detection(self.pattern, image_points)

        self.assertEqual(len(correspondences), 1)
        object_points, stored = next(iter(correspondences))
        self.assertEqual(object_points.shape, (54, 3))
        np.testing.assert_array_equal(stored, image_points)

    def test_length_mismatch(self):
        correspondences = CorrespondenceSet()
        with self.assertRaises(SizeMismatchError):
            correspondences.add_detection(self.pattern, np.zeros((53, 2), dtype=np.float32))
        self.assertEqual(len(correspondences), 0)

    def test_empty_correspondence(self):
        with self.assertRaises(EmptyBufferError):
            CorrespondenceSet().add(np.zeros((0, 3)), np.zeros((0, 2)))

    def test_order_and_clear(self):
        correspondences = CorrespondenceSet()
        for offset in range(3):
            correspondences.add_detection(self.pattern, np.full((54, 2), offset, dtype=np.float32))

        self.assertEqual([points[0, 0] for points in correspondences.image_points], [0, 1, 2])

        correspondences.clear()
        self.assertEqual(len(correspondences), 0)
        self.assertEqual(correspondences.object_points, [])


class TestCalibrationEstimator(unittest.TestCase):
    """Test solving for intrinsics from exact synthetic data."""

    def setUp(self):
        self.pattern = StandardChessboard(9, 6, 0.026)

    def test_recovers_known_camera(self):
        correspondences = synthetic_correspondences(self.pattern, POSE_ROTATIONS)

        model = CalibrationEstimator().solve(correspondences, IMAGE_SIZE)

        self.assertEqual(model.intrinsic_matrix.shape, (3, 3))
        np.testing.assert_allclose([model.fx, model.fy], [800.0, 800.0], rtol=1e-2)
        np.testing.assert_allclose([model.cx, model.cy], [320.0, 240.0], atol=3.0)
        self.assertEqual(model.distortion_coefficients.shape, (5,))
        self.assertLess(model.rms_error, 0.05)
        self.assertEqual(len(model.rotations), len(POSE_ROTATIONS))
        self.assertEqual(len(model.translations), len(POSE_ROTATIONS))
        self.assertEqual(len(model.per_frame_errors), len(POSE_ROTATIONS))
        self.assertEqual(model.image_size, IMAGE_SIZE)
        self.assertEqual(model.distortion_model, 'standard')

    def test_recovered_translation(self):
        correspondences = synthetic_correspondences(self.pattern, POSE_ROTATIONS[:4])

        model = CalibrationEstimator().solve(correspondences, IMAGE_SIZE)

        # Board center sits 0.6 in front of the camera in every frame
        center = self.pattern.generate_object_points().mean(axis=0)
        for rvec, tvec in zip(model.rotations, model.translations):
            rotation, _ = cv2.Rodrigues(rvec)
            np.testing.assert_allclose(rotation @ center + tvec, [0.0, 0.0, 0.6], atol=5e-3)

    def test_single_frame_with_fixed_parameters(self):
        correspondences = synthetic_correspondences(self.pattern, POSE_ROTATIONS[3:4])
        flags = (cv2.CALIB_FIX_PRINCIPAL_POINT | cv2.CALIB_ZERO_TANGENT_DIST |
                 cv2.CALIB_FIX_K1 | cv2.CALIB_FIX_K2 | cv2.CALIB_FIX_K3)

        model = CalibrationEstimator().solve(correspondences, IMAGE_SIZE, flags=flags)

        self.assertEqual(len(model.rotations), 1)
        np.testing.assert_allclose([model.fx, model.fy], [800.0, 800.0], rtol=1e-2)

    def test_single_frame_default_flags(self):
        correspondences = synthetic_correspondences(self.pattern, POSE_ROTATIONS[3:4])

        model = CalibrationEstimator().solve(correspondences, IMAGE_SIZE)

        self.assertEqual(len(model.translations), 1)
        self.assertTrue(np.all(np.isfinite(model.intrinsic_matrix)))

    def test_initial_guess(self):
        correspondences = synthetic_correspondences(self.pattern, POSE_ROTATIONS)
        guess = CAMERA_MATRIX.copy()
        guess[0, 0] = guess[1, 1] = 700.0

        model = CalibrationEstimator().solve(correspondences, IMAGE_SIZE, camera_matrix=guess,
                                             dist_coeffs=np.zeros(5))

        np.testing.assert_allclose([model.fx, model.fy], [800.0, 800.0], rtol=1e-2)
        self.assertEqual(guess[0, 0], 700.0)

    def test_distortion_models(self):
        correspondences = synthetic_correspondences(self.pattern, POSE_ROTATIONS)
        expected_counts = {'standard': 5, 'rational': 8, 'thin_prism': 12, 'tilted': 14}

        for name, count in expected_counts.items():
            with self.subTest(model=name):
                config = CalibrationConfig(distortion_model=name)
                model = CalibrationEstimator(config).solve(correspondences, IMAGE_SIZE)

                self.assertEqual(config.distortion_coefficient_count, count)
                self.assertEqual(model.distortion_coefficients.ndim, 1)
                self.assertGreaterEqual(len(model.distortion_coefficients), count)
                self.assertEqual(model.distortion_model, name)
                self.assertLess(model.rms_error, 0.5)

    def test_no_correspondences(self):
        with self.assertRaises(InsufficientDataError):
            CalibrationEstimator().solve(CorrespondenceSet(), IMAGE_SIZE)

    def test_invalid_image_size(self):
        correspondences = synthetic_correspondences(self.pattern, POSE_ROTATIONS[:1])
        with self.assertRaises(EmptyBufferError):
            CalibrationEstimator().solve(correspondences, (0, 480))

    def test_model_names_from_flags(self):
        self.assertEqual(distortion_model_from_flags(0), 'standard')
        self.assertEqual(distortion_model_from_flags(cv2.CALIB_RATIONAL_MODEL), 'rational')
        self.assertEqual(distortion_model_from_flags(
            cv2.CALIB_RATIONAL_MODEL | cv2.CALIB_THIN_PRISM_MODEL), 'thin_prism')


class TestCameraModel(unittest.TestCase):
    """Test reporting and serialization of a solved model."""

    def setUp(self):
        self.model = CameraModel(
            intrinsic_matrix=CAMERA_MATRIX.copy(),
            distortion_coefficients=np.array([0.1, -0.05, 0.001, 0.002, 0.0]),
            rotations=[np.array([0.1, 0.2, 0.3])],
            translations=[np.array([-0.1, -0.05, 0.6])],
            image_size=IMAGE_SIZE,
            rms_error=0.123,
            per_frame_errors=[0.123],
        )

    def test_format_report(self):
        report = self.model.format_report()
        lines = report.splitlines()

        self.assertEqual(lines[0], "Camera matrix:")
        self.assertEqual(lines[1], "800.0000, 0.0000, 320.0000")
        self.assertEqual(lines[3], "0.0000, 0.0000, 1.0000")
        self.assertEqual(lines[4], "Translation:")
        self.assertEqual(lines[5], "-0.1000, -0.0500, 0.6000")
        self.assertIn("0.1230", lines[6])

    def test_json_round_trip(self):
        restored = CameraModel.from_json(self.model.to_json())

        np.testing.assert_array_equal(restored.intrinsic_matrix, self.model.intrinsic_matrix)
        np.testing.assert_array_equal(restored.distortion_coefficients, self.model.distortion_coefficients)
        np.testing.assert_array_equal(restored.translations[0], self.model.translations[0])
        self.assertEqual(restored.image_size, IMAGE_SIZE)
        self.assertAlmostEqual(restored.rms_error, 0.123)
        self.assertEqual(restored.distortion_model, 'standard')


if __name__ == '__main__':
    unittest.main()
