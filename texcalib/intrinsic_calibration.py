"""
Intrinsic Camera Calibration Module
===================================

Accumulates 3D-2D point correspondences from successful pattern detections
and solves for the camera intrinsics, distortion and per-frame pose with
OpenCV's ``calibrateCamera``.

Key pieces:
- CorrespondenceSet: ordered (object_points, image_points) pairs, one per frame
- CameraModel: result of one solve (intrinsics, distortion, poses, errors)
- CalibrationEstimator: batch solver over a whole CorrespondenceSet

Every solve uses all pairs collected so far; nothing is updated
incrementally:

    correspondences = CorrespondenceSet()
    correspondences.add_detection(pattern, corners)
    model = CalibrationEstimator().solve(correspondences, (640, 480))
    print(model.format_report())
"""

import logging
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

import cv2
import numpy as np

from .calibration_patterns import CalibrationPattern
from .config import CalibrationConfig
from .exceptions import EmptyBufferError, InsufficientDataError, SizeMismatchError

logger = logging.getLogger(__name__)


class CorrespondenceSet:
    """Ordered object/image point pairs, one per frame with a successful detection."""

    def __init__(self):
        self._object_points: List[np.ndarray] = []
        self._image_points: List[np.ndarray] = []

    def add(self, object_points: np.ndarray, image_points: np.ndarray) -> None:
        """
        Append one frame's correspondences.

        Args:
            object_points: (N, 3) pattern points in world units
            image_points: (N, 2) detected pixel positions, same order
        """
        object_points = np.asarray(object_points, dtype=np.float32).reshape(-1, 3)
        image_points = np.asarray(image_points, dtype=np.float32).reshape(-1, 2)
        if len(object_points) == 0:
            raise EmptyBufferError("Correspondence has no points")
        if len(object_points) != len(image_points):
            raise SizeMismatchError(
                f"{len(object_points)} object points do not match {len(image_points)} image points")
        self._object_points.append(object_points)
        self._image_points.append(image_points)

    def add_detection(self, pattern: CalibrationPattern, image_points: np.ndarray) -> None:
        """Append a detection of ``pattern`` using its generated object points."""
        self.add(pattern.generate_object_points(), image_points)

    @property
    def object_points(self) -> List[np.ndarray]:
        return list(self._object_points)

    @property
    def image_points(self) -> List[np.ndarray]:
        return list(self._image_points)

    def clear(self) -> None:
        self._object_points.clear()
        self._image_points.clear()

    def __len__(self) -> int:
        return len(self._object_points)

    def __iter__(self) -> Iterator[Tuple[np.ndarray, np.ndarray]]:
        return iter(zip(self._object_points, self._image_points))


@dataclass
class CameraModel:
    """Camera intrinsics plus one pose per contributing frame."""

    intrinsic_matrix: np.ndarray
    distortion_coefficients: np.ndarray
    rotations: List[np.ndarray] = field(default_factory=list)
    translations: List[np.ndarray] = field(default_factory=list)
    image_size: Optional[Tuple[int, int]] = None
    rms_error: Optional[float] = None
    per_frame_errors: List[float] = field(default_factory=list)
    distortion_model: str = 'standard'

    @property
    def fx(self) -> float:
        return float(self.intrinsic_matrix[0, 0])

    @property
    def fy(self) -> float:
        return float(self.intrinsic_matrix[1, 1])

    @property
    def cx(self) -> float:
        return float(self.intrinsic_matrix[0, 2])

    @property
    def cy(self) -> float:
        return float(self.intrinsic_matrix[1, 2])

    def format_report(self) -> str:
        """Operator-facing text: the camera matrix rows and the latest frame's translation."""
        lines = ["Camera matrix:"]
        for row in self.intrinsic_matrix:
            lines.append(", ".join(f"{value:.4f}" for value in row))
        if self.translations:
            tvec = np.asarray(self.translations[-1]).ravel()
            lines.append("Translation:")
            lines.append(", ".join(f"{value:.4f}" for value in tvec))
        if self.rms_error is not None:
            lines.append(f"RMS reprojection error: {self.rms_error:.4f} pixels")
        return "\n".join(lines)

    def to_json(self) -> dict:
        """JSON-compatible dictionary of the model."""
        return {
            'camera_matrix': self.intrinsic_matrix.tolist(),
            'distortion_coefficients': self.distortion_coefficients.tolist(),
            'distortion_model': self.distortion_model,
            'image_size': list(self.image_size) if self.image_size else None,
            'rms_error': float(self.rms_error) if self.rms_error is not None else None,
            'per_frame_errors': [float(err) for err in self.per_frame_errors],
            'extrinsics': {
                'rotation_vectors': [np.asarray(rvec).ravel().tolist() for rvec in self.rotations],
                'translation_vectors': [np.asarray(tvec).ravel().tolist() for tvec in self.translations],
            },
        }

    @classmethod
    def from_json(cls, data: dict) -> 'CameraModel':
        extrinsics = data.get('extrinsics', {})
        return cls(
            intrinsic_matrix=np.array(data['camera_matrix'], dtype=np.float64),
            distortion_coefficients=np.array(data['distortion_coefficients'], dtype=np.float64),
            rotations=[np.array(r, dtype=np.float64) for r in extrinsics.get('rotation_vectors', [])],
            translations=[np.array(t, dtype=np.float64) for t in extrinsics.get('translation_vectors', [])],
            image_size=tuple(data['image_size']) if data.get('image_size') else None,
            rms_error=data.get('rms_error'),
            per_frame_errors=list(data.get('per_frame_errors') or []),
            distortion_model=data.get('distortion_model', 'standard'),
        )


def distortion_model_from_flags(flags: int) -> str:
    """Name of the distortion model selected by ``calibrateCamera`` flags."""
    if flags & cv2.CALIB_TILTED_MODEL:
        return 'tilted'
    if flags & cv2.CALIB_THIN_PRISM_MODEL:
        return 'thin_prism'
    if flags & cv2.CALIB_RATIONAL_MODEL:
        return 'rational'
    return 'standard'


class CalibrationEstimator:
    """
    Camera intrinsic parameter solver following OpenCV's calibrateCamera interface.

    Distortion Model Flags:
        - Standard (5 coeff): no additional flags
        - Rational (8 coeff): cv2.CALIB_RATIONAL_MODEL
        - Thin Prism (12 coeff): cv2.CALIB_RATIONAL_MODEL | cv2.CALIB_THIN_PRISM_MODEL
        - Tilted (14 coeff): rational | thin prism | cv2.CALIB_TILTED_MODEL
    """

    def __init__(self, config: Optional[CalibrationConfig] = None):
        self.config = config or CalibrationConfig()

    def solve(self,
              correspondences: CorrespondenceSet,
              image_size: Tuple[int, int],
              camera_matrix: Optional[np.ndarray] = None,
              dist_coeffs: Optional[np.ndarray] = None,
              flags: Optional[int] = None,
              criteria: Optional[Tuple] = None,
              verbose: bool = False) -> CameraModel:
        """
        Solve for intrinsics, distortion and one pose per correspondence pair.

        Args:
            correspondences: All pairs collected so far (at least one)
            image_size: (width, height) of the frames the points came from
            camera_matrix: Initial camera matrix (3x3). If None, it is estimated.
            dist_coeffs: Initial distortion coefficients
            flags: calibrateCamera flags; defaults to the configured ones
            criteria: Termination criteria for the solver
            verbose: Whether to print detailed progress

        Returns:
            CameraModel with ``len(correspondences)`` rotations and translations

        Raises:
            InsufficientDataError: if there are no correspondences
            EmptyBufferError: if the image size is not positive
        """
        if len(correspondences) == 0:
            raise InsufficientDataError("Insufficient point correspondences: need at least 1, got 0")

        width, height = image_size
        if width <= 0 or height <= 0:
            raise EmptyBufferError(f"Invalid image size {width}x{height}")

        calibration_flags = self.config.calibration_flags if flags is None else flags
        if camera_matrix is not None:
            camera_matrix = np.array(camera_matrix, dtype=np.float64)
            calibration_flags |= cv2.CALIB_USE_INTRINSIC_GUESS
        if dist_coeffs is not None:
            dist_coeffs = np.array(dist_coeffs, dtype=np.float64)

        object_points = correspondences.object_points
        image_points = correspondences.image_points

        if verbose:
            print(f"Running calibration with {len(correspondences)} point correspondences")
            print(f"Image size: {(width, height)}")
            print(f"Calibration flags: {calibration_flags}")

        kwargs = {'flags': calibration_flags}
        if criteria is not None:
            kwargs['criteria'] = criteria

        rms, mtx, dist, rvecs, tvecs = cv2.calibrateCamera(
            object_points,
            image_points,
            (int(width), int(height)),
            camera_matrix,
            dist_coeffs,
            **kwargs
        )

        per_frame_errors = []
        for obj_pts, img_pts, rvec, tvec in zip(object_points, image_points, rvecs, tvecs):
            projected, _ = cv2.projectPoints(obj_pts, rvec, tvec, mtx, dist)
            error = np.linalg.norm(img_pts - projected.reshape(-1, 2)) / np.sqrt(len(img_pts))
            per_frame_errors.append(float(error))

        model = CameraModel(
            intrinsic_matrix=mtx.copy(),
            distortion_coefficients=dist.flatten(),
            rotations=[np.asarray(rvec).reshape(3) for rvec in rvecs],
            translations=[np.asarray(tvec).reshape(3) for tvec in tvecs],
            image_size=(int(width), int(height)),
            rms_error=float(rms),
            per_frame_errors=per_frame_errors,
            distortion_model=distortion_model_from_flags(calibration_flags),
        )

        if verbose:
            print("✅ Calibration successful!")
            print(f"RMS reprojection error: {rms:.4f} pixels")
            print(f"  fx: {model.fx:.2f}, fy: {model.fy:.2f}")
            print(f"  cx: {model.cx:.2f}, cy: {model.cy:.2f}")
            print(f"Distortion coefficients: {model.distortion_coefficients}")
        logger.debug("Solved %d frames, rms=%.4f", len(correspondences), rms)

        return model


__all__ = [
    'CorrespondenceSet',
    'CameraModel',
    'CalibrationEstimator',
    'distortion_model_from_flags',
]
