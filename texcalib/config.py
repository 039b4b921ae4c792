"""
Pipeline Configuration
======================

Tunable parameters of the detection and calibration stages, kept as
dataclasses and stored as JSON dictionaries:

    {
      "pattern": {"pattern_id": "standard_chessboard",
                  "parameters": {"width": 9, "height": 6, "square_size": 0.026}},
      "detection": {"max_iterations": 30, "epsilon": 0.001, "window_size": [11, 11], ...},
      "calibration": {"distortion_model": "standard", "flags": 0},
      "grayscale_codes": {"3": "COLOR_RGB2GRAY", "4": "COLOR_RGBA2GRAY"}
    }

The luma conversion and the distortion model are configuration: change the
conversion codes or the model name rather than code.
"""

import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

import cv2

from .calibration_patterns import (
    CalibrationPattern, DEFAULT_DETECTION_FLAGS, StandardChessboard,
    default_subpix_criteria, load_pattern_from_json
)


# Distortion models and the calibrateCamera flags selecting them
DISTORTION_MODEL_FLAGS = {
    'standard': 0,
    'rational': cv2.CALIB_RATIONAL_MODEL,
    'thin_prism': cv2.CALIB_RATIONAL_MODEL | cv2.CALIB_THIN_PRISM_MODEL,
    'tilted': cv2.CALIB_RATIONAL_MODEL | cv2.CALIB_THIN_PRISM_MODEL | cv2.CALIB_TILTED_MODEL,
}

DISTORTION_COEFFICIENT_COUNTS = {
    'standard': 5,
    'rational': 8,
    'thin_prism': 12,
    'tilted': 14,
}

DEFAULT_GRAYSCALE_CODE_NAMES = {
    3: 'COLOR_RGB2GRAY',
    4: 'COLOR_RGBA2GRAY',
}


def resolve_grayscale_codes(names: Dict[int, str]) -> Dict[int, int]:
    """Resolve ``cv2.COLOR_*`` names to OpenCV conversion codes, keyed by channel count."""
    codes = {}
    for channels, name in names.items():
        if not hasattr(cv2, name):
            raise ValueError(f"Unknown OpenCV color conversion: {name}")
        codes[int(channels)] = getattr(cv2, name)
    return codes


@dataclass
class DetectionConfig:
    """Chessboard search and sub-pixel refinement parameters."""

    max_iterations: int = 30
    epsilon: float = 0.001
    window_size: Tuple[int, int] = (11, 11)
    zero_zone: Tuple[int, int] = (-1, -1)
    flags: int = DEFAULT_DETECTION_FLAGS

    def __post_init__(self):
        if self.max_iterations <= 0:
            raise ValueError("max_iterations must be positive")
        if self.epsilon <= 0:
            raise ValueError("epsilon must be positive")
        self.window_size = tuple(self.window_size)
        self.zero_zone = tuple(self.zero_zone)

    @property
    def criteria(self) -> Tuple[int, int, float]:
        return default_subpix_criteria(self.max_iterations, self.epsilon)

    def to_json(self) -> Dict[str, Any]:
        return {
            'max_iterations': self.max_iterations,
            'epsilon': self.epsilon,
            'window_size': list(self.window_size),
            'zero_zone': list(self.zero_zone),
            'flags': self.flags,
        }

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> 'DetectionConfig':
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


@dataclass
class CalibrationConfig:
    """Solver options. ``flags`` are OR-ed with the distortion model's flags."""

    distortion_model: str = 'standard'
    flags: int = 0

    def __post_init__(self):
        if self.distortion_model not in DISTORTION_MODEL_FLAGS:
            raise ValueError(f"Unknown distortion model: {self.distortion_model}. "
                             f"Available: {list(DISTORTION_MODEL_FLAGS.keys())}")

    @property
    def calibration_flags(self) -> int:
        return DISTORTION_MODEL_FLAGS[self.distortion_model] | self.flags

    @property
    def distortion_coefficient_count(self) -> int:
        return DISTORTION_COEFFICIENT_COUNTS[self.distortion_model]

    def to_json(self) -> Dict[str, Any]:
        return {'distortion_model': self.distortion_model, 'flags': self.flags}

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> 'CalibrationConfig':
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


@dataclass
class PipelineConfig:
    """Everything the pipeline driver needs besides its frame source and sink."""

    pattern: CalibrationPattern = field(default_factory=StandardChessboard)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    calibration: CalibrationConfig = field(default_factory=CalibrationConfig)
    grayscale_code_names: Dict[int, str] = field(default_factory=lambda: dict(DEFAULT_GRAYSCALE_CODE_NAMES))

    @property
    def grayscale_codes(self) -> Dict[int, int]:
        return resolve_grayscale_codes(self.grayscale_code_names)

    def to_json(self) -> Dict[str, Any]:
        return {
            'pattern': self.pattern.to_json(),
            'detection': self.detection.to_json(),
            'calibration': self.calibration.to_json(),
            'grayscale_codes': {str(k): v for k, v in self.grayscale_code_names.items()},
        }

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> 'PipelineConfig':
        config = cls()
        if 'pattern' in data:
            config.pattern = load_pattern_from_json(data['pattern'])
        if 'detection' in data:
            config.detection = DetectionConfig.from_json(data['detection'])
        if 'calibration' in data:
            config.calibration = CalibrationConfig.from_json(data['calibration'])
        if 'grayscale_codes' in data:
            config.grayscale_code_names = {int(k): v for k, v in data['grayscale_codes'].items()}
            resolve_grayscale_codes(config.grayscale_code_names)
        return config


def load_config(filepath: Optional[str] = None) -> PipelineConfig:
    """Load a pipeline configuration from JSON; defaults when ``filepath`` is None."""
    if filepath is None:
        return PipelineConfig()
    with open(filepath, 'r', encoding='utf-8') as f:
        return PipelineConfig.from_json(json.load(f))


def save_config(config: PipelineConfig, filepath: str) -> None:
    os.makedirs(os.path.dirname(filepath) if os.path.dirname(filepath) else '.', exist_ok=True)
    with open(filepath, 'w', encoding='utf-8') as f:
        json.dump(config.to_json(), f, indent=2)
