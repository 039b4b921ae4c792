"""
Texture Calibration Toolkit - Core Module
=========================================

Bridges a display engine's texture buffers and OpenCV matrices so camera
frames can be analyzed and redisplayed every frame:

- Pixel buffer conversion between textures, matrices, packed RGBA arrays
  and raw bytes, with the vertical flip between the two origins
- Chessboard detection with sub-pixel corner refinement
- Camera intrinsic/extrinsic calibration from accumulated detections
- A per-frame pipeline driver tying capture, analysis and display together
"""

from .exceptions import (
    TextureCalibrationError,
    EmptyBufferError,
    UnsupportedFormatError,
    SizeMismatchError,
    InsufficientDataError
)
from .pixel_buffer import PixelBuffer
from .texture import Texture2D, TextureFormat, COLOR32_DTYPE
from .format_bridge import FormatBridge, TargetFormat
from .calibration_patterns import StandardChessboard, load_pattern_from_json
from .config import PipelineConfig, DetectionConfig, CalibrationConfig, load_config, save_config
from .pattern_detector import PatternDetector
from .intrinsic_calibration import CalibrationEstimator, CameraModel, CorrespondenceSet
from .frame_source import (
    FrameSource,
    DisplaySink,
    LatestFrameSource,
    SurfaceFrameSource,
    VideoCaptureFrameSource,
    TextureDisplaySink
)
from .pipeline import CalibrationPipeline, PipelineState, TickResult

__version__ = "1.0.0"

__all__ = [
    'TextureCalibrationError',
    'EmptyBufferError',
    'UnsupportedFormatError',
    'SizeMismatchError',
    'InsufficientDataError',
    'PixelBuffer',
    'Texture2D',
    'TextureFormat',
    'COLOR32_DTYPE',
    'FormatBridge',
    'TargetFormat',
    'StandardChessboard',
    'load_pattern_from_json',
    'PipelineConfig',
    'DetectionConfig',
    'CalibrationConfig',
    'load_config',
    'save_config',
    'PatternDetector',
    'CalibrationEstimator',
    'CameraModel',
    'CorrespondenceSet',
    'FrameSource',
    'DisplaySink',
    'LatestFrameSource',
    'SurfaceFrameSource',
    'VideoCaptureFrameSource',
    'TextureDisplaySink',
    'CalibrationPipeline',
    'PipelineState',
    'TickResult',
]
