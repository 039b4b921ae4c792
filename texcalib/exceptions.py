"""
Error Kinds for the Texture Calibration Toolkit
===============================================

Every failure of the conversion layer and the calibration solver is raised as
one of the exceptions below. They all derive from ``ValueError`` so callers
that only care about "bad input" can keep catching that.

Pattern detection misses are not errors: ``PatternDetector.detect`` returns
``None`` for a frame without a chessboard.
"""


class TextureCalibrationError(ValueError):
    """Base class for all toolkit errors."""


class EmptyBufferError(TextureCalibrationError):
    """Image data is missing, zero-sized, or has non-positive dimensions."""


class UnsupportedFormatError(TextureCalibrationError):
    """Channel count or texture format outside the supported set."""


class SizeMismatchError(TextureCalibrationError):
    """Byte length inconsistent with the declared image dimensions."""


class InsufficientDataError(TextureCalibrationError):
    """Calibration attempted without any point correspondences."""
