"""
Format Bridge
=============

Conversions between the engine's pixel representations and OpenCV matrices.

Representations handled:
- ``Texture2D``: engine texture, RGB24 or RGBA32, bottom-left origin
- ``PixelBuffer``: neutral owned bytes, kept in texture row order
- vision matrix: ``numpy.ndarray`` uint8 ``(h, w, c)`` or ``(h, w)``, top-left origin
- packed colors: ``numpy`` array of ``COLOR32_DTYPE`` RGBA records, texture row order
- raw bytes: ``bytes`` / ``bytearray`` in texture row order

Every conversion that crosses between texture row order and matrix row order
goes through exactly one of ``_flip_into_matrix`` / ``_flip_into_rows``, so a
texture -> matrix -> texture round trip restores the original bytes.

Destinations are reused when they already have the required shape and
reallocated otherwise. Inputs are validated before anything is written.
"""

import logging
from enum import Enum
from typing import Dict, Optional, Tuple

import cv2
import numpy as np

from .exceptions import EmptyBufferError, SizeMismatchError, UnsupportedFormatError
from .pixel_buffer import PixelBuffer, SUPPORTED_CHANNELS, validate_shape
from .texture import COLOR32_DTYPE, Texture2D, TextureFormat

logger = logging.getLogger(__name__)


TEXTURE_FORMAT_CHANNELS = {
    TextureFormat.RGB24: 3,
    TextureFormat.RGBA32: 4,
}
CHANNEL_TEXTURE_FORMATS = {channels: fmt for fmt, channels in TEXTURE_FORMAT_CHANNELS.items()}

DEFAULT_GRAYSCALE_CODES = {
    3: cv2.COLOR_RGB2GRAY,
    4: cv2.COLOR_RGBA2GRAY,
}


class TargetFormat(Enum):
    """Representation requested from ``FormatBridge.convert``."""

    TEXTURE = 'texture'
    BUFFER = 'buffer'
    MATRIX = 'matrix'
    GRAYSCALE = 'grayscale'
    COLORS = 'colors'
    BYTES = 'bytes'


# Validation helpers

def texture_channels(texture: Texture2D) -> int:
    """Channel count of a convertible texture."""
    if texture is None:
        raise EmptyBufferError("Nothing to convert. Texture2D is None.")
    if texture.width <= 0 or texture.height <= 0:
        raise EmptyBufferError("Invalid Texture2D size. Width and height must be >0.")
    if texture.format not in TEXTURE_FORMAT_CHANNELS:
        raise UnsupportedFormatError(f"Unsupported TextureFormat: {texture.format}")
    return TEXTURE_FORMAT_CHANNELS[texture.format]


def matrix_shape(matrix: np.ndarray) -> Tuple[int, int, int]:
    """Return ``(width, height, channels)`` of a valid 8-bit matrix."""
    if matrix is None or matrix.size == 0:
        raise EmptyBufferError("Nothing to convert. Matrix is empty.")
    if matrix.dtype != np.uint8:
        raise UnsupportedFormatError(f"Unsupported matrix type: {matrix.dtype}. Expected uint8.")
    if matrix.ndim == 2:
        return matrix.shape[1], matrix.shape[0], 1
    if matrix.ndim == 3 and matrix.shape[2] in SUPPORTED_CHANNELS:
        return matrix.shape[1], matrix.shape[0], matrix.shape[2]
    raise UnsupportedFormatError(f"Unsupported matrix shape: {matrix.shape}")


def _validate_colors(colors: np.ndarray) -> None:
    if colors is None or len(colors) == 0:
        raise EmptyBufferError("Received empty color array.")
    if colors.dtype != COLOR32_DTYPE:
        raise UnsupportedFormatError(f"Unsupported color record type: {colors.dtype}")


def _as_rows(flat: np.ndarray, width: int, height: int, channels: int) -> np.ndarray:
    if channels == 1:
        return flat.reshape(height, width)
    return flat.reshape(height, width, channels)


def _prepare_matrix(matrix: Optional[np.ndarray], width: int, height: int, channels: int) -> np.ndarray:
    """Reuse ``matrix`` if it already has the required shape, else allocate a new one."""
    shape = (height, width) if channels == 1 else (height, width, channels)
    if (matrix is not None and matrix.shape == shape and matrix.dtype == np.uint8
            and matrix.flags['C_CONTIGUOUS'] and matrix.flags['WRITEABLE']):
        return matrix
    if matrix is not None:
        logger.debug("Reallocating matrix %s -> %s", matrix.shape, shape)
    return np.empty(shape, dtype=np.uint8)


# Orientation: the only two places rows get mirrored

def _flip_into_matrix(rows: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """Copy bottom-left-origin ``rows`` into top-left-origin ``matrix``."""
    np.copyto(matrix, rows[::-1])
    return matrix


def _flip_into_rows(matrix: np.ndarray, rows: np.ndarray) -> np.ndarray:
    """Copy top-left-origin ``matrix`` into bottom-left-origin ``rows``."""
    np.copyto(rows, matrix[::-1])
    return rows


# Texture <-> PixelBuffer (same row order)

def texture_to_buffer(texture: Texture2D, buffer: Optional[PixelBuffer] = None) -> PixelBuffer:
    """Copy a texture's pixels into a PixelBuffer."""
    channels = texture_channels(texture)
    if buffer is None:
        return PixelBuffer(texture.width, texture.height, channels, texture.data)
    buffer.ensure_capacity(texture.width, texture.height, channels)
    buffer.write(texture.data)
    return buffer


def buffer_to_texture(buffer: PixelBuffer, texture: Optional[Texture2D] = None) -> Texture2D:
    """Upload a 3 or 4 channel PixelBuffer into a texture, resizing it if needed."""
    if buffer is None:
        raise EmptyBufferError("Nothing to convert. PixelBuffer is None.")
    if buffer.channels not in CHANNEL_TEXTURE_FORMATS:
        raise UnsupportedFormatError(f"No texture format for {buffer.channels}-channel buffers.")
    texture_format = CHANNEL_TEXTURE_FORMATS[buffer.channels]

    if texture is None:
        texture = Texture2D(buffer.width, buffer.height, texture_format)
    else:
        texture.resize(buffer.width, buffer.height, texture_format)
    texture.load_raw_texture_data(buffer.data)
    texture.apply()
    return texture


# PixelBuffer <-> matrix (flip)

def buffer_to_matrix(buffer: PixelBuffer, matrix: Optional[np.ndarray] = None) -> np.ndarray:
    """Convert a PixelBuffer to a top-left-origin matrix."""
    if buffer is None:
        raise EmptyBufferError("Nothing to convert. PixelBuffer is None.")
    width, height, channels = buffer.shape
    matrix = _prepare_matrix(matrix, width, height, channels)
    return _flip_into_matrix(buffer.as_array(), matrix)


def matrix_to_buffer(matrix: np.ndarray, buffer: Optional[PixelBuffer] = None) -> PixelBuffer:
    """Convert a top-left-origin matrix to a PixelBuffer in texture row order."""
    width, height, channels = matrix_shape(matrix)
    if matrix.ndim == 3 and channels == 1:
        matrix = matrix[:, :, 0]
    if buffer is None:
        buffer = PixelBuffer(width, height, channels)
    else:
        buffer.ensure_capacity(width, height, channels)
    _flip_into_rows(matrix, buffer.as_array())
    return buffer


# Texture <-> matrix (flip)

def texture_to_matrix(texture: Texture2D, matrix: Optional[np.ndarray] = None) -> np.ndarray:
    """
    Convert a texture to a matrix.

    RGB24 gives a 3-channel matrix, RGBA32 a 4-channel one. ``matrix`` is
    reused when it already matches the texture.
    """
    channels = texture_channels(texture)
    matrix = _prepare_matrix(matrix, texture.width, texture.height, channels)
    rows = _as_rows(texture.data, texture.width, texture.height, channels)
    return _flip_into_matrix(rows, matrix)


def matrix_to_texture(matrix: np.ndarray, texture: Optional[Texture2D] = None) -> Texture2D:
    """
    Convert a 3 or 4 channel matrix to a texture.

    The texture is resized to the matrix size and to RGB24 / RGBA32. The
    source matrix is left untouched.
    """
    width, height, channels = matrix_shape(matrix)
    if channels not in CHANNEL_TEXTURE_FORMATS:
        raise UnsupportedFormatError(f"Unsupported matrix channel count for a texture: {channels}")

    texture_format = CHANNEL_TEXTURE_FORMATS[channels]
    if texture is None:
        texture = Texture2D(width, height, texture_format)
    else:
        texture.resize(width, height, texture_format)

    _flip_into_rows(matrix, _as_rows(texture.data, width, height, channels))
    texture.apply()
    return texture


# Packed colors

def colors_to_buffer(colors: np.ndarray, width: Optional[int] = None, height: Optional[int] = None,
                     buffer: Optional[PixelBuffer] = None) -> PixelBuffer:
    """
    Reinterpret packed RGBA records as a 4-channel PixelBuffer.

    Without ``width``/``height`` the destination buffer's size is used, and the
    colors must fill it exactly.
    """
    _validate_colors(colors)
    if width is None or height is None:
        if buffer is None:
            raise SizeMismatchError("Width and height are required without a destination buffer.")
        if len(colors) * 4 != buffer.byte_length:
            raise SizeMismatchError(
                f"Color array of {len(colors)} pixels ({len(colors) * 4} bytes) does not fit "
                f"buffer of {buffer.byte_length} bytes")
        width, height = buffer.width, buffer.height

    validate_shape(width, height, 4)
    if len(colors) != width * height:
        raise SizeMismatchError(f"Color array length {len(colors)} does not match {width}x{height}")

    raw = np.ascontiguousarray(colors).view(np.uint8)
    if buffer is None:
        return PixelBuffer(width, height, 4, raw)
    buffer.ensure_capacity(width, height, 4)
    buffer.write(raw)
    return buffer


def buffer_to_colors(buffer: PixelBuffer) -> np.ndarray:
    """Reinterpret a 4-channel PixelBuffer as packed RGBA records (copy)."""
    if buffer is None:
        raise EmptyBufferError("Nothing to convert. PixelBuffer is None.")
    if buffer.channels != 4:
        raise UnsupportedFormatError(f"Packed colors need 4 channels, buffer has {buffer.channels}")
    return buffer.data.view(COLOR32_DTYPE).copy()


def colors_to_matrix(colors: np.ndarray, width: int, height: int,
                     matrix: Optional[np.ndarray] = None) -> np.ndarray:
    """Convert packed colors (texture row order) to a 4-channel matrix."""
    _validate_colors(colors)
    validate_shape(width, height, 4)
    if len(colors) != width * height:
        raise SizeMismatchError(f"Color array length {len(colors)} does not match {width}x{height}")

    matrix = _prepare_matrix(matrix, width, height, 4)
    rows = np.ascontiguousarray(colors).view(np.uint8).reshape(height, width, 4)
    return _flip_into_matrix(rows, matrix)


def matrix_to_colors(matrix: np.ndarray) -> np.ndarray:
    """Convert a 3 or 4 channel matrix to packed colors, via a scratch texture."""
    scratch = matrix_to_texture(matrix, Texture2D(1, 1))
    return scratch.get_pixels32()


def texture_to_colors(texture: Texture2D) -> np.ndarray:
    texture_channels(texture)
    return texture.get_pixels32()


def colors_to_texture(colors: np.ndarray, texture: Texture2D,
                      width: Optional[int] = None, height: Optional[int] = None) -> Texture2D:
    """Write packed colors into ``texture``, resizing it to RGBA32 ``width`` x ``height``."""
    _validate_colors(colors)
    width = texture.width if width is None else width
    height = texture.height if height is None else height
    if len(colors) != width * height:
        raise SizeMismatchError(f"Color array length {len(colors)} does not match {width}x{height}")

    texture.resize(width, height, TextureFormat.RGBA32)
    texture.set_pixels32(colors)
    texture.apply()
    return texture


# Raw bytes

def bytes_to_buffer(data, width: int, height: int, channels: int = 4,
                    buffer: Optional[PixelBuffer] = None) -> PixelBuffer:
    """Copy raw bytes into a PixelBuffer of the given shape."""
    if data is None or len(data) == 0:
        raise EmptyBufferError("Nothing to convert. Byte buffer is empty.")
    validate_shape(width, height, channels)
    if len(data) != width * height * channels:
        raise SizeMismatchError(
            f"Byte length {len(data)} does not match {width}x{height}x{channels}")
    if buffer is None:
        return PixelBuffer(width, height, channels, data)
    buffer.ensure_capacity(width, height, channels)
    buffer.write(data)
    return buffer


def buffer_to_bytes(buffer: PixelBuffer) -> bytes:
    if buffer is None:
        raise EmptyBufferError("Nothing to convert. PixelBuffer is None.")
    return buffer.tobytes()


def bytes_to_texture(data, texture: Texture2D,
                     width: Optional[int] = None, height: Optional[int] = None) -> Texture2D:
    """Load raw RGBA32 bytes into ``texture``, resizing it to ``width`` x ``height``."""
    if data is None or len(data) == 0:
        raise EmptyBufferError("Nothing to convert. Byte buffer is empty.")
    width = texture.width if width is None else width
    height = texture.height if height is None else height
    if len(data) != width * height * 4:
        raise SizeMismatchError(f"Byte length {len(data)} does not match {width}x{height} RGBA32")

    texture.resize(width, height, TextureFormat.RGBA32)
    texture.load_raw_texture_data(data)
    texture.apply()
    return texture


# Grayscale

def to_grayscale(matrix: np.ndarray, gray: Optional[np.ndarray] = None,
                 codes: Optional[Dict[int, int]] = None) -> np.ndarray:
    """
    Convert an RGB/RGBA matrix to a single-channel luma matrix.

    The luma formula is OpenCV's; ``codes`` maps channel counts to
    ``cv2.COLOR_*`` conversion codes. One-channel input is returned as is.
    """
    width, height, channels = matrix_shape(matrix)
    if channels == 1:
        return matrix if matrix.ndim == 2 else matrix[:, :, 0]

    codes = codes or DEFAULT_GRAYSCALE_CODES
    if channels not in codes:
        raise UnsupportedFormatError(f"No grayscale conversion for {channels}-channel matrices")

    gray = _prepare_matrix(gray, width, height, 1)
    cv2.cvtColor(matrix, codes[channels], dst=gray)
    return gray


class FormatBridge:
    """
    Dispatching front end over the conversion functions.

    ``convert(source, target)`` picks the conversion from the source's type
    and the requested ``TargetFormat``. When source and target are the same
    representation the result is an independent copy (or the destination,
    overwritten).
    """

    def __init__(self, grayscale_codes: Optional[Dict[int, int]] = None):
        self.grayscale_codes = dict(grayscale_codes or DEFAULT_GRAYSCALE_CODES)

    def convert(self, source, target: TargetFormat, destination=None,
                width: Optional[int] = None, height: Optional[int] = None, channels: int = 4):
        """
        Convert ``source`` to the ``target`` representation.

        Args:
            source: Texture2D, PixelBuffer, uint8 matrix, COLOR32 array or bytes
            target: Requested representation
            destination: Optional object of the target type to reuse
            width, height, channels: Shape for sources that do not carry one
                (raw bytes, packed colors)

        Returns:
            The converted representation
        """
        if source is None:
            raise EmptyBufferError("Nothing to convert. Source is None.")

        if not isinstance(target, TargetFormat):
            raise UnsupportedFormatError(f"Unknown target format: {target}")

        is_matrix = isinstance(source, np.ndarray) and source.dtype != COLOR32_DTYPE
        if is_matrix:
            if target == TargetFormat.TEXTURE:
                return matrix_to_texture(source, destination)
            if target == TargetFormat.MATRIX:
                matrix = _prepare_matrix(destination, *matrix_shape(source))
                np.copyto(matrix, source.reshape(matrix.shape))
                return matrix
            if target == TargetFormat.GRAYSCALE:
                return to_grayscale(source, destination, self.grayscale_codes)
        elif (isinstance(source, np.ndarray) and target == TargetFormat.TEXTURE
                and isinstance(destination, Texture2D)):
            # Packed colors take their size from the destination texture
            return colors_to_texture(source, destination, width, height)

        buffer = self._to_buffer(source, width, height, channels,
                                 destination if target == TargetFormat.BUFFER else None)
        if target == TargetFormat.BUFFER:
            return buffer
        if target == TargetFormat.TEXTURE:
            return buffer_to_texture(buffer, destination)
        if target == TargetFormat.MATRIX:
            return buffer_to_matrix(buffer, destination)
        if target == TargetFormat.GRAYSCALE:
            return to_grayscale(buffer_to_matrix(buffer), destination, self.grayscale_codes)
        if target == TargetFormat.COLORS:
            if buffer.channels == 4:
                return buffer_to_colors(buffer)
            return texture_to_colors(buffer_to_texture(buffer))
        if target == TargetFormat.BYTES:
            return buffer_to_bytes(buffer)
        raise UnsupportedFormatError(f"Unknown target format: {target}")

    def _to_buffer(self, source, width, height, channels, destination) -> PixelBuffer:
        """Normalize any source into a PixelBuffer in texture row order."""
        if isinstance(source, PixelBuffer):
            if destination is None:
                return source.copy()
            destination.ensure_capacity(*source.shape)
            destination.write(source.data)
            return destination
        if isinstance(source, Texture2D):
            return texture_to_buffer(source, destination)
        if isinstance(source, np.ndarray):
            if source.dtype == COLOR32_DTYPE:
                return colors_to_buffer(source, width, height, destination)
            return matrix_to_buffer(source, destination)
        if isinstance(source, (bytes, bytearray, memoryview)):
            if width is None or height is None:
                raise SizeMismatchError("Width and height are required to convert raw bytes.")
            return bytes_to_buffer(source, width, height, channels, destination)
        raise UnsupportedFormatError(f"Unsupported source type: {type(source).__name__}")
