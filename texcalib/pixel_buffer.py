"""
Pixel Buffer
============

Engine and library neutral description of an 8-bit image.

A PixelBuffer owns one contiguous ``uint8`` array of exactly
``width * height * channels`` bytes. Rows are kept in the order they were
written; the conversion layer decides what that order means (engine textures
store the bottom row first, vision matrices the top row first).

Buffers are reused across frames: ``ensure_capacity`` only reallocates when
the requested shape differs from the current one.
"""

import numpy as np
from typing import Optional, Tuple, Union

from .exceptions import EmptyBufferError, SizeMismatchError, UnsupportedFormatError


SUPPORTED_CHANNELS = (1, 3, 4)
BYTES_PER_CHANNEL = 1


def validate_shape(width: int, height: int, channels: int) -> None:
    """Raise if ``(width, height, channels)`` cannot describe a PixelBuffer."""
    if width is None or height is None or width <= 0 or height <= 0:
        raise EmptyBufferError(f"Invalid image size {width}x{height}. Width and height must be >0.")
    if channels not in SUPPORTED_CHANNELS:
        raise UnsupportedFormatError(
            f"Unsupported channel count: {channels}. Supported: {SUPPORTED_CHANNELS}")


class PixelBuffer:
    """Owned, contiguous 8-bit image storage."""

    def __init__(self, width: int, height: int, channels: int = 4,
                 data: Optional[Union[bytes, bytearray, memoryview, np.ndarray]] = None):
        """
        Create a buffer of the given shape.

        Args:
            width: Image width in pixels (>0)
            height: Image height in pixels (>0)
            channels: Channels per pixel, one of 1, 3 or 4
            data: Optional initial bytes, copied. Must be exactly
                width * height * channels bytes long.
        """
        validate_shape(width, height, channels)
        self._width = width
        self._height = height
        self._channels = channels
        self._data = np.zeros(width * height * channels, dtype=np.uint8)

        if data is not None:
            self.write(data)

    @classmethod
    def from_bytes(cls, data, width: int, height: int, channels: int = 4) -> 'PixelBuffer':
        """Create a buffer holding a copy of ``data``."""
        if data is None or len(data) == 0:
            raise EmptyBufferError("Nothing to convert. Byte buffer is empty.")
        return cls(width, height, channels, data)

    @classmethod
    def from_array(cls, array: np.ndarray) -> 'PixelBuffer':
        """Create a buffer from a ``(h, w)`` or ``(h, w, c)`` uint8 array, rows kept in order."""
        if array is None or array.size == 0:
            raise EmptyBufferError("Nothing to convert. Array is empty.")
        if array.dtype != np.uint8:
            raise UnsupportedFormatError(f"Unsupported element type: {array.dtype}. Expected uint8.")
        height, width = array.shape[:2]
        channels = 1 if array.ndim == 2 else array.shape[2]
        return cls(width, height, channels, array)

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def channels(self) -> int:
        return self._channels

    @property
    def bytes_per_channel(self) -> int:
        return BYTES_PER_CHANNEL

    @property
    def data(self) -> np.ndarray:
        """The owned flat ``uint8`` array."""
        return self._data

    @property
    def shape(self) -> Tuple[int, int, int]:
        """``(width, height, channels)``."""
        return (self._width, self._height, self._channels)

    @property
    def byte_length(self) -> int:
        return self._data.size

    def matches(self, width: int, height: int, channels: int) -> bool:
        return (self._width, self._height, self._channels) == (width, height, channels)

    def ensure_capacity(self, width: int, height: int, channels: int) -> bool:
        """
        Make the buffer hold exactly ``(width, height, channels)``.

        The existing allocation is kept when the shape already matches.

        Returns:
            bool: True if the data array was reallocated
        """
        validate_shape(width, height, channels)
        if self.matches(width, height, channels):
            return False

        self._width = width
        self._height = height
        self._channels = channels
        self._data = np.zeros(width * height * channels, dtype=np.uint8)
        return True

    def write(self, data) -> None:
        """Overwrite the contents with ``data`` of exactly ``byte_length`` bytes."""
        if isinstance(data, np.ndarray):
            if data.dtype != np.uint8:
                raise UnsupportedFormatError(f"Unsupported element type: {data.dtype}. Expected uint8.")
            source = data.reshape(-1)
        else:
            source = np.frombuffer(data, dtype=np.uint8)

        if source.size != self._data.size:
            raise SizeMismatchError(
                f"Byte length {source.size} does not match {self._width}x{self._height}"
                f"x{self._channels} = {self._data.size}")
        np.copyto(self._data, source)

    def as_array(self) -> np.ndarray:
        """View of the data as ``(height, width, channels)``, or ``(height, width)`` for one channel."""
        if self._channels == 1:
            return self._data.reshape(self._height, self._width)
        return self._data.reshape(self._height, self._width, self._channels)

    def tobytes(self) -> bytes:
        return self._data.tobytes()

    def copy(self) -> 'PixelBuffer':
        return PixelBuffer(self._width, self._height, self._channels, self._data)

    def __eq__(self, other) -> bool:
        if not isinstance(other, PixelBuffer):
            return NotImplemented
        return self.shape == other.shape and np.array_equal(self._data, other._data)

    def __repr__(self) -> str:
        return f"PixelBuffer(width={self._width}, height={self._height}, channels={self._channels})"
