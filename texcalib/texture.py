"""
Engine Texture Surface
======================

In-process model of the display engine's 2D texture: a width, a height, a
texture format and the raw pixel bytes, stored bottom row first.

The API mirrors what the engine offers a script:

- ``resize()`` reallocates storage for a new size/format
- ``load_raw_texture_data()`` / ``get_raw_texture_data()`` move raw bytes
- ``get_pixels32()`` / ``set_pixels32()`` move packed 32-bit RGBA records
- ``apply()`` publishes pending changes and bumps ``version``

Packed pixel arrays are ``numpy`` arrays with the ``COLOR32_DTYPE`` record
type (one byte each for r, g, b, a).
"""

from enum import Enum
from typing import Optional

import numpy as np

from .exceptions import EmptyBufferError, SizeMismatchError, UnsupportedFormatError


COLOR32_DTYPE = np.dtype([('r', np.uint8), ('g', np.uint8), ('b', np.uint8), ('a', np.uint8)])


class TextureFormat(Enum):
    """Texture pixel formats known to the engine, valued by bytes per pixel."""

    ALPHA8 = ('Alpha8', 1)
    RGB565 = ('RGB565', 2)
    RGB24 = ('RGB24', 3)
    RGBA32 = ('RGBA32', 4)
    ARGB32 = ('ARGB32', 4)
    BGRA32 = ('BGRA32', 4)

    @property
    def bytes_per_pixel(self) -> int:
        return self.value[1]

    def __str__(self) -> str:
        return self.value[0]


def make_color32_array(length: int) -> np.ndarray:
    """Allocate a zeroed packed RGBA array."""
    return np.zeros(length, dtype=COLOR32_DTYPE)


class Texture2D:
    """Engine-side 2D texture with bottom-left origin."""

    def __init__(self, width: int, height: int, texture_format: TextureFormat = TextureFormat.RGBA32):
        self._width = 0
        self._height = 0
        self._format = texture_format
        self._data = np.zeros(0, dtype=np.uint8)
        self.version = 0
        self.resize(width, height, texture_format)

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def format(self) -> TextureFormat:
        return self._format

    @property
    def data(self) -> np.ndarray:
        """The texture's own flat byte storage."""
        return self._data

    @property
    def byte_length(self) -> int:
        return self._data.size

    def resize(self, width: int, height: int, texture_format: Optional[TextureFormat] = None) -> bool:
        """
        Resize the texture, reallocating only if size or format change.

        Returns:
            bool: True if storage was reallocated
        """
        if width <= 0 or height <= 0:
            raise EmptyBufferError(f"Invalid texture size {width}x{height}. Width and height must be >0.")
        texture_format = texture_format or self._format

        if (width, height, texture_format) == (self._width, self._height, self._format) and self._data.size:
            return False

        self._width = width
        self._height = height
        self._format = texture_format
        self._data = np.zeros(width * height * texture_format.bytes_per_pixel, dtype=np.uint8)
        return True

    def load_raw_texture_data(self, data) -> None:
        """Replace the texture bytes. Length must match the current size and format."""
        if isinstance(data, np.ndarray):
            source = np.ascontiguousarray(data).reshape(-1).view(np.uint8)
        else:
            source = np.frombuffer(data, dtype=np.uint8)
        if source.size == 0:
            raise EmptyBufferError("Received empty texture data.")
        if source.size != self._data.size:
            raise SizeMismatchError(
                f"Texture data length {source.size} does not match {self._width}x{self._height} "
                f"{self._format} ({self._data.size} bytes)")
        np.copyto(self._data, source)

    def get_raw_texture_data(self) -> bytes:
        return self._data.tobytes()

    def get_pixels32(self) -> np.ndarray:
        """Return the pixels as a packed RGBA array, bottom row first."""
        count = self._width * self._height
        if self._format == TextureFormat.RGBA32:
            return self._data.view(COLOR32_DTYPE).copy()
        if self._format == TextureFormat.RGB24:
            colors = make_color32_array(count)
            rgb = self._data.reshape(count, 3)
            colors['r'], colors['g'], colors['b'] = rgb[:, 0], rgb[:, 1], rgb[:, 2]
            colors['a'] = 255
            return colors
        raise UnsupportedFormatError(f"Unsupported TextureFormat: {self._format}")

    def set_pixels32(self, colors: np.ndarray) -> None:
        """Overwrite the pixels from a packed RGBA array of ``width * height`` records."""
        if colors is None or len(colors) == 0:
            raise EmptyBufferError("Received empty color array.")
        if len(colors) != self._width * self._height:
            raise SizeMismatchError(
                f"Color array length {len(colors)} does not match texture size "
                f"{self._width}x{self._height}")

        if self._format == TextureFormat.RGBA32:
            np.copyto(self._data, np.ascontiguousarray(colors).view(np.uint8))
        elif self._format == TextureFormat.RGB24:
            rgb = self._data.reshape(-1, 3)
            rgb[:, 0], rgb[:, 1], rgb[:, 2] = colors['r'], colors['g'], colors['b']
        else:
            raise UnsupportedFormatError(f"Unsupported TextureFormat: {self._format}")

    def apply(self) -> None:
        """Publish pending pixel changes."""
        self.version += 1

    def __repr__(self) -> str:
        return f"Texture2D({self._width}x{self._height}, {self._format})"
