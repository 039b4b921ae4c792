"""
Frame Sources and Display Sinks
===============================

The pipeline's two touch points with the engine:

- ``FrameSource.try_get_next_frame()`` hands over the newest captured frame,
  or None when nothing new arrived since the last call. At most one frame is
  held; a frame that is not collected before the next one arrives is dropped.
- ``DisplaySink.present(buffer)`` shows a processed frame.

Frames are PixelBuffers in the engine's native layout (bottom-left origin,
RGBA32 or RGB24). Conversion to matrices happens downstream.

Devices are acquired with ``open()`` and released with ``release()``; the
pipeline driver calls both from ``start()`` / ``stop()``.
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional, Union

import cv2
import numpy as np

from .format_bridge import buffer_to_texture, matrix_to_buffer, texture_to_buffer
from .pixel_buffer import PixelBuffer
from .texture import Texture2D

logger = logging.getLogger(__name__)


class FrameSource(ABC):
    """Non-blocking supplier of captured frames."""

    def open(self) -> None:
        """Acquire the underlying device."""

    def release(self) -> None:
        """Release the underlying device."""

    @abstractmethod
    def try_get_next_frame(self) -> Optional[PixelBuffer]:
        """Return the newest unseen frame, or None."""
        pass


class DisplaySink(ABC):
    """Receiver of processed frames."""

    def open(self) -> None:
        pass

    def release(self) -> None:
        pass

    @abstractmethod
    def present(self, buffer: PixelBuffer) -> None:
        pass


class LatestFrameSource(FrameSource):
    """
    Single-slot mailbox the engine publishes captured frames into.

    Publishing while a frame is still waiting replaces it and counts one
    dropped frame.
    """

    def __init__(self):
        self._pending: Optional[PixelBuffer] = None
        self.dropped_frames = 0
        self.published_frames = 0

    def publish(self, frame: Union[PixelBuffer, Texture2D]) -> None:
        """Store a copy of ``frame`` as the newest frame."""
        if isinstance(frame, Texture2D):
            frame = texture_to_buffer(frame)
        else:
            frame = frame.copy()

        if self._pending is not None:
            self.dropped_frames += 1
            logger.debug("Dropping unprocessed frame (%d dropped so far)", self.dropped_frames)
        self._pending = frame
        self.published_frames += 1

    @property
    def has_frame(self) -> bool:
        return self._pending is not None

    def try_get_next_frame(self) -> Optional[PixelBuffer]:
        frame, self._pending = self._pending, None
        return frame

    def release(self) -> None:
        self._pending = None


class SurfaceFrameSource(FrameSource):
    """Reads a texture the engine renders into, once per ``apply()``."""

    def __init__(self, texture: Texture2D):
        self.texture = texture
        self._last_version: Optional[int] = None

    def try_get_next_frame(self) -> Optional[PixelBuffer]:
        if self.texture.version == self._last_version:
            return None
        self._last_version = self.texture.version
        return texture_to_buffer(self.texture)


class VideoCaptureFrameSource(FrameSource):
    """
    Camera frames from an OpenCV ``VideoCapture``.

    Frames arrive top-left origin in BGR order and are handed out as RGBA32
    buffers in texture row order. ``read()`` paces the loop at the device's
    frame rate.
    """

    def __init__(self, device: Union[int, str] = 0,
                 capture_factory: Callable = cv2.VideoCapture):
        self.device = device
        self.capture_factory = capture_factory
        self._capture = None
        self.failed_reads = 0

    @property
    def is_open(self) -> bool:
        return self._capture is not None and self._capture.isOpened()

    def open(self) -> None:
        if self._capture is None:
            self._capture = self.capture_factory(self.device)
        if not self._capture.isOpened():
            logger.warning("Camera %s is not ready", self.device)

    def release(self) -> None:
        if self._capture is not None:
            self._capture.release()
            self._capture = None

    def try_get_next_frame(self) -> Optional[PixelBuffer]:
        if not self.is_open:
            return None

        ok, frame = self._capture.read()
        if not ok or frame is None or frame.size == 0:
            self.failed_reads += 1
            logger.warning("No frame from camera %s (%d failed reads)", self.device, self.failed_reads)
            return None

        return matrix_to_buffer(bgr_to_rgba(frame))


def bgr_to_rgba(frame: np.ndarray) -> np.ndarray:
    """Convert an OpenCV gray/BGR/BGRA frame to RGBA."""
    if frame.ndim == 2 or frame.shape[2] == 1:
        return cv2.cvtColor(frame, cv2.COLOR_GRAY2RGBA)
    if frame.shape[2] == 4:
        return cv2.cvtColor(frame, cv2.COLOR_BGRA2RGBA)
    return cv2.cvtColor(frame, cv2.COLOR_BGR2RGBA)


class TextureDisplaySink(DisplaySink):
    """Uploads presented frames into a texture the engine draws."""

    def __init__(self, texture: Optional[Texture2D] = None):
        self.texture = texture or Texture2D(1, 1)
        self.frames_presented = 0

    def present(self, buffer: PixelBuffer) -> None:
        buffer_to_texture(buffer, self.texture)
        self.frames_presented += 1
