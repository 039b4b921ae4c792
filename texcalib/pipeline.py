"""
Calibration Pipeline Driver
===========================

Runs one captured frame per engine update through:

    FrameSource -> matrix -> grayscale -> PatternDetector
        -> (pattern found) CorrespondenceSet + CalibrationEstimator
        -> overlay -> PixelBuffer -> DisplaySink

States cycle ``CAPTURING -> DETECTING -> (CALIBRATING) -> DISPLAYING ->
CAPTURING`` while started, and rest in ``IDLE`` otherwise. Every frame that
arrives is presented, with or without an overlay; conversion or solver
failures are logged and only affect the current frame.

Usage:
    with CalibrationPipeline(source, sink, config) as pipeline:
        while running:
            pipeline.tick()
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import cv2
import numpy as np

from .config import PipelineConfig
from .exceptions import TextureCalibrationError
from .format_bridge import buffer_to_matrix, matrix_to_buffer, to_grayscale
from .frame_source import DisplaySink, FrameSource
from .intrinsic_calibration import CalibrationEstimator, CameraModel, CorrespondenceSet
from .pattern_detector import PatternDetector
from .pixel_buffer import PixelBuffer

logger = logging.getLogger(__name__)


class PipelineState(Enum):
    IDLE = 'idle'
    CAPTURING = 'capturing'
    DETECTING = 'detecting'
    CALIBRATING = 'calibrating'
    DISPLAYING = 'displaying'


@dataclass
class TickResult:
    """What one ``tick()`` did."""

    frame_processed: bool = False
    detected: bool = False
    points: Optional[np.ndarray] = None
    camera_model: Optional[CameraModel] = None
    error: Optional[str] = None


class CalibrationPipeline:
    """
    Single-threaded driver owning the correspondence set.

    Buffers used for conversion are kept between ticks and only reallocated
    when the frame size or format changes. Sinks must copy what they are
    given, since the output buffer is reused on the next tick.
    """

    def __init__(self,
                 frame_source: FrameSource,
                 display_sink: DisplaySink,
                 config: Optional[PipelineConfig] = None,
                 detector: Optional[PatternDetector] = None,
                 estimator: Optional[CalibrationEstimator] = None):
        self.frame_source = frame_source
        self.display_sink = display_sink
        self.config = config or PipelineConfig()
        self.grayscale_codes = self.config.grayscale_codes
        self.detector = detector or PatternDetector(self.config.detection, self.grayscale_codes)
        self.estimator = estimator or CalibrationEstimator(self.config.calibration)

        self.state = PipelineState.IDLE
        self.correspondences = CorrespondenceSet()
        self.camera_model: Optional[CameraModel] = None
        self.frames_processed = 0

        self._matrix: Optional[np.ndarray] = None
        self._gray: Optional[np.ndarray] = None
        self._output: Optional[PixelBuffer] = None

    @property
    def pattern(self):
        return self.config.pattern

    def start(self) -> None:
        """Acquire the frame source and display sink."""
        if self.state != PipelineState.IDLE:
            return
        self.frame_source.open()
        self.display_sink.open()
        self.state = PipelineState.CAPTURING
        logger.info("Pipeline started, looking for %r", self.pattern)

    def stop(self) -> None:
        """Release the frame source and display sink."""
        if self.state == PipelineState.IDLE:
            return
        self.frame_source.release()
        self.display_sink.release()
        self.state = PipelineState.IDLE
        logger.info("Pipeline stopped after %d frames, %d detections",
                    self.frames_processed, len(self.correspondences))

    def __enter__(self) -> 'CalibrationPipeline':
        self.start()
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.stop()

    def reset(self) -> None:
        """Drop all collected correspondences and the current camera model."""
        self.correspondences.clear()
        self.camera_model = None

    def tick(self) -> TickResult:
        """
        Process at most one frame end to end.

        Returns:
            TickResult; ``frame_processed`` is False when no new frame was available
        """
        if self.state == PipelineState.IDLE:
            raise RuntimeError("Pipeline is not started")

        self.state = PipelineState.CAPTURING
        frame = self.frame_source.try_get_next_frame()
        if frame is None:
            return TickResult()

        result = TickResult(frame_processed=True)
        self.frames_processed += 1

        self.state = PipelineState.DETECTING
        try:
            self._matrix = buffer_to_matrix(frame, self._matrix)
            self._gray = to_grayscale(self._matrix, self._gray, self.grayscale_codes)
        except TextureCalibrationError as e:
            logger.warning("Frame conversion failed: %s", e)
            result.error = str(e)
            self._present(frame)
            return result

        try:
            points = self.detector.detect(self._gray, self.pattern)
        except (cv2.error, TextureCalibrationError) as e:
            logger.warning("Detection failed: %s", e)
            result.error = str(e)
            points = None
        if points is not None:
            result.detected = True
            result.points = points
            self.state = PipelineState.CALIBRATING
            self._calibrate(points, result)
            self.detector.draw(self._matrix, self.pattern, points)

        self._output = matrix_to_buffer(self._matrix, self._output)
        self._present(self._output)
        return result

    def _calibrate(self, points: np.ndarray, result: TickResult) -> None:
        self.correspondences.add_detection(self.pattern, points)
        image_size = (self._gray.shape[1], self._gray.shape[0])
        try:
            model = self.estimator.solve(self.correspondences, image_size)
        except (cv2.error, TextureCalibrationError) as e:
            logger.warning("Calibration failed with %d frames: %s", len(self.correspondences), e)
            result.error = str(e)
            return

        self.camera_model = model
        result.camera_model = model
        logger.info("Calibration from %d frames:\n%s", len(self.correspondences), model.format_report())

    def _present(self, buffer: PixelBuffer) -> None:
        self.state = PipelineState.DISPLAYING
        try:
            self.display_sink.present(buffer)
        except TextureCalibrationError as e:
            logger.warning("Could not present frame: %s", e)
        finally:
            self.state = PipelineState.CAPTURING
