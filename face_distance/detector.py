"""
Detector: the face detection capability behind the detection gate.

Public contract:
    Detector.detect(frame: Frame) -> DetectionResult

The result carries detector-space boxes (model.input_size coordinates)
and the frame's original size. Mapping to frame or display space is
done downstream by scaler.py and display.py.

Constraints:
    - Input must be a BGR8 Frame (see frame.to_detector_format).
    - Not safe to call concurrently. DetectionGate serializes calls.

Non-goals:
    - No file reading, camera access, or I/O of any kind.
    - No tracking or temporal state.
"""

import logging
from typing import List, Optional

import numpy as np

from face_distance.config import AppConfig, load_config
from face_distance.detection import DetectionResult
from face_distance.frame import DETECTOR_PIXEL_FORMAT, Frame
from face_distance.geometry import FaceBoundingBox, Size
from face_distance.model_loader import is_onnx, load_model
from face_distance.preprocessor import preprocess
from face_distance.postprocessor import postprocess, postprocess_ultraface

logger = logging.getLogger(__name__)


class Detector:
    """Face detector using an OpenCV DNN network.

    Usage:
        detector = Detector()                      # Uses safe defaults
        detector = Detector(config=my_config)      # Custom config
        result = detector.detect(frame)            # BGR8 Frame

    The constructor loads the model once. Subsequent detect() calls
    reuse the loaded network.
    """

    def __init__(self, config: Optional[AppConfig] = None) -> None:
        """Initialize the detector and load the model.

        Raises:
            FileNotFoundError: If model files are missing.
            RuntimeError: If the requested backend is unavailable.
            ValueError: If configuration values are invalid.
        """
        if config is None:
            config = load_config()

        self._config = config
        self._net = load_model(config.model)
        self._ultraface = is_onnx(config.model)

        logger.info(
            "Detector initialized (backend=%s, input_size=%s, confidence_threshold=%.2f)",
            config.model.backend,
            config.model.input_size,
            config.detection.confidence_threshold,
        )

    @property
    def input_size(self) -> Size:
        """Detector input resolution (width, height)."""
        return Size(*self._config.model.input_size)

    @property
    def config(self) -> AppConfig:
        """Return the active configuration (read-only)."""
        return self._config

    def detect(self, frame: Frame) -> DetectionResult:
        """Detect faces in a single frame.

        Returns:
            DetectionResult with detector-space boxes sorted by confidence.
            Empty boxes if no face was found.

        Raises:
            TypeError: If frame is not a Frame.
            ValueError: If the frame is empty or not BGR8.
        """
        self._validate_frame(frame)

        blob = preprocess(frame, self._config.model)
        self._net.setInput(blob)
        boxes = self._forward()

        return DetectionResult(boxes=tuple(boxes), original_size=frame.size)

    def _forward(self) -> List[FaceBoundingBox]:
        detection = self._config.detection
        if not self._ultraface:
            return postprocess(
                network_output=self._net.forward(),
                input_size=self.input_size,
                confidence_threshold=detection.confidence_threshold,
                nms_threshold=detection.nms_threshold,
            )

        outputs = self._net.forward(self._net.getUnconnectedOutLayersNames())
        # Tell scores (…, 2) and boxes (…, 4) apart by their last axis
        scores = next(o for o in outputs if o.shape[-1] == 2)
        coords = next(o for o in outputs if o.shape[-1] == 4)
        return postprocess_ultraface(
            scores=np.asarray(scores),
            coords=np.asarray(coords),
            input_size=self.input_size,
            confidence_threshold=detection.confidence_threshold,
            nms_threshold=detection.nms_threshold,
        )

    @staticmethod
    def _validate_frame(frame: Frame) -> None:
        """Validate that the input frame meets the detector contract.

        Raises:
            TypeError: If frame is not a Frame.
            ValueError: If frame is empty or in the wrong pixel format.
        """
        if not isinstance(frame, Frame):
            raise TypeError(
                f"Expected a Frame, got {type(frame).__name__}. "
                f"Wrap OpenCV images with Frame(image)."
            )

        if frame.width == 0 or frame.height == 0:
            raise ValueError(
                "Frame is empty (zero size). "
                "Ensure the input source is providing valid frames."
            )

        if frame.pixel_format != DETECTOR_PIXEL_FORMAT:
            raise ValueError(
                f"Expected a {DETECTOR_PIXEL_FORMAT.value} frame, got "
                f"{frame.pixel_format.value}. Convert with to_detector_format()."
            )
