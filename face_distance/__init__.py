"""
Face Distance: face detection with per-face camera distance estimates.

Public API:
    - FrameHandoff: single-slot, drop-stale frame buffer.
    - DetectionGate: single-flight wrapper around a detector.
    - Detector: OpenCV DNN face detector producing DetectionResults.
    - scale_to_frame / map_to_display: detector → frame → viewport boxes.
    - FocalLengthDistanceEstimator: distance from a frame-space face box.
    - FaceDistancePipeline: wires the above to a render sink.

Usage:
    from face_distance import Detector, DetectionGate, FrameHandoff

    handoff = FrameHandoff()
    gate = DetectionGate(Detector().detect, sink=print)
"""

from face_distance.detection import DetectionResult
from face_distance.detector import Detector
from face_distance.display import display_rect, map_to_display
from face_distance.distance import FocalLengthDistanceEstimator, calibrate_focal_length
from face_distance.frame import Frame, PixelFormat, to_detector_format
from face_distance.gate import DetectionGate
from face_distance.geometry import CornerBoundingBox, FaceBoundingBox, Rect, Size
from face_distance.handoff import FrameHandoff
from face_distance.pipeline import (
    DetectionSwitch,
    FaceAnnotation,
    FaceDistancePipeline,
    QueueRenderSink,
)
from face_distance.scaler import scale_to_frame

__all__ = [
    "CornerBoundingBox",
    "DetectionGate",
    "DetectionResult",
    "DetectionSwitch",
    "Detector",
    "FaceAnnotation",
    "FaceBoundingBox",
    "FaceDistancePipeline",
    "FocalLengthDistanceEstimator",
    "Frame",
    "FrameHandoff",
    "PixelFormat",
    "QueueRenderSink",
    "Rect",
    "Size",
    "calibrate_focal_length",
    "display_rect",
    "map_to_display",
    "scale_to_frame",
    "to_detector_format",
]
