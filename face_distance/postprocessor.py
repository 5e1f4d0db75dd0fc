"""
Postprocessing for the face detector.

Responsibility:
    Turn raw network outputs into detector-space FaceBoundingBoxes:
    confidence thresholding, un-normalization to the detector input
    resolution, clamping, non-maximum suppression and ordering.

Output layouts:
    - SSD (Caffe res10): one tensor [1, 1, N, 7], rows
      [batch_id, class_id, confidence, x0, y0, x1, y1], coords in [0, 1].
    - UltraFace (ONNX): scores [1, N, 2] (background, face) and
      boxes [1, N, 4] corner-form, coords in [0, 1].

Boxes stay in detector space. Mapping to the original frame is the
scaler's job.
"""

from typing import List, Sequence

import cv2
import numpy as np

from face_distance.geometry import FaceBoundingBox, Size


def _to_boxes(
    coords: np.ndarray,
    confidences: np.ndarray,
    input_size: Size,
    confidence_threshold: float,
) -> List[FaceBoundingBox]:
    """Threshold, un-normalize and clamp normalized corner coordinates."""
    input_w, input_h = input_size
    boxes: List[FaceBoundingBox] = []

    for (x0, y0, x1, y1), confidence in zip(coords, confidences):
        confidence = float(confidence)
        if confidence < confidence_threshold:
            continue

        box = FaceBoundingBox(
            x0=min(max(float(x0) * input_w, 0.0), input_w),
            y0=min(max(float(y0) * input_h, 0.0), input_h),
            x1=min(max(float(x1) * input_w, 0.0), input_w),
            y1=min(max(float(y1) * input_h, 0.0), input_h),
            confidence=confidence,
        )

        # Skip degenerate boxes
        if box.width <= 0 or box.height <= 0:
            continue
        boxes.append(box)

    return boxes


def non_max_suppression(
    boxes: Sequence[FaceBoundingBox],
    confidence_threshold: float,
    nms_threshold: float,
) -> List[FaceBoundingBox]:
    """Drop boxes overlapping a higher-confidence box by more than nms_threshold IoU."""
    if len(boxes) < 2:
        return list(boxes)

    rects = [[b.x0, b.y0, b.width, b.height] for b in boxes]
    scores = [b.confidence for b in boxes]
    keep = cv2.dnn.NMSBoxes(rects, scores, confidence_threshold, nms_threshold)
    return [boxes[int(i)] for i in np.array(keep).flatten()]


def postprocess(
    network_output: np.ndarray,
    input_size: Size,
    confidence_threshold: float,
    nms_threshold: float = 1.0,
) -> List[FaceBoundingBox]:
    """Parse SSD output into detector-space boxes.

    Args:
        network_output: Raw output from net.forward(), shape (1, 1, N, 7).
        input_size: Detector input (width, height).
        confidence_threshold: Minimum confidence to accept a detection.
        nms_threshold: IoU threshold for suppression. 1.0 keeps everything.

    Returns:
        Boxes sorted by confidence (descending). Empty if none pass.
    """
    raw = network_output[0, 0]  # Shape: (N, 7)
    boxes = _to_boxes(raw[:, 3:7], raw[:, 2], input_size, confidence_threshold)
    return _finish(boxes, confidence_threshold, nms_threshold)


def postprocess_ultraface(
    scores: np.ndarray,
    coords: np.ndarray,
    input_size: Size,
    confidence_threshold: float,
    nms_threshold: float = 1.0,
) -> List[FaceBoundingBox]:
    """Parse UltraFace scores/boxes outputs into detector-space boxes."""
    boxes = _to_boxes(coords[0], scores[0][:, 1], input_size, confidence_threshold)
    return _finish(boxes, confidence_threshold, nms_threshold)


def _finish(
    boxes: List[FaceBoundingBox],
    confidence_threshold: float,
    nms_threshold: float,
) -> List[FaceBoundingBox]:
    if nms_threshold < 1.0:
        boxes = non_max_suppression(boxes, confidence_threshold, nms_threshold)

    # Sort by confidence descending for consistent output ordering
    boxes.sort(key=lambda b: b.confidence, reverse=True)
    return boxes
