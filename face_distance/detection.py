"""
Detection result data transfer object.

This module defines DetectionResult, the single output type of one
detector pass. It is a frozen container: the boxes are in detector
space and the original frame size is recorded alongside so later
stages can map them back.

Non-goals:
    - No rendering logic.
    - No coordinate transformation (see scaler.py and display.py).
"""

from dataclasses import dataclass
from typing import Tuple

from face_distance.geometry import FaceBoundingBox, Size


@dataclass(frozen=True)
class DetectionResult:
    """Faces found in one frame.

    Attributes:
        boxes: Detector-space face boxes, sorted by confidence (descending).
        original_size: Pixel size of the frame the detector was given.

    An empty ``boxes`` tuple means no face was detected.
    """

    boxes: Tuple[FaceBoundingBox, ...]
    original_size: Size

    def __post_init__(self) -> None:
        object.__setattr__(self, "boxes", tuple(self.boxes))
        object.__setattr__(self, "original_size", Size(*self.original_size))

    def __len__(self) -> int:
        return len(self.boxes)

    def __iter__(self):
        return iter(self.boxes)

    @property
    def empty(self) -> bool:
        return not self.boxes
