"""
Geometry primitives for the face distance pipeline.

Responsibility:
    Corner-form bounding boxes, sizes and rectangles shared by the
    detector, the scaler, the display transformer and the distance
    estimator.

Non-goals:
    - No coordinate transformation (see scaler.py and display.py).
    - No validation of corner ordering. Callers keep x1 >= x0, y1 >= y0.
"""

from dataclasses import dataclass
from typing import NamedTuple


class Size(NamedTuple):
    """Width/height pair in pixels (or viewport units)."""

    width: float
    height: float

    @property
    def aspect_ratio(self) -> float:
        """Return width / height, or 0.0 for a zero-height size."""
        if self.height == 0:
            return 0.0
        return self.width / self.height

    @property
    def is_empty(self) -> bool:
        """True when either side is below one unit."""
        return self.width < 1 or self.height < 1


@dataclass
class Rect:
    """Origin + size rectangle. Used for the display area inside a viewport."""

    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0


@dataclass
class CornerBoundingBox:
    """Bounding box stored as two opposite corners (x0, y0) and (x1, y1).

    Width and height are derived. Assigning them moves the far corner
    and keeps (x0, y0) fixed.
    """

    x0: float = 0.0
    y0: float = 0.0
    x1: float = 0.0
    y1: float = 0.0

    @property
    def width(self) -> float:
        return self.x1 - self.x0

    @width.setter
    def width(self, value: float) -> None:
        self.x1 = self.x0 + value

    @property
    def height(self) -> float:
        return self.y1 - self.y0

    @height.setter
    def height(self, value: float) -> None:
        self.y1 = self.y0 + value

    @property
    def area(self) -> float:
        return self.width * self.height


@dataclass
class FaceBoundingBox(CornerBoundingBox):
    """A detector-space face box with its confidence score in [0.0, 1.0]."""

    confidence: float = 1.0
