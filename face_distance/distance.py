"""
Focal-length distance estimation.

Pinhole model: an object of real width W that appears w pixels wide
under a focal length of f pixels sits at distance f * W / w. The result
is in the unit of W (centimeters by default).

Box space:
    Pass the box in original-frame pixels, the space the focal length
    was calibrated in. Display-space boxes depend on the window size and
    give meaningless distances.
"""

import logging
from typing import Optional

from face_distance.config import DistanceConfig
from face_distance.geometry import CornerBoundingBox

logger = logging.getLogger(__name__)


def calibrate_focal_length(
    known_distance: float,
    reference_width: float,
    pixel_width: float,
) -> float:
    """Derive a focal length (pixels) from one reference capture.

    Args:
        known_distance: Measured camera-to-face distance.
        reference_width: Real face width, same unit as known_distance.
        pixel_width: Width of the detected face box in frame pixels.

    Raises:
        ValueError: If any argument is not positive.
    """
    if known_distance <= 0 or reference_width <= 0 or pixel_width <= 0:
        raise ValueError(
            f"Calibration values must be positive, got "
            f"distance={known_distance}, reference_width={reference_width}, "
            f"pixel_width={pixel_width}."
        )
    return pixel_width * known_distance / reference_width


class FocalLengthDistanceEstimator:
    """Estimates face-to-camera distance from a frame-space face box.

    Usage:
        estimator = FocalLengthDistanceEstimator(config.distance)
        distance = estimator.estimate(frame_box)   # None if indeterminate
    """

    def __init__(self, config: Optional[DistanceConfig] = None) -> None:
        self._config = config if config is not None else DistanceConfig()
        logger.info(
            "Distance estimator ready (focal_length=%.1f px, face_width=%.1f %s)",
            self._config.focal_length,
            self._config.reference_face_width,
            self._config.unit,
        )

    @property
    def config(self) -> DistanceConfig:
        return self._config

    def estimate(self, face_box: CornerBoundingBox) -> Optional[float]:
        """Return the distance for ``face_box``, or None when indeterminate.

        A box with zero or negative width has no defined distance.
        """
        pixel_width = face_box.width
        if pixel_width <= 0:
            return None
        return self._config.focal_length * self._config.reference_face_width / pixel_width
