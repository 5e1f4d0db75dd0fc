"""
Tests for the focal-length distance estimator.
"""

import pytest

from face_distance.config import DistanceConfig
from face_distance.distance import FocalLengthDistanceEstimator, calibrate_focal_length
from face_distance.geometry import CornerBoundingBox


def _box(width: float) -> CornerBoundingBox:
    return CornerBoundingBox(x0=50, y0=50, x1=50 + width, y1=150)


@pytest.fixture
def estimator():
    return FocalLengthDistanceEstimator(
        DistanceConfig(focal_length=500.0, reference_face_width=14.0)
    )


def test_pinhole_formula(estimator):
    """distance = f * W / w."""
    assert estimator.estimate(_box(100)) == pytest.approx(70.0)
    assert estimator.estimate(_box(200)) == pytest.approx(35.0)


def test_distance_decreases_with_width(estimator):
    """A wider face box is closer."""
    assert estimator.estimate(_box(100)) > estimator.estimate(_box(200))


def test_zero_width_is_indeterminate(estimator):
    """Zero (or inverted) width gives None, not inf or an exception."""
    assert estimator.estimate(_box(0)) is None
    assert estimator.estimate(CornerBoundingBox(x0=10, x1=5)) is None


def test_defaults():
    """The default estimator uses the default distance config."""
    estimator = FocalLengthDistanceEstimator()
    assert estimator.config == DistanceConfig()


def test_calibration_round_trip():
    """A focal length calibrated at D reproduces D for the same width."""
    focal = calibrate_focal_length(known_distance=60.0, reference_width=14.0, pixel_width=120.0)
    assert focal == pytest.approx(120.0 * 60.0 / 14.0)

    estimator = FocalLengthDistanceEstimator(
        DistanceConfig(focal_length=focal, reference_face_width=14.0)
    )
    assert estimator.estimate(_box(120)) == pytest.approx(60.0)


def test_calibration_rejects_non_positive():
    """Calibration inputs must be positive."""
    with pytest.raises(ValueError):
        calibrate_focal_length(0.0, 14.0, 100.0)
