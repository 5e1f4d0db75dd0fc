"""
Tests for the configuration module.
"""

import pytest

from face_distance.config import load_config, AppConfig


def test_load_defaults():
    """Test loading configuration without any file."""
    config = load_config(None)
    assert isinstance(config, AppConfig)
    assert config.model.backend == "cpu"
    assert config.model.input_size == (300, 300)
    assert config.detection.confidence_threshold == 0.5
    assert config.detection.enabled is True
    assert config.distance.focal_length == 500.0
    assert config.distance.reference_face_width == 14.0


def test_validation_failure():
    """Test fail-fast validation."""
    from face_distance.config import (
        _validate, DetectionConfig, DistanceConfig, DisplayConfig, ModelConfig,
    )

    bad_config = AppConfig(detection=DetectionConfig(confidence_threshold=1.5))
    with pytest.raises(ValueError, match="confidence_threshold"):
        _validate(bad_config)

    bad_config = AppConfig(model=ModelConfig(backend="invalid"))
    with pytest.raises(ValueError, match="backend"):
        _validate(bad_config)

    # Detector input resolution must be positive
    bad_config = AppConfig(model=ModelConfig(input_size=(0, 300)))
    with pytest.raises(ValueError, match="input_size"):
        _validate(bad_config)

    bad_config = AppConfig(distance=DistanceConfig(focal_length=0.0))
    with pytest.raises(ValueError, match="focal_length"):
        _validate(bad_config)

    bad_config = AppConfig(distance=DistanceConfig(reference_face_width=-1.0))
    with pytest.raises(ValueError, match="reference_face_width"):
        _validate(bad_config)

    bad_config = AppConfig(display=DisplayConfig(viewport_size=(0, 720)))
    with pytest.raises(ValueError, match="viewport_size"):
        _validate(bad_config)


def test_env_override(monkeypatch):
    """Test environment variable overrides."""
    monkeypatch.setenv("FACE_DISTANCE_DETECTION_CONFIDENCE_THRESHOLD", "0.9")
    monkeypatch.setenv("FACE_DISTANCE_MODEL_BACKEND", "cuda")
    monkeypatch.setenv("FACE_DISTANCE_DISTANCE_FOCAL_LENGTH", "640")
    monkeypatch.setenv("FACE_DISTANCE_DISPLAY_VIEWPORT_SIZE", "800x600")
    monkeypatch.setenv("FACE_DISTANCE_DETECTION_ENABLED", "false")

    config = load_config(None)

    assert config.detection.confidence_threshold == 0.9
    assert config.model.backend == "cuda"
    assert config.distance.focal_length == 640.0
    assert config.display.viewport_size == (800, 600)
    assert config.detection.enabled is False


def test_yaml_file(tmp_path):
    """Test loading sections from a YAML file."""
    path = tmp_path / "config.yaml"
    path.write_text(
        "model:\n"
        "  input_size: [320, 240]\n"
        "distance:\n"
        "  focal_length: 720\n"
        "  reference_face_width: 15\n"
        "display:\n"
        "  viewport_size: [640, 480]\n"
        "  show_box_size: true\n",
        encoding="utf-8",
    )

    config = load_config(str(path))

    assert config.model.input_size == (320, 240)
    assert config.distance.focal_length == 720.0
    assert config.distance.reference_face_width == 15.0
    assert config.display.viewport_size == (640, 480)
    assert config.display.show_box_size is True


def test_missing_file(tmp_path):
    """Test that an explicit but missing config file fails loudly."""
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "missing.yaml"))


def test_env_override_any_key(monkeypatch):
    """Every key maps to FACE_DISTANCE_<SECTION>_<KEY>."""
    monkeypatch.setenv("FACE_DISTANCE_DISPLAY_WINDOW_NAME", "Preview")
    monkeypatch.setenv("FACE_DISTANCE_MODEL_MEAN_VALUES", "1,2,3")
    monkeypatch.setenv("FACE_DISTANCE_INPUT_RESIZE_WIDTH", "none")

    config = load_config(None)

    assert config.display.window_name == "Preview"
    assert config.model.mean_values == (1.0, 2.0, 3.0)
    assert config.input.resize_width is None


def test_apply_overrides():
    """CLI-style overrides are coerced, validated and skip None values."""
    from face_distance.config import apply_overrides

    base = load_config(None)
    config = apply_overrides(base, {
        "display": {"viewport_size": "800x600", "show_box_size": None},
        "distance": {"focal_length": 640},
    })

    assert config.display.viewport_size == (800, 600)
    assert config.display.show_box_size is False
    assert config.distance.focal_length == 640.0
    # The original is untouched
    assert base.display.viewport_size == (1280, 720)

    with pytest.raises(ValueError, match="focal_length"):
        apply_overrides(base, {"distance": {"focal_length": 0}})
    with pytest.raises(ValueError, match="Unknown"):
        apply_overrides(base, {"distance": {"baseline": 1}})
