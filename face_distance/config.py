"""
Configuration for the face distance system.

Values are layered, later layers winning:

    defaults < YAML file < FACE_DISTANCE_* environment < CLI flags

The CLI layer lives in main.py. Everything else is resolved here into
one frozen AppConfig, validated once at startup. With no file and no
environment the defaults describe a working webcam setup.
"""

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

# face_distance/config.py -> repository root; relative model and config
# paths resolve against it
_PROJECT_ROOT = Path(__file__).resolve().parent.parent


def get_project_root() -> Path:
    return _PROJECT_ROOT


# ---------------------------------------------------------------------------
# Configuration dataclasses
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ModelConfig:
    """Which network to load and how frames are turned into its input blob.

    weights_path ending in .onnx selects the UltraFace ONNX path, in which
    case prototxt_path is unused. Paths are relative to the project root.

    input_size is the detector resolution (width, height); detection
    boxes come back in that space. mean_values are subtracted per channel
    in BGR order, swap_rb feeds RGB-trained models.
    """

    prototxt_path: str = "models/deploy.prototxt"
    weights_path: str = "models/res10_300x300_ssd_iter_140000.caffemodel"
    backend: str = "cpu"
    input_size: Tuple[int, int] = (300, 300)
    mean_values: Tuple[float, float, float] = (104.0, 177.0, 123.0)
    scale_factor: float = 1.0
    swap_rb: bool = False


@dataclass(frozen=True)
class DetectionConfig:
    """Detection thresholds and startup state.

    Attributes:
        confidence_threshold: Minimum confidence to accept a detection.
        nms_threshold: IoU threshold for non-maximum suppression.
        enabled: Whether detection is switched on at startup.
    """

    confidence_threshold: float = 0.5
    nms_threshold: float = 0.3
    enabled: bool = True


@dataclass(frozen=True)
class InputConfig:
    """Where frames come from.

    Attributes:
        source: Webcam index ("0"), image, image directory or video path.
        resize_width: Downscale frames wider than this. None keeps them as is.
    """

    source: str = "0"
    resize_width: Optional[int] = None


@dataclass(frozen=True)
class DisplayConfig:
    """Display viewport configuration.

    Attributes:
        viewport_size: Initial viewport (width, height) frames are letterboxed into.
        window_name: Title of the OpenCV display window.
        show_box_size: Also render the frame-space and display-space box sizes.
    """

    viewport_size: Tuple[int, int] = (1280, 720)
    window_name: str = "Face Distance"
    show_box_size: bool = False


@dataclass(frozen=True)
class DistanceConfig:
    """Focal-length distance estimator parameters.

    Attributes:
        focal_length: Camera focal length in frame pixels.
        reference_face_width: Real-world face width. Distances are
                              reported in the same unit.
        unit: Label of the distance unit.
    """

    focal_length: float = 500.0
    reference_face_width: float = 14.0
    unit: str = "cm"


@dataclass(frozen=True)
class VisualizationConfig:
    """Overlay styling. box_color is BGR."""

    box_color: Tuple[int, int, int] = (50, 205, 50)
    thickness: int = 2
    show_confidence: bool = False
    show_fps: bool = True


@dataclass(frozen=True)
class AppConfig:
    """All configuration sections, frozen after load_config()."""

    model: ModelConfig = field(default_factory=ModelConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    input: InputConfig = field(default_factory=InputConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    distance: DistanceConfig = field(default_factory=DistanceConfig)
    visualization: VisualizationConfig = field(default_factory=VisualizationConfig)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

_VALID_BACKENDS = {"cpu", "cuda"}


def _check(condition: bool, message: str) -> None:
    if not condition:
        raise ValueError(message)


def _check_size(label: str, size: Tuple[int, ...]) -> None:
    _check(
        len(size) == 2 and all(d >= 1 for d in size),
        f"{label} must be a (width, height) pair of positive values, got {size}.",
    )


def _validate(config: AppConfig) -> None:
    """Validate configuration values. Raises ValueError on invalid state."""
    model = config.model

    _check(
        model.backend in _VALID_BACKENDS,
        f"model.backend must be one of {sorted(_VALID_BACKENDS)}, got '{model.backend}'.",
    )
    # The scaler divides by model.input_size without checking it
    _check_size("model.input_size", model.input_size)
    _check(model.scale_factor > 0, f"model.scale_factor must be positive, got {model.scale_factor}.")

    for name in ("confidence_threshold", "nms_threshold"):
        value = getattr(config.detection, name)
        _check(0.0 <= value <= 1.0, f"detection.{name} must be in [0.0, 1.0], got {value}.")

    resize_width = config.input.resize_width
    _check(
        resize_width is None or resize_width > 0,
        f"input.resize_width must be positive or None, got {resize_width}.",
    )

    _check_size("display.viewport_size", config.display.viewport_size)

    for name in ("focal_length", "reference_face_width"):
        value = getattr(config.distance, name)
        _check(value > 0, f"distance.{name} must be positive, got {value}.")

    _check(
        config.visualization.thickness >= 1,
        f"visualization.thickness must be at least 1, got {config.visualization.thickness}.",
    )


# ---------------------------------------------------------------------------
# Value coercion
# ---------------------------------------------------------------------------
# YAML hands over typed values, environment variables hand over strings.
# Every coercer accepts both.

def _as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _as_sequence(length: int, item: Callable) -> Callable:
    """Coercer for fixed-length lists, also given as 'a,b,c' strings."""

    def coerce(value) -> tuple:
        if isinstance(value, str):
            value = value.split(",")
        values = tuple(item(v) for v in value)
        if len(values) != length:
            raise ValueError(f"Expected {length} values, got {len(values)}: {value}")
        return values

    return coerce


def _as_size(value) -> Tuple[int, int]:
    """Accept [w, h] lists and 'WxH' strings."""
    if isinstance(value, str):
        parts = value.lower().split("x")
        if len(parts) != 2:
            raise ValueError(f"Expected a size like '1280x720', got '{value}'.")
        value = parts
    return _as_sequence(2, int)(value)


def _as_optional_int(value) -> Optional[int]:
    if value is None or str(value).strip().lower() in {"", "none"}:
        return None
    return int(value)


_SECTIONS: Dict[str, Tuple[type, Dict[str, Callable]]] = {
    "model": (ModelConfig, {
        "prototxt_path": str,
        "weights_path": str,
        "backend": lambda v: str(v).strip().lower(),
        "input_size": _as_size,
        "mean_values": _as_sequence(3, float),
        "scale_factor": float,
        "swap_rb": _as_bool,
    }),
    "detection": (DetectionConfig, {
        "confidence_threshold": float,
        "nms_threshold": float,
        "enabled": _as_bool,
    }),
    "input": (InputConfig, {
        "source": str,
        "resize_width": _as_optional_int,
    }),
    "display": (DisplayConfig, {
        "viewport_size": _as_size,
        "window_name": str,
        "show_box_size": _as_bool,
    }),
    "distance": (DistanceConfig, {
        "focal_length": float,
        "reference_face_width": float,
        "unit": str,
    }),
    "visualization": (VisualizationConfig, {
        "box_color": _as_sequence(3, int),
        "thickness": int,
        "show_confidence": _as_bool,
        "show_fps": _as_bool,
    }),
}


def _build_section(name: str, raw) -> object:
    """Build one config section from its raw mapping."""
    cls, coercers = _SECTIONS[name]
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValueError(f"Config section '{name}' must be a mapping, got {type(raw).__name__}.")

    unknown = sorted(set(raw) - set(coercers))
    if unknown:
        logger.warning("Ignoring unknown keys in config section '%s': %s", name, unknown)

    kwargs = {key: coercers[key](value) for key, value in raw.items() if key in coercers}
    return cls(**kwargs)


# ---------------------------------------------------------------------------
# Environment variable overrides
# ---------------------------------------------------------------------------

_ENV_PREFIX = "FACE_DISTANCE_"


def _apply_env_overrides(raw: dict) -> dict:
    """Overlay FACE_DISTANCE_<SECTION>_<KEY> variables onto the raw dict.

    Every config key can be overridden, e.g.:
        FACE_DISTANCE_MODEL_BACKEND=cuda
        FACE_DISTANCE_DISTANCE_FOCAL_LENGTH=640
        FACE_DISTANCE_DISPLAY_VIEWPORT_SIZE=1920x1080
    """
    for section, (_, coercers) in _SECTIONS.items():
        for key in coercers:
            env_var = f"{_ENV_PREFIX}{section.upper()}_{key.upper()}"
            value = os.environ.get(env_var)
            if value is None:
                continue
            if not isinstance(raw.get(section), dict):
                raw[section] = {}
            raw[section][key] = value
            logger.debug("Config override from env: %s=%s", env_var, value)

    return raw


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------

def load_config(config_path: Optional[str] = None) -> AppConfig:
    """Load and validate application configuration.

    Args:
        config_path: YAML file to read. Relative paths resolve against
                     the project root. None runs on defaults plus any
                     environment overrides.

    Returns:
        A validated, frozen AppConfig.

    Raises:
        FileNotFoundError: If config_path is given but does not exist.
        ValueError: If any configuration value is invalid.
        yaml.YAMLError: If the YAML file is malformed.
    """
    raw: dict = {}

    if config_path is not None:
        path = Path(config_path)
        if not path.is_absolute():
            path = _PROJECT_ROOT / path
        if not path.is_file():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        logger.info("Loading config from: %s", path)
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        if not isinstance(raw, dict):
            raise ValueError(f"Configuration file {path} must contain a mapping.")

    raw = _apply_env_overrides(raw)

    unknown = sorted(set(raw) - set(_SECTIONS))
    if unknown:
        logger.warning("Ignoring unknown config sections: %s", unknown)

    config = AppConfig(**{name: _build_section(name, raw.get(name)) for name in _SECTIONS})
    _validate(config)

    logger.debug("Configuration loaded: %s", config)
    return config


def apply_overrides(config: AppConfig, overrides: Dict[str, Dict[str, object]]) -> AppConfig:
    """Return a copy of ``config`` with ``{section: {key: value}}`` applied.

    Values go through the same coercion and validation as the YAML and
    environment layers. None values are skipped, so argparse defaults
    can be passed straight through.

    Raises:
        ValueError: For unknown sections or keys, or invalid values.
    """
    sections = {}
    for name, values in overrides.items():
        if name not in _SECTIONS:
            raise ValueError(f"Unknown config section '{name}'.")
        _, coercers = _SECTIONS[name]
        changes = {}
        for key, value in values.items():
            if key not in coercers:
                raise ValueError(f"Unknown config key '{name}.{key}'.")
            if value is not None:
                changes[key] = coercers[key](value)
        if changes:
            sections[name] = replace(getattr(config, name), **changes)

    if not sections:
        return config

    config = replace(config, **sections)
    _validate(config)
    return config
