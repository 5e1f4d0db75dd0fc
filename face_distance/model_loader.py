"""
Model loading for the face distance system.

Responsibility:
    Resolve the configured model files, read the network with OpenCV
    DNN and select the compute backend. Returns a ready cv2.dnn.Net.

Supported formats:
    - Caffe: prototxt + .caffemodel weights (SSD-ResNet10 default).
    - ONNX: a single .onnx weights file; prototxt_path is ignored.

Failure behavior:
    - Missing files raise FileNotFoundError naming the resolved path.
    - An unavailable CUDA backend raises RuntimeError.
"""

import logging
from pathlib import Path
from typing import Optional

import cv2

from face_distance.config import ModelConfig, get_project_root

logger = logging.getLogger(__name__)

_BACKENDS = {
    "cpu": (cv2.dnn.DNN_BACKEND_OPENCV, cv2.dnn.DNN_TARGET_CPU),
    "cuda": (cv2.dnn.DNN_BACKEND_CUDA, cv2.dnn.DNN_TARGET_CUDA),
}


def _resolve(path_str: str, config_key: str) -> Path:
    """Resolve a model path against the project root and check it exists."""
    path = Path(path_str)
    if not path.is_absolute():
        path = get_project_root() / path

    if not path.is_file():
        raise FileNotFoundError(
            f"Model file not found.\n"
            f"  Expected: {path}\n"
            f"  Place the file there or update 'model.{config_key}' in your config."
        )
    return path


def is_onnx(config: ModelConfig) -> bool:
    return Path(config.weights_path).suffix.lower() == ".onnx"


def load_model(config: ModelConfig) -> cv2.dnn.Net:
    """Load the face detection network described by ``config``.

    Raises:
        FileNotFoundError: If a required model file does not exist.
        RuntimeError: If the requested backend is unavailable.
    """
    weights = _resolve(config.weights_path, "weights_path")
    prototxt: Optional[Path] = None

    if is_onnx(config):
        logger.info("Loading ONNX model: %s", weights)
        net = cv2.dnn.readNetFromONNX(str(weights))
    else:
        prototxt = _resolve(config.prototxt_path, "prototxt_path")
        logger.info("Loading Caffe model: prototxt=%s, weights=%s", prototxt, weights)
        net = cv2.dnn.readNetFromCaffe(str(prototxt), str(weights))

    backend, target = _BACKENDS[config.backend]
    try:
        net.setPreferableBackend(backend)
        net.setPreferableTarget(target)
    except cv2.error as e:
        raise RuntimeError(
            f"Failed to select the '{config.backend}' backend. CUDA needs an "
            f"OpenCV build with CUDA support.\n"
            f"  OpenCV error: {e}"
        ) from e

    logger.info("Model ready on %s backend.", config.backend)
    return net
