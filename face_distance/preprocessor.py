"""
Preprocessing for the face detector.

Responsibility:
    Turn a BGR8 Frame into the 4D blob the network consumes. The blob is
    resized to model.input_size without preserving aspect ratio, which
    is why detector boxes are rescaled per axis afterwards.

Frames reach the detector as BGR; model.swap_rb feeds RGB-trained
networks.
"""

import numpy as np
import cv2

from face_distance.config import ModelConfig
from face_distance.frame import Frame


def preprocess(frame: Frame, config: ModelConfig) -> np.ndarray:
    """Convert a BGR8 frame into a DNN input blob.

    Returns:
        A float32 array of shape (1, 3, input_h, input_w).

    Raises:
        ValueError: If the frame is missing or has no pixels.
    """
    if frame is None or frame.width == 0 or frame.height == 0:
        raise ValueError(
            "Cannot preprocess an empty frame. "
            "Ensure the input source is providing valid frames."
        )

    return cv2.dnn.blobFromImage(
        image=frame.pixels,
        scalefactor=config.scale_factor,
        size=tuple(config.input_size),
        mean=config.mean_values,
        swapRB=config.swap_rb,
        crop=False,
    )
