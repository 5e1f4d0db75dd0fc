"""
Frame container for the face distance pipeline.

Responsibility:
    Wrap a pixel buffer together with its dimensions and pixel format,
    and convert foreign pixel formats into the one the detector accepts.

Ownership:
    A Frame is owned by exactly one pipeline stage at a time. The stage
    that drops a frame calls release(), which frees the buffer reference
    once. Later calls are no-ops.

Hard-coded:
    - Detector format is 8-bit BGR, 3 channels, no alpha.
"""

import time
from enum import Enum
from typing import Optional

import cv2
import numpy as np

from face_distance.geometry import Size


class PixelFormat(str, Enum):
    """Channel layout of a frame's pixel buffer."""

    BGR8 = "bgr8"
    BGRA8 = "bgra8"
    RGB8 = "rgb8"
    RGBA8 = "rgba8"
    GRAY8 = "gray8"


_CHANNELS = {
    PixelFormat.BGR8: 3,
    PixelFormat.BGRA8: 4,
    PixelFormat.RGB8: 3,
    PixelFormat.RGBA8: 4,
    PixelFormat.GRAY8: 1,
}

# cvtColor codes into the detector format
_TO_BGR = {
    PixelFormat.BGRA8: cv2.COLOR_BGRA2BGR,
    PixelFormat.RGB8: cv2.COLOR_RGB2BGR,
    PixelFormat.RGBA8: cv2.COLOR_RGBA2BGR,
    PixelFormat.GRAY8: cv2.COLOR_GRAY2BGR,
}

DETECTOR_PIXEL_FORMAT = PixelFormat.BGR8


class Frame:
    """A read-only view of a pixel buffer plus its size and pixel format.

    The array is wrapped without copying, so the producer hands it over:
    writing to the original array after construction changes the frame.
    Consumers get a read-only view and must copy before drawing
    (e.g. frame.pixels.copy()).

    Usage:
        frame = Frame(image)                          # BGR from OpenCV
        frame = Frame(rgba, PixelFormat.RGBA8)
        frame.width, frame.height, frame.size
        frame.release()
    """

    __slots__ = ("_pixels", "_pixel_format", "_width", "_height", "timestamp")

    def __init__(
        self,
        pixels: np.ndarray,
        pixel_format: PixelFormat = PixelFormat.BGR8,
        timestamp: Optional[float] = None,
    ) -> None:
        """Wrap a pixel buffer.

        Args:
            pixels: Image as a numpy array, (H, W) or (H, W, C).
            pixel_format: Channel layout of ``pixels``.
            timestamp: Capture time. Defaults to now.

        Raises:
            TypeError: If pixels is not a numpy ndarray.
            ValueError: If the array shape does not match the pixel format.
        """
        if not isinstance(pixels, np.ndarray):
            raise TypeError(
                f"Expected pixels to be a numpy ndarray, got {type(pixels).__name__}."
            )

        pixel_format = PixelFormat(pixel_format)
        channels = 1 if pixels.ndim == 2 else (pixels.shape[2] if pixels.ndim == 3 else -1)
        if channels != _CHANNELS[pixel_format]:
            raise ValueError(
                f"Pixel buffer with shape {pixels.shape} does not match "
                f"format '{pixel_format.value}' ({_CHANNELS[pixel_format]} channels)."
            )

        view = pixels.view()
        view.flags.writeable = False

        self._pixels: Optional[np.ndarray] = view
        self._pixel_format = pixel_format
        self._height, self._width = pixels.shape[:2]
        self.timestamp = time.time() if timestamp is None else timestamp

    @property
    def pixels(self) -> np.ndarray:
        """Read-only pixel view.

        Raises:
            RuntimeError: If the frame was already released.
        """
        if self._pixels is None:
            raise RuntimeError("Frame buffer was released.")
        return self._pixels

    @property
    def pixel_format(self) -> PixelFormat:
        return self._pixel_format

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def size(self) -> Size:
        return Size(self._width, self._height)

    @property
    def released(self) -> bool:
        return self._pixels is None

    def release(self) -> None:
        """Drop the pixel buffer. Safe to call more than once."""
        self._pixels = None

    def __repr__(self) -> str:
        state = "released" if self.released else "live"
        return (
            f"Frame({self._width}x{self._height}, "
            f"{self._pixel_format.value}, {state})"
        )


def to_detector_format(frame: Frame) -> Frame:
    """Return a frame in the detector's BGR8 layout.

    A frame already in BGR8 is returned unchanged. Otherwise a converted
    copy is returned; alpha is dropped, never premultiplied. The source
    frame is left untouched and stays owned by the caller.
    """
    if frame.pixel_format == DETECTOR_PIXEL_FORMAT:
        return frame

    converted = cv2.cvtColor(frame.pixels, _TO_BGR[frame.pixel_format])
    return Frame(converted, DETECTOR_PIXEL_FORMAT, timestamp=frame.timestamp)
