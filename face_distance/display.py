"""
Frame-space to display-space mapping with letterboxing.

Responsibility:
    Fit a frame into a viewport without distortion. The frame occupies
    the largest centered rectangle of the viewport with the frame's
    aspect ratio; the remaining margins are left blank (pillarbox on
    left/right for a relatively wider viewport, letterbox on top/bottom
    otherwise). Boxes are mapped into that rectangle.

Non-goals:
    - No drawing (see visualizer.py). letterbox() only composes the
      canvas the boxes are mapped onto.
"""

from typing import Tuple

import cv2
import numpy as np

from face_distance.geometry import CornerBoundingBox, Rect, Size


def display_rect(frame_size: Size, viewport_size: Size) -> Rect:
    """Return the area of the viewport occupied by the frame.

    Args:
        frame_size: (width, height) of the source frame.
        viewport_size: (width, height) of the display viewport.

    Returns:
        The centered aspect-preserving Rect, or an empty Rect when the
        viewport is smaller than one unit or the frame has a zero side.
    """
    frame_w, frame_h = frame_size
    view_w, view_h = viewport_size

    if view_w < 1 or view_h < 1 or frame_w == 0 or frame_h == 0:
        return Rect()

    if view_w / view_h > frame_w / frame_h:
        # Viewport is wider: full height, pillarbox left/right
        scaled_w = frame_w * (view_h / frame_h)
        return Rect(x=(view_w - scaled_w) / 2.0, y=0.0, width=scaled_w, height=view_h)

    # Frame is wider (or equal): full width, letterbox top/bottom
    scaled_h = frame_h * (view_w / frame_w)
    return Rect(x=0.0, y=(view_h - scaled_h) / 2.0, width=view_w, height=scaled_h)


def map_to_display(
    frame_box: CornerBoundingBox,
    frame_size: Size,
    viewport_size: Size,
) -> CornerBoundingBox:
    """Map a frame-space box into viewport coordinates.

    Returns the empty box (zero area at the origin) for degenerate
    frame or viewport sizes.
    """
    frame_w, frame_h = frame_size
    if frame_w == 0 or frame_h == 0:
        return CornerBoundingBox()

    rect = display_rect(frame_size, viewport_size)
    scale_x = rect.width / frame_w
    scale_y = rect.height / frame_h

    result = CornerBoundingBox(
        x0=rect.x + frame_box.x0 * scale_x,
        y0=rect.y + frame_box.y0 * scale_y,
    )
    result.width = frame_box.width * scale_x
    result.height = frame_box.height * scale_y
    return result


def letterbox(
    image: np.ndarray,
    viewport_size: Size,
    fill: Tuple[int, int, int] = (0, 0, 0),
) -> np.ndarray:
    """Compose ``image`` into a viewport-sized canvas.

    The image is resized into display_rect() and the margins are filled
    with ``fill``. Returns a new BGR array of shape (view_h, view_w, 3).
    """
    view_w, view_h = int(viewport_size[0]), int(viewport_size[1])
    canvas = np.full((max(view_h, 0), max(view_w, 0), 3), fill, dtype=np.uint8)

    frame_h, frame_w = image.shape[:2]
    rect = display_rect(Size(frame_w, frame_h), Size(view_w, view_h))
    target_w, target_h = int(round(rect.width)), int(round(rect.height))
    if target_w <= 0 or target_h <= 0:
        return canvas

    x, y = int(round(rect.x)), int(round(rect.y))
    # Rounding may push the far edge one pixel past the canvas
    target_w = min(target_w, view_w - x)
    target_h = min(target_h, view_h - y)

    resized = cv2.resize(image, (target_w, target_h), interpolation=cv2.INTER_AREA)
    canvas[y:y + target_h, x:x + target_w] = resized
    return canvas
