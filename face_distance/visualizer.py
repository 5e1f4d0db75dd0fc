"""
Visualization for the face distance pipeline.

Responsibility:
    Render a frame letterboxed into the viewport and draw the per-face
    annotations produced by the pipeline: box, distance label, and
    optionally the box sizes and the detection rate. Annotations are
    already in viewport coordinates; nothing is transformed here.

Non-goals:
    - No file writing or detection logic.
"""

from typing import Optional, Sequence

import cv2
import numpy as np

from face_distance.config import DisplayConfig, DistanceConfig, VisualizationConfig
from face_distance.display import letterbox
from face_distance.geometry import Size
from face_distance.pipeline import FaceAnnotation

# Hard-coded rendering constants (cosmetic internals, not user-facing)
_FONT = cv2.FONT_HERSHEY_SIMPLEX
_FONT_SCALE = 0.5
_FONT_THICKNESS = 1
_LINE_HEIGHT = 20
_TEXT_MARGIN = 5


def format_distance(distance: Optional[float], unit: str = "cm") -> str:
    """Render a distance like '57 cm', or '? cm' when indeterminate."""
    if distance is None:
        return f"? {unit}"
    return f"{distance:,.0f} {unit}"


def _put_text(canvas: np.ndarray, text: str, x: float, y: float, color) -> None:
    cv2.putText(
        canvas,
        text,
        (int(x), int(max(y, _LINE_HEIGHT))),
        _FONT,
        _FONT_SCALE,
        color,
        _FONT_THICKNESS,
        cv2.LINE_AA,
    )


def draw_annotations(
    canvas: np.ndarray,
    annotations: Sequence[FaceAnnotation],
    config: VisualizationConfig,
    distance_unit: str = "cm",
    show_box_size: bool = False,
    detection_enabled: bool = True,
) -> np.ndarray:
    """Draw annotations onto a viewport-sized BGR canvas.

    Returns:
        A new array; ``canvas`` is not modified.
    """
    annotated = canvas.copy()
    color = config.box_color

    for ann in annotations:
        box = ann.display_box
        x0, y0 = int(round(box.x0)), int(round(box.y0))
        x1, y1 = int(round(box.x1)), int(round(box.y1))
        cv2.rectangle(annotated, (x0, y0), (x1, y1), color=color, thickness=config.thickness)

        _put_text(
            annotated,
            format_distance(ann.distance, distance_unit),
            box.x0 + _TEXT_MARGIN,
            box.y0 + _LINE_HEIGHT,
            color,
        )

        if config.show_confidence:
            _put_text(
                annotated,
                f"{ann.metadata.confidence:.2f}",
                box.x0 + _TEXT_MARGIN,
                box.y1 - _TEXT_MARGIN,
                color,
            )

        if show_box_size:
            detector_box = ann.metadata.detector_box
            _put_text(
                annotated,
                f"Orig Size: {detector_box.width:.2f} x {detector_box.height:.2f}",
                box.x0,
                box.y0 - 2 * _LINE_HEIGHT,
                color,
            )
            _put_text(
                annotated,
                f"Scaled Size: {box.width:.2f} x {box.height:.2f}",
                box.x0,
                box.y0 - _LINE_HEIGHT,
                color,
            )

    if config.show_fps and detection_enabled and annotations:
        fps = annotations[0].metadata.detection_fps
        _put_text(annotated, f"Face Detection FPS: {fps:.2f}", 20, 20 + _LINE_HEIGHT, color)

    return annotated


def render(
    image: Optional[np.ndarray],
    annotations: Sequence[FaceAnnotation],
    viewport_size: Size,
    display: DisplayConfig,
    distance: DistanceConfig,
    visualization: VisualizationConfig,
    detection_enabled: bool = True,
) -> np.ndarray:
    """Letterbox ``image`` into the viewport and draw ``annotations`` on it.

    A missing image renders a blank viewport.
    """
    if image is None:
        canvas = np.zeros((int(viewport_size[1]), int(viewport_size[0]), 3), dtype=np.uint8)
    else:
        canvas = letterbox(image, viewport_size)

    return draw_annotations(
        canvas,
        annotations,
        visualization,
        distance_unit=distance.unit,
        show_box_size=display.show_box_size,
        detection_enabled=detection_enabled,
    )


def show_canvas(window_name: str, canvas: np.ndarray) -> int:
    """Show a rendered canvas and return the key pressed, or 255 if none."""
    cv2.imshow(window_name, canvas)
    return cv2.waitKey(1) & 0xFF


def close_windows() -> None:
    cv2.destroyAllWindows()
