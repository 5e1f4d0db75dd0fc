"""
Detector-space to frame-space box scaling.

The detector runs at a fixed input resolution (model.input_size) that
need not share the source frame's aspect ratio. Boxes it returns are
rescaled per axis to the original frame's pixel grid.

Hard-coded:
    - Detector input resolution is a positive configuration constant
      (enforced by config validation, not checked here).
"""

from face_distance.geometry import CornerBoundingBox, Size


def scale_to_frame(
    box: CornerBoundingBox,
    original_size: Size,
    detector_input_size: Size,
) -> CornerBoundingBox:
    """Map a detector-space box into original-frame pixel space.

    Args:
        box: Box in detector input coordinates.
        original_size: (width, height) of the frame given to the detector.
        detector_input_size: (width, height) of the detector input.

    Returns:
        A new box in frame coordinates. An original size with a zero (or
        negative) side yields the zero box at the origin.
    """
    original_w, original_h = original_size
    if original_w <= 0 or original_h <= 0:
        return CornerBoundingBox()

    input_w, input_h = detector_input_size
    scale_x = original_w / input_w
    scale_y = original_h / input_h

    return CornerBoundingBox(
        x0=box.x0 * scale_x,
        y0=box.y0 * scale_y,
        x1=box.x1 * scale_x,
        y1=box.y1 * scale_y,
    )
