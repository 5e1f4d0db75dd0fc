"""
Pipeline controller: frames in, per-face annotations out.

Responsibility:
    Wire the frame handoff, the detection gate, the box scaler, the
    display transformer and the distance estimator together, and hand
    the resulting annotations to a render sink.

Flow:
    source → FrameHandoff → consume() → DetectionGate → detector
           → _on_detection(): scale_to_frame → map_to_display → estimate
           → render sink

Threading:
    consume() runs on the consumer thread. _on_detection() runs on the
    gate's worker. The sink is called from either and must decide its
    own execution context; QueueRenderSink hands batches over to a
    render loop.
"""

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple

from face_distance.detection import DetectionResult
from face_distance.display import map_to_display
from face_distance.distance import FocalLengthDistanceEstimator
from face_distance.frame import Frame
from face_distance.gate import DetectionGate
from face_distance.geometry import CornerBoundingBox, FaceBoundingBox, Size
from face_distance.handoff import FrameHandoff
from face_distance.scaler import scale_to_frame

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FaceMetadata:
    """Per-face details for optional on-screen labels."""

    detector_box: FaceBoundingBox
    original_size: Size
    detection_fps: float

    @property
    def confidence(self) -> float:
        return self.detector_box.confidence


@dataclass(frozen=True)
class FaceAnnotation:
    """Everything the renderer needs for one face.

    Attributes:
        display_box: Box in viewport coordinates.
        frame_box: Box in original-frame pixels.
        distance: Estimated distance, or None when indeterminate.
        metadata: Detector box, frame size and detection rate.
    """

    display_box: CornerBoundingBox
    frame_box: CornerBoundingBox
    distance: Optional[float]
    metadata: FaceMetadata


RenderSink = Callable[[Sequence[FaceAnnotation]], None]


class DetectionSwitch:
    """Enabled/disabled handle for detection.

    Transitions are synchronous. FaceDistancePipeline drops any result
    whose pass was requested before the latest transition.
    """

    def __init__(self, enabled: bool = True) -> None:
        self._enabled = enabled
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        with self._lock:
            return self._enabled

    def set(self, enabled: bool) -> bool:
        with self._lock:
            self._enabled = enabled
            return enabled

    def toggle(self) -> bool:
        """Flip the state and return the new one."""
        with self._lock:
            self._enabled = not self._enabled
            return self._enabled


class QueueRenderSink:
    """Render sink that keeps only the newest annotation batch.

    The pipeline calls the sink from any thread; the render loop picks
    batches up with poll() on its own schedule.
    """

    def __init__(self) -> None:
        self._queue: "queue.Queue[Tuple[FaceAnnotation, ...]]" = queue.Queue(maxsize=1)

    def __call__(self, annotations: Sequence[FaceAnnotation]) -> None:
        batch = tuple(annotations)
        while True:
            try:
                self._queue.put_nowait(batch)
                return
            except queue.Full:
                try:
                    self._queue.get_nowait()
                except queue.Empty:
                    pass

    def poll(self) -> Optional[Tuple[FaceAnnotation, ...]]:
        """Return the pending batch, or None if nothing new arrived."""
        try:
            return self._queue.get_nowait()
        except queue.Empty:
            return None


class FaceDistancePipeline:
    """Drives detection for the newest frame and produces annotations.

    Usage:
        pipeline = FaceDistancePipeline(gate, estimator, (300, 300), (1280, 720), sink)
        frame = pipeline.consume(handoff)   # consumer loop
        pipeline.toggle_detection()         # user action
    """

    def __init__(
        self,
        gate: DetectionGate,
        estimator: FocalLengthDistanceEstimator,
        detector_input_size: Size,
        viewport_size: Size,
        sink: RenderSink,
        switch: Optional[DetectionSwitch] = None,
    ) -> None:
        self._gate = gate
        self._estimator = estimator
        self._detector_input_size = Size(*detector_input_size)
        self._viewport_size = Size(*viewport_size)
        self._sink = sink
        self._switch = switch if switch is not None else DetectionSwitch()
        self._current_frame: Optional[Frame] = None
        # Guards the switch generation and every sink call made on its behalf
        self._publish_lock = threading.Lock()
        self._generation = 0
        self._request_generation = 0

        self._gate.set_sink(self._on_detection)

    @property
    def detection_enabled(self) -> bool:
        return self._switch.enabled

    @property
    def current_frame(self) -> Optional[Frame]:
        """The newest frame taken from the handoff."""
        return self._current_frame

    @property
    def viewport_size(self) -> Size:
        return self._viewport_size

    def resize_viewport(self, viewport_size: Size) -> None:
        """Use a new viewport size for annotations produced from now on."""
        self._viewport_size = Size(*viewport_size)

    def consume(self, handoff: FrameHandoff) -> Optional[Frame]:
        """Take the newest frame and request detection on it.

        Returns the new frame, or None if nothing was published since
        the previous call.
        """
        frame = handoff.drain()
        if frame is None:
            return None

        # The previous frame may still be in the detector; it is not released here
        self._current_frame = frame
        self.run_detection()
        return frame

    def run_detection(self):
        """Request detection on the current frame if detection is enabled.

        Returns the gate's Future, or None when disabled, busy or no
        frame has arrived yet.
        """
        if not self._switch.enabled:
            return None
        # Held across submit so the completion cannot read a stale stamp
        with self._publish_lock:
            future = self._gate.request_detection(self._current_frame)
            if future is not None:
                self._request_generation = self._generation
        return future

    def toggle_detection(self) -> bool:
        """Switch detection on or off and return the new state.

        Clears the sink either way. Switching on immediately requests a
        pass on the current frame. A pass in flight across the toggle is
        never published, even if detection was switched back on.
        """
        with self._publish_lock:
            enabled = self._switch.toggle()
            self._generation += 1
            self._sink(())
        logger.info("Face detection %s.", "enabled" if enabled else "disabled")
        if enabled:
            self.run_detection()
        return enabled

    def annotate(self, result: DetectionResult) -> Tuple[FaceAnnotation, ...]:
        """Map a detection result into viewport annotations with distances."""
        viewport = self._viewport_size
        fps = self._gate.fps
        annotations = []
        for box in result.boxes:
            frame_box = scale_to_frame(box, result.original_size, self._detector_input_size)
            annotations.append(FaceAnnotation(
                display_box=map_to_display(frame_box, result.original_size, viewport),
                frame_box=frame_box,
                distance=self._estimator.estimate(frame_box),
                metadata=FaceMetadata(
                    detector_box=box,
                    original_size=result.original_size,
                    detection_fps=fps,
                ),
            ))
        return tuple(annotations)

    def _is_current(self) -> bool:
        return self._switch.enabled and self._request_generation == self._generation

    def _on_detection(self, result: DetectionResult) -> None:
        if not self._is_current():
            logger.debug("Detection toggled, dropping result with %d faces.", len(result))
            return
        annotations = self.annotate(result)

        # Checked again under the lock: a toggle may have cleared the sink meanwhile
        with self._publish_lock:
            if not self._is_current():
                logger.debug("Detection toggled, dropping result with %d faces.", len(result))
                return
            self._sink(annotations)
