"""
Tests for the pipeline controller and render sink.
"""

import threading

import numpy as np
import pytest

from face_distance.config import DistanceConfig
from face_distance.detection import DetectionResult
from face_distance.distance import FocalLengthDistanceEstimator
from face_distance.frame import Frame
from face_distance.gate import DetectionGate
from face_distance.geometry import FaceBoundingBox, Size
from face_distance.handoff import FrameHandoff
from face_distance.pipeline import DetectionSwitch, FaceDistancePipeline, QueueRenderSink

_TIMEOUT = 5.0
_INPUT = Size(300, 300)


class FakeDetector:
    """Returns one centered face box; optionally waits for a release."""

    def __init__(self, block: bool = False) -> None:
        self.calls = 0
        self.started = threading.Event()
        self.release = threading.Event()
        if not block:
            self.release.set()

    def __call__(self, frame: Frame) -> DetectionResult:
        self.calls += 1
        self.started.set()
        assert self.release.wait(_TIMEOUT)
        return DetectionResult(
            boxes=(FaceBoundingBox(100, 75, 150, 150, confidence=0.95),),
            original_size=frame.size,
        )


def _frame(width: int = 600, height: int = 300) -> Frame:
    return Frame(np.zeros((height, width, 3), dtype=np.uint8))


def _build(detector, enabled=True, viewport=Size(1200, 300)):
    received = []
    gate = DetectionGate(detector)
    pipeline = FaceDistancePipeline(
        gate=gate,
        estimator=FocalLengthDistanceEstimator(
            DistanceConfig(focal_length=500.0, reference_face_width=14.0)
        ),
        detector_input_size=_INPUT,
        viewport_size=viewport,
        sink=received.append,
        switch=DetectionSwitch(enabled),
    )
    return pipeline, gate, received


def test_consume_runs_detection_and_annotates():
    """A consumed frame produces scaled, letterboxed, distanced faces."""
    detector = FakeDetector()
    pipeline, gate, received = _build(detector)
    handoff = FrameHandoff()
    try:
        handoff.publish(_frame())
        frame = pipeline.consume(handoff)
        assert frame is pipeline.current_frame

        # Shutting the worker down waits for the pass to finish
        gate.close(wait=True)
        assert detector.calls == 1

        annotations = received[0]
        assert len(annotations) == 1
        ann = annotations[0]

        # Detector 300x300 → frame 600x300: x doubles, y unchanged
        assert ann.frame_box.x0 == pytest.approx(200)
        assert ann.frame_box.width == pytest.approx(100)
        assert ann.frame_box.y0 == pytest.approx(75)

        # Frame 2:1 into a 4:1 viewport → 600 wide, 300 px pillarbox offset
        assert ann.display_box.x0 == pytest.approx(500)
        assert ann.display_box.width == pytest.approx(100)

        # Distance uses the frame-space width
        assert ann.distance == pytest.approx(500.0 * 14.0 / 100)
        assert ann.metadata.confidence == pytest.approx(0.95)
    finally:
        gate.close()


def test_consume_without_frames():
    """Nothing published means nothing to do."""
    detector = FakeDetector()
    pipeline, gate, received = _build(detector)
    try:
        assert pipeline.consume(FrameHandoff()) is None
        assert pipeline.run_detection() is None
        assert detector.calls == 0
    finally:
        gate.close()


def test_disabled_pipeline_skips_detection():
    """With the switch off, frames are shown but never detected."""
    detector = FakeDetector()
    pipeline, gate, received = _build(detector, enabled=False)
    handoff = FrameHandoff()
    try:
        handoff.publish(_frame())
        assert pipeline.consume(handoff) is not None
        assert detector.calls == 0
        assert received == []
    finally:
        gate.close()


def test_result_after_disable_is_dropped():
    """An in-flight pass completing after disable reaches no one."""
    detector = FakeDetector(block=True)
    pipeline, gate, received = _build(detector)
    handoff = FrameHandoff()
    try:
        handoff.publish(_frame())
        pipeline.consume(handoff)
        assert detector.started.wait(_TIMEOUT)

        assert pipeline.toggle_detection() is False
        assert received == [()]  # cleared

        detector.release.set()
        gate.close(wait=True)

        assert received == [()]
        assert detector.calls == 1
    finally:
        detector.release.set()
        gate.close()


class TogglingEstimator(FocalLengthDistanceEstimator):
    """Flips detection from inside annotation, like a key press mid-pass."""

    def __init__(self, toggles: int = 1) -> None:
        super().__init__(DistanceConfig())
        self.pipeline = None
        self.toggles = toggles

    def estimate(self, box):
        while self.toggles:
            self.toggles -= 1
            self.pipeline.toggle_detection()
        return super().estimate(box)


def _build_toggling(detector, toggles):
    received = []
    estimator = TogglingEstimator(toggles)
    gate = DetectionGate(detector)
    pipeline = FaceDistancePipeline(
        gate=gate,
        estimator=estimator,
        detector_input_size=_INPUT,
        viewport_size=Size(1200, 300),
        sink=received.append,
    )
    estimator.pipeline = pipeline
    return pipeline, gate, received


def test_disable_during_annotation_keeps_sink_clear():
    """Disabling while a result is being annotated leaves the sink cleared."""
    detector = FakeDetector()
    pipeline, gate, received = _build_toggling(detector, toggles=1)
    handoff = FrameHandoff()
    try:
        handoff.publish(_frame())
        pipeline.consume(handoff)
        gate.close(wait=True)

        assert pipeline.detection_enabled is False
        assert received == [()]
    finally:
        gate.close()


def test_pass_spanning_off_on_toggle_is_dropped():
    """A pass requested before an off/on toggle never reaches the sink."""
    detector = FakeDetector(block=True)
    pipeline, gate, received = _build(detector)
    handoff = FrameHandoff()
    try:
        handoff.publish(_frame())
        pipeline.consume(handoff)
        assert detector.started.wait(_TIMEOUT)

        assert pipeline.toggle_detection() is False
        # Back on while the old pass is still in flight: the gate is busy
        assert pipeline.toggle_detection() is True

        detector.release.set()
        gate.close(wait=True)

        assert detector.calls == 1
        assert received == [(), ()]
    finally:
        detector.release.set()
        gate.close()


def test_toggle_on_detects_current_frame():
    """Switching detection on runs a pass on the frame already shown."""
    detector = FakeDetector()
    pipeline, gate, received = _build(detector, enabled=False)
    handoff = FrameHandoff()
    try:
        handoff.publish(_frame())
        pipeline.consume(handoff)

        assert pipeline.toggle_detection() is True
        assert detector.started.wait(_TIMEOUT)
        gate.close(wait=True)

        assert detector.calls == 1
        assert received[0] == ()
        assert len(received[1]) == 1
    finally:
        gate.close()


def test_resize_viewport_changes_mapping():
    """Annotations use the viewport size current at completion time."""
    detector = FakeDetector()
    pipeline, gate, _ = _build(detector)
    try:
        result = DetectionResult(
            boxes=(FaceBoundingBox(0, 0, 300, 300),),
            original_size=Size(600, 300),
        )
        pipeline.resize_viewport(Size(600, 300))
        (ann,) = pipeline.annotate(result)
        assert ann.display_box.x1 == pytest.approx(600)

        pipeline.resize_viewport(Size(300, 300))
        (ann,) = pipeline.annotate(result)
        assert ann.display_box.x1 == pytest.approx(300)
        assert ann.display_box.y0 == pytest.approx(75)
    finally:
        gate.close()


def test_queue_render_sink_keeps_newest():
    """Only the latest batch is handed to the render loop."""
    sink = QueueRenderSink()
    assert sink.poll() is None

    sink(["a"])
    sink(["b", "c"])

    assert sink.poll() == ("b", "c")
    assert sink.poll() is None


def test_detection_switch():
    """The switch flips synchronously."""
    switch = DetectionSwitch(False)
    assert switch.toggle() is True
    assert switch.enabled
    assert switch.set(False) is False
    assert not switch.enabled
