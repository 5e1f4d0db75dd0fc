"""
Single-flight gate in front of the face detector.

Responsibility:
    Run the detector asynchronously on a worker, never more than one
    invocation at a time. Requests made while a pass is in flight are
    dropped (the caller gets None), which is the normal outcome when
    frames arrive faster than inference completes.

Failure behavior:
    - Detector exceptions and sink exceptions are logged separately and
      surface through the returned Future. The gate becomes idle again
      either way.
    - A None frame is ignored without touching the busy state.

Non-goals:
    - No cancellation of an in-flight pass. Callers that no longer want
      a result ignore it at completion time (see pipeline.DetectionSwitch).
"""

import logging
import threading
import time
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Callable, Optional

from face_distance.detection import DetectionResult
from face_distance.frame import Frame

logger = logging.getLogger(__name__)

DetectFn = Callable[[Frame], DetectionResult]
ResultSink = Callable[[DetectionResult], None]


class DetectionGate:
    """At most one in-flight detector call per instance.

    Usage:
        gate = DetectionGate(detector.detect, sink=on_result)
        future = gate.request_detection(frame)   # None when busy
        ...
        gate.close()

    The sink is called on the worker thread after each successful pass,
    before the gate becomes idle. It must not block for long.
    """

    def __init__(
        self,
        detect: DetectFn,
        sink: Optional[ResultSink] = None,
        executor: Optional[Executor] = None,
    ) -> None:
        """Create a gate around a detector callable.

        Args:
            detect: Callable running one detection pass on a frame.
            sink: Receives each DetectionResult. May be set later.
            executor: Worker to run passes on. By default the gate owns a
                      single-thread pool and shuts it down in close().
        """
        self._detect = detect
        self._sink = sink
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="face-detect"
        )
        self._lock = threading.Lock()
        self._busy = False
        self._fps = 0.0

    @property
    def busy(self) -> bool:
        with self._lock:
            return self._busy

    @property
    def fps(self) -> float:
        """Detection passes per second, from the last completed pass."""
        return self._fps

    def set_sink(self, sink: Optional[ResultSink]) -> None:
        self._sink = sink

    def request_detection(self, frame: Optional[Frame]) -> Optional[Future]:
        """Start a detection pass on ``frame`` unless one is in flight.

        Returns:
            A Future resolving to the DetectionResult (or raising the
            detector's exception), or None if the frame is None or the
            gate is busy.
        """
        if frame is None:
            return None

        with self._lock:
            if self._busy:
                logger.debug("Detection in flight, skipping frame.")
                return None
            self._busy = True

        try:
            return self._executor.submit(self._run, frame)
        except RuntimeError:
            # Executor already shut down
            self._set_idle()
            raise

    def _run(self, frame: Frame) -> DetectionResult:
        try:
            result = self._timed_detect(frame)
            self._publish(result)
            return result
        finally:
            self._set_idle()

    def _timed_detect(self, frame: Frame) -> DetectionResult:
        started = time.perf_counter()
        try:
            result = self._detect(frame)
        except Exception:
            logger.exception("Detection pass failed.")
            raise
        elapsed = time.perf_counter() - started
        self._fps = 1.0 / elapsed if elapsed > 0 else 0.0
        return result

    def _publish(self, result: DetectionResult) -> None:
        sink = self._sink
        if sink is None:
            return
        try:
            sink(result)
        except Exception:
            logger.exception("Result sink failed after a successful detection pass.")
            raise

    def _set_idle(self) -> None:
        with self._lock:
            self._busy = False

    def close(self, wait: bool = True) -> None:
        """Shut down the owned worker. An in-flight pass may finish first."""
        if self._owns_executor:
            self._executor.shutdown(wait=wait)
