"""
Single-slot frame handoff between a frame source and the pipeline.

Responsibility:
    Bridge any number of producer threads (camera callback, photo loader)
    to one consumer. The slot holds at most one pending frame. A new
    publish replaces the pending frame and releases it; the consumer
    always sees the newest frame and silently skips the ones in between.

Concurrency:
    The slot is the only mutable shared state. Every access is an atomic
    take-and-replace under a lock that is held for the swap only, so
    neither side ever waits on the other's work.

Non-goals:
    - No queueing. Intermediate frames are dropped, not buffered.
    - No blocking waits for the next frame.
"""

import logging
import threading
from typing import Optional

from face_distance.frame import Frame

logger = logging.getLogger(__name__)


class FrameHandoff:
    """Overwrite-on-arrival buffer with drop-stale semantics.

    Usage:
        handoff = FrameHandoff()
        handoff.publish(frame)          # producer thread(s)
        latest = handoff.drain()        # consumer thread

    Delivery is at-most-latest: the last frame published before the
    consumer's final empty drain is always observed, earlier ones may
    be skipped.
    """

    def __init__(self) -> None:
        self._slot: Optional[Frame] = None
        self._lock = threading.Lock()
        self._published = 0
        self._dropped = 0

    def _swap(self, frame: Optional[Frame]) -> Optional[Frame]:
        """Atomically store ``frame`` and return the previous occupant."""
        with self._lock:
            previous, self._slot = self._slot, frame
            if frame is not None:
                self._published += 1
                if previous is not None:
                    self._dropped += 1
        return previous

    def publish(self, frame: Optional[Frame]) -> None:
        """Make ``frame`` the pending frame, releasing any unconsumed one.

        A None frame is ignored.
        """
        if frame is None:
            return

        stale = self._swap(frame)
        if stale is not None:
            stale.release()
            logger.debug("Dropped stale frame %r.", stale)

    def drain_latest(self) -> Optional[Frame]:
        """Take and clear the pending frame. Returns None if empty.

        Ownership of the returned frame passes to the caller.
        """
        return self._swap(None)

    def drain(self) -> Optional[Frame]:
        """Drain until empty and return the newest frame taken.

        Frames superseded during the loop are released. Returns None if
        nothing was pending.
        """
        latest: Optional[Frame] = None
        while True:
            frame = self.drain_latest()
            if frame is None:
                return latest
            if latest is not None:
                latest.release()
            latest = frame

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._slot is not None

    @property
    def published(self) -> int:
        """Total frames accepted by publish()."""
        return self._published

    @property
    def dropped(self) -> int:
        """Frames overwritten before the consumer took them."""
        return self._dropped
