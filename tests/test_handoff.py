"""
Tests for the single-slot frame handoff.
"""

import threading

import numpy as np

from face_distance.frame import Frame
from face_distance.handoff import FrameHandoff


def _frame(value: int = 0) -> Frame:
    return Frame(np.full((2, 2, 3), value, dtype=np.uint8))


def test_newest_frame_wins():
    """Publishing A then B before a drain yields B only."""
    handoff = FrameHandoff()
    a, b = _frame(1), _frame(2)

    handoff.publish(a)
    handoff.publish(b)

    assert handoff.drain_latest() is b
    assert handoff.drain_latest() is None
    assert a.released
    assert not b.released
    assert handoff.dropped == 1


def test_drain_empty_is_noop():
    """Draining an empty handoff returns None and changes nothing."""
    handoff = FrameHandoff()

    assert handoff.drain_latest() is None
    assert handoff.drain() is None
    assert not handoff.pending
    assert handoff.published == 0


def test_publish_none_ignored():
    """A None frame does not clear a pending frame."""
    handoff = FrameHandoff()
    a = _frame()
    handoff.publish(a)
    handoff.publish(None)

    assert handoff.drain() is a


def test_drain_returns_latest():
    """drain() loops until empty and returns the newest frame."""
    handoff = FrameHandoff()
    a = _frame()
    handoff.publish(a)

    assert handoff.drain() is a
    assert not handoff.pending


def test_concurrent_producers_leave_one_frame():
    """Many producers racing leave exactly one live pending frame."""
    handoff = FrameHandoff()
    frames = [_frame(i % 255) for i in range(400)]
    start = threading.Event()

    def produce(chunk):
        start.wait()
        for frame in chunk:
            handoff.publish(frame)

    threads = [
        threading.Thread(target=produce, args=(frames[i::4],)) for i in range(4)
    ]
    for t in threads:
        t.start()
    start.set()
    for t in threads:
        t.join()

    latest = handoff.drain()
    assert latest is not None
    assert not latest.released
    assert handoff.drain() is None

    # Every other frame was released exactly by being overwritten
    live = [f for f in frames if not f.released]
    assert live == [latest]
    assert handoff.published == 400
    assert handoff.dropped == 399
