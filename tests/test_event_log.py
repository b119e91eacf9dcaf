"""
Tests for the event log, cursor trail and telemetry
"""
import pytest

from engine.event_log import EventLog
from engine.telemetry import FrameCounter
from engine.trail import IN_BOUNDS_COLOR, OUT_OF_BOUNDS_COLOR, build_trail
from shared.models import EventKind, Sample, SuspiciousEvent


def make_event(t):
    return SuspiciousEvent(kind=EventKind.WINDOW_BLUR, description="Window lost focus", timestamp=t)


class TestEventLog:

    def test_arrival_order_kept(self):
        log = EventLog()
        for t in (30.0, 10.0, 20.0):
            log.append_event(make_event(t))
        assert [e.timestamp for e in log.events] == [30.0, 10.0, 20.0]

    def test_recent_events_newest_first(self):
        log = EventLog()
        for t in range(15):
            log.append_event(make_event(float(t)))

        recent = log.recent_events()
        assert len(recent) == 10
        assert recent[0].timestamp == 14.0
        assert recent[-1].timestamp == 5.0

    def test_sample_cap_keeps_counting(self):
        log = EventLog(trail_size=3, max_samples=5)
        for i in range(8):
            log.append_sample(Sample(x=i, y=0, timestamp=i))

        assert log.sample_count == 8
        assert len(log.samples) == 5
        assert [s.x for s in log.trail_samples()] == [5, 6, 7]
        assert log.last_sample.x == 7

    def test_clear(self):
        log = EventLog()
        log.append_sample(Sample(x=1, y=1, timestamp=0))
        log.append_event(make_event(0))
        log.clear()

        assert log.sample_count == 0
        assert log.events == ()
        assert log.last_sample is None

    def test_invalid_trail_size(self):
        with pytest.raises(ValueError):
            EventLog(trail_size=0)


class TestTrail:

    def test_empty(self):
        assert build_trail([]) == []

    def test_opacity_and_colors(self):
        samples = [
            Sample(x=0, y=0, timestamp=0),
            Sample(x=900, y=0, timestamp=1, out_of_bounds=True),
        ]
        points = build_trail(samples)

        assert [p.opacity for p in points] == [0.0, 0.15, 1.0]
        assert points[0].color == IN_BOUNDS_COLOR
        assert points[1].color == OUT_OF_BOUNDS_COLOR
        assert points[-1].current and points[-1].x == 900

    def test_limit(self):
        samples = [Sample(x=i, y=0, timestamp=i) for i in range(300)]
        points = build_trail(samples, limit=200)
        assert len(points) == 201
        assert points[0].x == 100


class TestFrameCounter:

    def test_fps_published_after_window(self):
        frames = FrameCounter()
        frames.reset(0)
        for t in range(1, 60):
            frames.tick(t * 1000 / 60)
        assert frames.fps == 0

        frames.tick(1000)
        assert frames.fps == 60
