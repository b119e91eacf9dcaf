"""
Tests for the manual clock and cooperative schedulers
"""
import pytest

from engine.clock import ManualClock, ManualScheduler


class TestManualClock:

    def test_advance(self):
        clock = ManualClock(100)
        clock.advance(50)
        assert clock.now_ms() == 150

    def test_cannot_go_backwards(self):
        clock = ManualClock(100)
        with pytest.raises(ValueError):
            clock.set(99)


class TestManualScheduler:

    def test_after_fires_once_at_due_time(self):
        scheduler = ManualScheduler()
        seen = []
        handle = scheduler.after(50, lambda: seen.append(scheduler.clock.now_ms()))

        scheduler.advance(49)
        assert seen == []
        scheduler.advance(1)
        assert seen == [50]
        scheduler.advance(100)
        assert seen == [50]
        assert handle.cancelled

    def test_cancelled_after_never_fires(self):
        scheduler = ManualScheduler()
        seen = []
        handle = scheduler.after(10, lambda: seen.append(1))
        handle.cancel()
        handle.cancel()

        scheduler.advance(100)
        assert seen == []
        assert scheduler.pending == 0

    def test_every_repeats_until_cancelled(self):
        scheduler = ManualScheduler()
        ticks = []
        handle = scheduler.every(100, lambda: ticks.append(scheduler.clock.now_ms()))

        scheduler.advance(350)
        assert ticks == [100, 200, 300]

        handle.cancel()
        scheduler.advance(1000)
        assert ticks == [100, 200, 300]
        assert scheduler.pending == 0

    def test_every_cancelled_from_inside_callback(self):
        scheduler = ManualScheduler()
        ticks = []

        def tick():
            ticks.append(1)
            if len(ticks) == 2:
                handle.cancel()

        handle = scheduler.every(10, tick)
        scheduler.advance(100)
        assert len(ticks) == 2

    def test_failing_callback_keeps_loop_running(self):
        scheduler = ManualScheduler()
        ticks = []

        def tick():
            ticks.append(1)
            raise RuntimeError("boom")

        scheduler.every(10, tick)
        scheduler.advance(30)
        assert len(ticks) == 3

    def test_invalid_period(self):
        with pytest.raises(ValueError):
            ManualScheduler().every(0, lambda: None)
