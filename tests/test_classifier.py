"""
Tests for the behavior classifier
"""
import pytest

from engine.classifier import BehaviorClassifier, is_out_of_bounds, movement
from shared.models import EventKind, Sample


def sample_at(x, y, t):
    return Sample(x=x, y=y, timestamp=t)


class TestOutOfBounds:
    """Out-of-bounds is exactly x<0 or y<0 or x>width or y>height"""

    @pytest.mark.parametrize("x,y", [(0, 0), (800, 600), (400, 300), (0, 600), (800, 0)])
    def test_edges_are_inside(self, x, y):
        assert not is_out_of_bounds(x, y, 800, 600)

    @pytest.mark.parametrize("x,y", [(-0.5, 10), (10, -1), (800.5, 10), (10, 600.1), (850, 300)])
    def test_outside(self, x, y):
        assert is_out_of_bounds(x, y, 800, 600)

    def test_event_payload(self):
        classifier = BehaviorClassifier()
        sample, events = classifier.classify_pointer(None, 850, 300, 5.0, 800, 600)

        assert sample.out_of_bounds
        assert len(events) == 1
        assert events[0].kind == EventKind.OUT_OF_BOUNDS
        assert events[0].description == "Cursor left exam area"
        assert events[0].payload == {"x": 850, "y": 300}


class TestRapidMovement:
    """Both speed and distance thresholds must be exceeded"""

    def test_both_above_threshold_fires(self):
        classifier = BehaviorClassifier()
        assert classifier.is_rapid(distance=100.01, speed=2.01)

    def test_distance_at_threshold_does_not_fire(self):
        classifier = BehaviorClassifier()
        assert not classifier.is_rapid(distance=100, speed=3)

    def test_speed_alone_does_not_fire(self):
        classifier = BehaviorClassifier()
        assert not classifier.is_rapid(distance=50, speed=10)

    def test_distance_alone_does_not_fire(self):
        classifier = BehaviorClassifier()
        assert not classifier.is_rapid(distance=500, speed=2.0)

    def test_jump_between_samples(self):
        classifier = BehaviorClassifier()
        sample, events = classifier.classify_pointer(sample_at(10, 10, 10), 500, 10, 20, 800, 600)

        assert sample.speed == pytest.approx(49.0)
        assert [e.kind for e in events] == [EventKind.RAPID_MOVEMENT]
        assert events[0].payload == {"speed": 49.0, "distance": 490.0}

    @pytest.mark.parametrize("t", [10, 5])
    def test_non_positive_dt_skips_speed(self, t):
        classifier = BehaviorClassifier()
        sample, events = classifier.classify_pointer(sample_at(10, 10, 10), 700, 10, t, 800, 600)

        assert events == []
        assert sample.speed == 0.0
        assert movement(sample_at(10, 10, 10), 700, 10, t) is None

    def test_out_of_bounds_and_rapid_together(self):
        classifier = BehaviorClassifier()
        _, events = classifier.classify_pointer(sample_at(700, 300, 0), 900, 300, 10, 800, 600)

        assert [e.kind for e in events] == [EventKind.OUT_OF_BOUNDS, EventKind.RAPID_MOVEMENT]

    def test_custom_thresholds(self):
        classifier = BehaviorClassifier(speed_threshold=0.5, distance_threshold=20)
        _, events = classifier.classify_pointer(sample_at(0, 0, 0), 30, 0, 50, 800, 600)

        assert len(events) == 1


class TestFocusAndVisibility:

    def test_hidden_is_tab_switch(self):
        event = BehaviorClassifier().classify_visibility(True, 100.0)
        assert event.kind == EventKind.TAB_SWITCH
        assert event.payload == {"duration": "started"}

    def test_visible_is_not_an_event(self):
        assert BehaviorClassifier().classify_visibility(False, 100.0) is None

    def test_blur(self):
        event = BehaviorClassifier().classify_blur(42.0)
        assert event.kind == EventKind.WINDOW_BLUR
        assert event.timestamp == 42.0


class TestIdle:
    """Inactivity warning after 30s, prolonged-inactivity event on each full minute"""

    def test_idle_seconds_floor(self):
        assert BehaviorClassifier.idle_seconds(1999, 0) == 1
        assert BehaviorClassifier.idle_seconds(0, 500) == 0

    def test_warning_threshold(self):
        classifier = BehaviorClassifier()
        assert classifier.check_idle(30, 0, 0)[0] is False
        assert classifier.check_idle(31, 0, 0)[0] is True

    @pytest.mark.parametrize("idle", [60, 120, 180])
    def test_fires_on_minute_boundary(self, idle):
        _, event = BehaviorClassifier().check_idle(idle, 0, 0)
        assert event is not None
        assert event.kind == EventKind.PROLONGED_INACTIVITY
        assert event.payload["idle_seconds"] == idle

    @pytest.mark.parametrize("idle", [0, 59, 61, 90, 119, 121])
    def test_silent_between_boundaries(self, idle):
        assert BehaviorClassifier().check_idle(idle, 0, 0)[1] is None

    def test_same_boundary_fires_once(self):
        assert BehaviorClassifier().check_idle(60, 60, 0)[1] is None

    def test_invalid_period(self):
        with pytest.raises(ValueError):
            BehaviorClassifier(prolonged_inactivity_seconds=0)
