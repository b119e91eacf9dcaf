"""
Behavior Classifier Module

Maps raw pointer, focus and visibility observations to classification
verdicts. Every method is a pure function of its arguments and the
classifier's thresholds: no counters are touched here, the SessionController
applies the verdicts.

Detection rules:
- Out of bounds: pointer outside the tracking surface rectangle
- Rapid movement: speed AND distance both above threshold for one sample pair
- Tab switch / window blur: one event per native transition
- Prolonged inactivity: one event per full minute boundary of idleness
"""

import math
from typing import List, Optional, Tuple
import logging

from shared.models import EventKind, Sample, SuspiciousEvent

logger = logging.getLogger(__name__)


def is_out_of_bounds(x: float, y: float, width: float, height: float) -> bool:
    """True when (x, y) lies outside the [0, width] x [0, height] rectangle."""
    return x < 0 or y < 0 or x > width or y > height


def movement(previous: Sample, x: float, y: float, timestamp: float) -> Optional[Tuple[float, float]]:
    """
    Distance and speed from ``previous`` to the new position.

    Returns:
        (distance, speed) in units and units/ms, or None when the time delta
        is not positive (duplicate or out-of-order clock reading).
    """
    dt = timestamp - previous.timestamp
    if dt <= 0:
        return None
    distance = math.hypot(x - previous.x, y - previous.y)
    return distance, distance / dt


class BehaviorClassifier:
    """
    Threshold-based classifier for a single session.

    Thresholds default to the values the proctoring UI was tuned with and
    can be overridden per instance.
    """

    def __init__(
        self,
        speed_threshold: float = 2.0,
        distance_threshold: float = 100.0,
        inactivity_warning_seconds: int = 30,
        prolonged_inactivity_seconds: int = 60,
    ):
        """
        Args:
            speed_threshold: Minimum speed (units/ms) for a rapid movement.
            distance_threshold: Minimum jump distance (units) for a rapid movement.
            inactivity_warning_seconds: Idle seconds after which the UI warns.
            prolonged_inactivity_seconds: Period of prolonged-inactivity events.
        """
        if prolonged_inactivity_seconds <= 0:
            raise ValueError("prolonged_inactivity_seconds must be positive")
        self.speed_threshold = speed_threshold
        self.distance_threshold = distance_threshold
        self.inactivity_warning_seconds = inactivity_warning_seconds
        self.prolonged_inactivity_seconds = prolonged_inactivity_seconds

    def classify_pointer(
        self,
        previous: Optional[Sample],
        x: float,
        y: float,
        timestamp: float,
        width: float,
        height: float,
    ) -> Tuple[Sample, List[SuspiciousEvent]]:
        """
        Build the Sample for a new pointer position and classify it.

        Args:
            previous: Last sample of the session, or None for the first one.
            x, y: Position relative to the tracking surface.
            timestamp: Monotonic milliseconds.
            width, height: Tracking surface size at classification time.

        Returns:
            The new Sample (derived fields filled in) and zero or more events,
            out-of-bounds first.
        """
        events: List[SuspiciousEvent] = []

        out_of_bounds = is_out_of_bounds(x, y, width, height)
        if out_of_bounds:
            events.append(SuspiciousEvent(
                kind=EventKind.OUT_OF_BOUNDS,
                description="Cursor left exam area",
                payload={"x": x, "y": y},
                timestamp=timestamp,
            ))

        speed = 0.0
        if previous is not None:
            moved = movement(previous, x, y, timestamp)
            if moved is None:
                logger.debug(f"Skipping speed check: non-positive dt at {timestamp:.0f}ms")
            else:
                distance, speed = moved
                if self.is_rapid(distance, speed):
                    events.append(SuspiciousEvent(
                        kind=EventKind.RAPID_MOVEMENT,
                        description="Rapid cursor movement detected",
                        payload={"speed": round(speed, 2), "distance": round(distance, 2)},
                        timestamp=timestamp,
                    ))

        sample = Sample(x=x, y=y, timestamp=timestamp, out_of_bounds=out_of_bounds, speed=speed)
        return sample, events

    def is_rapid(self, distance: float, speed: float) -> bool:
        """Both conditions are required; a slow long jump or a fast twitch is not rapid."""
        return speed > self.speed_threshold and distance > self.distance_threshold

    def classify_visibility(self, hidden: bool, timestamp: float) -> Optional[SuspiciousEvent]:
        """A transition to hidden is a tab switch; becoming visible is not an event."""
        if not hidden:
            return None
        return SuspiciousEvent(
            kind=EventKind.TAB_SWITCH,
            description="Tab/Window switched",
            payload={"duration": "started"},
            timestamp=timestamp,
        )

    def classify_blur(self, timestamp: float) -> SuspiciousEvent:
        return SuspiciousEvent(
            kind=EventKind.WINDOW_BLUR,
            description="Window lost focus",
            payload={},
            timestamp=timestamp,
        )

    @staticmethod
    def idle_seconds(now_ms: float, last_activity_ms: float) -> int:
        """Whole seconds since the last activity; never negative."""
        return max(0, int((now_ms - last_activity_ms) // 1000))

    def check_idle(
        self,
        idle_seconds: int,
        last_boundary: int,
        timestamp: float,
    ) -> Tuple[bool, Optional[SuspiciousEvent]]:
        """
        Evaluate one idle tick.

        Args:
            idle_seconds: Whole seconds since the last pointer sample.
            last_boundary: Idle second at which the previous prolonged-inactivity
                           event fired this idle episode (0 if none).
            timestamp: Monotonic milliseconds of the tick.

        Returns:
            (inactivity_warning, event); the event is set only on the first
            tick that lands exactly on a new minute boundary.
        """
        warning = idle_seconds > self.inactivity_warning_seconds

        period = self.prolonged_inactivity_seconds
        on_boundary = idle_seconds >= period and idle_seconds % period == 0
        if not on_boundary or idle_seconds == last_boundary:
            return warning, None

        return warning, SuspiciousEvent(
            kind=EventKind.PROLONGED_INACTIVITY,
            description="Prolonged inactivity",
            payload={"duration": f"{idle_seconds}s", "idle_seconds": idle_seconds},
            timestamp=timestamp,
        )
