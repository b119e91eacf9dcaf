"""
Suspicion Aggregator Module

Turns the four behavior counters into a coarse risk level.
The level is never stored: it is recomputed from the counters every time it
is asked for, so it cannot go stale and does not depend on the order in which
increments happened.
"""

import logging
from typing import Optional

from shared.models import CountersSnapshot, SuspicionLevel

logger = logging.getLogger(__name__)

HIGH_THRESHOLD = 5


def suspicion_level(
    window_blur: int,
    tab_switch: int,
    out_of_bounds: int,
    rapid_movement: int,
) -> SuspicionLevel:
    """
    total == 0 → Low, 0 < total < 5 → Medium, total >= 5 → High.
    """
    total = window_blur + tab_switch + out_of_bounds + rapid_movement
    if total == 0:
        return SuspicionLevel.LOW
    if total < HIGH_THRESHOLD:
        return SuspicionLevel.MEDIUM
    return SuspicionLevel.HIGH


def level_for(counters: CountersSnapshot) -> SuspicionLevel:
    return suspicion_level(
        counters.window_blur_count,
        counters.tab_switch_count,
        counters.out_of_bounds_count,
        counters.rapid_movement_count,
    )


class SuspicionAggregator:
    """
    Evaluates the level and logs transitions between tiers.
    Only the last *reported* level is remembered, for logging; every call
    still computes from the counters it is given.
    """

    def __init__(self):
        self._last_reported: Optional[SuspicionLevel] = None

    def evaluate(self, counters: CountersSnapshot) -> SuspicionLevel:
        level = level_for(counters)
        if level != self._last_reported:
            if level == SuspicionLevel.HIGH:
                logger.warning(f"🔴 HIGH SUSPICION - {counters.total} suspicious events")
            elif level == SuspicionLevel.MEDIUM:
                logger.info(f"🟠 MEDIUM SUSPICION - {counters.total} suspicious events")
            else:
                logger.debug("🟢 LOW SUSPICION")
            self._last_reported = level
        return level

    def reset(self) -> None:
        self._last_reported = None
