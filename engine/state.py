"""
BehaviorCounters: single source of truth for the running behavior tallies.

Owned by the SessionController and mutated only on the event-processing
thread. Counters only ever grow; ``reset()`` is called exclusively by
``SessionController.start()``.
"""

from dataclasses import dataclass

from shared.models import CountersSnapshot, EventKind


@dataclass
class BehaviorCounters:
    # ── Suspicious-event tallies ──────────────────────────────
    window_blur: int = 0
    tab_switch: int = 0
    out_of_bounds: int = 0
    rapid_movement: int = 0

    # ── Activity tracking ─────────────────────────────────────
    last_activity: float = 0.0      # monotonic ms of the latest sample
    idle_seconds: int = 0
    inactivity_warning: bool = False
    last_inactivity_boundary: int = 0   # idle second at which the last prolonged-inactivity event fired

    @property
    def total(self) -> int:
        return self.window_blur + self.tab_switch + self.out_of_bounds + self.rapid_movement

    def record(self, kind: EventKind) -> None:
        """Bump the tally matching a classified event kind."""
        if kind == EventKind.WINDOW_BLUR:
            self.window_blur += 1
        elif kind == EventKind.TAB_SWITCH:
            self.tab_switch += 1
        elif kind == EventKind.OUT_OF_BOUNDS:
            self.out_of_bounds += 1
        elif kind == EventKind.RAPID_MOVEMENT:
            self.rapid_movement += 1
        # prolonged inactivity is logged but not tallied

    def record_activity(self, now_ms: float) -> None:
        """Mark that a pointer sample just arrived."""
        self.last_activity = now_ms
        self.idle_seconds = 0
        self.inactivity_warning = False
        self.last_inactivity_boundary = 0

    def reset(self, now_ms: float) -> None:
        self.window_blur = 0
        self.tab_switch = 0
        self.out_of_bounds = 0
        self.rapid_movement = 0
        self.record_activity(now_ms)

    def snapshot(self) -> CountersSnapshot:
        return CountersSnapshot(
            window_blur_count=self.window_blur,
            tab_switch_count=self.tab_switch,
            out_of_bounds_count=self.out_of_bounds,
            rapid_movement_count=self.rapid_movement,
            last_activity=self.last_activity,
            idle_seconds=self.idle_seconds,
            inactivity_warning=self.inactivity_warning,
        )
