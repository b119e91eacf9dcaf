"""
Event Log Module

Append-only, arrival-ordered store of pointer samples and suspicious events
for the active session. Nothing is reordered: the log is an audit trail, and
insertion order is chronological order.

Retention policy:
- Suspicious events are kept in full for the whole session.
- Samples are kept in full up to ``max_samples`` (None = unbounded); past the
  cap the oldest samples are dropped, but ``sample_count`` keeps counting.
- A separate ring buffer always holds the last ``trail_size`` samples for
  the renderer.
"""

from collections import deque
from typing import Deque, List, Optional, Tuple
import logging

from shared.models import Sample, SuspiciousEvent

logger = logging.getLogger(__name__)


class EventLog:
    """Session-scoped sample and event store."""

    def __init__(self, trail_size: int = 200, max_samples: Optional[int] = 50_000):
        """
        Args:
            trail_size: Number of most recent samples kept for the cursor trail.
            max_samples: Cap on retained samples for long sessions.
        """
        if trail_size <= 0:
            raise ValueError("trail_size must be positive")
        self.trail_size = trail_size
        self.max_samples = max_samples
        self._samples: Deque[Sample] = deque(maxlen=max_samples)
        self._trail: Deque[Sample] = deque(maxlen=trail_size)
        self._events: List[SuspiciousEvent] = []
        self._sample_count = 0

    def append_sample(self, sample: Sample) -> None:
        self._samples.append(sample)
        self._trail.append(sample)
        self._sample_count += 1

    def append_event(self, event: SuspiciousEvent) -> None:
        self._events.append(event)
        logger.debug(f"Logged {event.kind.value} at {event.timestamp:.0f}ms")

    def clear(self) -> None:
        """Drop everything. Only called at session start."""
        self._samples.clear()
        self._trail.clear()
        self._events.clear()
        self._sample_count = 0

    @property
    def sample_count(self) -> int:
        """Samples processed this session (including any dropped by the cap)."""
        return self._sample_count

    @property
    def samples(self) -> Tuple[Sample, ...]:
        return tuple(self._samples)

    @property
    def events(self) -> Tuple[SuspiciousEvent, ...]:
        return tuple(self._events)

    @property
    def last_sample(self) -> Optional[Sample]:
        return self._trail[-1] if self._trail else None

    def trail_samples(self) -> List[Sample]:
        """Last ``trail_size`` samples, oldest first."""
        return list(self._trail)

    def recent_events(self, limit: int = 10) -> List[SuspiciousEvent]:
        """Most recent events first, as the event panel shows them."""
        if limit <= 0:
            return []
        return list(reversed(self._events[-limit:]))
