"""
Clock and Timer Module

Monotonic time source plus the cooperative timer primitives every engine
component schedules through. All callbacks run on the single event-processing
thread that owns the scheduler; nothing here spawns threads.

Three scheduler flavors share one interface:
- AsyncioScheduler: wraps ``loop.call_later`` (used under uvicorn)
- ManualScheduler: virtual time advanced explicitly (tests and replays)
- TkScheduler: lives in host/tk_host.py and wraps ``root.after``
"""

import asyncio
import heapq
import itertools
import logging
import time
from typing import Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)


class Clock:
    """Abstract monotonic clock returning milliseconds."""

    def now_ms(self) -> float:
        raise NotImplementedError


class MonotonicClock(Clock):
    """Wall-clock-independent time source backed by ``time.monotonic``."""

    def now_ms(self) -> float:
        return time.monotonic() * 1000.0


class ManualClock(Clock):
    """Clock that only moves when told to."""

    def __init__(self, start_ms: float = 0.0):
        self._now = float(start_ms)

    def now_ms(self) -> float:
        return self._now

    def set(self, now_ms: float) -> None:
        if now_ms < self._now:
            raise ValueError(f"ManualClock cannot go backwards ({now_ms} < {self._now})")
        self._now = float(now_ms)

    def advance(self, delta_ms: float) -> None:
        self.set(self._now + delta_ms)


class TimerHandle:
    """
    Cancellable reference to a scheduled callback.

    ``cancel()`` is idempotent. A cancelled handle never invokes its
    callback, even if the underlying primitive already queued it.
    """

    def __init__(self, cancel_fn: Optional[Callable[[], None]] = None):
        self._cancel_fn = cancel_fn
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        if self._cancel_fn is not None:
            try:
                self._cancel_fn()
            except Exception as e:
                logger.debug(f"Timer cancel raised: {e}")


class Scheduler:
    """
    Abstract cooperative scheduler.

    Subclasses implement ``_schedule(delay_ms, fn)`` returning a function that
    cancels the underlying primitive. ``after`` and ``every`` are built on it.
    """

    def _schedule(self, delay_ms: float, fn: Callable[[], None]) -> Callable[[], None]:
        raise NotImplementedError

    def after(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        """Run ``callback`` once after ``delay_ms`` unless cancelled first."""
        handle = TimerHandle()

        def fire():
            if handle.cancelled:
                return
            handle._cancelled = True  # one-shot: spent handles report cancelled
            _run_guarded(callback)

        handle._cancel_fn = self._schedule(delay_ms, fire)
        return handle

    def every(self, period_ms: float, callback: Callable[[], None]) -> TimerHandle:
        """
        Run ``callback`` every ``period_ms`` until the handle is cancelled.
        The next tick is armed only after the current one returns, and only
        if the handle is still live at that point.
        """
        if period_ms <= 0:
            raise ValueError("period_ms must be positive")

        handle = TimerHandle()
        current: List[Callable[[], None]] = []

        def tick():
            if handle.cancelled:
                return
            _run_guarded(callback)
            if not handle.cancelled:
                current[:] = [self._schedule(period_ms, tick)]

        def cancel_current():
            for fn in current:
                fn()
            current.clear()

        current.append(self._schedule(period_ms, tick))
        handle._cancel_fn = cancel_current
        return handle


def _run_guarded(callback: Callable[[], None]) -> None:
    """Timer callbacks must never take the loop down with them."""
    try:
        callback()
    except Exception as e:
        logger.error(f"❌ Timer callback {getattr(callback, '__name__', callback)!r} failed: {e}",
                     exc_info=True)


class AsyncioScheduler(Scheduler):
    """Scheduler on top of a running asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def _schedule(self, delay_ms: float, fn: Callable[[], None]) -> Callable[[], None]:
        timer = self.loop.call_later(max(0.0, delay_ms) / 1000.0, fn)
        return timer.cancel


class ManualScheduler(Scheduler):
    """
    Deterministic scheduler driven by a ManualClock.

    ``advance(ms)`` moves the clock forward and fires every due callback in
    due-time order (ties broken by scheduling order), moving the clock to each
    callback's due time before invoking it.
    """

    def __init__(self, clock: Optional[ManualClock] = None):
        self.clock = clock or ManualClock()
        self._queue: List[Tuple[float, int, Callable[[], None]]] = []
        self._seq = itertools.count()
        self._dead: set = set()

    def _schedule(self, delay_ms: float, fn: Callable[[], None]) -> Callable[[], None]:
        seq = next(self._seq)
        heapq.heappush(self._queue, (self.clock.now_ms() + max(0.0, delay_ms), seq, fn))

        def cancel():
            self._dead.add(seq)

        return cancel

    @property
    def pending(self) -> int:
        """Number of live (not cancelled) callbacks still queued."""
        return sum(1 for _, seq, _ in self._queue if seq not in self._dead)

    def advance(self, delta_ms: float) -> int:
        """Advance virtual time, firing due callbacks. Returns the number fired."""
        target = self.clock.now_ms() + delta_ms
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            due, seq, fn = heapq.heappop(self._queue)
            if seq in self._dead:
                self._dead.discard(seq)
                continue
            self.clock.set(max(due, self.clock.now_ms()))
            fn()
            fired += 1
        self.clock.set(target)
        return fired

    def run_pending(self) -> int:
        """Fire callbacks that are already due without moving the clock."""
        return self.advance(0)
