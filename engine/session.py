"""
Session Controller Module

Top-level orchestrator for one supervised session. Owns the event log, the
behavior counters, the classifier, the fullscreen enforcer and every timer,
and exposes immutable snapshots for the presentation layer.

Lifecycle:
- start(): clear log and counters, record the start time, activate
  fullscreen enforcement, arm the idle check and the render loop
- host events while active: classified and appended in arrival order
- stop(): cancel all timers, release fullscreen through the intentional-exit
  path, keep the log for inspection

All methods must be called from the thread that drives the scheduler.
"""

from typing import Callable, List, Optional, Tuple
import logging

from engine.classifier import BehaviorClassifier
from engine.clock import Clock, Scheduler, TimerHandle
from engine.event_log import EventLog
from engine.fullscreen import FullscreenEnforcer
from engine.state import BehaviorCounters
from engine.suspicion import SuspicionAggregator, level_for
from engine.telemetry import FrameCounter, process_memory_mb, telemetry_snapshot
from engine.trail import build_trail
from host.capabilities import DisplayCapability, NotificationCapability, TrackingSurface
from shared.models import (
    CountersSnapshot,
    FullscreenSnapshot,
    Sample,
    SessionSnapshot,
    SuspicionLevel,
    SuspiciousEvent,
    TelemetrySnapshot,
    TrailPoint,
)

logger = logging.getLogger(__name__)

Renderer = Callable[[List[TrailPoint]], None]


class SessionController:
    """
    Wires the behavior monitor and the fullscreen enforcer to one clock and
    one scheduler.
    """

    def __init__(
        self,
        surface: Optional[TrackingSurface],
        display: DisplayCapability,
        scheduler: Scheduler,
        clock: Clock,
        notifier: Optional[NotificationCapability] = None,
        classifier: Optional[BehaviorClassifier] = None,
        event_log: Optional[EventLog] = None,
        idle_check_ms: float = 1000.0,
        frame_interval_ms: float = 1000.0 / 60,
        poll_interval_ms: float = 100.0,
        reentry_delay_ms: float = 50.0,
        renderer: Optional[Renderer] = None,
        on_warning: Optional[Callable[[str], None]] = None,
        memory_probe: Callable[[], Optional[float]] = process_memory_mb,
    ):
        self.surface = surface
        self.scheduler = scheduler
        self.clock = clock
        self.classifier = classifier or BehaviorClassifier()
        self.log = event_log or EventLog()
        self.idle_check_ms = idle_check_ms
        self.frame_interval_ms = frame_interval_ms
        self.renderer = renderer
        self.memory_probe = memory_probe

        self.fullscreen_enforcer = FullscreenEnforcer(
            display,
            scheduler,
            notifier=notifier,
            poll_interval_ms=poll_interval_ms,
            reentry_delay_ms=reentry_delay_ms,
            on_warning=on_warning,
        )

        self._counters = BehaviorCounters()
        self._aggregator = SuspicionAggregator()
        self._frames = FrameCounter()
        self._memory_mb: Optional[float] = None

        self._active = False
        self._start_ms: Optional[float] = None
        self._end_ms: Optional[float] = None
        self._timers: List[TimerHandle] = []

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def active(self) -> bool:
        return self._active

    def start(self) -> None:
        """Begin a fresh session, discarding whatever the previous one left."""
        if self._active:
            logger.warning("⚠️ start() while a session is active - restarting")
        self._cancel_timers()

        now = self.clock.now_ms()
        self.log.clear()
        self._counters.reset(now)
        self._aggregator.reset()
        self._frames.reset(now)
        self._start_ms = now
        self._end_ms = None
        self._active = True

        self.fullscreen_enforcer.activate()

        self._timers = [
            self.scheduler.every(self.idle_check_ms, self._check_idle),
            self.scheduler.every(self.frame_interval_ms, self._on_frame),
        ]
        logger.info("▶️ Session started")

    def stop(self) -> None:
        """End the session. The event log stays readable until the next start()."""
        if not self._active:
            return
        self._active = False
        self._cancel_timers()
        self._end_ms = self.clock.now_ms()
        self._counters.inactivity_warning = False

        self.fullscreen_enforcer.deactivate()

        logger.info(
            f"⏹️ Session stopped after {self.elapsed_seconds}s | "
            f"samples: {self.log.sample_count} | events: {len(self.log.events)} | "
            f"suspicion: {self.suspicion_level.value}"
        )

    # ------------------------------------------------------------------
    # Host events
    # ------------------------------------------------------------------

    def on_pointer(self, x: float, y: float, timestamp: Optional[float] = None) -> Optional[Sample]:
        """
        Pointer position relative to the tracking surface.

        Returns:
            The classified Sample, or None when no session is active or the
            surface is not mounted yet.
        """
        if not self._active:
            return None
        surface = self.surface
        if surface is None or not surface.mounted:
            return None

        now = self.clock.now_ms()
        ts = now if timestamp is None else timestamp
        width, height = surface.size

        sample, events = self.classifier.classify_pointer(self.log.last_sample, x, y, ts, width, height)
        self.log.append_sample(sample)
        for event in events:
            self._record(event)
        self._counters.record_activity(now)
        return sample

    def on_screen_pointer(self, x: float, y: float, timestamp: Optional[float] = None) -> Optional[Sample]:
        """Pointer position in host/screen coordinates."""
        if not self._active or self.surface is None or not self.surface.mounted:
            return None
        local_x, local_y = self.surface.to_local(x, y)
        return self.on_pointer(local_x, local_y, timestamp)

    def on_visibility_change(self, hidden: bool) -> Optional[SuspiciousEvent]:
        if not self._active:
            return None
        event = self.classifier.classify_visibility(hidden, self.clock.now_ms())
        if event is not None:
            self._record(event)
        return event

    def on_window_blur(self) -> Optional[SuspiciousEvent]:
        if not self._active:
            return None
        event = self.classifier.classify_blur(self.clock.now_ms())
        self._record(event)
        return event

    def on_key(self, key: str) -> bool:
        """Capture-phase key hook; True means the key was consumed."""
        if not self._active:
            return False
        return self.fullscreen_enforcer.on_key(key)

    def on_context_menu(self) -> bool:
        """True means the context menu must be suppressed."""
        return self._active and self.fullscreen_enforcer.on_context_menu()

    def on_display_change(self, is_fullscreen: bool) -> None:
        self.fullscreen_enforcer.on_display_change(is_fullscreen)

    def request_fullscreen(self) -> bool:
        return self.fullscreen_enforcer.request_fullscreen()

    def dismiss_warning(self) -> None:
        self.fullscreen_enforcer.dismiss_warning()

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    def _check_idle(self) -> None:
        if not self._active:
            return
        now = self.clock.now_ms()
        counters = self._counters
        counters.idle_seconds = self.classifier.idle_seconds(now, counters.last_activity)

        warning, event = self.classifier.check_idle(
            counters.idle_seconds, counters.last_inactivity_boundary, now
        )
        if warning and not counters.inactivity_warning:
            logger.info(f"⏸️ No activity for {counters.idle_seconds}s")
        counters.inactivity_warning = warning
        if event is not None:
            counters.last_inactivity_boundary = counters.idle_seconds
            self._record(event)

        self._memory_mb = self.memory_probe()

    def _on_frame(self) -> None:
        if not self._active:
            return
        self._frames.tick(self.clock.now_ms())
        if self.renderer is not None:
            self.renderer(self.trail())

    def _record(self, event: SuspiciousEvent) -> None:
        self.log.append_event(event)
        self._counters.record(event.kind)
        logger.info(f"🚩 {event.description} {event.payload}")
        self._aggregator.evaluate(self._counters.snapshot())

    def _cancel_timers(self) -> None:
        for handle in self._timers:
            handle.cancel()
        self._timers = []

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def counters(self) -> CountersSnapshot:
        return self._counters.snapshot()

    @property
    def suspicion_level(self) -> SuspicionLevel:
        return level_for(self._counters.snapshot())

    @property
    def events(self) -> Tuple[SuspiciousEvent, ...]:
        return self.log.events

    @property
    def samples(self) -> Tuple[Sample, ...]:
        return self.log.samples

    def recent_events(self, limit: int = 10) -> List[SuspiciousEvent]:
        return self.log.recent_events(limit)

    @property
    def fullscreen(self) -> FullscreenSnapshot:
        return self.fullscreen_enforcer.snapshot()

    @property
    def elapsed_seconds(self) -> int:
        if self._start_ms is None:
            return 0
        end = self.clock.now_ms() if self._active else self._end_ms
        return max(0, int((end - self._start_ms) // 1000))

    @property
    def telemetry(self) -> TelemetrySnapshot:
        return telemetry_snapshot(self._frames, self.log.sample_count, self._memory_mb)

    def trail(self) -> List[TrailPoint]:
        return build_trail(self.log.trail_samples(), self.log.trail_size)

    def snapshot(self, recent: int = 10) -> SessionSnapshot:
        counters = self._counters.snapshot()
        return SessionSnapshot(
            active=self._active,
            elapsed_seconds=self.elapsed_seconds,
            counters=counters,
            suspicion_level=level_for(counters),
            recent_events=self.log.recent_events(recent),
            fullscreen=self.fullscreen_enforcer.snapshot(),
            telemetry=self.telemetry,
        )
