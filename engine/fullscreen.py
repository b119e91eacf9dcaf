"""
Fullscreen Enforcement Module

State machine that keeps the host window in fullscreen for the duration of a
session and counts every attempt to leave it.

States:
- INACTIVE: no session, nothing enforced
- ACTIVE_FULLSCREEN: session running, display believed to be fullscreen
- ACTIVE_RECONCILING: an exit was detected and re-entry is in progress

Native exit notifications are unreliable across hosts, so two independent
triggers feed one reconciliation path:
1. ``on_display_change()``: low latency, driven by the host's change event
2. ``_poll()``: fixed-interval fallback that reads the display mode

An exit only counts as an attempt on the ACTIVE_FULLSCREEN → ACTIVE_RECONCILING
edge, so the key press, the change event and the poll that all observe the
same physical exit are counted once. An Escape that arrives within
reentry_delay_ms of an exit the change event or poll already counted is
consumed without counting again. Every path re-checks the intentional-exit
flag at the moment it runs, including delayed re-entry timers.
"""

from typing import Callable, Optional
import logging

from engine.clock import Scheduler, TimerHandle
from host.capabilities import (
    DisplayCapability,
    FullscreenRequestError,
    NotificationCapability,
    NullNotifier,
)
from shared.models import FullscreenSnapshot, FullscreenState, NotificationPermission

logger = logging.getLogger(__name__)

ESCAPE_KEYS = frozenset({"escape", "esc"})

WARNING_TITLE = "⚠️ Session Active - Fullscreen Required"
WARNING_BODY = 'Please use the "End Session" button to exit. Re-entering fullscreen...'


def is_escape(key: str) -> bool:
    return key.strip().lower() in ESCAPE_KEYS


class FullscreenEnforcer:
    """
    Reconciles the desired display mode (fullscreen while a session is active)
    with the mode the host actually reports.
    """

    def __init__(
        self,
        display: DisplayCapability,
        scheduler: Scheduler,
        notifier: Optional[NotificationCapability] = None,
        poll_interval_ms: float = 100.0,
        reentry_delay_ms: float = 50.0,
        on_warning: Optional[Callable[[str], None]] = None,
    ):
        """
        Args:
            display: Host fullscreen capability.
            scheduler: Cooperative scheduler shared with the session.
            notifier: Background notification capability (optional).
            poll_interval_ms: Period of the fallback display-mode poll.
            reentry_delay_ms: Delay between a suppressed Escape and re-entry.
            on_warning: Called with a message whenever an exit attempt is counted.
        """
        self.display = display
        self.scheduler = scheduler
        self.notifier = notifier or NullNotifier()
        self.poll_interval_ms = poll_interval_ms
        self.reentry_delay_ms = reentry_delay_ms
        self.on_warning = on_warning

        self.state = FullscreenState.INACTIVE
        self._desired = False
        self._observed = False
        self._intentional_exit = False
        self._exit_attempts = 0
        self._warning_visible = False
        self._confirmed = False         # display reported fullscreen at least once this session
        self._last_error: Optional[str] = None

        self._poll_handle: Optional[TimerHandle] = None
        self._reentry_handle: Optional[TimerHandle] = None
        self._exit_window: Optional[TimerHandle] = None    # open for reentry_delay_ms after a change/poll exit is counted

        # Diagnostics
        self.enter_requests = 0
        self.exit_requests = 0

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def active(self) -> bool:
        return self.state != FullscreenState.INACTIVE

    @property
    def desired(self) -> bool:
        return self._desired

    @property
    def observed(self) -> bool:
        return self._observed

    @property
    def intentional_exit(self) -> bool:
        return self._intentional_exit

    @property
    def exit_attempts(self) -> int:
        return self._exit_attempts

    @property
    def warning_visible(self) -> bool:
        return self._warning_visible

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    def snapshot(self) -> FullscreenSnapshot:
        return FullscreenSnapshot(
            state=self.state,
            desired=self._desired,
            observed=self._observed,
            intentional_exit=self._intentional_exit,
            exit_attempts=self._exit_attempts,
            warning_visible=self._warning_visible,
            supported=self.display.supported,
            notification_permission=self._permission(),
            last_error=self._last_error,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def activate(self) -> None:
        """Session start: INACTIVE → ACTIVE_FULLSCREEN and start the poll."""
        self._cancel_timers()
        self._intentional_exit = False
        self._exit_attempts = 0
        self._warning_visible = False
        self._confirmed = False
        self._last_error = None
        self._desired = True

        if not self.display.supported:
            logger.warning("⚠️ Fullscreen not supported on this host - enforcement disabled")
            self.state = FullscreenState.INACTIVE
            return

        self.state = FullscreenState.ACTIVE_FULLSCREEN
        self._observed = self._read_display()
        if self._observed:
            self._confirmed = True
        else:
            self._request_enter(user_visible=True)

        self._poll_handle = self.scheduler.every(self.poll_interval_ms, self._poll)
        logger.info(f"🔒 Fullscreen enforcement active (poll every {self.poll_interval_ms:.0f}ms)")

    def deactivate(self) -> None:
        """
        Session stop: any state → INACTIVE through the intentional-exit path.
        The flag is raised before anything else so no trigger that runs
        afterwards can treat the exit as a violation.
        """
        self._intentional_exit = True
        self._cancel_timers()

        was_active = self.active
        self.state = FullscreenState.INACTIVE
        self._desired = False
        self._warning_visible = False

        # A re-entry queued by an earlier poll must not reach the host
        try:
            self.display.cancel_pending()
        except Exception as e:
            logger.error(f"❌ Error cancelling display requests: {e}", exc_info=True)

        if self.display.supported and self._read_display():
            self.exit_requests += 1
            try:
                self.display.request_exit()
            except FullscreenRequestError as e:
                logger.warning(f"⚠️ Exit fullscreen rejected: {e}")
            except Exception as e:
                logger.error(f"❌ Error exiting fullscreen: {e}", exc_info=True)
            self._observed = self._read_display()

        self._exit_attempts = 0
        if was_active:
            logger.info("🔓 Fullscreen enforcement stopped")

    def request_fullscreen(self) -> bool:
        """
        Manual enter request, e.g. from a button outside a session.
        Failures are recorded as a user-visible error message.
        """
        if not self.display.supported:
            self._last_error = "Unable to enter fullscreen. Error: not supported on this host"
            logger.warning(f"⚠️ {self._last_error}")
            return False
        return self._request_enter(user_visible=not self.active)

    def dismiss_warning(self) -> None:
        self._warning_visible = False

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    def on_display_change(self, is_fullscreen: bool) -> None:
        """Native display-mode change notification."""
        self._observed = is_fullscreen
        if not self.active or self._intentional_exit:
            return
        if is_fullscreen:
            self._mark_fullscreen()
        else:
            self._handle_exit("display change")

    def on_key(self, key: str) -> bool:
        """
        Capture-phase key hook. Returns True when the key was consumed and
        must not reach any other handler.
        """
        if not self.active or self._intentional_exit or not is_escape(key):
            return False

        if self._exit_window is not None:
            # Same physical exit already counted by the change event or the poll
            self._close_exit_window()
        else:
            self._count_attempt("escape key")
        if self._reentry_handle is not None:
            self._reentry_handle.cancel()
        self._reentry_handle = self.scheduler.after(self.reentry_delay_ms, self._reenter_after_escape)
        return True

    def on_context_menu(self) -> bool:
        """Context menus are suppressed for the whole active session."""
        return self._desired

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def _poll(self) -> None:
        if not self.active or self._intentional_exit:
            return
        self._observed = self._read_display()
        if self._observed:
            self._mark_fullscreen()
        else:
            self._handle_exit("poll")

    def _handle_exit(self, source: str) -> None:
        """Single reconciliation path for every exit trigger."""
        if self._intentional_exit:
            return

        if not self._confirmed:
            # Initial entry still pending or rejected: keep asking, nothing to count
            logger.debug(f"Fullscreen not reached yet ({source}) - retrying")
            self._request_enter()
            return

        if self.state == FullscreenState.ACTIVE_FULLSCREEN:
            self._count_attempt(source)
            self._close_exit_window()
            self._exit_window = self.scheduler.after(self.reentry_delay_ms, self._expire_exit_window)
        self._request_enter()

    def _expire_exit_window(self) -> None:
        self._exit_window = None

    def _close_exit_window(self) -> None:
        if self._exit_window is not None:
            self._exit_window.cancel()
            self._exit_window = None

    def _count_attempt(self, source: str) -> None:
        self.state = FullscreenState.ACTIVE_RECONCILING
        self._exit_attempts += 1
        self._warning_visible = True

        message = f"Unauthorized fullscreen exit attempt #{self._exit_attempts} ({source})"
        logger.warning(f"⚠️ {message} - re-entering")
        self._notify()
        if self.on_warning is not None:
            try:
                self.on_warning(message)
            except Exception as e:
                logger.error(f"❌ Warning callback failed: {e}", exc_info=True)

    def _reenter_after_escape(self) -> None:
        self._reentry_handle = None
        if not self.active or self._intentional_exit:
            return
        self._request_enter()

    def _mark_fullscreen(self) -> None:
        self._observed = True
        self._confirmed = True
        if self.state == FullscreenState.ACTIVE_RECONCILING:
            self.state = FullscreenState.ACTIVE_FULLSCREEN
            logger.info("✅ Fullscreen restored")

    def _request_enter(self, user_visible: bool = False) -> bool:
        self.enter_requests += 1
        try:
            self.display.request_enter()
        except FullscreenRequestError as e:
            self._on_enter_failed(e, user_visible)
            return False
        except Exception as e:
            logger.error(f"❌ Error entering fullscreen: {e}", exc_info=True)
            self._on_enter_failed(e, user_visible)
            return False

        if user_visible:
            self._last_error = None
        if self._read_display():
            if self.active:
                self._mark_fullscreen()
            else:
                self._observed = True
        return True

    def _on_enter_failed(self, error: Exception, user_visible: bool) -> None:
        if user_visible:
            self._last_error = f"Unable to enter fullscreen. Error: {error}"
            logger.error(f"❌ {self._last_error}")
        else:
            logger.warning(f"⚠️ Fullscreen re-entry rejected ({error}) - retrying on next poll")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _read_display(self) -> bool:
        try:
            return bool(self.display.is_fullscreen())
        except Exception as e:
            logger.error(f"❌ Could not read display mode: {e}")
            return self._observed

    def _permission(self) -> NotificationPermission:
        try:
            return self.notifier.permission
        except Exception:
            return NotificationPermission.DENIED

    def _notify(self) -> None:
        if self._permission() != NotificationPermission.GRANTED:
            return
        try:
            self.notifier.notify(WARNING_TITLE, WARNING_BODY, tag="fullscreen-exit")
        except Exception as e:
            logger.warning(f"⚠️ Notification failed: {e}")

    def _cancel_timers(self) -> None:
        self._close_exit_window()
        if self._poll_handle is not None:
            self._poll_handle.cancel()
            self._poll_handle = None
        if self._reentry_handle is not None:
            self._reentry_handle.cancel()
            self._reentry_handle = None
