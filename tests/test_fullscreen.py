"""
Tests for fullscreen enforcement
"""
import pytest

from engine.fullscreen import FullscreenEnforcer, WARNING_TITLE, is_escape
from host.capabilities import NullDisplay
from shared.models import FullscreenState, NotificationPermission
from conftest import FakeDisplay, FakeNotifier


@pytest.fixture
def enforcer(display, scheduler, notifier):
    return FullscreenEnforcer(display, scheduler, notifier=notifier)


class TestActivation:

    def test_activate_enters_fullscreen(self, enforcer, display):
        enforcer.activate()

        assert display.fullscreen
        assert display.enter_calls == 1
        assert enforcer.state == FullscreenState.ACTIVE_FULLSCREEN
        assert enforcer.desired and enforcer.observed
        assert enforcer.exit_attempts == 0

    def test_already_fullscreen_is_not_requested_again(self, scheduler):
        display = FakeDisplay(fullscreen=True)
        enforcer = FullscreenEnforcer(display, scheduler)
        enforcer.activate()
        assert display.enter_calls == 0

    def test_rejected_initial_entry_is_user_visible(self, enforcer, display):
        display.reject_enter = True
        enforcer.activate()

        assert enforcer.active
        assert enforcer.last_error.startswith("Unable to enter fullscreen. Error:")

    def test_rejected_entry_before_confirmation_is_not_an_attempt(self, enforcer, display, scheduler):
        display.reject_enter = True
        enforcer.activate()
        scheduler.advance(500)

        assert enforcer.exit_attempts == 0
        assert display.enter_calls == 6  # initial request plus one per poll

        display.reject_enter = False
        scheduler.advance(100)
        assert display.fullscreen
        assert enforcer.state == FullscreenState.ACTIVE_FULLSCREEN

    def test_unsupported_display(self, scheduler):
        enforcer = FullscreenEnforcer(NullDisplay(), scheduler)
        enforcer.activate()

        assert enforcer.state == FullscreenState.INACTIVE
        assert enforcer.desired
        assert enforcer.on_context_menu()
        assert scheduler.pending == 0
        assert not enforcer.snapshot().supported


class TestExitSignals:
    """One increment and one re-entry per external exit signal"""

    def test_display_change_counts_once_and_reenters(self, enforcer, display):
        enforcer.activate()
        before = display.enter_calls

        display.user_exits()
        enforcer.on_display_change(False)

        assert enforcer.exit_attempts == 1
        assert display.enter_calls == before + 1
        assert display.fullscreen
        assert enforcer.state == FullscreenState.ACTIVE_FULLSCREEN
        assert enforcer.warning_visible

    def test_poll_detects_missed_exit(self, enforcer, display, scheduler):
        enforcer.activate()
        before = display.enter_calls

        display.user_exits()
        scheduler.advance(100)

        assert enforcer.exit_attempts == 1
        assert display.enter_calls == before + 1
        assert display.fullscreen

    def test_change_event_and_poll_for_same_exit_count_once(self, enforcer, display, scheduler):
        enforcer.activate()
        display.reject_enter = True

        display.user_exits()
        enforcer.on_display_change(False)
        scheduler.advance(300)

        assert enforcer.exit_attempts == 1
        assert enforcer.state == FullscreenState.ACTIVE_RECONCILING

        display.reject_enter = False
        scheduler.advance(100)
        assert enforcer.state == FullscreenState.ACTIVE_FULLSCREEN

    def test_distinct_exits_count_separately(self, enforcer, display):
        enforcer.activate()
        for _ in range(3):
            display.user_exits()
            enforcer.on_display_change(False)
        assert enforcer.exit_attempts == 3

    def test_intentional_exit_is_not_counted(self, enforcer, display, scheduler):
        enforcer.activate()
        enforcer.deactivate()
        enter_calls = display.enter_calls

        enforcer.on_display_change(False)
        scheduler.advance(1000)

        assert enforcer.exit_attempts == 0
        assert display.enter_calls == enter_calls
        assert display.exit_calls == 1
        assert not display.fullscreen
        assert enforcer.state == FullscreenState.INACTIVE


class TestEscapeKey:

    @pytest.mark.parametrize("key", ["Escape", "Esc", "escape"])
    def test_is_escape(self, key):
        assert is_escape(key)

    def test_other_keys_pass_through(self, enforcer):
        enforcer.activate()
        assert not enforcer.on_key("a")
        assert enforcer.exit_attempts == 0

    def test_escape_consumed_and_reentered(self, enforcer, display, scheduler):
        enforcer.activate()
        before = display.enter_calls

        assert enforcer.on_key("Escape")
        assert enforcer.exit_attempts == 1

        scheduler.advance(50)
        assert display.enter_calls == before + 1

    def test_escape_plus_poll_counts_once(self, enforcer, display, scheduler):
        """The key press and the poll that sees the same exit are one attempt"""
        enforcer.activate()

        enforcer.on_key("Escape")
        display.user_exits()
        enforcer.on_display_change(False)
        scheduler.advance(200)

        assert enforcer.exit_attempts == 1
        assert display.fullscreen

    def test_change_event_then_escape_counts_once(self, enforcer, display, scheduler):
        """The change event may report the exit before the key press arrives"""
        enforcer.activate()

        display.user_exits()
        enforcer.on_display_change(False)
        assert enforcer.on_key("Escape")
        assert enforcer.exit_attempts == 1

        scheduler.advance(100)
        assert enforcer.on_key("Escape")
        assert enforcer.exit_attempts == 2

    def test_escape_after_poll_detected_exit_counts_once(self, enforcer, display, scheduler):
        enforcer.activate()
        display.reject_enter = True

        display.user_exits()
        scheduler.advance(100)
        enforcer.on_key("Escape")

        assert enforcer.exit_attempts == 1
        assert enforcer.state == FullscreenState.ACTIVE_RECONCILING

    def test_escape_ignored_when_inactive(self, enforcer):
        assert not enforcer.on_key("Escape")

    def test_reentry_cancelled_by_stop(self, enforcer, display, scheduler):
        enforcer.activate()
        enforcer.on_key("Escape")
        enforcer.deactivate()
        enter_calls = display.enter_calls

        scheduler.advance(100)
        assert display.enter_calls == enter_calls
        assert scheduler.pending == 0


class TestNotifications:

    def test_notifies_when_granted(self, enforcer, display, notifier):
        enforcer.activate()
        display.user_exits()
        enforcer.on_display_change(False)

        assert len(notifier.sent) == 1
        title, _, tag = notifier.sent[0]
        assert title == WARNING_TITLE
        assert tag == "fullscreen-exit"

    def test_silent_without_permission(self, display, scheduler):
        notifier = FakeNotifier(NotificationPermission.DEFAULT)
        enforcer = FullscreenEnforcer(display, scheduler, notifier=notifier)
        enforcer.activate()
        display.user_exits()
        enforcer.on_display_change(False)

        assert enforcer.exit_attempts == 1
        assert notifier.sent == []

    def test_warning_callback(self, display, scheduler):
        messages = []
        enforcer = FullscreenEnforcer(display, scheduler, on_warning=messages.append)
        enforcer.activate()
        enforcer.on_key("Escape")

        assert len(messages) == 1
        enforcer.dismiss_warning()
        assert not enforcer.warning_visible


class TestManualRequest:

    def test_request_outside_session(self, enforcer, display):
        assert enforcer.request_fullscreen()
        assert display.fullscreen
        assert enforcer.observed
        assert enforcer.state == FullscreenState.INACTIVE

    def test_rejected_request_records_error(self, enforcer, display):
        display.reject_enter = True
        assert not enforcer.request_fullscreen()
        assert "Permissions check failed" in enforcer.last_error
