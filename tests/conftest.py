"""
Pytest Configuration for ExamWatch Tests
"""
import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from engine.clock import ManualClock, ManualScheduler
from engine.session import SessionController
from host.capabilities import (
    DisplayCapability,
    FixedSurface,
    FullscreenRequestError,
    NotificationCapability,
)
from shared.models import NotificationPermission


class FakeDisplay(DisplayCapability):
    """Window that honours requests immediately unless told to reject them."""

    def __init__(self, fullscreen: bool = False, supported: bool = True):
        self.fullscreen = fullscreen
        self._supported = supported
        self.reject_enter = False
        self.enter_calls = 0
        self.exit_calls = 0

    @property
    def supported(self) -> bool:
        return self._supported

    def is_fullscreen(self) -> bool:
        return self.fullscreen

    def request_enter(self) -> None:
        self.enter_calls += 1
        if self.reject_enter:
            raise FullscreenRequestError("Permissions check failed")
        self.fullscreen = True

    def request_exit(self) -> None:
        self.exit_calls += 1
        self.fullscreen = False

    def user_exits(self) -> None:
        """External exit the app did not ask for (Escape, F11, window manager)."""
        self.fullscreen = False


class FakeNotifier(NotificationCapability):

    def __init__(self, permission: NotificationPermission = NotificationPermission.GRANTED):
        self._permission = permission
        self.sent = []

    @property
    def permission(self) -> NotificationPermission:
        return self._permission

    def notify(self, title, body, tag=None):
        self.sent.append((title, body, tag))


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def scheduler(clock):
    return ManualScheduler(clock)


@pytest.fixture
def display():
    return FakeDisplay()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def surface():
    return FixedSurface(800, 600)


@pytest.fixture
def controller(surface, display, scheduler, clock, notifier):
    """Session controller on virtual time with an 800x600 exam area"""
    return SessionController(
        surface=surface,
        display=display,
        scheduler=scheduler,
        clock=clock,
        notifier=notifier,
        memory_probe=lambda: None,
    )
