# server/remote_host.py
"""
Remote Host Capabilities

Capability implementations for a browser that reports its state over the
local API. The browser owns the real fullscreen and notification APIs, so:

- RemoteDisplay queues "enter_fullscreen" / "exit_fullscreen" commands and
  mirrors the display state the browser last reported.
- RemoteNotifier queues notifications under the permission the browser
  last reported.
- RemoteSurface is unmounted until the browser posts the exam area size.

Pending commands and notifications are handed back in every HostResponse.
"""

import logging
from typing import List, Optional

from engine.session import SessionController
from host.capabilities import (
    DisplayCapability,
    FixedSurface,
    FullscreenRequestError,
    NotificationCapability,
)
from shared.models import HostResponse, Notification, NotificationPermission

logger = logging.getLogger(__name__)

ENTER_FULLSCREEN = "enter_fullscreen"
EXIT_FULLSCREEN = "exit_fullscreen"


class RemoteDisplay(DisplayCapability):

    def __init__(self, supported: bool = True):
        self._supported = supported
        self._fullscreen = False
        self._commands: List[str] = []

    @property
    def supported(self) -> bool:
        return self._supported

    def is_fullscreen(self) -> bool:
        return self._fullscreen

    def report(self, is_fullscreen: bool) -> None:
        """Record the display state the browser observed."""
        self._fullscreen = is_fullscreen
        # A confirmed state satisfies the pending command that asked for it
        stale = ENTER_FULLSCREEN if is_fullscreen else EXIT_FULLSCREEN
        self._commands = [c for c in self._commands if c != stale]

    def request_enter(self) -> None:
        if not self._supported:
            raise FullscreenRequestError("Fullscreen API is not supported by this browser")
        self._queue(ENTER_FULLSCREEN)

    def request_exit(self) -> None:
        if not self._supported:
            raise FullscreenRequestError("Fullscreen API is not supported by this browser")
        self._queue(EXIT_FULLSCREEN)

    def _queue(self, command: str) -> None:
        opposite = EXIT_FULLSCREEN if command == ENTER_FULLSCREEN else ENTER_FULLSCREEN
        self._commands = [c for c in self._commands if c != opposite]
        if command not in self._commands:
            self._commands.append(command)

    def cancel_pending(self) -> None:
        if self._commands:
            logger.debug(f"Dropping undelivered display commands: {self._commands}")
        self._commands = []

    @property
    def pending(self) -> List[str]:
        return list(self._commands)

    def drain(self) -> List[str]:
        commands, self._commands = self._commands, []
        return commands


class RemoteNotifier(NotificationCapability):

    def __init__(self, permission: NotificationPermission = NotificationPermission.DEFAULT):
        self._permission = permission
        self._pending: List[Notification] = []

    @property
    def permission(self) -> NotificationPermission:
        return self._permission

    def report_permission(self, permission: NotificationPermission) -> None:
        if permission != self._permission:
            logger.info(f"🔔 Notification permission: {permission.value}")
        self._permission = permission

    def notify(self, title: str, body: str, tag: Optional[str] = None) -> None:
        if tag is not None:
            # Same tag replaces the previous notification, as browsers do
            self._pending = [n for n in self._pending if n.tag != tag]
        self._pending.append(Notification(title=title, body=body, tag=tag))

    def drain(self) -> List[Notification]:
        pending, self._pending = self._pending, []
        return pending


class RemoteSurface(FixedSurface):
    """Exam area in browser coordinates; unmounted until its size is known."""

    def __init__(self, width: float = 0.0, height: float = 0.0):
        super().__init__(width, height)

    @property
    def mounted(self) -> bool:
        return self.width > 0 and self.height > 0


class RemoteHost:
    """Bundles one controller with the capabilities a browser drives."""

    def __init__(
        self,
        controller: SessionController,
        display: RemoteDisplay,
        notifier: RemoteNotifier,
        surface: RemoteSurface,
    ):
        self.controller = controller
        self.display = display
        self.notifier = notifier
        self.surface = surface

    def respond(self, consumed: bool = False) -> HostResponse:
        return HostResponse(
            snapshot=self.controller.snapshot(),
            commands=self.display.drain(),
            notifications=self.notifier.drain(),
            consumed=consumed,
        )
