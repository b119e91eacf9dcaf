"""
Host Capability Interfaces

The engines never talk to a windowing system directly. Each host (the Tk
desktop window, a browser reporting over the local API, a test double)
provides implementations of these small interfaces, selected at startup.

Null implementations let a session run on hosts that lack a capability:
enforcement for that capability is simply skipped.
"""

from typing import Optional, Tuple
import logging

from shared.models import NotificationPermission

logger = logging.getLogger(__name__)


class CapabilityError(Exception):
    """Base class for host capability failures."""


class FullscreenRequestError(CapabilityError):
    """The host rejected a fullscreen enter/exit request."""


# ============================================================================
# Tracking surface
# ============================================================================

class TrackingSurface:
    """Bounded rectangle that pointer positions are measured against."""

    @property
    def mounted(self) -> bool:
        """False until the surface exists in the host layout."""
        raise NotImplementedError

    @property
    def size(self) -> Tuple[float, float]:
        """(width, height) at this moment."""
        raise NotImplementedError

    def to_local(self, x: float, y: float) -> Tuple[float, float]:
        """Map host/screen coordinates to surface coordinates."""
        raise NotImplementedError


class FixedSurface(TrackingSurface):
    """Surface of a known size whose coordinates are already local."""

    def __init__(self, width: float, height: float, origin: Tuple[float, float] = (0.0, 0.0)):
        self.width = width
        self.height = height
        self.origin = origin

    @property
    def mounted(self) -> bool:
        return True

    @property
    def size(self) -> Tuple[float, float]:
        return self.width, self.height

    def resize(self, width: float, height: float) -> None:
        self.width = width
        self.height = height

    def to_local(self, x: float, y: float) -> Tuple[float, float]:
        return x - self.origin[0], y - self.origin[1]


# ============================================================================
# Display mode
# ============================================================================

class DisplayCapability:
    """Fullscreen control for the host window."""

    @property
    def supported(self) -> bool:
        return True

    def is_fullscreen(self) -> bool:
        raise NotImplementedError

    def request_enter(self) -> None:
        """Ask the host to enter fullscreen. Raises FullscreenRequestError."""
        raise NotImplementedError

    def request_exit(self) -> None:
        """Ask the host to leave fullscreen. Raises FullscreenRequestError."""
        raise NotImplementedError

    def cancel_pending(self) -> None:
        """Drop requests the host has not carried out yet. Hosts that apply
        requests immediately have nothing to drop."""


class NullDisplay(DisplayCapability):
    """Host without fullscreen support."""

    @property
    def supported(self) -> bool:
        return False

    def is_fullscreen(self) -> bool:
        return False

    def request_enter(self) -> None:
        raise FullscreenRequestError("Fullscreen is not supported on this host")

    def request_exit(self) -> None:
        raise FullscreenRequestError("Fullscreen is not supported on this host")


# ============================================================================
# Notifications
# ============================================================================

class NotificationCapability:
    """Background notification dispatch."""

    @property
    def permission(self) -> NotificationPermission:
        return NotificationPermission.DEFAULT

    def request_permission(self) -> NotificationPermission:
        return self.permission

    def notify(self, title: str, body: str, tag: Optional[str] = None) -> None:
        raise NotImplementedError


class NullNotifier(NotificationCapability):
    """Host without notifications; permission is permanently denied."""

    @property
    def permission(self) -> NotificationPermission:
        return NotificationPermission.DENIED

    def notify(self, title: str, body: str, tag: Optional[str] = None) -> None:
        logger.debug(f"Notification dropped (unsupported): {title}")
