# shared/models.py
"""
Shared Data Models (Pydantic)

Defines the data structures exchanged between the monitoring engine, the
host adapters, and the local HTTP surface.
All models describe pointer geometry, timing and window-state metadata only.
NO exam content, keystroke characters, or window titles.

These models are used for:
- Samples and suspicious events appended to the session event log
- Immutable snapshots handed to the presentation layer
- Request/response validation in the local API
"""

from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class EventKind(str, Enum):
    """Kinds of classified suspicious occurrences."""
    OUT_OF_BOUNDS = "out_of_bounds"
    RAPID_MOVEMENT = "rapid_movement"
    TAB_SWITCH = "tab_switch"
    WINDOW_BLUR = "window_blur"
    PROLONGED_INACTIVITY = "prolonged_inactivity"


class SuspicionLevel(str, Enum):
    """Coarse three-tier risk summary derived from the behavior counters."""
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class FullscreenState(str, Enum):
    """Tagged state of the fullscreen reconciliation loop."""
    INACTIVE = "inactive"
    ACTIVE_FULLSCREEN = "active_fullscreen"
    ACTIVE_RECONCILING = "active_reconciling"


class NotificationPermission(str, Enum):
    """Host notification permission, mirroring the browser permission states."""
    DEFAULT = "default"
    GRANTED = "granted"
    DENIED = "denied"


PayloadValue = Union[float, int, str, bool]


# ----------------------------------------------------------------------
# Event log entries
# ----------------------------------------------------------------------

class Sample(BaseModel):
    """
    One classified pointer observation.
    Coordinates are relative to the tracking surface's top-left corner.
    """
    model_config = ConfigDict(frozen=True)

    x: float = Field(..., description="X coordinate (surface units)")
    y: float = Field(..., description="Y coordinate (surface units)")
    timestamp: float = Field(..., description="Monotonic milliseconds")
    out_of_bounds: bool = Field(False, description="Outside the tracking surface")
    speed: float = Field(0.0, ge=0.0, description="Units per millisecond since the previous sample")


class SuspiciousEvent(BaseModel):
    """
    A discrete classified anomaly.
    The payload only carries numeric or short string fields for its kind.
    """
    model_config = ConfigDict(frozen=True)

    kind: EventKind
    description: str
    payload: Dict[str, PayloadValue] = Field(default_factory=dict)
    timestamp: float = Field(..., description="Monotonic milliseconds")


# ----------------------------------------------------------------------
# Read-only snapshots (engine → presentation)
# ----------------------------------------------------------------------

class CountersSnapshot(BaseModel):
    """Point-in-time copy of the behavior counters."""
    model_config = ConfigDict(frozen=True)

    window_blur_count: int = Field(0, ge=0)
    tab_switch_count: int = Field(0, ge=0)
    out_of_bounds_count: int = Field(0, ge=0)
    rapid_movement_count: int = Field(0, ge=0)
    last_activity: float = 0.0
    idle_seconds: int = Field(0, ge=0)
    inactivity_warning: bool = False

    @property
    def total(self) -> int:
        return (
            self.window_blur_count
            + self.tab_switch_count
            + self.out_of_bounds_count
            + self.rapid_movement_count
        )


class FullscreenSnapshot(BaseModel):
    """Point-in-time copy of the fullscreen session."""
    model_config = ConfigDict(frozen=True)

    state: FullscreenState = FullscreenState.INACTIVE
    desired: bool = False
    observed: bool = False
    intentional_exit: bool = False
    exit_attempts: int = Field(0, ge=0)
    warning_visible: bool = False
    supported: bool = True
    notification_permission: NotificationPermission = NotificationPermission.DEFAULT
    last_error: Optional[str] = None


class TelemetrySnapshot(BaseModel):
    """Lightweight performance figures for the status bar."""
    model_config = ConfigDict(frozen=True)

    fps: int = Field(0, ge=0)
    data_points: int = Field(0, ge=0)
    memory_mb: Optional[float] = None


class TrailPoint(BaseModel):
    """One point of the decaying cursor trail."""
    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    opacity: float = Field(..., ge=0.0, le=1.0)
    color: str
    current: bool = False


class SessionSnapshot(BaseModel):
    """Everything the presentation layer renders, in one immutable value."""
    model_config = ConfigDict(frozen=True)

    active: bool
    elapsed_seconds: int = Field(0, ge=0)
    counters: CountersSnapshot
    suspicion_level: SuspicionLevel
    recent_events: List[SuspiciousEvent] = Field(default_factory=list)
    fullscreen: FullscreenSnapshot
    telemetry: TelemetrySnapshot


# ----------------------------------------------------------------------
# Local API payloads (browser host → server)
# ----------------------------------------------------------------------

class PointerPayload(BaseModel):
    """Pointer position reported by a browser host, already surface-relative."""
    x: float
    y: float
    timestamp: Optional[float] = Field(None, description="Monotonic ms; server clock if omitted")


class VisibilityPayload(BaseModel):
    hidden: bool


class KeyPayload(BaseModel):
    key: str = Field(..., min_length=1)


class DisplayPayload(BaseModel):
    fullscreen: bool


class SurfacePayload(BaseModel):
    width: float = Field(..., gt=0)
    height: float = Field(..., gt=0)


class PermissionPayload(BaseModel):
    permission: NotificationPermission


class Notification(BaseModel):
    """Background notification the browser host should display."""
    title: str
    body: str
    tag: Optional[str] = None


class HostResponse(BaseModel):
    """Response to every host call: the snapshot plus pending display commands."""
    snapshot: SessionSnapshot
    commands: List[str] = Field(default_factory=list)
    notifications: List[Notification] = Field(default_factory=list)
    consumed: bool = False
