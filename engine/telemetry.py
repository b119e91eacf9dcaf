"""
Telemetry Module

Frames-per-second over a rolling one-second window and process memory.
Memory comes from psutil; hosts where it cannot be read report None.
"""

import logging
from typing import Optional

import psutil

from shared.models import TelemetrySnapshot

logger = logging.getLogger(__name__)


class FrameCounter:
    """Counts render ticks and publishes fps once per elapsed second."""

    def __init__(self, window_ms: float = 1000.0):
        self.window_ms = window_ms
        self._frames = 0
        self._window_start: float = 0.0
        self._fps = 0

    def reset(self, now_ms: float) -> None:
        self._frames = 0
        self._window_start = now_ms
        self._fps = 0

    def tick(self, now_ms: float) -> int:
        self._frames += 1
        elapsed = now_ms - self._window_start
        if elapsed >= self.window_ms:
            self._fps = round(self._frames * 1000.0 / elapsed)
            self._frames = 0
            self._window_start = now_ms
        return self._fps

    @property
    def fps(self) -> int:
        return self._fps


def process_memory_mb() -> Optional[float]:
    """Resident set size of this process in MB, or None if unavailable."""
    try:
        return round(psutil.Process().memory_info().rss / (1024 * 1024), 2)
    except (psutil.Error, OSError) as e:
        logger.debug(f"Memory usage unavailable: {e}")
        return None


def telemetry_snapshot(frames: FrameCounter, data_points: int, memory_mb: Optional[float]) -> TelemetrySnapshot:
    return TelemetrySnapshot(fps=frames.fps, data_points=data_points, memory_mb=memory_mb)
