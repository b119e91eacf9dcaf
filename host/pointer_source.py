"""
Global pointer stream backed by pynput.

pynput callbacks run on pynput's own listener thread, so they never touch the
engine: each move is stamped with the monotonic clock and put on a queue that
the host drains on its main loop. That keeps every engine mutation on the
single event-processing thread.

PRIVACY: only pointer positions and timestamps are captured.
"""

import logging
import time
from queue import Empty, Queue
from typing import List, Optional, Tuple

from pynput import mouse

logger = logging.getLogger(__name__)

PointerTuple = Tuple[float, float, float]   # (screen_x, screen_y, monotonic_ms)


class PynputPointerSource:
    """Screen-wide pointer positions, including those outside the exam window."""

    def __init__(self, max_batch: int = 500):
        """
        Args:
            max_batch: Upper bound on moves handed over per drain, so a burst
                       of input cannot starve the fullscreen poll.
        """
        self.max_batch = max_batch
        self._queue: "Queue[PointerTuple]" = Queue()
        self._listener: Optional[mouse.Listener] = None

    def start(self) -> None:
        if self._listener is not None and self._listener.is_alive():
            return

        def on_move(x, y):
            try:
                self._queue.put((float(x), float(y), time.monotonic() * 1000.0))
            except Exception as e:
                logger.error(f"❌ Error in pointer move handler: {e}")

        self._listener = mouse.Listener(on_move=on_move)
        self._listener.daemon = True
        self._listener.start()
        logger.info("🖱️ Pointer listener started (positions only)")

    def stop(self) -> None:
        if self._listener is None:
            return
        self._listener.stop()
        self._listener = None
        self.drain()
        logger.info("🖱️ Pointer listener stopped")

    @property
    def alive(self) -> bool:
        return self._listener is not None and self._listener.is_alive()

    def restart_if_dead(self) -> None:
        """Listener watchdog: pynput threads occasionally die silently."""
        if self._listener is not None and not self._listener.is_alive():
            logger.warning("⚠️ Pointer listener died - restarting")
            self._listener = None
            self.start()

    def drain(self) -> List[PointerTuple]:
        """Pop queued moves in arrival order (at most ``max_batch``)."""
        moves: List[PointerTuple] = []
        while len(moves) < self.max_batch:
            try:
                moves.append(self._queue.get_nowait())
            except Empty:
                break
        return moves
