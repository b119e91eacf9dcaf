# main.py
"""
ExamWatch – Exam Session Integrity Monitor
Entry point.

Two hosts drive the same session engine:
1. Desktop (default): Tk exam window, pynput pointer stream, fullscreen
   enforcement through the window manager
2. Browser (--serve): local FastAPI server that an exam page reports its
   pointer, focus, key and display events to

Everything runs on one event-processing thread per process. Use Ctrl+C or
the End Exam button to terminate.
"""

import argparse
import logging
import os
import sys

# Add project root to Python path
PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from engine.classifier import BehaviorClassifier
from engine.event_log import EventLog

logger = logging.getLogger(__name__)


# ----------------------------------------------------------------------
# Configuration
# ----------------------------------------------------------------------

class Config:
    """Configuration settings for ExamWatch."""

    # Server settings
    SERVER_HOST = "127.0.0.1"
    SERVER_PORT = 8000
    ALLOWED_ORIGINS = ["http://localhost:8000", "http://127.0.0.1:8000"]

    # Tracking surface (exam area)
    SURFACE_WIDTH = 800
    SURFACE_HEIGHT = 600
    WINDOW_TITLE = "ExamWatch - Exam Session"

    # Detection thresholds
    SPEED_THRESHOLD = 2.0              # px/ms, exclusive
    DISTANCE_THRESHOLD = 100.0         # px, exclusive
    INACTIVITY_WARNING_SECONDS = 30
    PROLONGED_INACTIVITY_SECONDS = 60

    # Timers
    IDLE_CHECK_MS = 1000
    FRAME_INTERVAL_MS = 1000.0 / 60
    FULLSCREEN_POLL_MS = 100
    REENTRY_DELAY_MS = 50

    # Retention
    TRAIL_SIZE = 200
    MAX_SAMPLES = 50_000

    # Notifications (desktop host)
    NOTIFICATIONS = True

    LOG_LEVEL = "INFO"

    @classmethod
    def build_classifier(cls) -> BehaviorClassifier:
        return BehaviorClassifier(
            speed_threshold=cls.SPEED_THRESHOLD,
            distance_threshold=cls.DISTANCE_THRESHOLD,
            inactivity_warning_seconds=cls.INACTIVITY_WARNING_SECONDS,
            prolonged_inactivity_seconds=cls.PROLONGED_INACTIVITY_SECONDS,
        )

    @classmethod
    def build_event_log(cls) -> EventLog:
        return EventLog(trail_size=cls.TRAIL_SIZE, max_samples=cls.MAX_SAMPLES)


# ----------------------------------------------------------------------
# 1. Desktop host
# ----------------------------------------------------------------------

def run_desktop():
    """Open the Tk exam window. Blocks until the window is closed."""
    try:
        from host.tk_host import TkHost
    except ImportError as e:
        print(f"[Desktop] ❌ Import error: {e}")
        print("   Tkinter and pynput are required for the desktop host; try --serve")
        raise

    print("[Desktop] 🖥️  Opening exam window - press 'Start Exam' to begin")
    host = TkHost(Config)
    host.run()


# ----------------------------------------------------------------------
# 2. Browser host (local API)
# ----------------------------------------------------------------------

def build_remote_host():
    """Controller wired to browser-reported capabilities on the asyncio loop."""
    from engine.clock import AsyncioScheduler, MonotonicClock
    from engine.session import SessionController
    from server.remote_host import RemoteDisplay, RemoteHost, RemoteNotifier, RemoteSurface

    display = RemoteDisplay()
    notifier = RemoteNotifier()
    surface = RemoteSurface(Config.SURFACE_WIDTH, Config.SURFACE_HEIGHT)
    controller = SessionController(
        surface=surface,
        display=display,
        scheduler=AsyncioScheduler(),  # binds to uvicorn's loop on first use
        clock=MonotonicClock(),
        notifier=notifier,
        classifier=Config.build_classifier(),
        event_log=Config.build_event_log(),
        idle_check_ms=Config.IDLE_CHECK_MS,
        frame_interval_ms=Config.FRAME_INTERVAL_MS,
        poll_interval_ms=Config.FULLSCREEN_POLL_MS,
        reentry_delay_ms=Config.REENTRY_DELAY_MS,
    )
    return RemoteHost(controller, display, notifier, surface)


def run_server():
    """Start Uvicorn server for the FastAPI application."""
    import uvicorn
    from server.api import create_app

    app = create_app(build_remote_host(), allow_origins=Config.ALLOWED_ORIGINS)

    print(f"[Server] Starting on http://{Config.SERVER_HOST}:{Config.SERVER_PORT}")
    uvicorn.run(
        app,
        host=Config.SERVER_HOST,
        port=Config.SERVER_PORT,
        log_level=Config.LOG_LEVEL.lower(),
    )


# ----------------------------------------------------------------------
# 3. Main
# ----------------------------------------------------------------------

def parse_arguments(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="ExamWatch Session Integrity Monitor")
    parser.add_argument("--serve", action="store_true",
                        help="Run the local API for a browser host instead of the desktop window")
    parser.add_argument("--host", default=Config.SERVER_HOST,
                        help=f"API bind address (default: {Config.SERVER_HOST})")
    parser.add_argument("--port", type=int, default=Config.SERVER_PORT,
                        help=f"API port (default: {Config.SERVER_PORT})")
    parser.add_argument("--width", type=int, default=Config.SURFACE_WIDTH,
                        help=f"Exam area width (default: {Config.SURFACE_WIDTH})")
    parser.add_argument("--height", type=int, default=Config.SURFACE_HEIGHT,
                        help=f"Exam area height (default: {Config.SURFACE_HEIGHT})")
    parser.add_argument("--speed-threshold", type=float, default=Config.SPEED_THRESHOLD,
                        help=f"Rapid movement speed in px/ms (default: {Config.SPEED_THRESHOLD})")
    parser.add_argument("--poll-ms", type=int, default=Config.FULLSCREEN_POLL_MS,
                        help=f"Fullscreen poll interval (default: {Config.FULLSCREEN_POLL_MS})")
    parser.add_argument("--no-notifications", action="store_true",
                        help="Disable desktop notifications")
    parser.add_argument("--log-level", default=Config.LOG_LEVEL,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Logging verbosity (default: INFO)")
    return parser.parse_args(argv)


def apply_arguments(args) -> None:
    """Copy parsed flags onto Config."""
    Config.SERVER_HOST = args.host
    Config.SERVER_PORT = args.port
    Config.SURFACE_WIDTH = args.width
    Config.SURFACE_HEIGHT = args.height
    Config.SPEED_THRESHOLD = args.speed_threshold
    Config.FULLSCREEN_POLL_MS = args.poll_ms
    Config.NOTIFICATIONS = not args.no_notifications
    Config.LOG_LEVEL = args.log_level


def configure_logging(level: str) -> None:
    """Root logging setup; replaces any handlers installed before argument parsing."""
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        force=True,
    )


if __name__ == "__main__":
    args = parse_arguments()
    apply_arguments(args)

    configure_logging(Config.LOG_LEVEL)

    # Print startup banner
    print("\n" + "=" * 70)
    print("🛡️  EXAMWATCH - Exam Session Integrity Monitor")
    print("=" * 70)
    print(f"Host: {'BROWSER (local API)' if args.serve else 'DESKTOP (Tk window)'}")
    print(f"Exam area: {Config.SURFACE_WIDTH}x{Config.SURFACE_HEIGHT}")
    print(f"Rapid movement: > {Config.DISTANCE_THRESHOLD:g}px and > {Config.SPEED_THRESHOLD:g}px/ms")
    print(f"Fullscreen poll: {Config.FULLSCREEN_POLL_MS}ms")
    print("=" * 70 + "\n")

    try:
        if args.serve:
            run_server()
        else:
            run_desktop()
    except KeyboardInterrupt:
        print("\n\n[Main] ⚡ Shutdown signal received")
    print("[Main] ✅ Shutdown complete")
    sys.exit(0)
