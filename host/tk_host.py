"""
TkHost: desktop host for the monitoring engine.

Architecture: Tkinter main-thread event loop. Zero busy-wait.

  TkScheduler   → Scheduler on root.after / after_cancel
  CanvasSurface → the exam canvas as the tracking surface
  TkDisplay     → fullscreen through the "-fullscreen" window attribute
  TkNotifier    → always-on-top Toplevel used as a background notification
  TkHost        → builds the window, wires Tk events into the SessionController,
                  drains the pynput pointer queue and redraws the trail

Background threads: ONLY the pynput listener. It never touches Tk or the
engine; moves are drained from its queue on the main loop.
"""

import logging
import tkinter as tk
from typing import Callable, List, Optional, Tuple

from engine.clock import MonotonicClock, Scheduler
from engine.session import SessionController
from host.capabilities import (
    DisplayCapability,
    FullscreenRequestError,
    NotificationCapability,
    TrackingSurface,
)
from shared.models import NotificationPermission, TrailPoint

logger = logging.getLogger(__name__)

GUARD_TAG = "ExamGuard"     # bindtag placed first on every widget: runs before any other binding

THEME = {
    "bg": "#0f172a",
    "surface": "#212121",
    "text": "#f1f5f9",
    "muted": "#94a3b8",
    "warning": "#fbbf24",
    "error": "#ef4444",
    "success": "#22c55e",
}

LEVEL_COLORS = {"Low": THEME["success"], "Medium": THEME["warning"], "High": THEME["error"]}


# ─── Capabilities ────────────────────────────────────────────────

class TkScheduler(Scheduler):

    def __init__(self, root: tk.Misc):
        self._root = root

    def _schedule(self, delay_ms: float, fn: Callable[[], None]) -> Callable[[], None]:
        after_id = self._root.after(max(0, int(round(delay_ms))), fn)

        def cancel():
            try:
                self._root.after_cancel(after_id)
            except tk.TclError:
                pass

        return cancel


class CanvasSurface(TrackingSurface):
    """Exam canvas; screen coordinates are mapped through its root offset."""

    def __init__(self, canvas: tk.Canvas):
        self._canvas = canvas

    @property
    def mounted(self) -> bool:
        try:
            return bool(self._canvas.winfo_ismapped())
        except tk.TclError:
            return False

    @property
    def size(self) -> Tuple[float, float]:
        return float(self._canvas.winfo_width()), float(self._canvas.winfo_height())

    def to_local(self, x: float, y: float) -> Tuple[float, float]:
        return x - self._canvas.winfo_rootx(), y - self._canvas.winfo_rooty()


class TkDisplay(DisplayCapability):

    def __init__(self, root: tk.Tk):
        self._root = root

    def is_fullscreen(self) -> bool:
        return bool(int(self._root.attributes("-fullscreen")))

    def request_enter(self) -> None:
        try:
            self._root.attributes("-fullscreen", True)
            self._root.attributes("-topmost", True)
            self._root.lift()
            self._root.focus_force()
        except tk.TclError as e:
            raise FullscreenRequestError(str(e)) from e

    def request_exit(self) -> None:
        try:
            self._root.attributes("-topmost", False)
            self._root.attributes("-fullscreen", False)
        except tk.TclError as e:
            raise FullscreenRequestError(str(e)) from e


class TkNotifier(NotificationCapability):
    """Borderless topmost popup that dismisses itself."""

    def __init__(self, root: tk.Tk, enabled: bool = True, duration_ms: int = 4000):
        self._root = root
        self._permission = NotificationPermission.GRANTED if enabled else NotificationPermission.DENIED
        self._duration_ms = duration_ms
        self._window: Optional[tk.Toplevel] = None
        self._dismiss_id: Optional[str] = None

    @property
    def permission(self) -> NotificationPermission:
        return self._permission

    def notify(self, title: str, body: str, tag: Optional[str] = None) -> None:
        self._dismiss()
        top = tk.Toplevel(self._root)
        top.overrideredirect(True)
        top.attributes("-topmost", True)
        top.configure(bg=THEME["warning"], padx=2, pady=2)
        frame = tk.Frame(top, bg=THEME["bg"], padx=16, pady=12)
        frame.pack()
        tk.Label(frame, text=title, fg=THEME["warning"], bg=THEME["bg"],
                 font=("Segoe UI", 12, "bold")).pack(anchor="w")
        tk.Label(frame, text=body, fg=THEME["text"], bg=THEME["bg"],
                 wraplength=320, justify="left").pack(anchor="w", pady=(4, 0))
        top.update_idletasks()
        x = top.winfo_screenwidth() - top.winfo_reqwidth() - 24
        top.geometry(f"+{x}+24")
        self._window = top
        self._dismiss_id = self._root.after(self._duration_ms, self._dismiss)

    def _dismiss(self) -> None:
        if self._dismiss_id is not None:
            try:
                self._root.after_cancel(self._dismiss_id)
            except tk.TclError:
                pass
            self._dismiss_id = None
        if self._window is not None:
            try:
                self._window.destroy()
            except tk.TclError:
                pass
            self._window = None


def blend(color: str, background: str, opacity: float) -> str:
    """Tk has no alpha channel: mix ``color`` over ``background``."""
    fg = [int(color[i:i + 2], 16) for i in (1, 3, 5)]
    bg = [int(background[i:i + 2], 16) for i in (1, 3, 5)]
    mixed = [round(b + (f - b) * opacity) for f, b in zip(fg, bg)]
    return "#{:02x}{:02x}{:02x}".format(*mixed)


# ─── Host window ─────────────────────────────────────────────────

class TkHost:
    """
    Owns the Tk main loop. Schedules everything via root.after():
      _drain_pointer() : hands queued pynput moves to the controller  (every 16ms)
      _refresh_status(): redraws counters, level, events, telemetry  (every 250ms)
      _check_listener(): restarts a dead pynput listener             (every 30s)
    The controller's own timers (idle check, fullscreen poll, render loop)
    run on the same TkScheduler.
    """

    def __init__(self, config):
        self._config = config
        self.root = tk.Tk()
        self.root.title(config.WINDOW_TITLE)
        self.root.configure(bg=THEME["bg"])
        self.root.geometry(f"{config.SURFACE_WIDTH + 360}x{config.SURFACE_HEIGHT + 120}")

        self.scheduler = TkScheduler(self.root)
        self._build_ui()

        from host.pointer_source import PynputPointerSource   # pynput needs a desktop session

        self.pointer = PynputPointerSource()
        self.controller = SessionController(
            surface=CanvasSurface(self.canvas),
            display=TkDisplay(self.root),
            scheduler=self.scheduler,
            clock=MonotonicClock(),
            notifier=TkNotifier(self.root, enabled=config.NOTIFICATIONS),
            classifier=config.build_classifier(),
            event_log=config.build_event_log(),
            idle_check_ms=config.IDLE_CHECK_MS,
            frame_interval_ms=config.FRAME_INTERVAL_MS,
            poll_interval_ms=config.FULLSCREEN_POLL_MS,
            reentry_delay_ms=config.REENTRY_DELAY_MS,
            renderer=self._draw_trail,
        )
        self._last_fullscreen = False
        self._install_guards()

    # ─── UI construction ─────────────────────────────────────

    def _build_ui(self):
        bar = tk.Frame(self.root, bg=THEME["bg"], pady=8)
        bar.pack(fill="x")
        self.toggle_btn = tk.Button(bar, text="Start Exam", width=14, command=self._toggle)
        self.toggle_btn.pack(side="left", padx=12)
        self.status_var = tk.StringVar(value="Session inactive")
        tk.Label(bar, textvariable=self.status_var, fg=THEME["text"], bg=THEME["bg"]).pack(side="left")
        self.level_label = tk.Label(bar, text="Suspicion Level: Low", fg=THEME["success"],
                                    bg=THEME["bg"], font=("Segoe UI", 12, "bold"))
        self.level_label.pack(side="right", padx=12)

        body = tk.Frame(self.root, bg=THEME["bg"])
        body.pack(fill="both", expand=True)

        self.canvas = tk.Canvas(body, width=self._config.SURFACE_WIDTH, height=self._config.SURFACE_HEIGHT,
                                bg=THEME["surface"], highlightthickness=3, highlightbackground="#616161")
        self.canvas.pack(side="left", padx=12, pady=12)
        self.warning_var = tk.StringVar(value="")
        tk.Label(self.canvas, textvariable=self.warning_var, fg=THEME["warning"],
                 bg=THEME["surface"]).place(x=16, y=16)

        side = tk.Frame(body, bg=THEME["bg"])
        side.pack(side="left", fill="both", expand=True, padx=(0, 12), pady=12)
        self.metrics_var = tk.StringVar(value="")
        tk.Label(side, textvariable=self.metrics_var, fg=THEME["text"], bg=THEME["bg"],
                 justify="left", font=("Consolas", 10)).pack(anchor="w")
        tk.Label(side, text="Suspicious Events", fg=THEME["muted"], bg=THEME["bg"]).pack(anchor="w", pady=(12, 0))
        self.events_list = tk.Listbox(side, height=10, bg=THEME["bg"], fg=THEME["text"], borderwidth=0)
        self.events_list.pack(fill="both", expand=True)

    def _install_guards(self):
        """Prepend the guard bindtag so Escape / right-click are seen before anything else."""
        def walk(widget):
            widget.bindtags((GUARD_TAG,) + tuple(t for t in widget.bindtags() if t != GUARD_TAG))
            for child in widget.winfo_children():
                walk(child)

        walk(self.root)
        self.root.bind_class(GUARD_TAG, "<KeyPress-Escape>", self._on_escape)
        self.root.bind_class(GUARD_TAG, "<Button-3>", self._on_context_menu)
        self.root.bind("<FocusOut>", self._on_focus_out)
        self.root.bind("<Unmap>", lambda e: self._on_visibility(e, hidden=True))
        self.root.bind("<Map>", lambda e: self._on_visibility(e, hidden=False))
        self.root.bind("<Configure>", self._on_configure)
        self.root.protocol("WM_DELETE_WINDOW", self._on_close)

    # ─── Tk event handlers ───────────────────────────────────

    def _on_escape(self, event):
        return "break" if self.controller.on_key("Escape") else None

    def _on_context_menu(self, event):
        return "break" if self.controller.on_context_menu() else None

    def _on_focus_out(self, event):
        # FocusOut also fires when focus moves between our own widgets
        self.root.after(1, self._confirm_blur)

    def _confirm_blur(self):
        try:
            focused = self.root.focus_displayof()
        except (tk.TclError, KeyError):
            focused = None
        if focused is None:
            self.controller.on_window_blur()

    def _on_visibility(self, event, hidden: bool):
        if event.widget is self.root:
            self.controller.on_visibility_change(hidden)

    def _on_configure(self, event):
        if event.widget is not self.root:
            return
        try:
            current = bool(int(self.root.attributes("-fullscreen")))
        except tk.TclError:
            return
        if current != self._last_fullscreen:
            self._last_fullscreen = current
            self.controller.on_display_change(current)

    def _on_close(self):
        if self.controller.active:
            logger.warning("⚠️ Window close blocked during an active session - use End Exam")
            return
        self.root.destroy()

    def _toggle(self):
        if self.controller.active:
            self.controller.stop()
            self.toggle_btn.configure(text="Start Exam")
        else:
            self.controller.start()
            self.toggle_btn.configure(text="End Exam")
            if self.controller.fullscreen.last_error:
                self.warning_var.set(self.controller.fullscreen.last_error)

    # ─── Scheduled tasks ─────────────────────────────────────

    def _drain_pointer(self):
        try:
            for x, y, ts in self.pointer.drain():
                self.controller.on_screen_pointer(x, y, ts)
        except Exception as e:
            logger.error(f"❌ _drain_pointer error: {e}", exc_info=True)
        self.root.after(16, self._drain_pointer)

    def _check_listener(self):
        self.pointer.restart_if_dead()
        self.root.after(30000, self._check_listener)

    def _refresh_status(self):
        try:
            self._render_status()
        except Exception as e:
            logger.error(f"❌ _refresh_status error: {e}", exc_info=True)
        self.root.after(250, self._refresh_status)

    def _render_status(self):
        snap = self.controller.snapshot()
        c = snap.counters
        mins, secs = divmod(snap.elapsed_seconds, 60)
        if snap.active:
            self.status_var.set(f"Duration: {mins}:{secs:02d}   Tracking: {snap.telemetry.data_points} points")
        level = snap.suspicion_level.value
        self.level_label.configure(text=f"Suspicion Level: {level}", fg=LEVEL_COLORS[level])

        memory = f"{snap.telemetry.memory_mb:.2f} MB" if snap.telemetry.memory_mb is not None else "n/a"
        self.metrics_var.set(
            f"Window blur:     {c.window_blur_count}\n"
            f"Tab switches:    {c.tab_switch_count}\n"
            f"Out of bounds:   {c.out_of_bounds_count}\n"
            f"Rapid movements: {c.rapid_movement_count}\n"
            f"Idle:            {c.idle_seconds}s\n"
            f"Exit attempts:   {snap.fullscreen.exit_attempts}\n"
            f"FPS:             {snap.telemetry.fps}\n"
            f"Memory:          {memory}"
        )

        if snap.fullscreen.warning_visible:
            self.warning_var.set(f"Unauthorized exit attempt #{snap.fullscreen.exit_attempts} - use End Exam")
        elif c.inactivity_warning:
            self.warning_var.set(f"No activity for {c.idle_seconds} seconds")
        elif snap.active:
            self.warning_var.set("")

        self.events_list.delete(0, "end")
        for event in snap.recent_events:
            self.events_list.insert("end", f"{event.description}  {event.payload}")

    def _draw_trail(self, points: List[TrailPoint]):
        self.canvas.delete("trail")
        for p in points:
            r = 8 if p.current else 15
            fill = p.color if p.current else blend(p.color, THEME["surface"], p.opacity)
            self.canvas.create_oval(p.x - r, p.y - r, p.x + r, p.y + r, fill=fill,
                                    outline="#ffffff" if p.current else "", width=2 if p.current else 0,
                                    tags="trail")

    # ─── Main loop ───────────────────────────────────────────

    def run(self):
        """Blocks on the Tk main loop. Call from the main thread."""
        self.pointer.start()
        self.root.after(16, self._drain_pointer)
        self.root.after(250, self._refresh_status)
        self.root.after(30000, self._check_listener)
        logger.info("🖥️ Exam window ready")
        try:
            self.root.mainloop()
        finally:
            self.controller.stop()
            self.pointer.stop()
            logger.info("TkHost shut down.")
