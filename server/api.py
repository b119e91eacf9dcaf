# server/api.py
"""
FastAPI Local Host API Module

Lets a browser page act as the host for one supervised session. The page
forwards pointer, focus, visibility, key, context-menu and display events;
every response carries the current snapshot plus the fullscreen commands and
notifications the page should carry out.

All handlers are ``async def`` so they execute on the event-loop thread that
also runs the session timers.
"""

import logging
from typing import List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from server.remote_host import RemoteHost
from shared.models import (
    DisplayPayload,
    HostResponse,
    KeyPayload,
    PermissionPayload,
    PointerPayload,
    SurfacePayload,
    TrailPoint,
    VisibilityPayload,
)

logger = logging.getLogger(__name__)


def create_app(host: RemoteHost, allow_origins=None) -> FastAPI:
    """
    Build the API around one RemoteHost.

    Args:
        host: Controller plus remote capabilities the endpoints drive
        allow_origins: CORS origins allowed to call the API (the exam page)

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(title="ExamWatch Host API", version="1.0.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins or ["http://localhost:8000", "http://127.0.0.1:8000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    controller = host.controller

    @app.post("/session/start", response_model=HostResponse)
    async def start_session():
        """Start (or restart) the session and begin fullscreen enforcement."""
        controller.start()
        return host.respond()

    @app.post("/session/stop", response_model=HostResponse)
    async def stop_session():
        controller.stop()
        return host.respond()

    @app.get("/session", response_model=HostResponse)
    async def get_session():
        return host.respond()

    @app.get("/session/trail", response_model=List[TrailPoint])
    async def get_trail():
        return controller.trail()

    @app.post("/surface", response_model=HostResponse)
    async def set_surface(payload: SurfacePayload):
        """Mount or resize the exam area."""
        host.surface.resize(payload.width, payload.height)
        logger.info(f"📐 Tracking surface {payload.width:g}x{payload.height:g}")
        return host.respond()

    @app.post("/notifications/permission", response_model=HostResponse)
    async def set_permission(payload: PermissionPayload):
        host.notifier.report_permission(payload.permission)
        return host.respond()

    @app.post("/events/pointer", response_model=HostResponse)
    async def pointer(payload: PointerPayload):
        controller.on_pointer(payload.x, payload.y, payload.timestamp)
        return host.respond()

    @app.post("/events/visibility", response_model=HostResponse)
    async def visibility(payload: VisibilityPayload):
        controller.on_visibility_change(payload.hidden)
        return host.respond()

    @app.post("/events/blur", response_model=HostResponse)
    async def blur():
        controller.on_window_blur()
        return host.respond()

    @app.post("/events/key", response_model=HostResponse)
    async def key(payload: KeyPayload):
        """
        Key seen in the capture phase. ``consumed`` tells the page to call
        preventDefault/stopPropagation.
        """
        consumed = controller.on_key(payload.key)
        return host.respond(consumed=consumed)

    @app.post("/events/contextmenu", response_model=HostResponse)
    async def context_menu():
        return host.respond(consumed=controller.on_context_menu())

    @app.post("/events/display", response_model=HostResponse)
    async def display(payload: DisplayPayload):
        host.display.report(payload.fullscreen)
        controller.on_display_change(payload.fullscreen)
        return host.respond()

    @app.post("/fullscreen/request", response_model=HostResponse)
    async def request_fullscreen():
        """Manual fullscreen entry from the page's button."""
        controller.request_fullscreen()
        return host.respond()

    @app.post("/fullscreen/dismiss", response_model=HostResponse)
    async def dismiss_warning():
        controller.dismiss_warning()
        return host.respond()

    @app.get("/health")
    async def health_check():
        """Simple health endpoint."""
        return {"status": "healthy", "session_active": controller.active}

    return app
