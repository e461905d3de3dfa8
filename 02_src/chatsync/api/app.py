"""FastAPI application setup."""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..app import Application
from ..backend import RestBackend
from ..errors import ChatSyncError
from ..logging_config import get_logger
from .routes import control, messaging, observability

logger = get_logger(__name__)

DEFAULT_CORS_ORIGINS = "http://localhost:5173,http://localhost:5174"

_app: Application | None = None


def get_app() -> Application:
    """Process-wide Application, created on first use."""
    global _app
    if _app is None:
        _app = Application()
    return _app


def _cors_origins() -> list[str]:
    raw = os.getenv("CHATSYNC_CORS_ORIGINS", DEFAULT_CORS_ORIGINS)
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def create_fastapi_app(application: Application | None = None) -> FastAPI:
    """Build the HTTP surface around ``application`` (the global one by default).

    The lifespan starts and stops the application; the simulator, when
    configured, gets the application's tracker and is stopped first.
    """
    application = application or get_app()

    @asynccontextmanager
    async def lifespan(fastapi_app: FastAPI):
        await application.start()
        sim = control.get_sim_instance()
        if sim is not None:
            sim.set_tracker(application.tracker)
        try:
            yield
        finally:
            if sim is not None:
                await sim.stop()
            await application.stop()

    fastapi_app = FastAPI(
        title="chatsync API",
        description="Optimistic messaging with realtime reconciliation",
        version="0.1.0",
        lifespan=lifespan,
    )
    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @fastapi_app.exception_handler(ChatSyncError)
    async def backend_error(request: Request, exc: ChatSyncError) -> JSONResponse:
        logger.error("Unhandled backend error on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=502, content={"detail": str(exc)})

    @fastapi_app.get("/api/health", tags=["control"])
    async def health() -> dict:
        return {
            "status": "ok",
            "backend": "rest" if isinstance(application.backend, RestBackend) else "local",
            "open_views": len(application.views),
            "realtime_subscriptions": application.hub.subscriber_count(),
        }

    fastapi_app.include_router(messaging.create_messaging_router(application))
    fastapi_app.include_router(observability.create_observability_router(application))
    fastapi_app.include_router(control.create_control_router(application))

    return fastapi_app
