"""
Application factory for sqlstudio.

Creates a FastAPI application with:
- the socket protocol on a WebSocket endpoint
- the HTTP protocol (embedding page + POST /query)
- a health check
- lifecycle hooks opening and closing the shared database handle
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .api import router as api_router
from .config import Settings
from .runtime.database import Database
from .websocket import Authenticator, create_websocket_router
from .websocket.router import Engine

logger = logging.getLogger(__name__)


class HealthcheckLogFilter(logging.Filter):
    """
    Drop uvicorn access lines for /health.

    Monitors poll /health for the live connection count every few
    seconds; those lines would bury the query traffic in the access log.
    """

    FILTERED_PATHS = ("/health",)

    def filter(self, record: logging.LogRecord) -> bool:
        # uvicorn.access args: (client, method, path, http_version, status)
        args = record.args if isinstance(record.args, tuple) else ()
        if len(args) >= 3:
            path = str(args[2]).split("?", 1)[0]
            return path not in self.FILTERED_PATHS
        return True


def _setup_logging_filter():
    """Install HealthcheckLogFilter on uvicorn.access once per process."""
    uvicorn_access = logging.getLogger("uvicorn.access")
    if not any(isinstance(f, HealthcheckLogFilter) for f in uvicorn_access.filters):
        uvicorn_access.addFilter(HealthcheckLogFilter())


def create_app(
    settings: Settings,
    *,
    database: Optional[Engine] = None,
    authenticator: Optional[Authenticator] = None,
) -> FastAPI:
    """
    Create the relay application.

    Args:
        settings: Process settings
        database: Database handle; built from settings.database when omitted.
            Anything with async connect/close/execute/batch works.
        authenticator: Socket credential holder; built from settings.token
            (or a fresh random token) when omitted

    Returns:
        Configured FastAPI application
    """
    if database is None:
        if not settings.database:
            raise ValueError("settings.database must point at a SQLite file")
        database = Database(settings.database, echo=settings.verbose)

    authenticator = authenticator or Authenticator(settings.token)
    ws_router = create_websocket_router(database, authenticator)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        _setup_logging_filter()
        await database.connect()
        logger.info("sqlstudio started")

        yield

        await database.close()
        logger.info("sqlstudio stopped")

    app = FastAPI(
        title="SQL Studio",
        description="Relay a local SQLite database to a browser SQL editor",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.database = database
    app.state.authenticator = authenticator
    app.state.ws_router = ws_router

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "connections": ws_router.connection_count,
        }

    if settings.enable_http:
        app.include_router(api_router)

    if settings.enable_websocket:
        @app.websocket(settings.websocket_path)
        async def websocket_endpoint(websocket: WebSocket):
            await ws_router.handle_connection(websocket)

    return app
