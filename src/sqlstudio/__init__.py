"""
SQL Studio - relay a local SQLite file to a browser-based SQL editor.

Two transports share one execution and serialization path:
- Socket protocol: authenticated WebSocket with streams, answered in order
- HTTP protocol: stateless POST /query for queries and transactions

Usage:
    from sqlstudio import Settings, create_app

    app = create_app(Settings(database="app.db"))
"""

from __future__ import annotations

__version__ = "0.1.0"

from .config import Settings, load_settings
from .core import (
    AuthenticationError,
    ColumnHeader,
    ColumnType,
    ConfigError,
    DuplicateStreamError,
    ExecutionError,
    ProtocolError,
    StudioError,
    UnknownStreamError,
    build_execute_result,
    build_http_result,
    build_schema,
    normalize_type,
    tag_value,
)
from .runtime import Database, ResultSet
from .server import create_app
from .websocket import (
    Authenticator,
    SequentialDispatcher,
    StreamRegistry,
    WebSocketRouter,
)

__all__ = [
    # App
    "create_app",
    "Settings",
    "load_settings",
    # Errors
    "StudioError",
    "AuthenticationError",
    "ProtocolError",
    "DuplicateStreamError",
    "UnknownStreamError",
    "ExecutionError",
    "ConfigError",
    # Types and serialization
    "ColumnType",
    "ColumnHeader",
    "normalize_type",
    "build_schema",
    "tag_value",
    "build_execute_result",
    "build_http_result",
    # Runtime
    "Database",
    "ResultSet",
    # WebSocket
    "Authenticator",
    "SequentialDispatcher",
    "StreamRegistry",
    "WebSocketRouter",
]
