"""
WebSocket module for the socket protocol.

Provides:
- SequentialDispatcher: In-order handling of one connection's messages
- Authenticator / StreamRegistry / Connection: Per-connection state
- WebSocketRouter: Message routing against the shared database
"""

from __future__ import annotations

from .dispatcher import SequentialDispatcher
from .router import WebSocketRouter, create_websocket_router
from .session import (
    AuthState,
    Authenticator,
    Connection,
    StreamInfo,
    StreamRegistry,
    generate_token,
)

__all__ = [
    # Dispatcher
    "SequentialDispatcher",
    # Session
    "AuthState",
    "Authenticator",
    "Connection",
    "StreamInfo",
    "StreamRegistry",
    "generate_token",
    # Router
    "WebSocketRouter",
    "create_websocket_router",
]
