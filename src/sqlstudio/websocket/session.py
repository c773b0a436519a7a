"""
Connection state for the socket protocol: authentication and streams.

All streams of all connections run against the same Database handle.
Stream ids only scope requests to a connection; they do not isolate
transactions from one another.
"""

from __future__ import annotations

import logging
import secrets
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from fastapi import WebSocket

from ..core.errors import (
    AuthenticationError,
    AuthenticationRequiredError,
    DuplicateStreamError,
    UnknownStreamError,
)

logger = logging.getLogger(__name__)

TOKEN_BYTES = 12


def generate_token() -> str:
    """Random credential for the lifetime of the process."""
    return secrets.token_hex(TOKEN_BYTES)


class AuthState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    REJECTED = "rejected"


@dataclass
class StreamInfo:
    """Bookkeeping for one open stream."""
    stream_id: int
    opened_at: float = field(default_factory=time.monotonic)
    executed: int = 0


class StreamRegistry:
    """Open streams of a single connection, keyed by stream id."""

    def __init__(self):
        self._streams: Dict[int, StreamInfo] = {}

    def open(self, stream_id: int) -> StreamInfo:
        """
        Raises:
            DuplicateStreamError: If the id is already open
        """
        if stream_id in self._streams:
            raise DuplicateStreamError(stream_id)
        stream = StreamInfo(stream_id=stream_id)
        self._streams[stream_id] = stream
        return stream

    def close(self, stream_id: int) -> bool:
        """Close a stream. Returns False if it was not open."""
        return self._streams.pop(stream_id, None) is not None

    def get(self, stream_id: int) -> StreamInfo:
        """
        Raises:
            UnknownStreamError: If the id was never opened or is closed
        """
        stream = self._streams.get(stream_id)
        if stream is None:
            raise UnknownStreamError(stream_id)
        return stream

    def clear(self) -> None:
        self._streams.clear()

    def __contains__(self, stream_id: object) -> bool:
        return stream_id in self._streams

    def __len__(self) -> int:
        return len(self._streams)


class Authenticator:
    """
    Checks hello credentials against the process secret.

    There is a single secret per process and no rotation.
    """

    def __init__(self, token: Optional[str] = None):
        self._token = token or generate_token()

    @property
    def token(self) -> str:
        return self._token

    def verify(self, presented: Optional[str]) -> bool:
        if not isinstance(presented, str):
            return False
        return secrets.compare_digest(presented.encode(), self._token.encode())

    def authenticate(self, connection: "Connection", presented: Optional[str]) -> None:
        """
        Move the connection to AUTHENTICATED, or to REJECTED on mismatch.

        Raises:
            AuthenticationError: If the credential does not match
        """
        if self.verify(presented):
            connection.auth_state = AuthState.AUTHENTICATED
            logger.info(f"Connection {connection.connection_id} authenticated")
            return

        connection.auth_state = AuthState.REJECTED
        logger.warning(f"Connection {connection.connection_id} presented an invalid token")
        raise AuthenticationError()


@dataclass
class Connection:
    """One WebSocket client."""
    connection_id: str
    websocket: WebSocket
    auth_state: AuthState = AuthState.UNAUTHENTICATED
    streams: StreamRegistry = field(default_factory=StreamRegistry)

    @property
    def authenticated(self) -> bool:
        return self.auth_state is AuthState.AUTHENTICATED

    def require_authenticated(self) -> None:
        """
        Raises:
            AuthenticationRequiredError: If hello has not succeeded yet
        """
        if not self.authenticated:
            raise AuthenticationRequiredError()

    async def send(self, payload: dict[str, Any]) -> None:
        await self.websocket.send_json(payload)
