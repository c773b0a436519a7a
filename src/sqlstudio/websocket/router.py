"""
WebSocket router for the socket protocol.

Each connection gets a receive loop that queues every frame on a
SequentialDispatcher, so requests are answered strictly in arrival order.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import uuid
from typing import Any, Dict, Protocol, Sequence

from fastapi import WebSocket, WebSocketDisconnect, status

from ..core.errors import AuthenticationError, ExecutionError, ProtocolError, StudioError
from ..core.messages import (
    CloseStreamRequest,
    ExecuteRequest,
    HelloMessage,
    OpenStreamRequest,
    RequestMessage,
    parse_client_message,
)
from ..core.serializer import (
    build_execute_result,
    connection_error,
    hello_error,
    hello_ok,
    response_error,
    response_ok,
)
from ..runtime.database import ResultSet
from .dispatcher import SequentialDispatcher
from .session import Authenticator, Connection

logger = logging.getLogger(__name__)


class Engine(Protocol):
    """Narrow interface of the shared database handle."""

    async def connect(self) -> None: ...

    async def close(self) -> None: ...

    async def execute(self, sql: str, params: Any = None) -> ResultSet: ...

    async def batch(self, statements: Sequence[Any]) -> list[ResultSet]: ...


class WebSocketRouter:
    """
    Serves the socket protocol on top of a shared database handle.

    Message kinds:
    - hello: authenticate the connection
    - request/open_stream: register a stream id
    - request/close_stream: release a stream id (no response)
    - request/execute: run one statement on an open stream
    """

    def __init__(self, database: Engine, authenticator: Authenticator):
        self.database = database
        self.authenticator = authenticator
        self._connections: Dict[str, Connection] = {}

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def handle_connection(self, websocket: WebSocket):
        """
        Handle a WebSocket client until it disconnects or fails to authenticate.

        Args:
            websocket: FastAPI WebSocket connection
        """
        connection = Connection(connection_id=str(uuid.uuid4()), websocket=websocket)
        dispatcher = SequentialDispatcher(
            name=connection.connection_id,
            on_error=functools.partial(self._report_failure, connection),
        )

        await websocket.accept()
        self._connections[connection.connection_id] = connection
        logger.info(f"WebSocket connected: {connection.connection_id} (total: {self.connection_count})")

        worker = asyncio.create_task(dispatcher.run())
        receiver = asyncio.create_task(self._receive(connection, dispatcher))

        try:
            await asyncio.wait({worker, receiver}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (receiver, worker):
                task.cancel()
            await asyncio.gather(receiver, worker, return_exceptions=True)

            self._connections.pop(connection.connection_id, None)
            connection.streams.clear()

        if dispatcher.failure is not None:
            await self._close(connection, status.WS_1008_POLICY_VIOLATION, str(dispatcher.failure))

        logger.info(f"WebSocket disconnected: {connection.connection_id} (total: {self.connection_count})")

    async def _receive(self, connection: Connection, dispatcher: SequentialDispatcher):
        """Queue incoming frames until the client goes away."""
        try:
            while True:
                frame = await connection.websocket.receive()
                if frame["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(frame.get("code", status.WS_1000_NORMAL_CLOSURE))
                raw = frame.get("text") if frame.get("text") is not None else frame.get("bytes", b"")
                dispatcher.submit(functools.partial(self._handle_message, connection, raw))
        except WebSocketDisconnect:
            logger.info(f"Client {connection.connection_id} disconnected")

    async def _handle_message(self, connection: Connection, raw: str | bytes):
        """Parse one frame and route it by kind."""
        try:
            message = parse_client_message(raw)
        except ProtocolError as e:
            logger.warning(f"Protocol error on {connection.connection_id}: {e}")
            if e.request_id is not None:
                await connection.send(response_error(e.request_id, str(e), e.code))
            else:
                await connection.send(connection_error(str(e), e.code))
            return

        if isinstance(message, HelloMessage):
            await self._handle_hello(connection, message)
        elif isinstance(message, RequestMessage):
            await self._handle_request(connection, message)
        else:
            raise ProtocolError(f"Unhandled message type: {message.type}")

    async def _handle_hello(self, connection: Connection, message: HelloMessage):
        """
        Check the presented credential.

        A mismatch is answered with hello_error and then re-raised, which
        stops the dispatcher and closes the connection.
        """
        try:
            self.authenticator.authenticate(connection, message.jwt)
        except AuthenticationError as e:
            await connection.send(hello_error(e))
            raise
        await connection.send(hello_ok())

    async def _handle_request(self, connection: Connection, message: RequestMessage):
        request_id = message.request_id
        body = message.request

        try:
            connection.require_authenticated()

            if isinstance(body, OpenStreamRequest):
                await self._handle_open_stream(connection, request_id, body)
            elif isinstance(body, CloseStreamRequest):
                await self._handle_close_stream(connection, body)
            elif isinstance(body, ExecuteRequest):
                await self._handle_execute(connection, request_id, body)
            else:
                raise ProtocolError(f"Unhandled request type: {body.type}", request_id=request_id)

        except ExecutionError as e:
            await connection.send(response_error(request_id, str(e)))
        except StudioError as e:
            logger.warning(f"Request {request_id} on {connection.connection_id} rejected: {e}")
            await connection.send(response_error(request_id, str(e), e.code))

    async def _handle_open_stream(self, connection: Connection, request_id: int, body: OpenStreamRequest):
        connection.streams.open(body.stream_id)
        logger.debug(f"Stream {body.stream_id} opened on {connection.connection_id}")
        await connection.send(response_ok(request_id, {"type": "open_stream"}))

    async def _handle_close_stream(self, connection: Connection, body: CloseStreamRequest):
        """Release the stream id. Never answered, closing twice is harmless."""
        if not connection.streams.close(body.stream_id):
            logger.debug(f"Stream {body.stream_id} was not open on {connection.connection_id}")

    async def _handle_execute(self, connection: Connection, request_id: int, body: ExecuteRequest):
        stream = connection.streams.get(body.stream_id)
        params = body.stmt.params()

        result = await self.database.execute(body.stmt.sql, params)
        stream.executed += 1

        await connection.send(response_ok(request_id, {
            "type": "execute",
            "result": build_execute_result(result, want_rows=body.stmt.want_rows),
        }))

    async def _report_failure(self, connection: Connection, error: Exception):
        """Tell the client a handler failed without exposing internals."""
        await connection.send(connection_error("Internal server error", "INTERNAL_ERROR"))

    @staticmethod
    async def _close(connection: Connection, code: int, reason: str):
        try:
            await connection.websocket.close(code=code, reason=reason)
        except RuntimeError as e:
            logger.debug(f"Close on {connection.connection_id} skipped: {e}")


def create_websocket_router(database: Engine, authenticator: Authenticator) -> WebSocketRouter:
    """
    Factory for creating the WebSocket router.

    Args:
        database: Shared database handle
        authenticator: Holds the process credential

    Returns:
        Configured WebSocket router
    """
    return WebSocketRouter(database, authenticator)
