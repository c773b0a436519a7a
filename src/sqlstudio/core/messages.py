"""
Pydantic models for the wire protocols.

Socket protocol (one JSON object per WebSocket text frame):

    {"type": "hello", "jwt": "..."}
    {"type": "request", "request_id": 1, "request": {"type": "open_stream", "stream_id": 0}}
    {"type": "request", "request_id": 2, "request": {"type": "execute", "stream_id": 0,
        "stmt": {"sql": "SELECT ?", "args": [{"type": "text", "value": "a"}], "want_rows": true}}}
    {"type": "request", "request_id": 3, "request": {"type": "close_stream", "stream_id": 0}}

HTTP protocol (POST /query):

    {"id": 1, "type": "query", "statement": "SELECT 1"}
    {"id": 2, "type": "transaction", "statements": ["INSERT ...", "UPDATE ..."]}
"""

from __future__ import annotations

import json
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from .errors import ProtocolError
from .types import untag_value


# --- Socket protocol ---

class StatementArg(BaseModel):
    """Tagged positional argument: {"type": "integer", "value": "42"}"""
    type: str = "text"
    value: Any = None
    base64: Optional[str] = None

    def to_python(self) -> Any:
        return untag_value(self.type, self.value, self.base64)


class NamedArg(BaseModel):
    """Named argument: {"name": ":id", "value": {"type": "integer", "value": "1"}}"""
    name: str
    value: StatementArg


class Statement(BaseModel):
    sql: str
    args: list[StatementArg] = Field(default_factory=list)
    named_args: list[NamedArg] = Field(default_factory=list)
    want_rows: bool = True

    def params(self) -> Union[tuple, dict, None]:
        """
        Bind parameters for the engine.

        Raises:
            ProtocolError: If positional and named arguments are mixed
        """
        if self.args and self.named_args:
            raise ProtocolError("Positional and named arguments cannot be mixed")

        if self.named_args:
            return {
                arg.name.lstrip(":@$"): arg.value.to_python()
                for arg in self.named_args
            }
        if self.args:
            return tuple(arg.to_python() for arg in self.args)
        return None


class OpenStreamRequest(BaseModel):
    type: Literal["open_stream"]
    stream_id: int


class CloseStreamRequest(BaseModel):
    type: Literal["close_stream"]
    stream_id: int


class ExecuteRequest(BaseModel):
    type: Literal["execute"]
    stream_id: int
    stmt: Statement


RequestBody = Annotated[
    Union[OpenStreamRequest, CloseStreamRequest, ExecuteRequest],
    Field(discriminator="type"),
]


class HelloMessage(BaseModel):
    type: Literal["hello"]
    jwt: Optional[str] = None


class RequestMessage(BaseModel):
    type: Literal["request"]
    request_id: int
    request: RequestBody


ClientMessage = Annotated[
    Union[HelloMessage, RequestMessage],
    Field(discriminator="type"),
]

_client_message_adapter = TypeAdapter(ClientMessage)


def _describe(error: PydanticValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    return f"{location}: {first['msg']}" if location else first["msg"]


def parse_client_message(raw: str | bytes) -> HelloMessage | RequestMessage:
    """
    Parse one socket frame.

    Raises:
        ProtocolError: If the frame is not JSON or not a known message.
            ``request_id`` is set when the frame was a request carrying one,
            so the error can still be correlated.
    """
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise ProtocolError(f"Malformed message: {e}")

    if not isinstance(payload, dict):
        raise ProtocolError("Message must be a JSON object")

    request_id = payload.get("request_id") if payload.get("type") == "request" else None
    if isinstance(request_id, bool) or not isinstance(request_id, int):
        request_id = None

    kind = payload.get("type")
    if kind not in ("hello", "request"):
        raise ProtocolError(f"Unknown message type: {kind}")

    if kind == "request":
        body = payload.get("request")
        body_kind = body.get("type") if isinstance(body, dict) else None
        if body_kind not in ("open_stream", "close_stream", "execute"):
            raise ProtocolError(f"Unknown request type: {body_kind}", request_id=request_id)

    try:
        return _client_message_adapter.validate_python(payload)
    except PydanticValidationError as e:
        raise ProtocolError(f"Invalid {kind} message: {_describe(e)}", request_id=request_id)


# --- HTTP protocol ---

class QueryRequest(BaseModel):
    type: Literal["query"]
    id: Union[int, str, None] = None
    statement: str


class TransactionRequest(BaseModel):
    type: Literal["transaction"]
    id: Union[int, str, None] = None
    statements: list[str]


HttpRequest = Annotated[
    Union[QueryRequest, TransactionRequest],
    Field(discriminator="type"),
]

_http_request_adapter = TypeAdapter(HttpRequest)


def parse_http_request(payload: Any) -> QueryRequest | TransactionRequest:
    """
    Validate a decoded POST /query body.

    Raises:
        ProtocolError: If the body is not a query or transaction request
    """
    if not isinstance(payload, dict):
        raise ProtocolError("Request body must be a JSON object")

    kind = payload.get("type")
    if kind not in ("query", "transaction"):
        raise ProtocolError(f"Unknown request type: {kind}")

    try:
        return _http_request_adapter.validate_python(payload)
    except PydanticValidationError as e:
        raise ProtocolError(f"Invalid {kind} request: {_describe(e)}")
