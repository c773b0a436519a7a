"""
Core module - errors, column typing, wire models and serialization.
"""

from __future__ import annotations

from .errors import (
    AuthenticationError,
    AuthenticationRequiredError,
    ConfigError,
    DuplicateStreamError,
    ExecutionError,
    ProtocolError,
    StreamError,
    StudioError,
    UnknownStreamError,
)
from .messages import (
    CloseStreamRequest,
    ExecuteRequest,
    HelloMessage,
    NamedArg,
    OpenStreamRequest,
    QueryRequest,
    RequestMessage,
    Statement,
    StatementArg,
    TransactionRequest,
    parse_client_message,
    parse_http_request,
)
from .serializer import (
    build_execute_result,
    build_http_result,
    connection_error,
    hello_error,
    hello_ok,
    http_error,
    http_success,
    response_error,
    response_ok,
)
from .types import (
    MAX_RENAME_ATTEMPTS,
    ColumnHeader,
    ColumnType,
    build_schema,
    encode_value,
    normalize_type,
    tag_value,
    untag_value,
)

__all__ = [
    # Errors
    "StudioError",
    "AuthenticationError",
    "AuthenticationRequiredError",
    "ProtocolError",
    "StreamError",
    "DuplicateStreamError",
    "UnknownStreamError",
    "ExecutionError",
    "ConfigError",
    # Types
    "ColumnType",
    "ColumnHeader",
    "MAX_RENAME_ATTEMPTS",
    "normalize_type",
    "build_schema",
    "tag_value",
    "untag_value",
    "encode_value",
    # Messages
    "StatementArg",
    "NamedArg",
    "Statement",
    "OpenStreamRequest",
    "CloseStreamRequest",
    "ExecuteRequest",
    "HelloMessage",
    "RequestMessage",
    "QueryRequest",
    "TransactionRequest",
    "parse_client_message",
    "parse_http_request",
    # Serializer
    "build_execute_result",
    "build_http_result",
    "hello_ok",
    "hello_error",
    "response_ok",
    "response_error",
    "connection_error",
    "http_success",
    "http_error",
]
