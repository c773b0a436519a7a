"""
Custom exceptions for the SQL Studio relay.

Every error carries a machine-readable ``code``. Errors flagged ``fatal``
terminate the connection they occur on; all others are reported to the
client and the connection keeps serving requests.
"""

from __future__ import annotations

from typing import Optional


class StudioError(Exception):
    """Base exception for all relay errors."""

    code: str = "INTERNAL_ERROR"
    fatal: bool = False


class AuthenticationError(StudioError):
    """Raised when the presented credential does not match the process secret."""

    code = "AUTH_JWT_INVALID"
    fatal = True

    def __init__(self, message: str = "Authentication failed: The JWT is invalid"):
        super().__init__(message)


class AuthenticationRequiredError(StudioError):
    """Raised when a request arrives before a successful hello."""

    code = "AUTH_REQUIRED"

    def __init__(self, message: str = "Authentication required: send hello first"):
        super().__init__(message)


class ProtocolError(StudioError):
    """Raised when a message is malformed or of an unknown kind."""

    code = "PROTOCOL_ERROR"

    def __init__(self, message: str, request_id: Optional[int] = None):
        self.request_id = request_id
        super().__init__(message)


class StreamError(StudioError):
    """Base class for stream lifecycle violations."""

    def __init__(self, stream_id: int, message: str):
        self.stream_id = stream_id
        super().__init__(message)


class DuplicateStreamError(StreamError):
    code = "STREAM_EXISTS"

    def __init__(self, stream_id: int):
        super().__init__(stream_id, f"Stream {stream_id} is already open")


class UnknownStreamError(StreamError):
    code = "STREAM_UNKNOWN"

    def __init__(self, stream_id: int):
        super().__init__(stream_id, f"Stream {stream_id} is not open")


class ExecutionError(StudioError):
    """Raised when the database engine fails to execute a statement."""

    code = "EXECUTION_ERROR"


class ConfigError(StudioError):
    """Raised when configuration is invalid."""

    code = "CONFIG_ERROR"
