"""
Result serialization and response envelopes.

Socket results keep rows positional with tagged cells; HTTP results key
each row by the deduplicated column name. The last inserted rowid is a
string on the socket (rowids are 64-bit and JavaScript clients lose
precision above 2**53) and an exact JSON integer over HTTP.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from .errors import StudioError
from .types import build_schema, encode_value, tag_value

if TYPE_CHECKING:
    from ..runtime.database import ResultSet


# --- Socket protocol ---

def build_execute_result(result: ResultSet, want_rows: bool = True) -> dict[str, Any]:
    """Shape a ResultSet as the socket ``execute`` result."""
    rows = []
    if want_rows:
        rows = [[tag_value(value) for value in row] for row in result.rows]

    return {
        "cols": [
            {"name": name, "decltype": decltype}
            for name, decltype in zip(result.columns, result.column_types)
        ],
        "rows": rows,
        "last_insert_rowid": (
            None if result.last_insert_rowid is None else str(result.last_insert_rowid)
        ),
        "affected_row_count": result.rows_affected,
    }


def hello_ok() -> dict[str, Any]:
    return {"type": "hello_ok"}


def hello_error(error: StudioError) -> dict[str, Any]:
    return {
        "type": "hello_error",
        "error": {"message": str(error), "code": error.code},
    }


def response_ok(request_id: int, response: dict[str, Any]) -> dict[str, Any]:
    return {"type": "response_ok", "request_id": request_id, "response": response}


def response_error(request_id: int, message: str, code: Optional[str] = None) -> dict[str, Any]:
    """Error correlated to a request. Engine failures carry no code."""
    error: dict[str, Any] = {"message": message}
    if code is not None:
        error["code"] = code
    return {"type": "response_error", "request_id": request_id, "error": error}


def connection_error(message: str, code: str) -> dict[str, Any]:
    """Error that cannot be tied to a request id."""
    return {"type": "error", "error": {"message": message, "code": code}}


# --- HTTP protocol ---

def build_http_result(result: ResultSet) -> dict[str, Any]:
    """Shape a ResultSet as the HTTP ``Result`` object."""
    headers = build_schema(result.columns, result.column_types)

    rows = []
    for row in result.rows:
        rows.append({
            header.name: encode_value(value)
            for header, value in zip(headers, row)
        })

    data: dict[str, Any] = {
        "rows": rows,
        "headers": [header.to_dict() for header in headers],
        "stat": {
            "rowsAffected": result.rows_affected,
            "rowsRead": None,
            "rowsWritten": None,
            "queryDurationMs": 0,
        },
    }
    if result.last_insert_rowid is not None:
        data["lastInsertRowid"] = int(result.last_insert_rowid)

    return data


def http_success(kind: str, request_id: Any, data: Any) -> dict[str, Any]:
    return {"type": kind, "id": request_id, "data": data}


def http_error(kind: Optional[str], request_id: Any, message: str) -> dict[str, Any]:
    return {"type": kind, "id": request_id, "error": message}
