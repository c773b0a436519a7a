"""
Column type mapping for result sets.

Turns engine column declarations into the wire schema shown by the editor
and tags individual cell values for the socket protocol.

Type affinity follows https://www.sqlite.org/datatype3.html:

    normalize_type("VARCHAR(10)")  -> ColumnType.TEXT
    normalize_type("BIGINT")       -> ColumnType.INTEGER
    normalize_type("DOUBLE")       -> ColumnType.REAL
    normalize_type(None)           -> ColumnType.BLOB
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Optional, Sequence

from .errors import ProtocolError

# Rename attempts per colliding column name before the last candidate is kept
MAX_RENAME_ATTEMPTS = 20


class ColumnType(IntEnum):
    TEXT = 1
    INTEGER = 2
    REAL = 3
    BLOB = 4


_TEXT_MARKERS = ("CHAR", "TEXT", "CLOB", "STRING")
_REAL_MARKERS = ("REAL", "DOUBLE", "FLOAT")


def normalize_type(declared: Optional[str]) -> ColumnType:
    """Map a declared column type to its storage affinity."""
    if declared is None:
        return ColumnType.BLOB

    declared = declared.upper()

    # Order matters: "CHARINT" is TEXT, "INTEGER" is INTEGER, "BLOBREAL" is BLOB
    if any(marker in declared for marker in _TEXT_MARKERS):
        return ColumnType.TEXT
    if "INT" in declared:
        return ColumnType.INTEGER
    if "BLOB" in declared:
        return ColumnType.BLOB
    if any(marker in declared for marker in _REAL_MARKERS):
        return ColumnType.REAL

    return ColumnType.TEXT


@dataclass(frozen=True)
class ColumnHeader:
    """
    One column of the wire schema.

    ``name`` is unique within a result set and keys the row mappings;
    ``display_name`` keeps the label the query produced.
    """
    name: str
    display_name: str
    original_type: Optional[str]
    type: ColumnType

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "displayName": self.display_name,
            "originalType": self.original_type,
            "type": int(self.type),
        }


def build_schema(
    columns: Sequence[str],
    declared_types: Sequence[Optional[str]],
) -> list[ColumnHeader]:
    """
    Build column headers, renaming duplicate column names.

    A name already taken is rewritten as ``__<name>_<i>`` for i = 0, 1, ...
    until a free one is found or MAX_RENAME_ATTEMPTS candidates were tried,
    in which case the last candidate is used as is.

    Args:
        columns: Column names in result order
        declared_types: Declared type per column, aligned with ``columns``

    Returns:
        Headers in result order
    """
    taken: set[str] = set()
    headers: list[ColumnHeader] = []

    for index, column in enumerate(columns):
        declared = declared_types[index] if index < len(declared_types) else None

        candidate = column
        for attempt in range(MAX_RENAME_ATTEMPTS):
            if candidate not in taken:
                break
            candidate = f"__{column}_{attempt}"

        taken.add(candidate)
        headers.append(
            ColumnHeader(
                name=candidate,
                display_name=column,
                original_type=declared,
                type=normalize_type(declared),
            )
        )

    return headers


def encode_value(value: Any) -> Any:
    """Make a raw engine value JSON-safe (BLOBs become base64 text)."""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(value)).decode("ascii")
    return value


def tag_value(value: Any) -> dict[str, Any]:
    """
    Tag a cell value for the socket protocol.

    Numbers are tagged "float", NULL is "null" and everything else,
    BLOBs included, is sent as "text".
    """
    if value is None:
        return {"type": "null", "value": None}
    if isinstance(value, str):
        return {"type": "text", "value": value}
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return {"type": "float", "value": value}
    return {"type": "text", "value": encode_value(value)}


def untag_value(arg_type: str, value: Any = None, base64_data: Optional[str] = None) -> Any:
    """
    Convert a tagged statement argument into a value the engine can bind.

    Raises:
        ProtocolError: If the tag is unknown or the value does not fit it
    """
    if arg_type == "null":
        return None
    if arg_type == "text":
        return value
    if arg_type == "integer":
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ProtocolError(f"Invalid integer argument: {value!r}")
    if arg_type == "float":
        try:
            return float(value)
        except (TypeError, ValueError):
            raise ProtocolError(f"Invalid float argument: {value!r}")
    if arg_type == "blob":
        encoded = base64_data if base64_data is not None else value
        try:
            return base64.b64decode(encoded or "", validate=True)
        except (binascii.Error, TypeError, ValueError):
            raise ProtocolError("Invalid base64 in blob argument")

    raise ProtocolError(f"Unknown argument type: {arg_type}")
