"""
Runtime module - database handle shared by both transports.
"""

from __future__ import annotations

from .database import Database, ResultSet, storage_class

__all__ = [
    "Database",
    "ResultSet",
    "storage_class",
]
