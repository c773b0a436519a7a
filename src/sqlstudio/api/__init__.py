"""
API module - FastAPI endpoints for the HTTP transport.
"""

from __future__ import annotations

from .router import get_database, router
from .security import require_basic_auth

__all__ = [
    "router",
    "get_database",
    "require_basic_auth",
]
