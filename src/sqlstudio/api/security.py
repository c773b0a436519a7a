"""
Optional HTTP basic auth for the HTTP transport.
"""

from __future__ import annotations

import logging
import secrets

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

logger = logging.getLogger(__name__)

_basic = HTTPBasic(auto_error=False)


async def require_basic_auth(
    request: Request,
    credentials: HTTPBasicCredentials | None = Depends(_basic),
) -> None:
    """
    FastAPI dependency enforcing the configured username/password.

    Does nothing when no username is configured.
    """
    settings = request.app.state.settings
    if not settings.basic_auth_enabled:
        return

    challenge = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid credentials",
        headers={"WWW-Authenticate": "Basic"},
    )
    if credentials is None:
        raise challenge

    username_ok = secrets.compare_digest(
        credentials.username.encode(), settings.username.encode()
    )
    password_ok = secrets.compare_digest(
        credentials.password.encode(), (settings.password or "").encode()
    )
    if not (username_ok and password_ok):
        logger.warning(f"Rejected basic auth for user {credentials.username!r}")
        raise challenge
