"""
FastAPI router for the HTTP transport.

Endpoints:
- GET /       - Page embedding the editor, relaying its queries to /query
- POST /query - Execute a query or a transaction

Request formats:

1. Single statement:
   {"id": 1, "type": "query", "statement": "SELECT * FROM users"}

2. Transaction (all statements or none):
   {"id": 2, "type": "transaction", "statements": ["INSERT ...", "DELETE ..."]}

Responses echo type and id, with either "data" or "error".
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, JSONResponse

from ..core.errors import ExecutionError, ProtocolError
from ..core.messages import QueryRequest, parse_http_request
from ..core.serializer import build_http_result, http_error, http_success
from ..playground import get_embed_html
from ..runtime.database import Database
from .security import require_basic_auth

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_basic_auth)])


def get_database(request: Request) -> Database:
    """Shared database handle stored on the application."""
    database = getattr(request.app.state, "database", None)
    if database is None:
        raise RuntimeError("Database not initialized on app.state")
    return database


@router.get("/", response_class=HTMLResponse, include_in_schema=False)
async def embed_page(request: Request) -> str:
    return get_embed_html(studio_url=request.app.state.settings.studio_url)


@router.post("/query")
async def query(request: Request, database: Database = Depends(get_database)) -> Any:
    """
    Execute a statement or a transaction.

    Engine failures are answered with HTTP 200 and an "error" field;
    malformed bodies with HTTP 400.
    """
    try:
        payload = await request.json()
    except ValueError:
        return JSONResponse(http_error(None, None, "Malformed JSON body"), status_code=400)

    try:
        body = parse_http_request(payload)
    except ProtocolError as e:
        kind = payload.get("type") if isinstance(payload, dict) else None
        request_id = payload.get("id") if isinstance(payload, dict) else None
        logger.warning(f"Rejected /query body: {e}")
        return JSONResponse(http_error(kind, request_id, str(e)), status_code=400)

    try:
        if isinstance(body, QueryRequest):
            result = await database.execute(body.statement)
            data: Any = build_http_result(result)
        else:
            results = await database.batch(body.statements)
            data = [build_http_result(result) for result in results]
    except ExecutionError as e:
        return http_error(body.type, body.id, str(e))

    return http_success(body.type, body.id, data)
