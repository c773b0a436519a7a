"""Shared fixtures for sqlstudio tests."""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from sqlstudio.config import Settings
from sqlstudio.core.errors import ExecutionError
from sqlstudio.runtime.database import Database, ResultSet
from sqlstudio.server import create_app
from sqlstudio.websocket.session import Authenticator

TOKEN = "test-token"


class FakeDatabase:
    """
    In-memory stand-in for Database.

    Each statement answers with one row holding its SQL text. ``delays``
    maps SQL text to seconds to sleep, ``failures`` maps SQL text to the
    exception to raise.
    """

    def __init__(self, delays: Optional[dict[str, float]] = None, failures: Optional[dict[str, Exception]] = None):
        self.delays = delays or {}
        self.failures = failures or {}
        self.calls: list[tuple[str, Any]] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.connected = False

    async def connect(self) -> None:
        self.connected = True

    async def close(self) -> None:
        self.connected = False

    async def execute(self, sql: str, params: Any = None) -> ResultSet:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(sql, 0))
            self.calls.append((sql, params))
            if sql in self.failures:
                raise self.failures[sql]
            return ResultSet(columns=["sql"], column_types=["TEXT"], rows=[(sql,)])
        finally:
            self.in_flight -= 1

    async def batch(self, statements) -> list[ResultSet]:
        return [await self.execute(sql) for sql in statements]


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "studio.db"


@pytest.fixture
def settings(db_path):
    return Settings(database=str(db_path), token=TOKEN)


@pytest.fixture
def client(settings):
    """TestClient over a real SQLite file."""
    with TestClient(create_app(settings)) as test_client:
        yield test_client


@pytest.fixture
def fake_database():
    return FakeDatabase(
        delays={"slow": 0.2},
        failures={"broken": ExecutionError("no such table: missing"), "crash": RuntimeError("boom")},
    )


@pytest.fixture
def fake_client(settings, fake_database):
    """TestClient over FakeDatabase."""
    application = create_app(settings, database=fake_database, authenticator=Authenticator(TOKEN))
    with TestClient(application) as test_client:
        yield test_client


@pytest_asyncio.fixture
async def database(db_path):
    db = Database(db_path)
    await db.connect()
    yield db
    await db.close()
