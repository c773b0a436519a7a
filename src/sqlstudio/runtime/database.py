"""
Database handle for the relayed SQLite file.

One Database is created per process and shared by every connection and
every stream. All statements run on a single engine session in autocommit
mode, so the file behaves exactly as it would in the sqlite3 shell:
explicit BEGIN/COMMIT, VACUUM and connection-level PRAGMAs work as typed.
Calls are serialized on that session; SQLite itself handles locking
against other processes.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Sequence, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from ..core.errors import ExecutionError

logger = logging.getLogger(__name__)

Params = Union[Sequence[Any], dict[str, Any], None]
BatchItem = Union[str, tuple[str, Params]]

# Temporary view used to read the declared types of a query's result columns
COLUMNS_VIEW = "sqlstudio_result_columns"

# Types SQLite synthesizes for view columns that have no declaration
SYNTHESIZED_TYPES = frozenset({"", "ANY", "BLOB", "NUM"})


@dataclass
class ResultSet:
    """Outcome of one statement, consumed once by the serializer."""
    columns: list[str] = field(default_factory=list)
    column_types: list[Optional[str]] = field(default_factory=list)
    rows: list[tuple] = field(default_factory=list)
    rows_affected: int = 0
    last_insert_rowid: Optional[int] = None


def storage_class(value: Any) -> Optional[str]:
    """SQLite storage class of a runtime value (NULL has none)."""
    if value is None:
        return None
    if isinstance(value, int):
        return "INTEGER"
    if isinstance(value, float):
        return "REAL"
    if isinstance(value, (bytes, bytearray, memoryview)):
        return "BLOB"
    return "TEXT"


def _column_types(column_count: int, rows: list[tuple]) -> list[Optional[str]]:
    """Type of each column taken from its first non-NULL value."""
    types: list[Optional[str]] = [None] * column_count
    for row in rows:
        for index, value in enumerate(row):
            if types[index] is None:
                types[index] = storage_class(value)
        if all(t is not None for t in types):
            break
    return types


def _driver_message(error: SQLAlchemyError) -> str:
    """Driver error text without SQLAlchemy's statement and link decorations."""
    original = getattr(error, "orig", None)
    return str(original) if original is not None else str(error)


async def _declared_types(conn: AsyncConnection, sql: str, column_count: int) -> list[Optional[str]]:
    """
    Declared type of each result column, None where the schema declares none.

    The driver does not expose sqlite3_column_decltype, so the query is
    wrapped in a temporary view whose table_info carries the declared type
    of every column that comes straight from a table. Statements that
    cannot back a view (RETURNING, PRAGMA, bound parameters) get no
    declared types.
    """
    unknown: list[Optional[str]] = [None] * column_count
    try:
        await conn.exec_driver_sql(f"CREATE TEMP VIEW {COLUMNS_VIEW} AS {sql}")
    except SQLAlchemyError as e:
        logger.debug(f"No declared types for statement: {_driver_message(e)}")
        return unknown

    try:
        info = (await conn.exec_driver_sql(f"PRAGMA temp.table_info({COLUMNS_VIEW})")).all()
    finally:
        await conn.exec_driver_sql(f"DROP VIEW temp.{COLUMNS_VIEW}")

    if len(info) != column_count:
        return unknown
    return [
        row[2] if row[2] and row[2].upper() not in SYNTHESIZED_TYPES else None
        for row in info
    ]


class Database:
    """
    Async handle around a SQLite file.

    Usage:
        database = Database("app.db")
        await database.connect()
        result = await database.execute("SELECT * FROM users WHERE id = ?", (1,))
        results = await database.batch(["INSERT ...", "UPDATE ..."])
        await database.close()
    """

    def __init__(self, path: Union[str, Path], *, echo: bool = False):
        """
        Args:
            path: SQLite database file (created if missing)
            echo: Log every statement through SQLAlchemy
        """
        self.path = str(path)
        self.echo = echo
        self._engine: Optional[AsyncEngine] = None
        self._session: Optional[AsyncConnection] = None
        self._lock = asyncio.Lock()

    @property
    def url(self) -> str:
        return f"sqlite+aiosqlite:///{self.path}"

    @property
    def connected(self) -> bool:
        return self._session is not None

    async def connect(self) -> None:
        """Create the engine and open the shared session. Safe to call more than once."""
        if self._session is not None:
            return

        engine = create_async_engine(self.url, echo=self.echo)
        session = await engine.connect()
        # Transactions only exist when a statement (or batch) opens one
        await session.execution_options(isolation_level="AUTOCOMMIT")

        self._engine = engine
        self._session = session
        logger.info(f"Database opened: {self.path}")

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            logger.info(f"Database closed: {self.path}")

    def _get_session(self) -> AsyncConnection:
        if self._session is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._session

    async def execute(self, sql: str, params: Params = None) -> ResultSet:
        """
        Execute one statement as is, without a surrounding transaction.

        Raises:
            ExecutionError: If the engine rejects the statement
        """
        conn = self._get_session()
        logger.debug(f"execute: {sql}")

        async with self._lock:
            try:
                return await self._run(conn, sql, params)
            except SQLAlchemyError as e:
                message = _driver_message(e)
                logger.warning(f"Statement failed: {message}")
                raise ExecutionError(message) from e

    async def batch(self, statements: Sequence[BatchItem]) -> list[ResultSet]:
        """
        Execute statements in order inside a single transaction.

        Either every statement takes effect or none does.

        Args:
            statements: SQL strings, or (sql, params) pairs

        Raises:
            ExecutionError: If any statement fails; the transaction is rolled back
        """
        conn = self._get_session()
        logger.debug(f"batch: {len(statements)} statement(s)")

        async with self._lock:
            try:
                await conn.exec_driver_sql("BEGIN")
            except SQLAlchemyError as e:
                message = _driver_message(e)
                logger.warning(f"Batch not started: {message}")
                raise ExecutionError(message) from e

            try:
                results = []
                for item in statements:
                    sql, params = (item, None) if isinstance(item, str) else item
                    results.append(await self._run(conn, sql, params))
                await conn.exec_driver_sql("COMMIT")
            except SQLAlchemyError as e:
                await self._rollback(conn)
                message = _driver_message(e)
                logger.warning(f"Batch rolled back: {message}")
                raise ExecutionError(message) from e
            except BaseException:
                await self._rollback(conn)
                raise
            return results

    @staticmethod
    async def _rollback(conn: AsyncConnection) -> None:
        try:
            await conn.exec_driver_sql("ROLLBACK")
        except SQLAlchemyError as e:
            # SQLite already ended the transaction for some errors
            logger.debug(f"Rollback skipped: {_driver_message(e)}")

    @staticmethod
    async def _counters(conn: AsyncConnection) -> tuple[int, int, int]:
        """total_changes(), changes() and last_insert_rowid() of the session."""
        row = (await conn.exec_driver_sql(
            "SELECT total_changes(), changes(), last_insert_rowid()"
        )).one()
        return row[0], row[1], row[2]

    @classmethod
    async def _run(cls, conn: AsyncConnection, sql: str, params: Params) -> ResultSet:
        total_before, _, _ = await cls._counters(conn)

        if params is None:
            result = await conn.exec_driver_sql(sql)
        elif isinstance(params, dict):
            result = await conn.exec_driver_sql(sql, params)
        else:
            result = await conn.exec_driver_sql(sql, tuple(params))

        if not result.returns_rows:
            return ResultSet(
                rows_affected=max(result.rowcount, 0),
                last_insert_rowid=result.lastrowid or None,
            )

        columns = list(result.keys())
        rows = [tuple(row) for row in result.all()]

        # The driver reports no counts for row-returning statements (RETURNING)
        total_after, changes, rowid = await cls._counters(conn)
        if total_after != total_before:
            rows_affected, last_insert_rowid = changes, rowid or None
        else:
            rows_affected, last_insert_rowid = 0, None

        declared = await _declared_types(conn, sql, len(columns))
        inferred = _column_types(len(columns), rows)

        return ResultSet(
            columns=columns,
            column_types=[d or i for d, i in zip(declared, inferred)],
            rows=rows,
            rows_affected=rows_affected,
            last_insert_rowid=last_insert_rowid,
        )
