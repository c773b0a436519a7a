"""Tests for the SQLite database handle."""

import pytest

from sqlstudio.core.errors import ExecutionError
from sqlstudio.runtime.database import Database, storage_class


@pytest.mark.asyncio
async def test_select_literal(database):
    result = await database.execute("SELECT 1 AS x")

    assert result.columns == ["x"]
    assert result.column_types == ["INTEGER"]
    assert result.rows == [(1,)]
    assert result.rows_affected == 0
    assert result.last_insert_rowid is None


@pytest.mark.asyncio
async def test_insert_reports_rowid_and_count(database):
    await database.execute("CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT)")
    result = await database.execute("INSERT INTO users (name) VALUES (?)", ["alice"])

    assert result.columns == []
    assert result.rows_affected == 1
    assert result.last_insert_rowid == 1

    result = await database.execute("UPDATE users SET name = 'bob'")
    assert result.rows_affected == 1


@pytest.mark.asyncio
async def test_named_params(database):
    result = await database.execute("SELECT :a + :b AS total", {"a": 2, "b": 3})

    assert result.rows == [(5,)]


@pytest.mark.asyncio
async def test_declared_column_types(database):
    await database.execute("CREATE TABLE t (a TEXT, b REAL, c BLOB, d INTEGER, e VARCHAR(10))")
    await database.execute("INSERT INTO t VALUES (NULL, 1.5, x'00ff', NULL, 'x')")

    result = await database.execute("SELECT a, b, c, d, e FROM t")

    assert result.column_types == ["TEXT", "REAL", "BLOB", "INTEGER", "VARCHAR(10)"]
    assert result.rows[0][2] == b"\x00\xff"


@pytest.mark.asyncio
async def test_declared_column_types_on_empty_table(database):
    await database.execute("CREATE TABLE t (id INTEGER PRIMARY KEY, name VARCHAR(10))")

    result = await database.execute("SELECT * FROM t")

    assert result.columns == ["id", "name"]
    assert result.column_types == ["INTEGER", "VARCHAR(10)"]
    assert result.rows == []


@pytest.mark.asyncio
async def test_expression_column_types_from_values(database):
    await database.execute("CREATE TABLE t (name VARCHAR(10))")
    await database.execute("INSERT INTO t VALUES ('x')")

    result = await database.execute("SELECT name, length(name) AS n, 2.5 AS r, NULL AS z FROM t")

    assert result.column_types == ["VARCHAR(10)", "INTEGER", "REAL", None]


@pytest.mark.asyncio
async def test_column_types_with_bound_parameters(database):
    await database.execute("CREATE TABLE t (name VARCHAR(10))")
    await database.execute("INSERT INTO t VALUES ('x')")

    result = await database.execute("SELECT name FROM t WHERE name = ?", ["x"])

    assert result.rows == [("x",)]
    assert result.column_types == ["TEXT"]


@pytest.mark.asyncio
async def test_duplicate_column_names_kept(database):
    result = await database.execute("SELECT 1 AS a, 2 AS a")

    assert result.columns == ["a", "a"]
    assert result.rows == [(1, 2)]


@pytest.mark.asyncio
async def test_execution_error(database):
    with pytest.raises(ExecutionError, match="syntax error"):
        await database.execute("INVALID SQL")


@pytest.mark.asyncio
async def test_batch_returns_each_result(database):
    results = await database.batch([
        "CREATE TABLE items (id INTEGER PRIMARY KEY, label TEXT)",
        ("INSERT INTO items (label) VALUES (?)", ("first",)),
        "SELECT label FROM items",
    ])

    assert len(results) == 3
    assert results[1].last_insert_rowid == 1
    assert results[2].rows == [("first",)]


@pytest.mark.asyncio
async def test_batch_is_atomic(database):
    await database.execute("CREATE TABLE items (id INTEGER PRIMARY KEY)")

    with pytest.raises(ExecutionError):
        await database.batch(["INSERT INTO items VALUES (1)", "INVALID SQL"])

    result = await database.execute("SELECT count(*) FROM items")
    assert result.rows == [(0,)]


@pytest.mark.asyncio
async def test_batch_rolls_back_ddl(database):
    with pytest.raises(ExecutionError):
        await database.batch(["CREATE TABLE temp_items (id INTEGER)", "INVALID SQL"])

    result = await database.execute("SELECT name FROM sqlite_master WHERE name = 'temp_items'")
    assert result.rows == []


@pytest.mark.asyncio
async def test_execute_requires_connect(db_path):
    database = Database(db_path)

    assert not database.connected
    with pytest.raises(RuntimeError, match="not connected"):
        await database.execute("SELECT 1")


@pytest.mark.asyncio
async def test_connect_is_idempotent(database):
    await database.connect()

    assert database.connected
    assert database.url.startswith("sqlite+aiosqlite:///")


def test_storage_class():
    assert storage_class(None) is None
    assert storage_class(1) == "INTEGER"
    assert storage_class(1.0) == "REAL"
    assert storage_class("a") == "TEXT"
    assert storage_class(b"a") == "BLOB"


@pytest.mark.asyncio
async def test_returning_reports_changes(database):
    await database.execute("CREATE TABLE r (id INTEGER PRIMARY KEY, v TEXT)")

    result = await database.execute("INSERT INTO r (v) VALUES ('a'), ('b') RETURNING id")

    assert result.rows == [(1,), (2,)]
    assert result.rows_affected == 2
    assert result.last_insert_rowid == 2

    result = await database.execute("DELETE FROM r WHERE id = 1 RETURNING v")
    assert result.rows == [("a",)]
    assert result.rows_affected == 1


@pytest.mark.asyncio
async def test_select_after_insert_reports_no_changes(database):
    await database.execute("CREATE TABLE r (id INTEGER PRIMARY KEY)")
    await database.execute("INSERT INTO r VALUES (7)")

    result = await database.execute("SELECT id FROM r")

    assert result.rows_affected == 0
    assert result.last_insert_rowid is None


@pytest.mark.asyncio
async def test_vacuum(database):
    await database.execute("CREATE TABLE t (id INTEGER)")

    result = await database.execute("VACUUM")

    assert result.rows_affected == 0
    assert (await database.execute("SELECT count(*) AS n FROM t")).rows == [(0,)]


@pytest.mark.asyncio
async def test_pragma_applies_to_later_statements(database):
    await database.execute("PRAGMA foreign_keys = ON")

    result = await database.execute("PRAGMA foreign_keys")
    assert result.rows == [(1,)]

    await database.execute("CREATE TABLE parent (id INTEGER PRIMARY KEY)")
    await database.execute("CREATE TABLE child (parent_id INTEGER REFERENCES parent (id))")
    with pytest.raises(ExecutionError, match="FOREIGN KEY"):
        await database.execute("INSERT INTO child VALUES (1)")


@pytest.mark.asyncio
async def test_explicit_transaction_statements(database):
    await database.execute("CREATE TABLE t (id INTEGER)")

    await database.execute("BEGIN")
    await database.execute("INSERT INTO t VALUES (1)")
    await database.execute("ROLLBACK")
    assert (await database.execute("SELECT count(*) FROM t")).rows == [(0,)]

    await database.execute("BEGIN")
    await database.execute("INSERT INTO t VALUES (2)")
    await database.execute("COMMIT")
    assert (await database.execute("SELECT id FROM t")).rows == [(2,)]


@pytest.mark.asyncio
async def test_batch_inside_open_transaction_fails(database):
    await database.execute("CREATE TABLE t (id INTEGER)")
    await database.execute("BEGIN")

    with pytest.raises(ExecutionError, match="within a transaction"):
        await database.batch(["INSERT INTO t VALUES (1)"])

    await database.execute("INSERT INTO t VALUES (2)")
    await database.execute("COMMIT")
    assert (await database.execute("SELECT id FROM t")).rows == [(2,)]
