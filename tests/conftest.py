"""Shared test helpers.

``FakeConnection`` implements the ``SqlConnection`` protocol in memory:
catalog queries are answered from a list of ``(substring, rows)`` pairs
(first match wins), data scans from a dict keyed by table name, and
``execute()`` records every statement, raising for statements that contain
one of the ``fail_on`` markers.
"""

from collections.abc import Callable
from typing import Any

import pytest

Rows = list[tuple]
Response = Rows | Callable[[Any], Rows]


# ------------------------------------------------------------------
# Catalog query markers (distinctive substrings of introspector SQL)
# ------------------------------------------------------------------

Q_SCHEMAS = "SELECT nspname"
Q_EXTENSIONS = "FROM pg_extension"
Q_ENUMS = "FROM pg_type t"
Q_SEQUENCES = "JOIN pg_sequence s"
Q_SEQUENCE_VALUES = "FROM pg_sequences"
Q_TABLES = "c.relkind IN ('r', 'p')"
Q_COLUMNS = "FROM pg_attribute a"
Q_TABLE_CONSTRAINTS = "con.contype IN ('p', 'u', 'c', 'x')"
Q_INDEXES = "FROM pg_index ix"
Q_VIEWS = "c.relkind IN ('v', 'm')"
Q_FUNCTIONS = "pg_get_functiondef"
Q_TRIGGERS = "FROM pg_trigger t"
Q_FOREIGN_KEYS = "con.contype = 'f'"
Q_RELATIONS = "c.relkind = ANY(%s)"
Q_ROUTINES = "pg_get_function_identity_arguments(p.oid), p.prokind"
Q_DATABASE_SIZE = "pg_database_size"
Q_TABLE_COUNT = "SELECT count(*)"  # list before Q_TABLES, the filters overlap


class FakeConnection:
    """In-memory ``SqlConnection`` for unit tests."""

    def __init__(
        self,
        catalog: list[tuple[str, Response]] | None = None,
        table_rows: dict[str, Rows] | None = None,
        fail_on: tuple[str, ...] = (),
        fetch_error: Exception | None = None,
    ) -> None:
        self.catalog = catalog or []
        self.table_rows = table_rows or {}
        self.fail_on = fail_on
        self.fetch_error = fetch_error
        self.executed: list[str] = []
        self.queries: list[tuple[str, Any]] = []
        self.closed = False

    async def execute(self, sql: str, params=None) -> None:
        self.executed.append(sql)
        for marker in self.fail_on:
            if marker in sql:
                raise RuntimeError(f'syntax error at or near "{marker}"\nLINE 1: {sql[:20]}')

    async def fetch_all(self, sql: str, params=None) -> Rows:
        self.queries.append((sql, params))
        if self.fetch_error is not None:
            raise self.fetch_error
        for marker, response in self.catalog:
            if marker in sql:
                return response(params) if callable(response) else list(response)
        return []

    async def stream(self, sql: str, batch_size: int = 1000):
        self.queries.append((sql, None))
        for table, rows in self.table_rows.items():
            if sql.endswith(f" {table}"):
                for start in range(0, len(rows), batch_size):
                    yield rows[start:start + batch_size]
                return

    async def server_version(self) -> str:
        return "16.2"

    async def database_name(self) -> str:
        return "app"

    async def test_connection(self) -> bool:
        return True

    async def close(self) -> None:
        self.closed = True

    async def __aenter__(self) -> "FakeConnection":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


@pytest.fixture
def fake_conn() -> FakeConnection:
    return FakeConnection()
