"""Connection protocol definition.

Defines the ``SqlConnection`` Protocol that the catalog introspector, dump
generator, cleanup planner and restore executor are written against.  All
methods are ``async def`` -- the engine suspends at every database round
trip but never runs statements concurrently.

Usage:
    from pgvault.adapters.base import SqlConnection

    async def count_rows(conn: SqlConnection, table: str) -> int:
        rows = await conn.fetch_all(f"SELECT count(*) FROM {table}")
        return rows[0][0]
"""

from collections.abc import AsyncIterator, Sequence
from typing import Any, Protocol


class SqlConnection(Protocol):
    """Single database connection owned by one dump or restore run.

    Statements run outside any enclosing transaction: each ``execute()``
    commits (or fails) on its own, so one bad statement never rolls back
    the ones before it.
    """

    async def execute(self, sql: str, params: Sequence[Any] | None = None) -> None:
        """Execute a statement, discarding any result rows.

        Args:
            sql: SQL text.  When ``params`` is ``None`` the text is sent
                verbatim (no placeholder interpolation).
            params: Optional positional parameters for ``%s`` placeholders.

        Raises:
            Exception: The driver error for a failed statement.
        """
        ...

    async def fetch_all(
        self, sql: str, params: Sequence[Any] | None = None
    ) -> list[tuple]:
        """Run a query and return all rows as tuples.

        Example:
            rows = await conn.fetch_all(
                "SELECT nspname FROM pg_namespace WHERE nspname = %s",
                ("public",),
            )
        """
        ...

    def stream(
        self, sql: str, batch_size: int = 1000
    ) -> AsyncIterator[list[tuple]]:
        """Iterate query results in batches of at most ``batch_size`` rows.

        Implementations use a server-side cursor so large tables are never
        fully materialized in memory.
        """
        ...

    async def server_version(self) -> str:
        """Return the server version string (e.g. ``"16.2"``)."""
        ...

    async def database_name(self) -> str:
        """Return the name of the connected database."""
        ...

    async def test_connection(self) -> bool:
        """Return ``True`` if ``SELECT 1`` succeeds."""
        ...

    async def close(self) -> None:
        """Close the connection.  Safe to call more than once."""
        ...

    @property
    def closed(self) -> bool:
        """``True`` once the connection was closed or lost."""
        ...
