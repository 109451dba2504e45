"""Database connection package.

Provides the ``SqlConnection`` Protocol and the psycopg-backed
``AsyncPostgresConnection`` implementation.

Usage:
    from pgvault.adapters import SqlConnection, AsyncPostgresConnection
"""

from pgvault.adapters.base import SqlConnection
from pgvault.adapters.postgres import AsyncPostgresConnection, normalize_url

__all__ = [
    "SqlConnection",
    "AsyncPostgresConnection",
    "normalize_url",
]
