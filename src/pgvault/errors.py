"""Exception hierarchy for pgvault.

Fatal conditions (connection failure, unreadable backup, catalog
introspection failure) are raised as subclasses of ``PgVaultError`` and
abort the run.  Per-statement failures during restore are never raised --
they are tallied in ``RestoreResult``.
"""


class PgVaultError(Exception):
    """Base class for all pgvault errors."""

    pass


class ConnectionFailedError(PgVaultError):
    """Raised when the database connection cannot be opened."""

    pass


class IntrospectionError(PgVaultError):
    """Raised when a system catalog query fails during a dump."""

    pass


class BackupNotFoundError(PgVaultError):
    """Raised when a backup script (or its metadata) does not exist."""

    pass


class BackupReadError(PgVaultError):
    """Raised when a backup script exists but cannot be read or decompressed."""

    pass


class ValidationError(PgVaultError):
    """Raised by boundary validators for malformed connection strings or names."""

    pass
