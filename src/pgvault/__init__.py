"""pgvault: PostgreSQL logical backup and restore over a plain client connection.

Writes schema and data to a portable SQL script (optionally gzipped) plus a
JSON metadata file, and replays such scripts statement by statement with
per-statement error tolerance.  Progress is reported through an injected
event sink.

Usage:
    from pgvault import backup_database, restore_backup, RestoreOptions, ListSink
    from pgvault import split_statements, BackupStore
"""

__version__ = "0.1.0"

# Connections
from pgvault.adapters.base import SqlConnection
from pgvault.adapters.postgres import AsyncPostgresConnection

# Backup / restore
from pgvault.backup.cleanup import CleanupPlan, CleanupPlanner, DropTarget
from pgvault.backup.dump import backup_database, create_backup
from pgvault.backup.models import (
    BackupMetadata,
    BackupResult,
    ObjectCounts,
    RestoreOptions,
    RestoreResult,
)
from pgvault.backup.restore import filter_statements, restore_backup, restore_script
from pgvault.backup.store import BackupStore

# Config
from pgvault.config.loader import load_config
from pgvault.config.models import DatabaseProfile, PgVaultConfig

# Errors
from pgvault.errors import (
    BackupNotFoundError,
    BackupReadError,
    ConnectionFailedError,
    IntrospectionError,
    PgVaultError,
    ValidationError,
)

# Factory
from pgvault.factory import ProfileNotFoundError, get_database_url, resolve_url

# Progress
from pgvault.progress import (
    ListSink,
    LoggingSink,
    NullSink,
    ProgressEvent,
    ProgressReporter,
    ProgressSink,
    QueueSink,
)

# Scripts
from pgvault.script.tokenizer import Statement, parse_script, split_statements

# Validation
from pgvault.validation import validate_backup_name, validate_connection_string

__all__ = [
    # Connections
    "SqlConnection",
    "AsyncPostgresConnection",
    # Backup / restore
    "backup_database",
    "create_backup",
    "restore_backup",
    "restore_script",
    "filter_statements",
    "BackupMetadata",
    "BackupResult",
    "ObjectCounts",
    "RestoreOptions",
    "RestoreResult",
    "CleanupPlan",
    "CleanupPlanner",
    "DropTarget",
    "BackupStore",
    # Config
    "load_config",
    "DatabaseProfile",
    "PgVaultConfig",
    # Errors
    "PgVaultError",
    "ConnectionFailedError",
    "IntrospectionError",
    "BackupNotFoundError",
    "BackupReadError",
    "ValidationError",
    # Factory
    "ProfileNotFoundError",
    "get_database_url",
    "resolve_url",
    # Progress
    "ProgressEvent",
    "ProgressSink",
    "ProgressReporter",
    "NullSink",
    "ListSink",
    "LoggingSink",
    "QueueSink",
    # Scripts
    "Statement",
    "parse_script",
    "split_statements",
    # Validation
    "validate_backup_name",
    "validate_connection_string",
]
