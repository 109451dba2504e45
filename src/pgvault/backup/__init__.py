"""Logical backup and restore.

Usage:
    from pgvault.backup import backup_database, restore_backup, RestoreOptions

    result = await backup_database(url, "nightly", Path("backups"), compress=True)
    summary = await restore_backup(target_url, result.script_path, RestoreOptions(clean=True))
"""

from pgvault.backup.cleanup import CleanupPlan, CleanupPlanner, DropTarget
from pgvault.backup.dump import DumpGenerator, backup_database, create_backup
from pgvault.backup.literals import quote_literal, sql_literal
from pgvault.backup.models import (
    BackupMetadata,
    BackupResult,
    CleanupResult,
    ObjectCounts,
    RestoreOptions,
    RestoreResult,
    StatementError,
)
from pgvault.backup.restore import (
    RestoreExecutor,
    filter_statements,
    restore_backup,
    restore_script,
)
from pgvault.backup.store import BackupStore

__all__ = [
    "BackupMetadata",
    "BackupResult",
    "BackupStore",
    "CleanupPlan",
    "CleanupPlanner",
    "CleanupResult",
    "DropTarget",
    "DumpGenerator",
    "ObjectCounts",
    "RestoreExecutor",
    "RestoreOptions",
    "RestoreResult",
    "StatementError",
    "backup_database",
    "create_backup",
    "filter_statements",
    "quote_literal",
    "restore_backup",
    "restore_script",
    "sql_literal",
]
