"""Backup and restore models.

``BackupMetadata`` is the durable artifact of a dump run, written next to
the script as ``<name>.json`` with camelCase keys:

    {
      "backupName": "nightly",
      "timestamp": "2024-05-01T02:00:00+00:00",
      "databaseName": "app",
      "postgresVersion": "16.2",
      "fileSize": 48213,
      "compressed": true,
      "schemas": ["public"],
      "objectCounts": {"tables": 4, "views": 1, ...}
    }

Usage:
    from pgvault.backup.models import BackupMetadata, RestoreOptions

    meta = BackupMetadata.model_validate_json(path.read_text())
    options = RestoreOptions(clean=True, selected_schemas=["public"])
"""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

MAX_ERROR_RECORDS = 10
ERROR_STATEMENT_CHARS = 100


class ObjectCounts(BaseModel):
    """Number of objects of each kind written to a script."""

    tables: int = Field(default=0, ge=0)
    views: int = Field(default=0, ge=0)
    sequences: int = Field(default=0, ge=0)
    functions: int = Field(default=0, ge=0)
    triggers: int = Field(default=0, ge=0)
    enums: int = Field(default=0, ge=0)
    extensions: int = Field(default=0, ge=0)

    def total(self) -> int:
        return sum(self.model_dump().values())


class BackupMetadata(BaseModel):
    """Summary of one backup, paired with its script by base name."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    backup_name: str
    timestamp: str                      # ISO-8601, UTC
    database_name: str
    postgres_version: str
    file_size: int = Field(default=0, ge=0)  # bytes on disk (compressed size when gzipped)
    compressed: bool = False
    schemas: list[str] = Field(default_factory=list)
    object_counts: ObjectCounts = Field(default_factory=ObjectCounts)

    @property
    def script_filename(self) -> str:
        return script_filename(self.backup_name, self.compressed)

    @property
    def metadata_filename(self) -> str:
        return f"{self.backup_name}.json"

    def to_json(self) -> str:
        """Serialize with the external camelCase keys."""
        return self.model_dump_json(by_alias=True, indent=2)


def script_filename(backup_name: str, compressed: bool) -> str:
    """``<name>.sql`` or ``<name>.sql.gz``."""
    return f"{backup_name}.sql.gz" if compressed else f"{backup_name}.sql"


class BackupResult(BaseModel):
    """Paths and metadata produced by a dump run."""

    script_path: Path
    metadata_path: Path
    metadata: BackupMetadata


# ============================================================================
# Restore
# ============================================================================


class RestoreOptions(BaseModel):
    """Restore switches.

    ``data_only`` and ``schema_only`` are intended to be exclusive but both
    are applied if set (which leaves nothing to run).
    """

    clean: bool = False
    data_only: bool = False
    schema_only: bool = False
    selected_schemas: list[str] | None = None


class StatementError(BaseModel):
    """A failed statement (truncated) and the database error message."""

    statement: str
    error: str

    @classmethod
    def capture(cls, statement: str, error: BaseException | str) -> "StatementError":
        text = statement
        if len(text) > ERROR_STATEMENT_CHARS:
            text = text[:ERROR_STATEMENT_CHARS] + "..."
        # Driver messages may append "LINE n: ..." context; keep the first line
        lines = str(error).strip().splitlines()
        return cls(statement=text, error=lines[0] if lines else "Unknown error")


class CleanupResult(BaseModel):
    """Outcome of a best-effort cleanup: drops that worked and those that did not."""

    dropped: int = 0
    failed: int = 0
    warnings: list[str] = Field(default_factory=list)


class RestoreResult(BaseModel):
    """Aggregate outcome of a restore run."""

    success_count: int = 0
    error_count: int = 0
    skipped_count: int = 0
    total_statements: int = 0
    errors: list[StatementError] = Field(default_factory=list)
    cleanup: CleanupResult | None = None

    def record_failure(self, statement: str, error: BaseException | str) -> None:
        """Count a failure and keep the first ``MAX_ERROR_RECORDS`` details."""
        self.error_count += 1
        if len(self.errors) < MAX_ERROR_RECORDS:
            self.errors.append(StatementError.capture(statement, error))
