"""Pydantic models for pgvault configuration."""

from pydantic import BaseModel, Field


# ============================================================================
# Configuration Models
# ============================================================================


class DatabaseProfile(BaseModel):
    """Database connection profile from pgvault.toml."""

    url: str
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution


class BackupSettings(BaseModel):
    """``[backup]`` table: defaults for dump runs."""

    directory: str = "backups"
    compress: bool = False
    insert_batch_size: int = Field(default=1000, ge=1)
    connect_timeout: int = Field(default=10, ge=1)


class RestoreSettings(BaseModel):
    """``[restore]`` table: defaults for restore runs."""

    progress_every: int = Field(default=50, ge=1)
    dollar_quotes: bool = True


class PgVaultConfig(BaseModel):
    """Complete configuration from pgvault.toml."""

    profiles: dict[str, DatabaseProfile] = Field(default_factory=dict)
    backup: BackupSettings = Field(default_factory=BackupSettings)
    restore: RestoreSettings = Field(default_factory=RestoreSettings)


# ============================================================================
# Connection Result
# ============================================================================


class ConnectionResult(BaseModel):
    """Result of check_connection()."""

    success: bool
    profile_name: str | None = None
    database_name: str | None = None
    postgres_version: str | None = None
    database_size: int | None = None  # bytes
    schemas: list[str] = Field(default_factory=list)  # non-system schemas
    table_count: int | None = None
    error: str | None = None
