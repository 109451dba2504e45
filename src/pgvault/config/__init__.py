"""Configuration management: profiles, TOML loading, and config models.

Usage:
    >>> from pgvault.config import load_config, DatabaseProfile, PgVaultConfig
"""

from pgvault.config.loader import default_config_path, load_config
from pgvault.config.models import (
    BackupSettings,
    ConnectionResult,
    DatabaseProfile,
    PgVaultConfig,
    RestoreSettings,
)

__all__ = [
    "load_config",
    "default_config_path",
    "BackupSettings",
    "ConnectionResult",
    "DatabaseProfile",
    "PgVaultConfig",
    "RestoreSettings",
]
