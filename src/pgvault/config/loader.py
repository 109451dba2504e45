"""Configuration loading for pgvault."""

import os
import tomllib
from pathlib import Path

from pydantic import ValidationError

from pgvault.config.models import (
    BackupSettings,
    DatabaseProfile,
    PgVaultConfig,
    RestoreSettings,
)

DEFAULT_CONFIG_NAME = "pgvault.toml"
CONFIG_ENV_VAR = "PGVAULT_CONFIG"


def default_config_path() -> Path:
    """``$PGVAULT_CONFIG`` if set, else ``./pgvault.toml``."""
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return Path.cwd() / DEFAULT_CONFIG_NAME


def load_config(config_path: Path | None = None, *, missing_ok: bool = False) -> PgVaultConfig:
    """Load pgvault configuration from a TOML file.

    Args:
        config_path: Path to pgvault.toml (default: ``default_config_path()``)
        missing_ok: Return an all-defaults config instead of raising when
            the file does not exist.

    Returns:
        PgVaultConfig with all profiles and settings

    Raises:
        FileNotFoundError: If config file doesn't exist (and not ``missing_ok``)
        ValueError: If config format is invalid
    """
    if config_path is None:
        config_path = default_config_path()
    config_path = Path(config_path)

    if not config_path.exists():
        if missing_ok:
            return PgVaultConfig()
        raise FileNotFoundError(
            f"Config not found: {config_path}\n"
            f"Copy pgvault.toml.example to pgvault.toml and configure your profiles."
        )

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid TOML in {config_path}: {e}") from e

    try:
        # Parse profiles
        profiles = {}
        for name, profile_data in data.get("profiles", {}).items():
            profiles[name] = DatabaseProfile(**profile_data)

        return PgVaultConfig(
            profiles=profiles,
            backup=BackupSettings(**data.get("backup", {})),
            restore=RestoreSettings(**data.get("restore", {})),
        )
    except (TypeError, ValidationError) as e:
        raise ValueError(f"Invalid configuration in {config_path}: {e}") from e
