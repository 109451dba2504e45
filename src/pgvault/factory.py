"""Connection factory.

Resolves which database a command talks to and opens connections.

Resolution order for the database URL:
1. An explicit URL (``--url``)
2. An explicit profile name (``--profile``)
3. The ``PGVAULT_PROFILE`` environment variable
4. Raise ``ProfileNotFoundError``
"""

import logging
import os
from urllib.parse import quote

import psycopg

from pgvault.adapters.postgres import AsyncPostgresConnection
from pgvault.config.models import ConnectionResult, DatabaseProfile, PgVaultConfig
from pgvault.errors import PgVaultError
from pgvault.schema.introspector import CatalogIntrospector
from pgvault.validation import validate_connection_string

logger = logging.getLogger(__name__)

PROFILE_ENV_VAR = "PGVAULT_PROFILE"


class ProfileNotFoundError(PgVaultError):
    """Raised when no database profile is configured or the name is unknown."""

    pass


# ============================================================================
# Profile Resolution
# ============================================================================


def get_active_profile_name(profile_name: str | None = None) -> str:
    """Get the profile name from the argument or environment.

    Priority:
    1. ``profile_name`` argument
    2. PGVAULT_PROFILE env var
    3. Raise ProfileNotFoundError

    Raises:
        ProfileNotFoundError: If no profile is configured
    """
    if profile_name:
        return profile_name

    env_profile = os.environ.get(PROFILE_ENV_VAR)
    if env_profile:
        return env_profile

    raise ProfileNotFoundError(
        "No database profile selected.\n"
        f"Use --profile <name>, set {PROFILE_ENV_VAR}=<name>, or pass --url."
    )


def get_profile(config: PgVaultConfig, profile_name: str | None = None) -> tuple[str, DatabaseProfile]:
    """Get active profile name and configuration.

    Returns:
        Tuple of (profile_name, DatabaseProfile)

    Raises:
        ProfileNotFoundError: If no profile selected or not in the config
    """
    name = get_active_profile_name(profile_name)
    if name not in config.profiles:
        available = ", ".join(config.profiles.keys()) or "(none)"
        raise ProfileNotFoundError(
            f"Profile '{name}' not found in config.\n"
            f"Available profiles: {available}"
        )
    return name, config.profiles[name]


def resolve_url(profile: DatabaseProfile) -> str:
    """Resolve profile URL with password substitution.

    Example:
        >>> resolve_url(DatabaseProfile(url="postgresql://u:[YOUR-PASSWORD]@h/db", db_password="p@ss"))
        'postgresql://u:p%40ss@h/db'
    """
    url = profile.url
    if profile.db_password and "[YOUR-PASSWORD]" in url:
        url = url.replace("[YOUR-PASSWORD]", quote(profile.db_password, safe=""))
    return url


def get_database_url(
    config: PgVaultConfig,
    profile_name: str | None = None,
    url: str | None = None,
) -> str:
    """Resolve and validate the database URL for a command.

    Raises:
        ProfileNotFoundError: If no URL is given and no profile resolves.
        ValidationError: If the resolved URL is malformed.
    """
    if url:
        return validate_connection_string(url)
    _, profile = get_profile(config, profile_name)
    return validate_connection_string(resolve_url(profile))


# ============================================================================
# Connections
# ============================================================================


async def connect(database_url: str, connect_timeout: int = 10) -> AsyncPostgresConnection:
    """Validate ``database_url`` and open an autocommit connection."""
    return await AsyncPostgresConnection.connect(
        validate_connection_string(database_url), connect_timeout
    )


async def check_connection(
    database_url: str,
    profile_name: str | None = None,
    connect_timeout: int = 10,
) -> ConnectionResult:
    """Connect, run ``SELECT 1`` and describe the database.

    Reports the server version, the database size, the non-system schemas
    and how many tables they hold.

    Never raises for connection problems -- they are returned in
    ``ConnectionResult.error``.

    Example:
        >>> result = await check_connection("postgresql://localhost/app")
        >>> if result.success:
        ...     print(result.postgres_version)
    """
    try:
        async with await connect(database_url, connect_timeout) as conn:
            await conn.test_connection()
            database_name = await conn.database_name()
            postgres_version = await conn.server_version()
            introspector = CatalogIntrospector(conn)
            schemas = await introspector.list_schemas()
            return ConnectionResult(
                success=True,
                profile_name=profile_name,
                database_name=database_name,
                postgres_version=postgres_version,
                database_size=await introspector.database_size(),
                schemas=schemas,
                table_count=await introspector.count_tables(schemas),
            )
    except (PgVaultError, ConnectionError, psycopg.Error) as e:
        logger.debug(f"[pgvault.factory] Connection check failed: {e}")
        return ConnectionResult(success=False, profile_name=profile_name, error=str(e))
