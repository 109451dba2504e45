"""Boundary validators.

Malformed connection strings and unsafe backup names are rejected here,
before any engine call is made.  Both validators raise
``pgvault.errors.ValidationError`` with a user-facing message.
"""

import re
from urllib.parse import urlparse

from pgvault.errors import ValidationError

BACKUP_NAME_PATTERN = re.compile(r"[a-zA-Z0-9_-]+")
MAX_BACKUP_NAME_LENGTH = 100


def validate_connection_string(connection_string: str) -> str:
    """Check that ``connection_string`` is a usable PostgreSQL URL.

    Requires a ``postgresql://`` or ``postgres://`` scheme, a hostname and
    a database name in the path.

    Returns:
        The connection string, unchanged.

    Raises:
        ValidationError: Describing the first problem found.

    Example:
        >>> validate_connection_string("postgresql://u:p@localhost:5432/app")
        'postgresql://u:p@localhost:5432/app'
    """
    if not connection_string:
        raise ValidationError("Connection string is required")

    if not connection_string.startswith(("postgresql://", "postgres://")):
        raise ValidationError(
            "Connection string must start with postgresql:// or postgres://"
        )

    try:
        url = urlparse(connection_string)
        # Accessing .port validates it
        url.port
    except ValueError as e:
        raise ValidationError(f"Invalid connection string format: {e}") from e

    if not url.hostname:
        raise ValidationError("Invalid hostname in connection string")
    if not url.path or url.path == "/":
        raise ValidationError("Database name is required in connection string")

    return connection_string


def validate_backup_name(name: str) -> str:
    """Check that ``name`` is safe to use as a file base name.

    Raises:
        ValidationError: If empty, too long, or containing characters other
            than letters, digits, ``_`` and ``-``.
    """
    if not name:
        raise ValidationError("Backup name is required")

    if not BACKUP_NAME_PATTERN.fullmatch(name):
        raise ValidationError(
            "Backup name can only contain letters, numbers, underscores, and hyphens"
        )

    if len(name) > MAX_BACKUP_NAME_LENGTH:
        raise ValidationError(
            f"Backup name must be at most {MAX_BACKUP_NAME_LENGTH} characters"
        )

    return name
