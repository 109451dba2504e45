"""CLI for PostgreSQL logical backup and restore.

Usage:
    pgvault --profile local backup nightly --compress
    pgvault --url postgresql://u:p@host/db backup nightly --schema public
    pgvault --profile staging restore nightly --clean --yes
    pgvault restore backups/nightly.sql.gz --data-only --profile local
    pgvault list
    pgvault validate nightly
    pgvault import ~/Downloads/prod.sql.gz --name prod-copy
    pgvault delete nightly --confirm
    pgvault --profile local test-connection
    pgvault profiles

Commands:
    backup           - Dump a database to <name>.sql[.gz] + <name>.json
    restore          - Replay a backup (by name or file path) into a database
    list             - List backups in the backup directory
    validate         - Check a backup pair without touching any database
    delete           - Delete a backup pair
    import           - Copy an external .sql/.sql.gz file into the backup directory
    test-connection  - Connect and report the server version
    profiles         - List profiles from pgvault.toml
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

import psycopg
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from pgvault.backup.dump import backup_database
from pgvault.backup.models import BackupMetadata, RestoreOptions, RestoreResult
from pgvault.backup.restore import restore_backup
from pgvault.backup.store import BackupStore
from pgvault.config.loader import load_config
from pgvault.config.models import PgVaultConfig
from pgvault.errors import PgVaultError
from pgvault.factory import (
    PROFILE_ENV_VAR,
    ProfileNotFoundError,
    check_connection,
    get_active_profile_name,
    get_database_url,
)
from pgvault.progress import ProgressEvent
from pgvault.validation import validate_backup_name

console = Console()

_SEVERITY_STYLES = {
    "info": "",
    "success": "green",
    "warning": "yellow",
    "error": "bold red",
}


# ============================================================================
# Rendering helpers
# ============================================================================


class ConsoleSink:
    """Prints progress events to a rich console, one line per event."""

    def __init__(self, out: Console | None = None, show_previews: bool = False) -> None:
        self._console = out or console
        self._show_previews = show_previews

    def emit(self, event: ProgressEvent) -> None:
        style = _SEVERITY_STYLES[event.severity]
        message = escape(event.message)
        if style:
            message = f"[{style}]{message}[/{style}]"
        self._console.print(f"[dim]{event.progress:3d}%[/dim] {event.icon} {message}")
        if self._show_previews and event.statement_preview:
            self._console.print(f"      [dim]{escape(event.statement_preview)}[/dim]")


def format_size(num_bytes: int) -> str:
    """Human-readable file size (1024-based)."""
    size = float(num_bytes)
    for unit in ("Bytes", "KB", "MB", "GB"):
        if size < 1024 or unit == "GB":
            return f"{int(size)} {unit}" if unit == "Bytes" else f"{size:.2f} {unit}"
        size /= 1024
    return f"{num_bytes} Bytes"


def _setup_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            datefmt="[%X]",
            handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        )


def _load_config(args: argparse.Namespace) -> PgVaultConfig:
    config_path = Path(args.config) if args.config else None
    # The config file is optional when --url is given
    return load_config(config_path, missing_ok=config_path is None)


def _store(args: argparse.Namespace, config: PgVaultConfig) -> BackupStore:
    return BackupStore(args.backup_dir or config.backup.directory)


def _print_metadata(meta: BackupMetadata) -> None:
    table = Table(title=f"Backup {meta.backup_name}", show_header=False)
    table.add_column("Key", style="dim")
    table.add_column("Value")
    table.add_row("Created", meta.timestamp)
    table.add_row("Database", meta.database_name)
    table.add_row("PostgreSQL", meta.postgres_version)
    table.add_row("File", f"{meta.script_filename} ({format_size(meta.file_size)})")
    table.add_row("Schemas", ", ".join(meta.schemas) or "-")
    counts = meta.object_counts
    table.add_row(
        "Objects",
        f"{counts.tables} tables, {counts.views} views, {counts.sequences} sequences, "
        f"{counts.functions} functions, {counts.triggers} triggers, "
        f"{counts.enums} enums, {counts.extensions} extensions",
    )
    console.print(table)


def _print_restore_result(result: RestoreResult) -> None:
    console.print()
    console.print(
        f"Statements: [green]{result.success_count} succeeded[/green], "
        f"[{'red' if result.error_count else 'dim'}]{result.error_count} failed[/], "
        f"[dim]{result.skipped_count} skipped[/dim] "
        f"of {result.total_statements}"
    )
    if result.cleanup is not None:
        console.print(
            f"Cleanup: {result.cleanup.dropped} dropped, {result.cleanup.failed} failed"
        )
    if result.errors:
        table = Table(
            title=f"First {len(result.errors)} error(s)", show_header=True, header_style="bold"
        )
        table.add_column("Statement", style="dim", overflow="fold")
        table.add_column("Error", style="red", overflow="fold")
        for err in result.errors:
            table.add_row(escape(err.statement), escape(err.error))
        console.print(table)


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_backup(args: argparse.Namespace) -> int:
    """Async implementation for backup command.

    Returns:
        0 on success, 1 on failure.
    """
    try:
        config = _load_config(args)
        name = validate_backup_name(args.name)
        url = get_database_url(config, args.profile, args.url)
    except (PgVaultError, FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1

    compress = config.backup.compress if args.compress is None else args.compress
    store = _store(args, config)
    if any(m.backup_name == name for m in store.list_backups()):
        console.print(f"[red]Error: Backup already exists: {name}[/red]")
        return 1

    try:
        result = await backup_database(
            url,
            name,
            store.directory,
            compress=compress,
            schemas=args.schema or None,
            sink=ConsoleSink(),
            insert_batch_size=config.backup.insert_batch_size,
            connect_timeout=config.backup.connect_timeout,
        )
    except (PgVaultError, psycopg.Error, OSError) as e:
        console.print(f"\n[bold red]x[/bold red] {escape(str(e))}")
        return 1

    console.print()
    _print_metadata(result.metadata)
    console.print(f"[bold green]v[/bold green] Saved to {result.script_path}")
    return 0


async def _async_restore(args: argparse.Namespace) -> int:
    """Async implementation for restore command.

    ``args.backup`` is either a path to a ``.sql``/``.sql.gz`` file or the
    name of a backup in the backup directory.

    Returns:
        0 when the run completed (even with statement errors, unless
        ``--strict``), 1 on fatal failure.
    """
    try:
        config = _load_config(args)
        url = get_database_url(config, args.profile, args.url)
        candidate = Path(args.backup)
        if candidate.is_file():
            backup_path = candidate
        else:
            backup_path = _store(args, config).script_path(args.backup)
    except (PgVaultError, FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1

    options = RestoreOptions(
        clean=args.clean,
        data_only=args.data_only,
        schema_only=args.schema_only,
        selected_schemas=args.schema or None,
    )

    if options.clean and not args.yes:
        scope = ", ".join(options.selected_schemas) if options.selected_schemas else "all schemas"
        console.print(
            f"[yellow]This will DROP existing tables, views, sequences and functions "
            f"in {escape(scope)} before restoring {backup_path.name}.[/yellow]"
        )
        response = console.input(escape("Continue? [y/N] "))
        if response.strip().lower() not in ("y", "yes"):
            console.print("Cancelled.")
            return 0

    try:
        result = await restore_backup(
            url,
            backup_path,
            options,
            sink=ConsoleSink(show_previews=args.verbose),
            batch_size=config.restore.progress_every,
            dollar_quotes=not args.legacy_split and config.restore.dollar_quotes,
            connect_timeout=config.backup.connect_timeout,
        )
    except (PgVaultError, psycopg.Error, OSError) as e:
        console.print(f"\n[bold red]x[/bold red] {escape(str(e))}")
        return 1

    _print_restore_result(result)
    if args.strict and result.error_count:
        return 1
    return 0


async def _async_test_connection(args: argparse.Namespace) -> int:
    """Async implementation for test-connection command.

    Returns:
        0 on success, 1 on failure.
    """
    try:
        config = _load_config(args)
        url = get_database_url(config, args.profile, args.url)
    except (PgVaultError, FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1

    console.print("Connecting to database...", style="dim")
    result = await check_connection(
        url, profile_name=args.profile, connect_timeout=config.backup.connect_timeout
    )
    if not result.success:
        console.print(f"[bold red]x[/bold red] {escape(result.error or 'Connection failed')}")
        return 1

    console.print(
        f"[bold green]v[/bold green] Connected to [bold cyan]{escape(result.database_name or '')}"
        f"[/bold cyan] (PostgreSQL {escape(result.postgres_version or '?')})"
    )
    if result.database_size is not None:
        console.print(f"  Size:    {format_size(result.database_size)}")
    console.print(f"  Schemas: {escape(', '.join(result.schemas)) or '(none)'}")
    if result.table_count is not None:
        console.print(f"  Tables:  {result.table_count}")
    return 0


# ============================================================================
# Sync command wrappers (list, validate, delete, import, profiles are local only)
# ============================================================================


def cmd_backup(args: argparse.Namespace) -> int:
    """Dump a database.  Wraps the async implementation with ``asyncio.run()``."""
    return asyncio.run(_async_backup(args))


def cmd_restore(args: argparse.Namespace) -> int:
    """Restore a backup.  Wraps the async implementation with ``asyncio.run()``."""
    return asyncio.run(_async_restore(args))


def cmd_test_connection(args: argparse.Namespace) -> int:
    """Test database connectivity.  Wraps the async implementation."""
    return asyncio.run(_async_test_connection(args))


def cmd_list(args: argparse.Namespace) -> int:
    """List backups, newest first.

    Returns:
        0 always (informational command), 1 on config errors.
    """
    try:
        config = _load_config(args)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1

    store = _store(args, config)
    backups = store.list_backups()
    if not backups:
        console.print(f"[yellow]No backups found in {store.directory}[/yellow]")
        return 0

    table = Table(title="Backups", show_header=True, header_style="bold")
    table.add_column("Name", style="bold cyan")
    table.add_column("Created")
    table.add_column("Database")
    table.add_column("Size", justify="right")
    table.add_column("Tables", justify="right")
    table.add_column("Gzip", justify="center")

    for meta in backups:
        table.add_row(
            meta.backup_name,
            meta.timestamp,
            meta.database_name,
            format_size(meta.file_size),
            str(meta.object_counts.tables),
            "v" if meta.compressed else "",
        )

    console.print(table)
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    """Validate a backup pair on disk.

    Returns:
        0 if valid, 1 otherwise.
    """
    try:
        config = _load_config(args)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1

    report = _store(args, config).validate(args.name)

    for error in report["errors"]:
        console.print(f"[red]  x {escape(error)}[/red]")
    for warning in report["warnings"]:
        console.print(f"[yellow]  ! {escape(warning)}[/yellow]")

    if report["valid"]:
        console.print(f"[bold green]v[/bold green] Backup {escape(args.name)} is valid")
        return 0
    console.print(f"[bold red]x[/bold red] Backup {escape(args.name)} is invalid")
    return 1


def cmd_delete(args: argparse.Namespace) -> int:
    """Delete a backup pair (requires ``--confirm``).

    Returns:
        0 on success or when only previewing, 1 on failure.
    """
    try:
        config = _load_config(args)
        store = _store(args, config)
        meta = store.get(args.name)
    except (PgVaultError, FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1

    if not args.confirm:
        console.print(
            f"Would delete [bold]{meta.script_filename}[/bold] and "
            f"[bold]{meta.metadata_filename}[/bold] from {store.directory}"
        )
        console.print("[dim]To actually delete, add[/dim] [cyan]--confirm[/cyan] [dim]flag.[/dim]")
        return 0

    try:
        removed = store.delete(args.name)
    except (PgVaultError, OSError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1

    console.print(f"[bold green]v[/bold green] Deleted {len(removed)} file(s)")
    return 0


def cmd_import(args: argparse.Namespace) -> int:
    """Import an external script into the backup directory.

    Returns:
        0 on success, 1 on failure.
    """
    try:
        config = _load_config(args)
        meta = _store(args, config).import_script(args.file, name=args.name)
    except (PgVaultError, FileNotFoundError, ValueError, OSError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1

    console.print(
        f"[bold green]v[/bold green] Imported as [bold cyan]{meta.backup_name}[/bold cyan] "
        f"({format_size(meta.file_size)})"
    )
    return 0


def cmd_profiles(args: argparse.Namespace) -> int:
    """List available profiles from pgvault.toml.

    Reads only local TOML config -- no database calls.

    Returns:
        0 on success, 1 if the config file is missing or invalid.
    """
    try:
        config = load_config(Path(args.config) if args.config else None)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1

    try:
        current = get_active_profile_name(args.profile)
    except ProfileNotFoundError:
        current = None

    table = Table(title="Database Profiles", show_header=True, header_style="bold")
    table.add_column("", width=2)
    table.add_column("Profile")
    table.add_column("Description")

    for name, profile in config.profiles.items():
        marker = "[bold green]*[/bold green]" if name == current else " "
        name_style = "bold cyan" if name == current else ""
        table.add_row(
            marker,
            f"[{name_style}]{name}[/{name_style}]" if name_style else name,
            profile.description or "",
        )

    console.print(table)

    if current:
        console.print(f"\n[bold green]*[/bold green] = selected profile (--profile or {PROFILE_ENV_VAR})")

    return 0


# ============================================================================
# Main entry point
# ============================================================================


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="pgvault",
        description="PostgreSQL logical backup and restore",
    )

    # Global options
    parser.add_argument("--config", help="Path to pgvault.toml (default: ./pgvault.toml)")
    parser.add_argument("--profile", "-p", help=f"Profile name (default: ${PROFILE_ENV_VAR})")
    parser.add_argument("--url", help="Database URL (overrides --profile)")
    parser.add_argument("--backup-dir", help="Backup directory (overrides [backup].directory)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # backup command
    p_backup = subparsers.add_parser("backup", help="Dump a database")
    p_backup.add_argument("name", help="Backup name (letters, digits, _ and -)")
    p_backup.add_argument(
        "--schema",
        "-s",
        action="append",
        help="Schema to include (repeatable; default: all user schemas)",
    )
    p_backup.add_argument(
        "--compress",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Gzip the script (default: [backup].compress)",
    )
    p_backup.set_defaults(func=cmd_backup)

    # restore command
    p_restore = subparsers.add_parser("restore", help="Restore a backup into a database")
    p_restore.add_argument("backup", help="Backup name or path to a .sql/.sql.gz file")
    p_restore.add_argument(
        "--clean",
        action="store_true",
        help="Drop existing objects in scope before restoring",
    )
    mode = p_restore.add_mutually_exclusive_group()
    mode.add_argument("--data-only", action="store_true", help="Only INSERT/COPY statements")
    mode.add_argument("--schema-only", action="store_true", help="Everything except INSERT/COPY")
    p_restore.add_argument(
        "--schema",
        "-s",
        action="append",
        help="Only restore statements for this schema (repeatable)",
    )
    p_restore.add_argument(
        "--legacy-split",
        action="store_true",
        help="Split at every unquoted ';' (ignore dollar quoting), for old scripts",
    )
    p_restore.add_argument("--strict", action="store_true", help="Exit 1 if any statement failed")
    p_restore.add_argument("--yes", "-y", action="store_true", help="Skip the --clean confirmation")
    p_restore.set_defaults(func=cmd_restore)

    # list command
    p_list = subparsers.add_parser("list", help="List backups")
    p_list.set_defaults(func=cmd_list)

    # validate command
    p_validate = subparsers.add_parser("validate", help="Check a backup pair on disk")
    p_validate.add_argument("name", help="Backup name")
    p_validate.set_defaults(func=cmd_validate)

    # delete command
    p_delete = subparsers.add_parser("delete", help="Delete a backup pair")
    p_delete.add_argument("name", help="Backup name")
    p_delete.add_argument("--confirm", action="store_true", help="Actually delete")
    p_delete.set_defaults(func=cmd_delete)

    # import command
    p_import = subparsers.add_parser("import", help="Import an external .sql/.sql.gz script")
    p_import.add_argument("file", help="Script to import")
    p_import.add_argument("--name", help="Backup name (default: file name without suffix)")
    p_import.set_defaults(func=cmd_import)

    # test-connection command
    p_test = subparsers.add_parser("test-connection", help="Connect and report the server version")
    p_test.set_defaults(func=cmd_test_connection)

    # profiles command
    p_profiles = subparsers.add_parser("profiles", help="List available profiles")
    p_profiles.set_defaults(func=cmd_profiles)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Parses command line arguments and dispatches to appropriate handler.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
