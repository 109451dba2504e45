"""On-disk backup store.

A backup is a pair of files in one directory sharing a base name:

    <name>.sql | <name>.sql.gz    the script
    <name>.json                   its BackupMetadata

A script without metadata (or metadata without its script) is not a usable
backup and is ignored by listing.

All methods are **sync** -- they only touch the local filesystem.

Usage:
    from pgvault.backup.store import BackupStore

    store = BackupStore("backups")
    for meta in store.list_backups():
        print(meta.backup_name, meta.file_size)
    report = store.validate("nightly")
"""

import logging
import os
import shutil
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from pgvault.backup.files import is_gzip_file, partial_path, read_script_sync
from pgvault.backup.models import BackupMetadata, script_filename
from pgvault.errors import BackupNotFoundError, BackupReadError, ValidationError
from pgvault.script.tokenizer import parse_script
from pgvault.validation import validate_backup_name

logger = logging.getLogger(__name__)

SCRIPT_SUFFIXES = (".sql.gz", ".sql")


def strip_script_suffix(filename: str) -> str | None:
    """Base name of a ``.sql`` / ``.sql.gz`` file, or ``None`` for other files."""
    for suffix in SCRIPT_SUFFIXES:
        if filename.endswith(suffix) and len(filename) > len(suffix):
            return filename[: -len(suffix)]
    return None


class BackupStore:
    """Lists, inspects, imports and deletes backups in one directory."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def _metadata_path(self, name: str) -> Path:
        return self.directory / f"{name}.json"

    def _load_metadata(self, path: Path) -> BackupMetadata:
        try:
            return BackupMetadata.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, PydanticValidationError) as e:
            raise BackupReadError(f"Invalid metadata file {path.name}: {e}") from e

    def _existing_script(self, name: str) -> Path | None:
        for compressed in (True, False):
            path = self.directory / script_filename(name, compressed)
            if path.is_file():
                return path
        return None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_backups(self) -> list[BackupMetadata]:
        """All usable backups, newest first.

        Unpaired files and unreadable metadata are skipped (the latter with
        a logged warning).
        """
        if not self.directory.is_dir():
            return []

        backups = []
        for meta_path in sorted(self.directory.glob("*.json")):
            if meta_path.name.startswith("."):
                continue
            name = meta_path.stem
            if self._existing_script(name) is None:
                logger.debug(f"[pgvault.store] Skipping {meta_path.name}: no script")
                continue
            try:
                backups.append(self._load_metadata(meta_path))
            except BackupReadError as e:
                logger.warning(f"[pgvault.store] Skipping {meta_path.name}: {e}")

        backups.sort(key=lambda m: m.timestamp, reverse=True)
        return backups

    def get(self, name: str) -> BackupMetadata:
        """Metadata of one backup.

        Raises:
            ValidationError: If ``name`` is not a valid backup name.
            BackupNotFoundError: If either file of the pair is missing.
            BackupReadError: If the metadata cannot be parsed.
        """
        validate_backup_name(name)
        meta_path = self._metadata_path(name)
        if not meta_path.is_file() or self._existing_script(name) is None:
            raise BackupNotFoundError(f"Backup not found: {name}")
        return self._load_metadata(meta_path)

    def script_path(self, name: str) -> Path:
        """Path of a backup's script.

        Raises:
            ValidationError: If ``name`` is not a valid backup name.
            BackupNotFoundError: If the backup is not a complete pair.
        """
        meta = self.get(name)
        path = self.directory / script_filename(name, meta.compressed)
        if not path.is_file():
            # Metadata disagrees with what is on disk; use what exists
            existing = self._existing_script(name)
            if existing is None:
                raise BackupNotFoundError(f"Backup script not found: {name}")
            return existing
        return path

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def delete(self, name: str) -> list[Path]:
        """Delete both files of a backup (and any leftover partial files).

        Returns:
            Paths that were removed.

        Raises:
            BackupNotFoundError: If nothing with that name exists.
        """
        validate_backup_name(name)
        candidates = [
            self._metadata_path(name),
            self.directory / script_filename(name, True),
            self.directory / script_filename(name, False),
        ]
        candidates += [partial_path(p) for p in candidates]

        removed = []
        for path in candidates:
            if path.is_file():
                path.unlink()
                removed.append(path)
        if not removed:
            raise BackupNotFoundError(f"Backup not found: {name}")

        logger.info(f"[pgvault.store] Deleted backup {name} ({len(removed)} file(s))")
        return removed

    def import_script(self, source: str | Path, name: str | None = None) -> BackupMetadata:
        """Copy an external ``.sql`` / ``.sql.gz`` script into the store.

        Writes minimal metadata (database ``"Imported"``, version
        ``"Unknown"``, zero object counts).  Compression is detected from
        the file content, so a gzip file is stored as ``.sql.gz`` regardless
        of its original name.

        Args:
            source: File to import.
            name: Backup name.  Defaults to the file name without its
                ``.sql`` / ``.sql.gz`` suffix.

        Raises:
            BackupNotFoundError: If ``source`` does not exist.
            ValidationError: If the file type or resulting name is invalid,
                or a backup with that name already exists.
        """
        source = Path(source)
        if not source.is_file():
            raise BackupNotFoundError(f"File not found: {source}")

        base = strip_script_suffix(source.name)
        if base is None:
            raise ValidationError("Invalid file type. Only .sql or .sql.gz allowed")
        name = validate_backup_name(name or base)

        if self._metadata_path(name).exists() or self._existing_script(name) is not None:
            raise ValidationError(f"Backup already exists: {name}")

        compressed = is_gzip_file(source)
        self.directory.mkdir(parents=True, exist_ok=True)
        target = self.directory / script_filename(name, compressed)
        tmp = partial_path(target)
        try:
            shutil.copyfile(source, tmp)
            os.replace(tmp, target)
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise

        metadata = BackupMetadata(
            backup_name=name,
            timestamp=datetime.now(timezone.utc).isoformat(),
            database_name="Imported",
            postgres_version="Unknown",
            file_size=target.stat().st_size,
            compressed=compressed,
        )
        meta_path = self._metadata_path(name)
        meta_tmp = partial_path(meta_path)
        try:
            meta_tmp.write_text(metadata.to_json(), encoding="utf-8")
            os.replace(meta_tmp, meta_path)
        except BaseException:
            meta_tmp.unlink(missing_ok=True)
            target.unlink(missing_ok=True)
            raise

        logger.info(f"[pgvault.store] Imported {source.name} as {name}")
        return metadata

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self, name: str) -> dict:
        """Check a backup pair without touching any database.

        Checks that both files exist, the metadata parses, the compression
        flag matches the file content, the recorded size matches the real
        size, and the script decodes into at least one statement.

        Returns:
            Dict with ``valid`` (bool), ``errors`` (list[str]),
            and ``warnings`` (list[str]).

        Example:
            report = store.validate("nightly")
            if not report["valid"]:
                print("\\n".join(report["errors"]))
        """
        errors: list[str] = []
        warnings: list[str] = []

        try:
            validate_backup_name(name)
        except ValidationError as e:
            return {"valid": False, "errors": [str(e)], "warnings": warnings}

        meta_path = self._metadata_path(name)
        script = self._existing_script(name)
        if not meta_path.is_file():
            errors.append(f"Metadata file not found: {meta_path.name}")
        if script is None:
            errors.append(f"Script file not found: {name}.sql or {name}.sql.gz")
        if errors:
            return {"valid": False, "errors": errors, "warnings": warnings}

        try:
            meta = self._load_metadata(meta_path)
        except BackupReadError as e:
            errors.append(str(e))
            return {"valid": False, "errors": errors, "warnings": warnings}

        if meta.backup_name != name:
            warnings.append(f"Metadata names backup '{meta.backup_name}', expected '{name}'")

        actually_compressed = is_gzip_file(script)
        if meta.compressed != actually_compressed:
            errors.append(
                f"Metadata says compressed={meta.compressed} but {script.name} "
                f"is {'gzip' if actually_compressed else 'plain text'}"
            )

        size = script.stat().st_size
        if meta.file_size != size:
            warnings.append(f"Recorded file size {meta.file_size} differs from actual size {size}")

        try:
            statements = parse_script(read_script_sync(script))
        except (BackupNotFoundError, BackupReadError) as e:
            errors.append(str(e))
        else:
            if not statements:
                warnings.append("Script contains no statements")

        return {"valid": not errors, "errors": errors, "warnings": warnings}
