"""Backup file I/O.

Blocking file operations run in worker threads via ``asyncio.to_thread`` so
the event loop keeps servicing the database connection while scripts are
written or read.

Writes are atomic per file: content goes to a hidden ``.<name>.partial``
file in the target directory and is moved into place with ``os.replace``.
"""

import asyncio
import gzip
import logging
import os
import zlib
from pathlib import Path
from typing import IO

from pgvault.errors import BackupNotFoundError, BackupReadError

logger = logging.getLogger(__name__)

GZIP_MAGIC = b"\x1f\x8b"
FLUSH_THRESHOLD = 1 << 20  # characters buffered before a write


def partial_path(path: Path) -> Path:
    """Temporary sibling used while ``path`` is being written."""
    return path.with_name(f".{path.name}.partial")


class ScriptWriter:
    """Buffered writer for a backup script, optionally gzip-compressed.

    Text is collected in memory and handed to a worker thread in chunks of
    about ``FLUSH_THRESHOLD`` characters.  Nothing appears at ``path`` until
    ``commit()``; ``abort()`` removes the partial file.

    Example:
        writer = ScriptWriter(Path("backups/nightly.sql.gz"), compress=True)
        await writer.open()
        try:
            writer.write("CREATE SCHEMA IF NOT EXISTS \\"app\\";\\n")
            await writer.flush_if_needed()
            await writer.commit()
        except Exception:
            await writer.abort()
            raise
    """

    def __init__(self, path: Path, compress: bool = False) -> None:
        self.path = path
        self.compress = compress
        self._partial = partial_path(path)
        self._fh: IO[str] | None = None
        self._buffer: list[str] = []
        self._buffered = 0

    def _open_sync(self) -> IO[str]:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if self.compress:
            return gzip.open(self._partial, "wt", encoding="utf-8")
        return open(self._partial, "w", encoding="utf-8")

    async def open(self) -> None:
        self._fh = await asyncio.to_thread(self._open_sync)

    def write(self, text: str) -> None:
        self._buffer.append(text)
        self._buffered += len(text)

    def line(self, text: str = "") -> None:
        self.write(text + "\n")

    async def flush_if_needed(self) -> None:
        if self._buffered >= FLUSH_THRESHOLD:
            await self.flush()

    async def flush(self) -> None:
        if self._fh is None:
            raise RuntimeError("ScriptWriter is not open")
        if not self._buffer:
            return
        chunk = "".join(self._buffer)
        self._buffer = []
        self._buffered = 0
        await asyncio.to_thread(self._fh.write, chunk)

    async def commit(self) -> int:
        """Flush, close and move the script into place.

        Returns:
            Final size of the file on disk in bytes.
        """
        await self.flush()
        fh, self._fh = self._fh, None
        await asyncio.to_thread(fh.close)
        await asyncio.to_thread(os.replace, self._partial, self.path)
        return (await asyncio.to_thread(self.path.stat)).st_size

    async def abort(self) -> None:
        """Close and delete the partial file (no-op once committed)."""
        fh, self._fh = self._fh, None
        self._buffer = []
        if fh is not None:
            try:
                await asyncio.to_thread(fh.close)
            except OSError as e:
                logger.warning(f"[pgvault.files] Failed to close {self._partial}: {e}")
        await asyncio.to_thread(self._partial.unlink, missing_ok=True)


def _write_text_atomic_sync(path: Path, text: str) -> None:
    tmp = partial_path(path)
    try:
        tmp.write_text(text, encoding="utf-8")
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


async def write_text_atomic(path: Path, text: str) -> None:
    """Write ``text`` to ``path`` through a temporary file and ``os.replace``."""
    await asyncio.to_thread(_write_text_atomic_sync, path, text)


def is_gzip_file(path: Path) -> bool:
    with open(path, "rb") as fh:
        return fh.read(2) == GZIP_MAGIC


def read_script_sync(path: Path) -> str:
    """Read a ``.sql`` or ``.sql.gz`` script (gzip is detected by magic bytes).

    Raises:
        BackupNotFoundError: If ``path`` does not exist.
        BackupReadError: If the file cannot be read, decompressed or decoded.
    """
    if not path.is_file():
        raise BackupNotFoundError(f"Backup file not found: {path}")
    try:
        if is_gzip_file(path):
            with gzip.open(path, "rt", encoding="utf-8") as fh:
                return fh.read()
        return path.read_text(encoding="utf-8")
    except (OSError, EOFError, UnicodeDecodeError, zlib.error) as e:
        # gzip.BadGzipFile is an OSError subclass
        raise BackupReadError(f"Failed to read backup file {path.name}: {e}") from e


async def read_script(path: Path) -> str:
    """Async wrapper around ``read_script_sync``."""
    return await asyncio.to_thread(read_script_sync, path)
