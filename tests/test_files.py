"""Tests for atomic script writing and script reading."""

import gzip
from pathlib import Path

import pytest

from pgvault.backup.files import (
    ScriptWriter,
    partial_path,
    read_script,
    read_script_sync,
    write_text_atomic,
)
from pgvault.errors import BackupNotFoundError, BackupReadError


def test_partial_path():
    assert partial_path(Path("/b/nightly.sql.gz")) == Path("/b/.nightly.sql.gz.partial")


class TestScriptWriter:
    """Nothing appears at the final path before commit()."""

    async def test_commit_moves_into_place(self, tmp_path: Path) -> None:
        path = tmp_path / "out" / "nightly.sql"
        writer = ScriptWriter(path)
        await writer.open()
        writer.line("SELECT 1;")
        await writer.flush()
        assert not path.exists()
        assert partial_path(path).exists()

        size = await writer.commit()

        assert path.read_text() == "SELECT 1;\n"
        assert size == path.stat().st_size
        assert not partial_path(path).exists()

    async def test_gzip(self, tmp_path: Path) -> None:
        path = tmp_path / "nightly.sql.gz"
        writer = ScriptWriter(path, compress=True)
        await writer.open()
        writer.write("SELECT 'é';\n")
        await writer.commit()
        assert gzip.decompress(path.read_bytes()).decode("utf-8") == "SELECT 'é';\n"

    async def test_abort_removes_partial(self, tmp_path: Path) -> None:
        path = tmp_path / "nightly.sql"
        writer = ScriptWriter(path)
        await writer.open()
        writer.line("SELECT 1;")
        await writer.flush()
        await writer.abort()
        assert list(tmp_path.iterdir()) == []

    async def test_flush_before_open(self, tmp_path: Path) -> None:
        writer = ScriptWriter(tmp_path / "x.sql")
        writer.line("SELECT 1;")
        with pytest.raises(RuntimeError):
            await writer.flush()


async def test_write_text_atomic(tmp_path: Path) -> None:
    path = tmp_path / "meta.json"
    path.write_text("old")
    await write_text_atomic(path, "new")
    assert path.read_text() == "new"
    assert not partial_path(path).exists()


class TestReadScript:
    """Compression is detected from content, not from the name."""

    def test_plain(self, tmp_path: Path) -> None:
        path = tmp_path / "a.sql"
        path.write_text("SELECT 1;")
        assert read_script_sync(path) == "SELECT 1;"

    def test_gzip_with_plain_name(self, tmp_path: Path) -> None:
        path = tmp_path / "a.sql"
        path.write_bytes(gzip.compress("SELECT 1;".encode()))
        assert read_script_sync(path) == "SELECT 1;"

    def test_missing(self, tmp_path: Path) -> None:
        with pytest.raises(BackupNotFoundError):
            read_script_sync(tmp_path / "nope.sql")

    def test_truncated_gzip(self, tmp_path: Path) -> None:
        path = tmp_path / "a.sql.gz"
        data = gzip.compress(b"SELECT 1;" * 100)
        path.write_bytes(data[:20])
        with pytest.raises(BackupReadError):
            read_script_sync(path)

    def test_invalid_utf8(self, tmp_path: Path) -> None:
        path = tmp_path / "a.sql"
        path.write_bytes(b"SELECT '\xff\xfe';")
        with pytest.raises(BackupReadError):
            read_script_sync(path)

    async def test_async_wrapper(self, tmp_path: Path) -> None:
        path = tmp_path / "a.sql"
        path.write_text("SELECT 1;")
        assert await read_script(path) == "SELECT 1;"
