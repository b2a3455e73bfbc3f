"""Tests for ronlog.core.io atomic file helpers."""

import pytest

from ronlog.core.errors import StorageError
from ronlog.core.io import atomic_write, read_text, write_text


def _leftovers(directory):
    return [p.name for p in directory.iterdir() if ".tmp." in p.name]


class TestAtomicWrite:
    def test_writes_and_creates_parents(self, tmp_path):
        target = tmp_path / "changelog.d" / "fragment.rst"
        write_text(target, "Added\n.....\n")
        assert target.read_text(encoding="utf-8") == "Added\n.....\n"
        assert _leftovers(target.parent) == []

    def test_replaces_existing_file(self, tmp_path):
        target = tmp_path / "fragment.md"
        target.write_text("old")
        write_text(target, "new")
        assert target.read_text() == "new"

    def test_exception_keeps_original(self, tmp_path):
        target = tmp_path / "fragment.md"
        target.write_text("original")
        with pytest.raises(RuntimeError):
            with atomic_write(target) as handle:
                handle.write("partial")
                raise RuntimeError("abort")
        assert target.read_text() == "original"
        assert _leftovers(tmp_path) == []

    def test_unwritable_parent_raises_storage_error(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        with pytest.raises(StorageError) as exc_info:
            write_text(blocker / "fragment.rst", "x")
        assert exc_info.value.context.path == str(blocker / "fragment.rst")
        assert isinstance(exc_info.value.__cause__, OSError)

    def test_failed_replace_raises_storage_error_and_cleans_up(self, tmp_path, monkeypatch):
        target = tmp_path / "fragment.rst"
        target.write_text("original")

        def refuse(self, other):
            raise PermissionError("read-only")

        monkeypatch.setattr(type(target), "replace", refuse)
        with pytest.raises(StorageError, match="read-only"):
            write_text(target, "new")
        assert target.read_text() == "original"
        assert _leftovers(tmp_path) == []

    def test_newlines_are_unix(self, tmp_path):
        target = tmp_path / "fragment.rst"
        write_text(target, "a\nb\n")
        assert target.read_bytes() == b"a\nb\n"


class TestReadText:
    def test_reads_utf8(self, tmp_path):
        target = tmp_path / "fragment.ron"
        target.write_bytes("(changes: {\"Café\": []})".encode("utf-8"))
        assert "Café" in read_text(target)

    def test_missing_file(self, tmp_path):
        with pytest.raises(StorageError, match="Cannot read"):
            read_text(tmp_path / "missing.ron")

    def test_invalid_utf8(self, tmp_path):
        target = tmp_path / "fragment.ron"
        target.write_bytes(b"\xff\xfe\x00broken")
        with pytest.raises(StorageError, match="not valid UTF-8"):
            read_text(target)
