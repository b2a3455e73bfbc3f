"""File helpers for fragments and RONLOG documents.

Stability: stable
Tier: none
Since: 0.4.0
Dependencies: structlog
Doc-Types: API_REFERENCE
Tags: io, atomic-write

All writes go through ``atomic_write`` so an aborted run never leaves a
half-written fragment behind. ``OSError`` is wrapped into ``StorageError``
with the offending path attached.
"""

from __future__ import annotations

import contextlib
import os
from collections.abc import Iterator
from pathlib import Path
from typing import TextIO
from uuid import uuid4

from .errors import StorageError
from .logging import get_logger

logger = get_logger(__name__)


@contextlib.contextmanager
def atomic_write(path: Path) -> Iterator[TextIO]:
    """Write to a sibling temporary file and atomically replace ``path``.

    The temporary file lives in the destination directory so the final
    ``replace`` is a same-filesystem rename. Missing parent directories are
    created. On any exception the temporary file is removed and the
    destination is left untouched.

    Examples:
        >>> with atomic_write(Path("changelog.d/fragment.rst")) as handle:
        ...     _ = handle.write("Added\\n.....\\n")
    """
    path = Path(path)
    tmp = path.with_name(f"{path.name}.tmp.{uuid4().hex}")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tmp.open("w", encoding="utf-8", newline="\n") as handle:
            yield handle
            handle.flush()
            os.fsync(handle.fileno())
        tmp.replace(path)
    except OSError as exc:
        with contextlib.suppress(OSError):
            tmp.unlink()
        raise StorageError(f"Cannot write {path}: {exc}", cause=exc).with_context(
            path=str(path)
        ) from exc
    except BaseException:
        with contextlib.suppress(OSError):
            tmp.unlink()
        raise
    logger.debug("file.written", path=str(path))


def write_text(path: Path, text: str) -> None:
    """Atomically replace ``path`` with ``text``."""
    with atomic_write(path) as handle:
        handle.write(text)


def read_text(path: Path) -> str:
    """Read a UTF-8 file, raising ``StorageError`` on failure."""
    path = Path(path)
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise StorageError(f"Cannot read {path}: {exc}", cause=exc).with_context(
            path=str(path)
        ) from exc
    except UnicodeDecodeError as exc:
        raise StorageError(f"{path} is not valid UTF-8", cause=exc).with_context(
            path=str(path)
        ) from exc


__all__ = ["atomic_write", "read_text", "write_text"]
