"""End-to-end changelog operations.

Stability: stable
Tier: none
Since: 0.4.0
Dependencies: structlog
Doc-Types: API_REFERENCE, TECHNICAL_DESIGN
Tags: changelog, pipeline, release

Two operations drive everything else:

``write_fragment``
    harvest → split → build → render, then persist under the canonical
    file name. When that file already exists (a second run in the same
    second on the same branch) the stored fragment is read back and the
    new entries are merged after it.

``release``
    read every ``*.ron`` fragment in a directory (file-name order, which is
    chronological), merge them, and insert the result into the RONLOG under
    the release version. A fragment that fails to decode is logged and
    reported; the others are still released.

Usage::

    settings = load_settings(Path("ronlog.yaml"))
    repo = open_repository(repo_dir=Path("."))
    report = write_fragment(repo, settings)

    release("1.2.0", fragment_dir=settings.fragment_dir, ronlog_path=settings.ronlog_path)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from ronlog.core.errors import EncodingError, StorageError
from ronlog.core.io import read_text, write_text
from ronlog.core.logging import LogContext, get_logger
from ronlog.core.settings import RonlogSettings

from .assembler import Ronlog, load_ronlog, save_ronlog
from .builder import CategoryPolicy, FragmentBuilder
from .git_scan import CommitHistory, Repository, StopCondition
from .merge import merge_all, merge_fragments
from .model import Fragment
from .render import Encoding, fragment_file_name, parse_fragment, render_fragment
from .splitter import MessageSource
from .version import Version

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Settings → pipeline objects
# ---------------------------------------------------------------------------


def category_policy(settings: RonlogSettings) -> CategoryPolicy:
    if settings.keep_a_changelog:
        return CategoryPolicy.keep_a_changelog(settings.categories, settings.fallback_category)
    return CategoryPolicy(tuple(settings.categories), settings.fallback_category)


def stop_condition(settings: RonlogSettings) -> StopCondition:
    return StopCondition(depth=settings.depth, stop_at=settings.stop_at)


def fragment_builder(settings: RonlogSettings) -> FragmentBuilder:
    return FragmentBuilder(
        settings.delimiter,
        MessageSource(settings.source),
        category_policy(settings),
        settings.links,
    )


# ---------------------------------------------------------------------------
# Harvest → fragment file
# ---------------------------------------------------------------------------


@dataclass
class FragmentReport:
    """Outcome of ``write_fragment``."""

    path: Path | None
    fragment: Fragment
    commits: int = 0
    skipped: int = 0
    merged: bool = False


def write_fragment(
    repository: Repository,
    settings: RonlogSettings | None = None,
    *,
    now: datetime | None = None,
    start: str = "HEAD",
) -> FragmentReport:
    """Harvest commits from ``repository`` and persist them as one fragment.

    Nothing is written when no commit produced an entry; the report's
    ``path`` is then ``None``.

    Raises:
        RepositoryAccessError: The history or repository identity cannot be read.
        EncodingError: An existing file under the canonical name cannot be merged.
        StorageError: The fragment file cannot be read or written.
    """
    settings = settings or RonlogSettings()
    encoding = Encoding(settings.encoding)
    builder = fragment_builder(settings)
    history = CommitHistory(repository, stop_condition(settings), start=start)

    commits = 0
    for commit in history:
        builder.add_commit(commit)
        commits += 1
    fragment = builder.build()

    if fragment.is_empty():
        logger.info("fragment.empty", commits=commits, skipped=builder.skipped)
        return FragmentReport(None, fragment, commits=commits, skipped=builder.skipped)

    user = repository.user_name()
    branch = repository.branch_name()
    name = fragment_file_name(now or datetime.now(), user, branch, encoding)
    path = Path(settings.output_dir) / name

    with LogContext(branch=branch, encoding=encoding.value):
        merged = False
        if path.exists():
            try:
                existing = parse_fragment(read_text(path), encoding)
            except EncodingError as exc:
                exc.with_context(path=str(path))
                raise
            fragment = merge_fragments(existing, fragment)
            merged = True
            logger.info("fragment.merged", path=str(path))

        write_text(path, render_fragment(fragment, encoding, settings.heading_level))
        logger.info(
            "fragment.written",
            path=str(path),
            categories=len(fragment.changes),
            entries=fragment.entry_count(),
            commits=commits,
            skipped=builder.skipped,
        )

    return FragmentReport(
        path, fragment, commits=commits, skipped=builder.skipped, merged=merged
    )


# ---------------------------------------------------------------------------
# Fragments → RONLOG
# ---------------------------------------------------------------------------


@dataclass
class ReleaseReport:
    """Outcome of ``release``."""

    version: Version
    ronlog_path: Path
    consumed: list[Path] = field(default_factory=list)
    failed: list[tuple[Path, EncodingError]] = field(default_factory=list)
    written: bool = True


def collect_fragments(
    fragment_dir: Path,
    *,
    exclude: tuple[Path, ...] = (),
) -> tuple[list[tuple[Path, Fragment]], list[tuple[Path, EncodingError]]]:
    """Decode every ``*.ron`` fragment in ``fragment_dir``, sorted by file name.

    Files listed in ``exclude`` are skipped. Returns the decoded fragments
    and the files that failed to decode.

    Raises:
        StorageError: The directory or a file in it cannot be read.
    """
    fragment_dir = Path(fragment_dir)
    if not fragment_dir.is_dir():
        raise StorageError(f"Fragment directory {fragment_dir} does not exist").with_context(
            path=str(fragment_dir)
        )

    skip = {Path(p).resolve() for p in exclude}
    loaded: list[tuple[Path, Fragment]] = []
    failed: list[tuple[Path, EncodingError]] = []
    for path in sorted(fragment_dir.glob(f"*.{Encoding.RON.extension}")):
        if not path.is_file() or path.resolve() in skip:
            continue
        try:
            loaded.append((path, parse_fragment(read_text(path), Encoding.RON)))
        except EncodingError as exc:
            exc.with_context(path=str(path))
            logger.error("fragment.decode_failed", **exc.to_dict())
            failed.append((path, exc))
    return loaded, failed


def release(
    version: Version | str,
    *,
    fragment_dir: Path,
    ronlog_path: Path,
    released: datetime | None = None,
    introduction: str | None = None,
    remove_consumed: bool = False,
) -> ReleaseReport:
    """Fold all RON fragments in ``fragment_dir`` into the RONLOG under ``version``.

    A missing RONLOG file is created. When the fragments hold no entries
    nothing is inserted or written and the report's ``written`` is False.
    Consumed fragment files are deleted only when ``remove_consumed`` is set
    and the RONLOG was written.

    Raises:
        MalformedVersionError: ``version`` is not ``MAJOR.MINOR.PATCH``.
        EncodingError: The existing RONLOG cannot be decoded.
        StorageError: A file cannot be read or written.
    """
    if not isinstance(version, Version):
        version = Version.parse(version)
    ronlog_path = Path(ronlog_path)

    with LogContext(version=str(version)):
        loaded, failed = collect_fragments(fragment_dir, exclude=(ronlog_path,))
        fragment = merge_all(fragment for _, fragment in loaded)
        if fragment.is_empty():
            logger.warning(
                "release.nothing_to_release",
                fragment_dir=str(fragment_dir),
                fragments=len(loaded),
                failed=len(failed),
            )
            return ReleaseReport(version, ronlog_path, failed=failed, written=False)

        log = load_ronlog(ronlog_path) if ronlog_path.exists() else Ronlog()
        log.insert(version, fragment, released=released, introduction=introduction)
        save_ronlog(ronlog_path, log)

        consumed = [path for path, _ in loaded]
        if remove_consumed:
            for path in consumed:
                try:
                    path.unlink()
                except OSError as exc:
                    raise StorageError(f"Cannot remove {path}: {exc}", cause=exc).with_context(
                        path=str(path)
                    ) from exc

        logger.info(
            "release.completed",
            ronlog=str(ronlog_path),
            fragments=len(consumed),
            failed=len(failed),
        )
    return ReleaseReport(version, ronlog_path, consumed=consumed, failed=failed)


__all__ = [
    "FragmentReport",
    "ReleaseReport",
    "category_policy",
    "collect_fragments",
    "fragment_builder",
    "release",
    "stop_condition",
    "write_fragment",
]
