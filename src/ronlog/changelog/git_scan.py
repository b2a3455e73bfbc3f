"""Commit harvesting from git history.

Stability: stable
Tier: none
Since: 0.4.0
Dependencies: structlog
Doc-Types: API_REFERENCE, TECHNICAL_DESIGN
Tags: changelog, git, scanner

Walks a repository's history newest-first and yields ``Commit`` objects
until a stop condition is met. Live repositories are read by streaming
``git log`` through ``subprocess``; fixture repositories come from a
``commits.json`` file so tests need no git executable.

Architecture::

    ┌─────────────────────────────────────────────────┐
    │                  git_scan.py                     │
    ├─────────────────────┬───────────────────────────┤
    │  GitRepository      │  FixtureRepository        │
    │  (streams git log)  │  (reads commits.json)     │
    └─────────────────────┴───────────────────────────┘
                │                     │
                └──────────┬──────────┘
                           ▼
            CommitHistory(repository, StopCondition)
                           │
                           ▼
                 Commit, Commit, ... (newest first)

Usage::

    from ronlog.changelog.git_scan import CommitHistory, StopCondition, open_repository

    repo = open_repository(repo_dir=Path("."))
    for commit in CommitHistory(repo, StopCondition.count(20)):
        print(commit.summary)

    # From fixtures
    repo = open_repository(fixture_dir=Path("tests/fixtures/ronlog_repo"))
"""

from __future__ import annotations

import json
import subprocess
from collections.abc import Iterator, Sequence
from contextlib import closing
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, TextIO, cast

from ronlog.core.errors import RepositoryAccessError
from ronlog.core.logging import get_logger

from .model import Commit

logger = get_logger(__name__)

# Use unique string separators instead of control bytes
# (Windows rejects null in args)
_FIELD_SEP = "---RONLOG_FIELD_SEP---"
_RECORD_SEP = "---RONLOG_RECORD_SEP---"
_GIT_LOG_FORMAT = f"%H{_FIELD_SEP}%s{_FIELD_SEP}%b{_RECORD_SEP}"


class Repository(Protocol):
    """What the harvester needs from a version-control repository."""

    def resolve(self, rev: str) -> str:
        """Return the full commit id ``rev`` points to."""
        ...

    def walk(self, start: str) -> Iterator[Commit]:
        """Yield ``start`` and its ancestors, most recent first."""
        ...

    def user_name(self) -> str:
        """Configured author name."""
        ...

    def branch_name(self) -> str:
        """Current branch, or ``HEAD`` when detached."""
        ...


# ---------------------------------------------------------------------------
# Stop conditions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StopCondition:
    """When a traversal ends.

    ``depth`` caps the number of commits; ``stop_at`` ends the traversal at
    a commit (that commit is not yielded). With neither set, the whole
    history is walked.
    """

    depth: int | None = None
    stop_at: str | None = None

    def __post_init__(self) -> None:
        if self.depth is not None and self.stop_at is not None:
            raise ValueError("depth and stop_at are mutually exclusive")
        if self.depth is not None and self.depth < 1:
            raise ValueError(f"depth must be at least 1, got {self.depth}")
        if self.stop_at is not None and not self.stop_at.strip():
            raise ValueError("stop_at must not be blank")

    @classmethod
    def count(cls, n: int) -> StopCondition:
        return cls(depth=n)

    @classmethod
    def at_commit(cls, commit_id: str) -> StopCondition:
        return cls(stop_at=commit_id)

    @classmethod
    def unbounded(cls) -> StopCondition:
        return cls()


class CommitHistory:
    """Restartable, lazy view of a repository's history.

    Each ``iter()`` resolves the starting point again and begins a fresh
    traversal, so the same history can be consumed more than once.

    Raises (on iteration):
        RepositoryAccessError: The start revision or ``stop_at`` commit
            cannot be resolved.
    """

    def __init__(
        self,
        repository: Repository,
        stop: StopCondition | None = None,
        *,
        start: str = "HEAD",
    ):
        self.repository = repository
        self.stop = stop or StopCondition.unbounded()
        self.start = start

    def __iter__(self) -> Iterator[Commit]:
        start_sha = self.repository.resolve(self.start)
        stop_sha = None
        if self.stop.stop_at is not None:
            stop_sha = self.repository.resolve(self.stop.stop_at)

        yielded = 0
        with closing(self.repository.walk(start_sha)) as walker:
            for commit in walker:
                if stop_sha is not None and commit.sha == stop_sha:
                    break
                yield commit
                yielded += 1
                if self.stop.depth is not None and yielded >= self.stop.depth:
                    break
        logger.debug("history.walked", start=start_sha, commits=yielded)


# ---------------------------------------------------------------------------
# Live git
# ---------------------------------------------------------------------------


class GitRepository:
    """Repository backed by the ``git`` executable."""

    def __init__(self, repo_dir: Path = Path(".")):
        self.repo_dir = Path(repo_dir)

    def _git(self, *args: str) -> str:
        cmd = ["git", *args]
        try:
            result = subprocess.run(
                cmd, capture_output=True, cwd=str(self.repo_dir), check=True,
            )
        except FileNotFoundError as exc:
            raise RepositoryAccessError(
                f"Cannot run git in {self.repo_dir}: {exc}", cause=exc
            ).with_context(path=str(self.repo_dir)) from exc
        except subprocess.CalledProcessError as exc:
            stderr = exc.stderr.decode("utf-8", errors="replace").strip()
            raise RepositoryAccessError(
                f"git {' '.join(args)} failed: {stderr or exc}", cause=exc
            ).with_context(path=str(self.repo_dir)) from exc
        return result.stdout.decode("utf-8", errors="replace")

    def resolve(self, rev: str) -> str:
        try:
            sha = self._git("rev-parse", "--verify", "--quiet", f"{rev}^{{commit}}").strip()
        except RepositoryAccessError as exc:
            raise RepositoryAccessError(
                f"Cannot resolve {rev!r} in {self.repo_dir}", cause=exc.cause
            ).with_context(path=str(self.repo_dir), commit=rev) from exc
        return sha

    def walk(self, start: str) -> Iterator[Commit]:
        cmd = ["git", "log", f"--format={_GIT_LOG_FORMAT}", start, "--"]
        try:
            proc = subprocess.Popen(
                cmd,
                cwd=str(self.repo_dir),
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as exc:
            raise RepositoryAccessError(
                f"Cannot run git in {self.repo_dir}: {exc}", cause=exc
            ).with_context(path=str(self.repo_dir)) from exc

        stdout = cast(TextIO, proc.stdout)
        finished = False
        try:
            parts: list[str] = []
            for line in stdout:
                if _RECORD_SEP not in line:
                    parts.append(line)
                    continue
                head, _, tail = line.partition(_RECORD_SEP)
                parts.append(head)
                yield _parse_record("".join(parts))
                parts = [tail] if tail.strip() else []
            finished = True
        finally:
            if proc.poll() is None:
                proc.terminate()
            stdout.close()
            returncode = proc.wait()

        if finished and returncode != 0:
            raise RepositoryAccessError(
                f"git log exited with status {returncode}"
            ).with_context(path=str(self.repo_dir), commit=start)

    def user_name(self) -> str:
        try:
            name = self._git("config", "user.name").strip()
        except RepositoryAccessError as exc:
            raise RepositoryAccessError(
                "There is no git user name configured", cause=exc.cause
            ).with_context(path=str(self.repo_dir)) from exc
        if not name:
            raise RepositoryAccessError("There is no git user name configured")
        return name

    def branch_name(self) -> str:
        try:
            return self._git("symbolic-ref", "--short", "-q", "HEAD").strip()
        except RepositoryAccessError:
            logger.debug("git.detached_head", path=str(self.repo_dir))
            return "HEAD"


def _parse_record(record: str) -> Commit:
    """Parse one ``git log`` record into a ``Commit``."""
    sha, _, rest = record.lstrip("\n").partition(_FIELD_SEP)
    summary, _, body = rest.partition(_FIELD_SEP)
    return Commit(sha=sha.strip(), summary=summary.strip(), body=body.strip())


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


class FixtureRepository:
    """In-memory repository for deterministic tests.

    ``commits`` are ordered most recent first. ``resolve`` accepts
    ``HEAD``, a full commit id, or an unambiguous prefix of at least four
    characters.
    """

    def __init__(
        self,
        commits: Sequence[Commit],
        *,
        user: str = "Fixture User",
        branch: str = "main",
    ):
        self.commits = list(commits)
        self.user = user
        self.branch = branch

    @classmethod
    def from_dir(cls, fixture_dir: Path) -> FixtureRepository:
        """Load ``commits.json`` from ``fixture_dir``.

        Format::

            {"user": "Jane Doe", "branch": "main",
             "commits": [{"sha": "...", "summary": "...", "body": "..."}]}
        """
        commits_file = Path(fixture_dir) / "commits.json"
        try:
            data = json.loads(commits_file.read_text(encoding="utf-8"))
            commits = [
                Commit(
                    sha=c["sha"],
                    summary=c.get("summary", ""),
                    body=c.get("body", ""),
                )
                for c in data.get("commits", [])
            ]
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as exc:
            raise RepositoryAccessError(
                f"Cannot load fixture repository {commits_file}: {exc}", cause=exc
            ).with_context(path=str(commits_file)) from exc

        return cls(
            commits,
            user=data.get("user", "Fixture User"),
            branch=data.get("branch", "main"),
        )

    def resolve(self, rev: str) -> str:
        if not self.commits:
            raise RepositoryAccessError("Repository has no commits").with_context(commit=rev)
        if rev == "HEAD":
            return self.commits[0].sha
        matches = [c.sha for c in self.commits if c.sha == rev]
        if not matches and len(rev) >= 4:
            matches = [c.sha for c in self.commits if c.sha.startswith(rev)]
        if len(matches) != 1:
            raise RepositoryAccessError(f"Cannot resolve {rev!r}").with_context(commit=rev)
        return matches[0]

    def walk(self, start: str) -> Iterator[Commit]:
        for index, commit in enumerate(self.commits):
            if commit.sha == start:
                yield from self.commits[index:]
                return
        raise RepositoryAccessError(f"Unknown commit {start!r}").with_context(commit=start)

    def user_name(self) -> str:
        return self.user

    def branch_name(self) -> str:
        return self.branch


def open_repository(
    *,
    repo_dir: Path | None = None,
    fixture_dir: Path | None = None,
) -> Repository:
    """Open a live or fixture repository.

    Exactly one of ``repo_dir`` or ``fixture_dir`` must be provided.

    Raises:
        ValueError: If neither or both are provided.
    """
    if (repo_dir is None) == (fixture_dir is None):
        msg = "Provide either repo_dir or fixture_dir"
        raise ValueError(msg)
    if fixture_dir is not None:
        return FixtureRepository.from_dir(fixture_dir)
    return GitRepository(repo_dir)


__all__ = [
    "CommitHistory",
    "FixtureRepository",
    "GitRepository",
    "Repository",
    "StopCondition",
    "open_repository",
]
