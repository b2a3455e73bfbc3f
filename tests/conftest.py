"""
Shared pytest fixtures and configuration for ronlog tests.

This module provides:
- Fixture repositories (in-memory and commits.json based)
- A fixed timestamp for deterministic fragment file names
- Settings pointed at a temporary output directory
- Log context cleanup between tests
"""

import sys
from datetime import datetime
from pathlib import Path
from typing import Generator

import pytest

# Ensure ronlog package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from ronlog.changelog.git_scan import FixtureRepository
from ronlog.changelog.model import Commit
from ronlog.core.logging import clear_context
from ronlog.core.settings import RonlogSettings

FIXTURE_DIR = Path(__file__).resolve().parent / "fixtures" / "ronlog_repo"


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark tests without an explicit marker as unit tests."""
    for item in items:
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration"}):
            item.add_marker(pytest.mark.unit)


@pytest.fixture(autouse=True)
def clean_log_context() -> Generator[None, None, None]:
    """Drop structlog context variables bound by a previous test."""
    clear_context()
    yield
    clear_context()


# =============================================================================
# Repositories
# =============================================================================


@pytest.fixture
def fixture_dir() -> Path:
    return FIXTURE_DIR


@pytest.fixture
def fixture_repo() -> FixtureRepository:
    """The four-commit repository from ``tests/fixtures/ronlog_repo``."""
    return FixtureRepository.from_dir(FIXTURE_DIR)


@pytest.fixture
def make_repo():
    """Build an in-memory repository from summaries (newest first).

    Usage:
        repo = make_repo("Added :: a", "Fixed :: b")
    """

    def _make(*summaries: str, bodies: dict[int, str] | None = None, **kwargs) -> FixtureRepository:
        bodies = bodies or {}
        commits = [
            Commit(sha=f"{index:040x}", summary=summary, body=bodies.get(index, ""))
            for index, summary in enumerate(summaries, start=1)
        ]
        return FixtureRepository(commits, **kwargs)

    return _make


# =============================================================================
# Deterministic settings
# =============================================================================


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2026, 3, 14, 15, 9, 26)


@pytest.fixture
def settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> RonlogSettings:
    """Settings writing into ``tmp_path`` and ignoring any ambient .env."""
    monkeypatch.chdir(tmp_path)
    return RonlogSettings(
        delimiter="::=",
        output_dir=tmp_path / "changelog.d",
        fragment_dir=tmp_path / "changelog.d",
        ronlog_path=tmp_path / "CHANGELOG.ron",
    )
