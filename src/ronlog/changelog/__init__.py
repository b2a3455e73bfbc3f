"""Changelog fragment pipeline.

Stability: stable
Tier: none
Since: 0.4.0
Dependencies: structlog
Doc-Types: API_REFERENCE, TECHNICAL_DESIGN
Tags: changelog, fragment, ronlog, git

Turns commit messages of the form ``<category><delimiter><description>``
into changelog fragments (reStructuredText, Markdown or RON) and folds RON
fragments into a single version-sorted RONLOG document.

Usage::

    from ronlog.changelog import open_repository, write_fragment, release
    from ronlog.core.settings import configure_from_settings, load_settings

    settings = load_settings(Path("ronlog.yaml"))
    configure_from_settings(settings)
    write_fragment(open_repository(repo_dir=Path(".")), settings)

    # Later, when cutting 1.2.0
    release("1.2.0", fragment_dir=Path("changelog.d"), ronlog_path=Path("CHANGELOG.ron"))

    # Deterministic runs against fixture data
    write_fragment(open_repository(fixture_dir=Path("tests/fixtures/ronlog_repo")), settings)
"""

from __future__ import annotations

from .assembler import Ronlog, RonlogSection, init_ronlog, load_ronlog, save_ronlog
from .builder import KEEP_A_CHANGELOG, CategoryPolicy, FragmentBuilder, build_fragment, links_from_pairs
from .git_scan import CommitHistory, FixtureRepository, GitRepository, StopCondition, open_repository
from .merge import merge_all, merge_fragments
from .model import ChangeEntry, Commit, Fragment
from .pipeline import FragmentReport, ReleaseReport, collect_fragments, release, write_fragment
from .render import Encoding, fragment_file_name, parse_fragment, render_fragment
from .splitter import MessageSource, split_commit, split_message
from .version import Version, VersionRange, compare, strip_tag_prefix

__all__ = [
    "KEEP_A_CHANGELOG",
    "CategoryPolicy",
    "ChangeEntry",
    "Commit",
    "CommitHistory",
    "Encoding",
    "FixtureRepository",
    "Fragment",
    "FragmentBuilder",
    "FragmentReport",
    "GitRepository",
    "MessageSource",
    "ReleaseReport",
    "Ronlog",
    "RonlogSection",
    "StopCondition",
    "Version",
    "VersionRange",
    "build_fragment",
    "collect_fragments",
    "compare",
    "fragment_file_name",
    "init_ronlog",
    "links_from_pairs",
    "load_ronlog",
    "merge_all",
    "merge_fragments",
    "open_repository",
    "parse_fragment",
    "release",
    "render_fragment",
    "save_ronlog",
    "split_commit",
    "split_message",
    "strip_tag_prefix",
    "write_fragment",
]
