"""Build fragments from harvested commits.

Stability: stable
Tier: none
Since: 0.4.0
Dependencies: structlog
Doc-Types: API_REFERENCE
Tags: changelog, builder, fragment

``FragmentBuilder`` feeds each commit through the splitter, applies the
category policy and collects the result into a ``Fragment``. Link
placeholders written ``[name]`` are resolved against an optional link
table: known names are recorded in ``Fragment.references``, unknown ones
stay in the text untouched.

Usage::

    builder = FragmentBuilder("::=", links={"issue-3": "https://example.org/3"})
    for commit in CommitHistory(repo, StopCondition.count(10)):
        builder.add_commit(commit)
    fragment = builder.build()
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from ronlog.core.logging import get_logger

from .model import ChangeEntry, Commit, Fragment
from .splitter import MessageSource, message_text, split_message

logger = get_logger(__name__)

KEEP_A_CHANGELOG = ("Added", "Changed", "Deprecated", "Fixed", "Removed", "Security")

PLACEHOLDER_RE = re.compile(r"\[([^\[\]\n]+)\]")


@dataclass(frozen=True)
class CategoryPolicy:
    """Which categories are accepted and where the rest go.

    An empty ``categories`` allow-list accepts any category. When
    ``fallback`` is set, a category outside the allow-list is replaced by
    it, and a commit without the delimiter is filed under it whole.
    """

    categories: tuple[str, ...] = ()
    fallback: str | None = None

    @classmethod
    def keep_a_changelog(
        cls, extra: Iterable[str] = (), fallback: str | None = None
    ) -> CategoryPolicy:
        """Allow the Keep a Changelog categories plus ``extra``."""
        merged = list(KEEP_A_CHANGELOG)
        merged.extend(c for c in extra if c not in merged)
        return cls(tuple(merged), fallback)

    def classify(self, category: str) -> str | None:
        """Return the category to file under, or ``None`` to skip."""
        if not self.categories or category in self.categories:
            return category
        return self.fallback


def links_from_pairs(names: Sequence[str], targets: Sequence[str]) -> dict[str, str]:
    """Zip parallel name and target lists into a link table.

    Raises:
        ValueError: The lists differ in length.
    """
    if len(names) != len(targets):
        raise ValueError(
            f"Every link needs a target: got {len(names)} names and {len(targets)} targets"
        )
    return dict(zip(names, targets))


def placeholders(text: str) -> list[str]:
    """Names of all ``[name]`` placeholders in ``text``, in order."""
    return PLACEHOLDER_RE.findall(text)


class FragmentBuilder:
    """Accumulates commits into a ``Fragment``."""

    def __init__(
        self,
        delimiter: str,
        source: MessageSource = MessageSource.SUMMARY,
        policy: CategoryPolicy | None = None,
        links: Mapping[str, str] | None = None,
    ):
        if not delimiter:
            raise ValueError("delimiter must not be empty")
        self.delimiter = delimiter
        self.source = source
        self.policy = policy or CategoryPolicy()
        self.links = dict(links or {})
        self._fragment = Fragment()
        self.skipped = 0

    def add_commit(self, commit: Commit) -> bool:
        """Add ``commit`` if it yields a usable entry; return whether it did."""
        text = message_text(commit, self.source)
        pair = split_message(text, self.delimiter) if text else None

        if pair is None:
            if self.policy.fallback and text:
                return self.add(self.policy.fallback, text, sha=commit.sha)
            self.skipped += 1
            logger.debug("commit.skipped", sha=commit.sha, reason="no_delimiter")
            return False

        category, description = pair
        return self.add(category, description, sha=commit.sha)

    def add(self, category: str, description: str, *, sha: str | None = None) -> bool:
        """Add one entry, applying the category policy and link resolution."""
        category = category.strip()
        description = description.strip()

        target_category = self.policy.classify(category)
        if target_category is None:
            self.skipped += 1
            logger.debug("commit.skipped", sha=sha, reason="category_not_allowed", category=category)
            return False

        self._fragment.add_entry(target_category, ChangeEntry(description))
        for name in placeholders(description):
            if name in self.links:
                self._fragment.add_reference(name, self.links[name])
        return True

    def add_all(self, commits: Iterable[Commit]) -> FragmentBuilder:
        for commit in commits:
            self.add_commit(commit)
        return self

    def build(self) -> Fragment:
        """Return a copy of the fragment built so far."""
        fragment = self._fragment.copy()
        logger.debug(
            "fragment.built",
            categories=len(fragment.changes),
            entries=fragment.entry_count(),
            references=len(fragment.references),
            skipped=self.skipped,
        )
        return fragment


def build_fragment(
    commits: Iterable[Commit],
    delimiter: str,
    source: MessageSource = MessageSource.SUMMARY,
    policy: CategoryPolicy | None = None,
    links: Mapping[str, str] | None = None,
) -> Fragment:
    """One-shot helper: build a fragment from ``commits``."""
    return FragmentBuilder(delimiter, source, policy, links).add_all(commits).build()


__all__ = [
    "KEEP_A_CHANGELOG",
    "CategoryPolicy",
    "FragmentBuilder",
    "build_fragment",
    "links_from_pairs",
    "placeholders",
]
