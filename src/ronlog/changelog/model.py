"""Data models for changelog fragments.

Stability: stable
Tier: none
Since: 0.4.0
Dependencies: stdlib-only
Doc-Types: API_REFERENCE
Tags: changelog, model, dataclass

Pure-stdlib dataclasses for harvested commits, change entries and the
``Fragment`` that groups them by category. ``Fragment`` relies on ``dict``
insertion order for both its categories and its link references, and
compares that order explicitly in ``__eq__``.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field


@dataclass(frozen=True)
class Commit:
    """One commit as read from the repository.

    ``summary`` is the first line of the message, ``body`` the rest
    (possibly empty).
    """

    sha: str
    summary: str
    body: str = ""


@dataclass(frozen=True)
class ChangeEntry:
    """One changelog line; may embed ``[name]`` link placeholders."""

    description: str

    def __str__(self) -> str:
        return self.description


@dataclass
class Fragment:
    """Ordered category -> entries mapping plus link references.

    Categories appear in the order they were first seen; entries keep the
    order they were added in. A category never exists without entries.
    """

    changes: dict[str, list[ChangeEntry]] = field(default_factory=dict)
    references: dict[str, str] = field(default_factory=dict)

    def add_entry(self, category: str, entry: ChangeEntry | str) -> None:
        """Append ``entry`` under ``category``, creating the category if new."""
        if isinstance(entry, str):
            entry = ChangeEntry(entry)
        self.changes.setdefault(category, []).append(entry)

    def add_reference(self, name: str, target: str) -> None:
        """Record a link; an existing name keeps its target."""
        self.references.setdefault(name, target)

    @property
    def categories(self) -> list[str]:
        return list(self.changes)

    def entries(self, category: str) -> list[ChangeEntry]:
        return list(self.changes.get(category, ()))

    def iter_entries(self) -> Iterator[tuple[str, ChangeEntry]]:
        """Yield ``(category, entry)`` pairs in display order."""
        for category, entries in self.changes.items():
            for entry in entries:
                yield category, entry

    def entry_count(self) -> int:
        return sum(len(entries) for entries in self.changes.values())

    def is_empty(self) -> bool:
        return not self.changes

    def copy(self) -> Fragment:
        """Deep-enough copy: new dicts and entry lists, shared immutable entries."""
        return Fragment(
            changes={c: list(entries) for c, entries in self.changes.items()},
            references=dict(self.references),
        )

    def reversed(self) -> Fragment:
        """Copy with each category's entries in reverse (oldest-first) order."""
        return Fragment(
            changes={c: entries[::-1] for c, entries in self.changes.items()},
            references=dict(self.references),
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Fragment):
            return NotImplemented
        return (
            list(self.changes.items()) == list(other.changes.items())
            and list(self.references.items()) == list(other.references.items())
        )
