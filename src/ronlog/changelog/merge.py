"""Fragment merging.

Stability: stable
Tier: none
Since: 0.4.0
Dependencies: stdlib-only
Doc-Types: API_REFERENCE
Tags: changelog, merge, fragment

Combines two fragments without losing or reordering anything already
recorded: existing categories keep their place, incoming entries are
appended after the existing ones, and categories seen only in the
incoming fragment go to the end. Identical entries are kept twice.
Merging is associative.
"""

from __future__ import annotations

from collections.abc import Iterable

from .model import Fragment


def merge_fragments(existing: Fragment, incoming: Fragment) -> Fragment:
    """Return a new fragment holding ``existing`` followed by ``incoming``.

    For link references the existing target wins when both sides define
    the same name.
    """
    merged = existing.copy()
    for category, entries in incoming.changes.items():
        for entry in entries:
            merged.add_entry(category, entry)
    for name, target in incoming.references.items():
        merged.add_reference(name, target)
    return merged


def merge_all(fragments: Iterable[Fragment]) -> Fragment:
    """Fold ``fragments`` left to right into one."""
    result = Fragment()
    for fragment in fragments:
        result = merge_fragments(result, fragment)
    return result


__all__ = ["merge_all", "merge_fragments"]
