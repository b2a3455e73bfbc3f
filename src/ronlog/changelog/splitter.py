"""Split commit messages into ``(category, description)`` pairs.

Stability: stable
Tier: none
Since: 0.4.0
Dependencies: stdlib-only
Doc-Types: API_REFERENCE
Tags: changelog, parser, commit

A message such as ``Added ::= source file `a.rs``` splits on the first
occurrence of the delimiter into ``("Added", "source file `a.rs`")``.
Both halves are trimmed; later delimiter occurrences stay in the
description.
"""

from __future__ import annotations

from enum import Enum

from .model import Commit


class MessageSource(str, Enum):
    """Which part of the commit message is split."""

    SUMMARY = "summary"
    BODY = "body"


def message_text(commit: Commit, source: MessageSource) -> str:
    """Return the trimmed part of ``commit`` selected by ``source``."""
    text = commit.body if source is MessageSource.BODY else commit.summary
    return text.strip()


def split_message(text: str, delimiter: str) -> tuple[str, str] | None:
    """Split ``text`` at the first ``delimiter``.

    Returns ``None`` when the delimiter does not occur.

    Raises:
        ValueError: ``delimiter`` is empty.
    """
    if not delimiter:
        raise ValueError("delimiter must not be empty")
    category, sep, description = text.strip().partition(delimiter)
    if not sep:
        return None
    return category.strip(), description.strip()


def split_commit(
    commit: Commit,
    delimiter: str,
    source: MessageSource = MessageSource.SUMMARY,
) -> tuple[str, str] | None:
    """Split the chosen part of ``commit``; ``None`` if it has no delimiter."""
    text = message_text(commit, source)
    if not text:
        return None
    return split_message(text, delimiter)


__all__ = ["MessageSource", "message_text", "split_commit", "split_message"]
