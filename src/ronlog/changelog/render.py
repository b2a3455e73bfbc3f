"""Fragment rendering and parsing for reStructuredText, Markdown and RON.

Stability: stable
Tier: none
Since: 0.4.0
Dependencies: stdlib-only
Doc-Types: API_REFERENCE, TECHNICAL_DESIGN
Tags: changelog, renderer, markdown, rst, ron

Each encoding is a pair of plain functions (writer, reader) looked up in
a table keyed by ``Encoding``. Markup output lists categories in fragment
order, one bullet per entry, followed by a trailing block of link
definitions. RON output is lossless.

The markup readers only understand the layout the writers produce; they
exist so a fragment file can be merged with a second run that lands on the
same file name.

Output shape (Markdown, heading level 3)::

    ### Added

    - source file `a.rs`, see [issue-3]

    [issue-3]: https://example.org/issues/3

Output shape (reStructuredText, heading level 3)::

    Added
    .....

    - source file `a.rs`, see `issue-3`_

    .. _issue-3: https://example.org/issues/3

Usage::

    text = render_fragment(fragment, Encoding.MARKDOWN, heading_level=2)
    same = parse_fragment(text, Encoding.MARKDOWN)
"""

from __future__ import annotations

import re
from collections.abc import Callable
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from ronlog.core.errors import EncodingError

from . import ron
from .builder import PLACEHOLDER_RE
from .model import ChangeEntry, Fragment


class Encoding(str, Enum):
    """Fragment file formats; the value doubles as the file extension."""

    RST = "rst"
    MARKDOWN = "md"
    RON = "ron"

    @property
    def extension(self) -> str:
        return self.value

    @classmethod
    def from_path(cls, path: Path) -> Encoding:
        suffix = Path(path).suffix.lstrip(".").lower()
        try:
            return cls(suffix)
        except ValueError:
            raise ValueError(f"No fragment encoding for {path}") from None


_RST_UNDERLINES = {1: "=", 2: "-", 3: "."}
_MIN_HEADING, _MAX_HEADING = 1, 3

_MD_HEADING_RE = re.compile(r"(#{1,6})(?:[ \t]+(.*?))?[ \t]*")
_MD_LINK_RE = re.compile(r"\[([^\[\]\n]+)\]:\s+(\S.*?)\s*")
_RST_LINK_RE = re.compile(r"\.\. _([^:\n]+):\s+(\S.*?)\s*")
_RST_UNDERLINE_RE = re.compile(r"([=\-.~^\"'`#*+])\1*")
_RST_REFERENCE_RE = re.compile(r"`([^`\n]+)`_")

_INDENT = "  "
_RST_EMPTY_TITLE = ".."


# ---------------------------------------------------------------------------
# RON value mapping (shared with the RONLOG assembler)
# ---------------------------------------------------------------------------


def fragment_to_ron(fragment: Fragment) -> ron.RonStruct:
    """Map a fragment onto the RON value written to disk."""
    return ron.RonStruct(
        references=dict(fragment.references),
        changes={
            category: [entry.description for entry in entries]
            for category, entries in fragment.changes.items()
        },
    )


def fragment_from_ron(value: Any) -> Fragment:
    """Rebuild a fragment from a decoded RON value.

    Raises:
        EncodingError: The value does not have the fragment shape.
    """
    if not isinstance(value, dict):
        raise EncodingError("Fragment must be a struct with references and changes")
    unknown = set(value) - {"references", "changes"}
    if unknown:
        raise EncodingError(f"Unknown fragment fields: {', '.join(sorted(unknown))}")

    references = value.get("references", {})
    changes = value.get("changes", {})
    if not isinstance(references, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in references.items()
    ):
        raise EncodingError("Fragment references must map strings to strings")
    if not isinstance(changes, dict):
        raise EncodingError("Fragment changes must be a map")

    fragment = Fragment()
    for category, entries in changes.items():
        if not isinstance(category, str) or not isinstance(entries, list):
            raise EncodingError(f"Category {category!r} must map to a list of strings")
        for entry in entries:
            if not isinstance(entry, str):
                raise EncodingError(f"Entry {entry!r} in {category!r} is not a string")
            fragment.add_entry(category, ChangeEntry(entry))
    for name, target in references.items():
        fragment.add_reference(name, target)
    return fragment


# ---------------------------------------------------------------------------
# Writers
# ---------------------------------------------------------------------------


def _bullet(description: str) -> str:
    return "- " + description.replace("\n", "\n" + _INDENT)


def _render_markdown(fragment: Fragment, heading_level: int) -> str:
    lines: list[str] = []
    for category, entries in fragment.changes.items():
        lines.append(f"{'#' * heading_level} {category}".rstrip())
        lines.append("")
        lines.extend(_bullet(entry.description) for entry in entries)
        lines.append("")
    if fragment.references:
        lines.extend(f"[{name}]: {target}" for name, target in fragment.references.items())
        lines.append("")
    return "\n".join(lines)


def _rst_links(description: str, references: dict[str, str]) -> str:
    def replace(match: re.Match[str]) -> str:
        name = match.group(1)
        return f"`{name}`_" if name in references else match.group(0)

    return PLACEHOLDER_RE.sub(replace, description)


def _render_rst(fragment: Fragment, heading_level: int) -> str:
    underline = _RST_UNDERLINES[heading_level]
    lines: list[str] = []
    for category, entries in fragment.changes.items():
        if category:
            lines.append(category)
            lines.append(underline * len(category))
        else:
            lines.append(_RST_EMPTY_TITLE)
        lines.append("")
        lines.extend(
            _bullet(_rst_links(entry.description, fragment.references)) for entry in entries
        )
        lines.append("")
    if fragment.references:
        lines.extend(f".. _{name}: {target}" for name, target in fragment.references.items())
        lines.append("")
    return "\n".join(lines)


def _render_ron(fragment: Fragment, heading_level: int) -> str:
    return ron.dumps(fragment_to_ron(fragment))


# ---------------------------------------------------------------------------
# Readers
# ---------------------------------------------------------------------------


class _EntryCollector:
    """Accumulates bullets and continuation lines while reading markup."""

    def __init__(self) -> None:
        self.fragment = Fragment()
        self.category: str | None = None
        self._lines: list[str] | None = None

    def heading(self, category: str) -> None:
        self.close()
        self.category = category

    def bullet(self, text: str, line_no: int) -> None:
        self.close()
        if self.category is None:
            raise EncodingError("Entry outside of a category", line=line_no)
        self._lines = [text]

    def continuation(self, text: str) -> bool:
        if self._lines is None:
            return False
        self._lines.append(text)
        return True

    def close(self) -> None:
        if self._lines is not None and self.category is not None:
            self.fragment.add_entry(self.category, ChangeEntry("\n".join(self._lines)))
        self._lines = None


def _parse_markdown(text: str) -> Fragment:
    collector = _EntryCollector()
    references: dict[str, str] = {}
    for line_no, line in enumerate(text.replace("\r\n", "\n").split("\n"), start=1):
        if line.startswith(_INDENT) and collector.continuation(line[len(_INDENT):]):
            continue
        if not line.strip():
            collector.close()
            continue
        if line.startswith("- "):
            collector.bullet(line[2:], line_no)
            continue
        heading = _MD_HEADING_RE.fullmatch(line)
        if heading:
            collector.heading(heading.group(2) or "")
            continue
        link = _MD_LINK_RE.fullmatch(line)
        if link:
            collector.close()
            references.setdefault(link.group(1), link.group(2))
            continue
        raise EncodingError(f"Unrecognized Markdown line {line!r}", line=line_no)
    collector.close()

    fragment = collector.fragment
    for name, target in references.items():
        fragment.add_reference(name, target)
    return fragment


def _parse_rst(text: str) -> Fragment:
    collector = _EntryCollector()
    references: dict[str, str] = {}
    lines = text.replace("\r\n", "\n").split("\n")
    index = 0
    while index < len(lines):
        line = lines[index]
        line_no = index + 1
        index += 1
        if line.startswith(_INDENT) and collector.continuation(line[len(_INDENT):]):
            continue
        if not line.strip():
            collector.close()
            continue
        link = _RST_LINK_RE.fullmatch(line)
        if link:
            collector.close()
            references.setdefault(link.group(1), link.group(2))
            continue
        if (
            index < len(lines)
            and not line.startswith((" ", "- "))
            and _RST_UNDERLINE_RE.fullmatch(lines[index])
            and len(lines[index]) >= len(line.strip())
        ):
            collector.heading(line.strip())
            index += 1
            continue
        if line == _RST_EMPTY_TITLE:
            collector.heading("")
            continue
        if line.startswith("- "):
            collector.bullet(line[2:], line_no)
            continue
        raise EncodingError(f"Unrecognized reStructuredText line {line!r}", line=line_no)
    collector.close()

    def restore(match: re.Match[str]) -> str:
        name = match.group(1)
        return f"[{name}]" if name in references else match.group(0)

    fragment = Fragment()
    for category, entry in collector.fragment.iter_entries():
        fragment.add_entry(category, _RST_REFERENCE_RE.sub(restore, entry.description))
    for name, target in references.items():
        fragment.add_reference(name, target)
    return fragment


def _parse_ron(text: str) -> Fragment:
    return fragment_from_ron(ron.loads(text))


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

_WRITERS: dict[Encoding, Callable[[Fragment, int], str]] = {
    Encoding.RST: _render_rst,
    Encoding.MARKDOWN: _render_markdown,
    Encoding.RON: _render_ron,
}

_READERS: dict[Encoding, Callable[[str], Fragment]] = {
    Encoding.RST: _parse_rst,
    Encoding.MARKDOWN: _parse_markdown,
    Encoding.RON: _parse_ron,
}


def render_fragment(
    fragment: Fragment,
    encoding: Encoding = Encoding.RST,
    heading_level: int = 3,
) -> str:
    """Render ``fragment`` in ``encoding``.

    ``heading_level`` (1-3) only affects the markup encodings.

    Raises:
        ValueError: ``heading_level`` is out of range.
    """
    if not _MIN_HEADING <= heading_level <= _MAX_HEADING:
        raise ValueError(
            f"heading_level must be between {_MIN_HEADING} and {_MAX_HEADING}, got {heading_level}"
        )
    return _WRITERS[Encoding(encoding)](fragment, heading_level)


def parse_fragment(text: str, encoding: Encoding = Encoding.RON) -> Fragment:
    """Parse fragment text previously written by ``render_fragment``.

    Raises:
        EncodingError: ``text`` is not a fragment in ``encoding``.
    """
    encoding = Encoding(encoding)
    try:
        return _READERS[encoding](text)
    except EncodingError as exc:
        exc.with_context(encoding=encoding.value)
        raise


# ---------------------------------------------------------------------------
# File names
# ---------------------------------------------------------------------------


def _sanitize_user(user: str) -> str:
    return re.sub(r"[\s/\\]", "_", user.strip()) or "unknown"


def _sanitize_branch(branch: str) -> str:
    return re.sub(r"[^0-9A-Za-z]+", "_", branch).strip("_") or "HEAD"


def fragment_file_name(
    timestamp: datetime,
    user: str,
    branch: str,
    encoding: Encoding = Encoding.RST,
) -> str:
    """Canonical fragment file name.

    ``YYYYmmdd_HHMMSS_<user>_<branch>.<ext>``: spaces in the user name
    become ``_`` and every run of non-alphanumeric characters in the branch
    collapses to a single ``_``.

    >>> fragment_file_name(datetime(2026, 1, 2, 3, 4, 5), "Jane Doe", "feature/new-thing", Encoding.MARKDOWN)
    '20260102_030405_Jane_Doe_feature_new_thing.md'
    """
    stamp = timestamp.strftime("%Y%m%d_%H%M%S")
    return f"{stamp}_{_sanitize_user(user)}_{_sanitize_branch(branch)}.{Encoding(encoding).extension}"


__all__ = [
    "Encoding",
    "fragment_file_name",
    "fragment_from_ron",
    "fragment_to_ron",
    "parse_fragment",
    "render_fragment",
]
