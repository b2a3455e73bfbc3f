"""RONLOG: the aggregate, version-sorted changelog document.

Stability: stable
Tier: none
Since: 0.4.0
Dependencies: structlog
Doc-Types: API_REFERENCE, TECHNICAL_DESIGN
Tags: changelog, ronlog, assembler

A ``Ronlog`` holds one section per released version, most recent first.
Inserting a fragment under a version that already has a section merges
into it in place; any other version is inserted at its sorted position.

On disk a RONLOG is a RON document::

    (
      references: {},
      introduction: Some("All notable changes to this project."),
      sections: [
        (
          references: {},
          version: "1.0.0",
          released: "2026-03-01T12:00:00+01:00",
          introduction: None,
          changes: (
            references: {},
            changes: {
              "Added": [
                "source file `a.rs`",
              ],
            },
          ),
        ),
      ],
    )

Usage::

    log = load_ronlog(Path("CHANGELOG.ron"))
    log.insert(Version.parse("0.3.0"), fragment)
    save_ronlog(Path("CHANGELOG.ron"), log)
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from ronlog.core.errors import DuplicateSectionError, EncodingError, MalformedVersionError
from ronlog.core.io import read_text, write_text
from ronlog.core.logging import get_logger

from . import ron
from .merge import merge_fragments
from .model import Fragment
from .render import fragment_from_ron, fragment_to_ron
from .version import Version

logger = get_logger(__name__)


def _now() -> datetime:
    return datetime.now().astimezone().replace(microsecond=0)


@dataclass
class RonlogSection:
    """Changes released under one version."""

    version: Version
    released: datetime
    fragment: Fragment = field(default_factory=Fragment)
    introduction: str | None = None
    references: dict[str, str] = field(default_factory=dict)

    def absorb_references(self) -> None:
        """Move the fragment's link references up into the section."""
        for name, target in self.fragment.references.items():
            self.references.setdefault(name, target)
        self.fragment.references.clear()


@dataclass
class Ronlog:
    """Sections ordered by strictly descending version."""

    sections: list[RonlogSection] = field(default_factory=list)
    references: dict[str, str] = field(default_factory=dict)
    introduction: str | None = None

    @property
    def versions(self) -> list[Version]:
        return [section.version for section in self.sections]

    def is_empty(self) -> bool:
        return not self.sections

    def section(self, version: Version) -> RonlogSection | None:
        for section in self.sections:
            if section.version == version:
                return section
        return None

    def insert(
        self,
        version: Version,
        fragment: Fragment,
        *,
        released: datetime | None = None,
        introduction: str | None = None,
        references: Mapping[str, str] | None = None,
    ) -> RonlogSection:
        """Add ``fragment`` under ``version``.

        An existing section for ``version`` gets ``fragment`` merged after its
        current entries and keeps its release date; a missing section is
        created before the first section with a smaller version.

        Link references, from ``references`` and then from the fragment, are
        kept on the section; a name already present keeps its target.
        """
        existing = self.section(version)
        if existing is not None:
            existing.fragment = merge_fragments(existing.fragment, fragment)
            _add_references(existing, references)
            existing.absorb_references()
            if introduction and not existing.introduction:
                existing.introduction = introduction
            logger.debug("ronlog.section_merged", version=str(version))
            return existing

        section = RonlogSection(
            version=version,
            released=released or _now(),
            fragment=fragment.copy(),
            introduction=introduction,
        )
        _add_references(section, references)
        section.absorb_references()
        position = len(self.sections)
        for index, current in enumerate(self.sections):
            if current.version < version:
                position = index
                break
        self.sections.insert(position, section)
        logger.debug("ronlog.section_inserted", version=str(version), position=position)
        return section

    def verify(self) -> None:
        """Check the descending-order invariant.

        Raises:
            DuplicateSectionError: Two sections share a version or are out of order.
        """
        for newer, older in zip(self.sections, self.sections[1:]):
            if newer.version == older.version:
                raise DuplicateSectionError(
                    f"Two sections for version {newer.version}"
                ).with_context(version=str(newer.version))
            if newer.version < older.version:
                raise DuplicateSectionError(
                    f"Section {newer.version} is listed before {older.version}"
                ).with_context(version=str(newer.version))

    def to_ron(self) -> str:
        """Serialize the whole document, most recent section first."""
        self.verify()
        return ron.dumps(
            ron.RonStruct(
                references=dict(self.references),
                introduction=_option(self.introduction),
                sections=[
                    ron.RonStruct(
                        references=dict(section.references),
                        version=str(section.version),
                        released=section.released.isoformat(),
                        introduction=_option(section.introduction),
                        changes=fragment_to_ron(section.fragment),
                    )
                    for section in self.sections
                ],
            )
        )

    @classmethod
    def from_ron(cls, text: str) -> Ronlog:
        """Parse a RONLOG document.

        Sections are re-inserted one by one, so a hand-edited file with
        duplicated or unsorted versions comes back normalized.

        Raises:
            EncodingError: ``text`` is not a RONLOG document.
        """
        value = ron.loads(text)
        if not isinstance(value, dict):
            raise EncodingError("RONLOG must be a struct")
        _reject_unknown(value, _DOCUMENT_FIELDS, "RONLOG")

        references = _references(value.get("references", {}), "RONLOG references")
        introduction = value.get("introduction")
        if introduction is not None and not isinstance(introduction, str):
            raise EncodingError("RONLOG introduction must be a string")
        sections = value.get("sections", [])
        if not isinstance(sections, list):
            raise EncodingError("RONLOG sections must be a list")

        log = cls(references=references, introduction=introduction)
        for raw in sections:
            section = _section_from_ron(raw)
            log.insert(
                section.version,
                section.fragment,
                released=section.released,
                introduction=section.introduction,
                references=section.references,
            )
        return log


_DOCUMENT_FIELDS = frozenset({"references", "introduction", "sections"})
_SECTION_FIELDS = frozenset({"references", "version", "released", "introduction", "changes"})


def _add_references(section: RonlogSection, references: Mapping[str, str] | None) -> None:
    for name, target in (references or {}).items():
        section.references.setdefault(name, target)


def _option(value: str | None) -> Any:
    return None if value is None else ron.Some(value)


def _reject_unknown(value: dict[str, Any], allowed: frozenset[str], what: str) -> None:
    unknown = set(value) - allowed
    if unknown:
        raise EncodingError(f"Unknown {what} fields: {', '.join(sorted(unknown))}")


def _references(value: Any, what: str) -> dict[str, str]:
    if not isinstance(value, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in value.items()
    ):
        raise EncodingError(f"{what} must map strings to strings")
    return dict(value)


def _section_from_ron(raw: Any) -> RonlogSection:
    if not isinstance(raw, dict):
        raise EncodingError("RONLOG section must be a struct")
    _reject_unknown(raw, _SECTION_FIELDS, "section")
    for required in ("version", "released", "changes"):
        if required not in raw:
            raise EncodingError(f"RONLOG section is missing {required!r}")

    version_text = raw["version"]
    if not isinstance(version_text, str):
        raise EncodingError(f"Section version must be a string, got {version_text!r}")
    try:
        version = Version.parse(version_text)
    except MalformedVersionError as exc:
        raise EncodingError(str(exc), cause=exc).with_context(version=version_text) from exc

    try:
        released = datetime.fromisoformat(raw["released"])
    except (TypeError, ValueError) as exc:
        raise EncodingError(
            f"Section {version_text} has an invalid release date {raw['released']!r}", cause=exc
        ).with_context(version=version_text) from exc

    introduction = raw.get("introduction")
    if introduction is not None and not isinstance(introduction, str):
        raise EncodingError(f"Section {version_text} introduction must be a string")

    try:
        references = _references(raw.get("references", {}), "Section references")
        fragment = fragment_from_ron(raw["changes"])
    except EncodingError as exc:
        exc.with_context(version=version_text)
        raise
    return RonlogSection(version, released, fragment, introduction, references)


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------


def load_ronlog(path: Path) -> Ronlog:
    """Read a RONLOG file.

    Raises:
        StorageError: The file cannot be read.
        EncodingError: The file is not a RONLOG document.
    """
    text = read_text(path)
    try:
        return Ronlog.from_ron(text)
    except EncodingError as exc:
        exc.with_context(path=str(path))
        raise


def save_ronlog(path: Path, log: Ronlog) -> None:
    """Atomically write ``log`` to ``path``."""
    write_text(path, log.to_ron())
    logger.info("ronlog.saved", path=str(path), sections=len(log.sections))


def init_ronlog(path: Path, introduction: str | None = None, *, force: bool = False) -> bool:
    """Create an empty RONLOG at ``path``.

    Returns False, leaving the file alone, when it already exists and
    ``force`` is not set.
    """
    path = Path(path)
    if path.exists() and not force:
        logger.warning("ronlog.init_skipped", path=str(path), reason="exists")
        return False
    save_ronlog(path, Ronlog(introduction=introduction))
    return True


__all__ = [
    "Ronlog",
    "RonlogSection",
    "init_ronlog",
    "load_ronlog",
    "save_ronlog",
]
