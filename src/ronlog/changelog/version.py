"""Semantic version triples.

Stability: stable
Tier: none
Since: 0.4.0
Dependencies: stdlib-only
Doc-Types: API_REFERENCE
Tags: changelog, version, semver

``Version`` is an immutable ``MAJOR.MINOR.PATCH`` triple ordered
numerically. Optional pre-release and build labels are kept for display
but take no part in ordering or equality.

Parsing is strict: a leading ``v``, a missing or extra segment, or a
non-numeric segment raises ``MalformedVersionError``. Tag names such as
``v1.2.3`` go through ``strip_tag_prefix`` first.

Usage::

    from ronlog.changelog.version import Version, VersionRange

    v = Version.parse("1.2.3")
    assert v < Version.parse("1.10.0")
    assert str(v.increment(VersionRange.MINOR)) == "1.3.0"
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum

from ronlog.core.errors import MalformedVersionError

_VERSION_RE = re.compile(
    r"(?P<major>[0-9]+)\.(?P<minor>[0-9]+)\.(?P<patch>[0-9]+)"
    r"(?:-(?P<prerelease>[0-9A-Za-z.-]+))?"
    r"(?:\+(?P<build>[0-9A-Za-z.-]+))?"
)


class VersionRange(Enum):
    """Which component ``Version.increment`` bumps."""

    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"

    @classmethod
    def parse(cls, text: str) -> VersionRange:
        try:
            return cls(text.strip().lower())
        except ValueError:
            valid = ", ".join(r.value for r in cls)
            raise ValueError(f"Unknown version range {text!r}; expected one of {valid}") from None


@dataclass(frozen=True, order=True)
class Version:
    """A ``MAJOR.MINOR.PATCH`` version."""

    major: int
    minor: int
    patch: int
    prerelease: str | None = field(default=None, compare=False)
    build: str | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        for name in ("major", "minor", "patch"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")

    @classmethod
    def parse(cls, text: str) -> Version:
        """Parse ``MAJOR.MINOR.PATCH[-PRERELEASE][+BUILD]``.

        Raises:
            MalformedVersionError: ``text`` deviates from that grammar.
        """
        if not isinstance(text, str) or not text:
            raise MalformedVersionError(str(text), "empty version")
        if text[0] in "vV":
            raise MalformedVersionError(text, "leading 'v' is not part of a version")

        match = _VERSION_RE.fullmatch(text)
        if match is None:
            core = re.split(r"[-+]", text, maxsplit=1)[0]
            segments = core.split(".")
            if len(segments) != 3:
                reason = f"expected 3 segments, found {len(segments)}"
            elif all(s.isdigit() for s in segments):
                reason = "invalid pre-release or build label"
            else:
                reason = "segments must be decimal numbers"
            raise MalformedVersionError(text, reason)

        return cls(
            int(match["major"]),
            int(match["minor"]),
            int(match["patch"]),
            prerelease=match["prerelease"],
            build=match["build"],
        )

    def increment(self, part: VersionRange) -> Version:
        """Return the next version; lower components reset to zero, labels drop."""
        if part is VersionRange.MAJOR:
            return Version(self.major + 1, 0, 0)
        if part is VersionRange.MINOR:
            return Version(self.major, self.minor + 1, 0)
        return Version(self.major, self.minor, self.patch + 1)

    @property
    def tag(self) -> str:
        """Git tag name, e.g. ``v1.2.3``."""
        return f"v{self}"

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += f"-{self.prerelease}"
        if self.build:
            text += f"+{self.build}"
        return text


def compare(a: Version, b: Version) -> int:
    """Three-way comparison: -1, 0 or 1."""
    return (a > b) - (a < b)


def strip_tag_prefix(text: str) -> str:
    """Drop one leading ``v`` from a tag name (``v1.2.3`` -> ``1.2.3``)."""
    if text[:1] in ("v", "V"):
        return text[1:]
    return text


__all__ = ["Version", "VersionRange", "compare", "strip_tag_prefix"]
