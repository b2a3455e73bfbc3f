"""Tests for ronlog.changelog.version."""

from __future__ import annotations

import pytest

from ronlog.changelog.version import Version, VersionRange, compare, strip_tag_prefix
from ronlog.core.errors import ErrorCategory, MalformedVersionError


class TestVersionParse:
    """Strict MAJOR.MINOR.PATCH parsing."""

    def test_plain_triple(self):
        v = Version.parse("1.2.3")
        assert (v.major, v.minor, v.patch) == (1, 2, 3)
        assert str(v) == "1.2.3"

    def test_zero_version(self):
        assert Version.parse("0.0.0") == Version(0, 0, 0)

    def test_prerelease_and_build_kept_for_display(self):
        v = Version.parse("2.0.0-rc.1+build.5")
        assert v.prerelease == "rc.1"
        assert v.build == "build.5"
        assert str(v) == "2.0.0-rc.1+build.5"

    @pytest.mark.parametrize(
        "text",
        ["1.2", "1.2.3.4", "1.x.3", "", "v1.2.3", "V1.2.3", "1..3", " 1.2.3", "1.2.3\n", "1.2.3-"],
    )
    def test_malformed(self, text):
        with pytest.raises(MalformedVersionError) as exc_info:
            Version.parse(text)
        assert exc_info.value.text == text
        assert exc_info.value.category == ErrorCategory.VALIDATION

    def test_error_names_offending_text(self):
        with pytest.raises(MalformedVersionError, match="1.2.3.4"):
            Version.parse("1.2.3.4")

    def test_segment_count_reason(self):
        with pytest.raises(MalformedVersionError) as exc_info:
            Version.parse("1.2")
        assert "expected 3 segments, found 2" in str(exc_info.value)

    def test_strip_tag_prefix_then_parse(self):
        assert Version.parse(strip_tag_prefix("v1.2.3")) == Version(1, 2, 3)
        assert strip_tag_prefix("1.2.3") == "1.2.3"


class TestVersionOrdering:
    """Ordering is numeric on the triple only."""

    def test_numeric_not_lexicographic(self):
        assert Version.parse("1.10.0") > Version.parse("1.9.0")
        assert Version.parse("0.2.10") > Version.parse("0.2.9")

    def test_major_dominates(self):
        assert Version.parse("2.0.0") > Version.parse("1.99.99")

    def test_labels_ignored_for_ordering_and_equality(self):
        assert Version.parse("1.0.0-alpha") == Version.parse("1.0.0")
        assert not Version.parse("1.0.0-alpha") < Version.parse("1.0.0")

    def test_compare_is_three_way(self):
        a, b = Version(1, 0, 0), Version(0, 3, 0)
        assert compare(a, b) == 1
        assert compare(b, a) == -1
        assert compare(a, Version(1, 0, 0)) == 0

    def test_sorting(self):
        versions = [Version.parse(t) for t in ["0.2.0", "1.0.0", "0.10.0", "0.3.0"]]
        assert [str(v) for v in sorted(versions, reverse=True)] == [
            "1.0.0", "0.10.0", "0.3.0", "0.2.0",
        ]

    def test_hashable(self):
        assert len({Version(1, 2, 3), Version.parse("1.2.3")}) == 1


class TestVersionIncrement:
    def test_major_resets_lower(self):
        assert Version(1, 4, 7).increment(VersionRange.MAJOR) == Version(2, 0, 0)

    def test_minor_resets_patch(self):
        assert Version(1, 4, 7).increment(VersionRange.MINOR) == Version(1, 5, 0)

    def test_patch(self):
        assert Version(1, 4, 7).increment(VersionRange.PATCH) == Version(1, 4, 8)

    def test_labels_dropped(self):
        bumped = Version.parse("1.0.0-rc.1").increment(VersionRange.PATCH)
        assert str(bumped) == "1.0.1"

    def test_range_parse(self):
        assert VersionRange.parse("Minor") is VersionRange.MINOR
        with pytest.raises(ValueError, match="Unknown version range"):
            VersionRange.parse("micro")

    def test_tag(self):
        assert Version(0, 3, 0).tag == "v0.3.0"
