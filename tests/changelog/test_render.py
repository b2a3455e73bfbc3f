"""Tests for ronlog.changelog.render."""

from __future__ import annotations

import textwrap
from datetime import datetime

import pytest

from ronlog.changelog.model import Fragment
from ronlog.changelog.render import (
    Encoding,
    fragment_file_name,
    parse_fragment,
    render_fragment,
)
from ronlog.core.errors import EncodingError


@pytest.fixture
def fragment() -> Fragment:
    f = Fragment()
    f.add_entry("Added", "source file `a.rs`, see [issue-3]")
    f.add_entry("Added", "source file `b.rs`")
    f.add_entry("Fixed", "known bug in `d.rs` [unknown]")
    f.add_reference("issue-3", "https://example.org/issues/3")
    return f


class TestMarkdown:
    def test_layout(self, fragment):
        text = render_fragment(fragment, Encoding.MARKDOWN, heading_level=3)
        assert text == textwrap.dedent("""\
            ### Added

            - source file `a.rs`, see [issue-3]
            - source file `b.rs`

            ### Fixed

            - known bug in `d.rs` [unknown]

            [issue-3]: https://example.org/issues/3
            """)

    def test_heading_level(self, fragment):
        text = render_fragment(fragment, Encoding.MARKDOWN, heading_level=1)
        assert text.startswith("# Added\n")

    def test_multiline_entry_is_indented(self):
        f = Fragment()
        f.add_entry("Changed", "first line\nsecond line")
        assert "- first line\n  second line\n" in render_fragment(f, Encoding.MARKDOWN)

    def test_read_back(self, fragment):
        text = render_fragment(fragment, Encoding.MARKDOWN)
        assert parse_fragment(text, Encoding.MARKDOWN) == fragment

    def test_read_back_multiline(self):
        f = Fragment()
        f.add_entry("Changed", "first line\n\nafter a blank line")
        text = render_fragment(f, Encoding.MARKDOWN)
        assert parse_fragment(text, Encoding.MARKDOWN) == f

    def test_foreign_markdown_rejected(self):
        with pytest.raises(EncodingError) as exc_info:
            parse_fragment("# Title\n\nSome paragraph.\n", Encoding.MARKDOWN)
        assert exc_info.value.line == 3
        assert exc_info.value.context.encoding == "md"

    def test_entry_before_heading_rejected(self):
        with pytest.raises(EncodingError, match="outside of a category"):
            parse_fragment("- orphan\n", Encoding.MARKDOWN)


class TestRestructuredText:
    def test_layout(self, fragment):
        text = render_fragment(fragment, Encoding.RST, heading_level=3)
        assert text == textwrap.dedent("""\
            Added
            .....

            - source file `a.rs`, see `issue-3`_
            - source file `b.rs`

            Fixed
            .....

            - known bug in `d.rs` [unknown]

            .. _issue-3: https://example.org/issues/3
            """)

    @pytest.mark.parametrize("level,char", [(1, "="), (2, "-"), (3, ".")])
    def test_underline_matches_title_length(self, level, char):
        f = Fragment()
        f.add_entry("Security", "tightened permissions")
        lines = render_fragment(f, Encoding.RST, heading_level=level).splitlines()
        assert lines[:2] == ["Security", char * len("Security")]

    def test_read_back_restores_placeholders(self, fragment):
        text = render_fragment(fragment, Encoding.RST)
        parsed = parse_fragment(text, Encoding.RST)
        assert parsed == fragment
        assert parsed.entries("Added")[0].description.endswith("[issue-3]")

    def test_foreign_rst_rejected(self):
        with pytest.raises(EncodingError):
            parse_fragment("Title\n=====\n\nA paragraph.\n", Encoding.RST)


class TestRon:
    def test_layout(self, fragment):
        text = render_fragment(fragment, Encoding.RON)
        assert text == textwrap.dedent("""\
            (
              references: {
                "issue-3": "https://example.org/issues/3",
              },
              changes: {
                "Added": [
                  "source file `a.rs`, see [issue-3]",
                  "source file `b.rs`",
                ],
                "Fixed": [
                  "known bug in `d.rs` [unknown]",
                ],
              },
            )
            """)

    def test_round_trip_preserves_order(self):
        f = Fragment()
        for category in ["Zeta", "Alpha", "Mid"]:
            f.add_entry(category, f"{category} \"quoted\" \\ entry\nwith newline")
        f.add_reference("z", "https://z")
        f.add_reference("a", "https://a")
        parsed = parse_fragment(render_fragment(f, Encoding.RON), Encoding.RON)
        assert parsed == f
        assert parsed.categories == ["Zeta", "Alpha", "Mid"]
        assert list(parsed.references) == ["z", "a"]

    def test_empty_fragment(self):
        text = render_fragment(Fragment(), Encoding.RON)
        assert text == "(\n  references: {},\n  changes: {},\n)\n"
        assert parse_fragment(text, Encoding.RON).is_empty()

    def test_wrong_shape_rejected(self):
        with pytest.raises(EncodingError, match="Unknown fragment fields"):
            parse_fragment('(version: "1.0.0")', Encoding.RON)
        with pytest.raises(EncodingError, match="list of strings"):
            parse_fragment('(references: {}, changes: {"Added": "x"})', Encoding.RON)

    def test_empty_category_not_materialized(self):
        parsed = parse_fragment('(references: {}, changes: {"Added": []})', Encoding.RON)
        assert parsed.is_empty()


class TestRenderOptions:
    def test_heading_level_out_of_range(self, fragment):
        with pytest.raises(ValueError, match="heading_level"):
            render_fragment(fragment, Encoding.MARKDOWN, heading_level=4)

    def test_empty_fragment_markup_is_empty(self):
        assert render_fragment(Fragment(), Encoding.MARKDOWN) == ""
        assert render_fragment(Fragment(), Encoding.RST) == ""

    @pytest.mark.parametrize("encoding", list(Encoding))
    def test_empty_category_and_description_read_back(self, encoding):
        f = Fragment()
        f.add_entry("", "orphan description")
        f.add_entry("Added", "")
        f.add_entry("", "second orphan")
        assert parse_fragment(render_fragment(f, encoding), encoding) == f

    def test_empty_category_markup(self):
        f = Fragment()
        f.add_entry("", "orphan")
        assert render_fragment(f, Encoding.MARKDOWN) == "###\n\n- orphan\n"
        assert render_fragment(f, Encoding.RST) == "..\n\n- orphan\n"

    def test_encoding_from_path(self, tmp_path):
        assert Encoding.from_path(tmp_path / "x.md") is Encoding.MARKDOWN
        with pytest.raises(ValueError):
            Encoding.from_path(tmp_path / "x.txt")


class TestFragmentFileName:
    def test_canonical_name(self):
        name = fragment_file_name(
            datetime(2026, 3, 14, 15, 9, 26), "Jane Doe", "feature/ron-log", Encoding.RST
        )
        assert name == "20260314_150926_Jane_Doe_feature_ron_log.rst"

    def test_branch_runs_collapse(self):
        name = fragment_file_name(datetime(2026, 1, 1), "x", "fix//weird--name__", Encoding.RON)
        assert name == "20260101_000000_x_fix_weird_name.ron"

    def test_same_second_collides(self):
        ts = datetime(2026, 3, 14, 15, 9, 26, 1)
        later = datetime(2026, 3, 14, 15, 9, 26, 999_999)
        assert fragment_file_name(ts, "a", "main") == fragment_file_name(later, "a", "main")

    def test_extension_follows_encoding(self):
        ts = datetime(2026, 1, 1)
        assert fragment_file_name(ts, "a", "main", Encoding.MARKDOWN).endswith(".md")
