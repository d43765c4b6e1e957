"""
Tests for utils/ and parsers/frontmatter.py.

Covers:
- parse_date: ISO, relative and weekday forms
- Markup helpers: tag sanitising, link/embed target parsing, mime types
- Frontmatter splitting and tag collection
- error_result codes
"""

import sys
from datetime import date
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from parsers.frontmatter import extract_note_tags, split_frontmatter
from utils.dates import parse_date, require_date
from utils.errors import (
    LineOutOfRangeError,
    NoteExistsError,
    NoteNotFoundError,
    PromptNotFoundError,
    error_result,
)
from utils.markup import (
    get_base_name,
    get_mime_type,
    parse_embed_target,
    parse_link_target,
    sanitize_tag_name,
    wrap_in_node,
)

# A Wednesday
TODAY = date(2026, 2, 11)


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------

class TestParseDate:
    def test_iso(self):
        assert parse_date("2026-02-15", TODAY) == "2026-02-15"

    def test_keywords(self):
        assert parse_date("today", TODAY) == "2026-02-11"
        assert parse_date("Tomorrow", TODAY) == "2026-02-12"

    def test_weekday(self):
        assert parse_date("friday", TODAY) == "2026-02-13"
        assert parse_date("wednesday", TODAY) == "2026-02-18"
        assert parse_date("next friday", TODAY) == "2026-02-20"

    def test_relative(self):
        assert parse_date("in 3 days", TODAY) == "2026-02-14"
        assert parse_date("in 2 weeks", TODAY) == "2026-02-25"

    def test_prose_prefix(self):
        assert parse_date("by 2026-03-01", TODAY) == "2026-03-01"
        assert parse_date("March 15", TODAY) == "2026-03-15"

    def test_unparseable(self):
        assert parse_date("someday", TODAY) is None
        assert parse_date("", TODAY) is None
        with pytest.raises(ValueError):
            require_date("someday", "due")


# ---------------------------------------------------------------------------
# Markup
# ---------------------------------------------------------------------------

class TestMarkup:
    def test_sanitize_tag_name(self):
        assert sanitize_tag_name("Meeting notes.v2") == "Meeting_notes_v2"
        assert sanitize_tag_name("2024 plan") == "_2024_plan"
        assert sanitize_tag_name("???") == "note"
        assert sanitize_tag_name("") == "note"

    def test_wrap_in_node_escapes_attributes(self):
        assert wrap_in_node("tip", "x", {"title": 'a "b" <c>'}) == (
            '\n<tip title="a &quot;b&quot; &lt;c&gt;">\nx\n</tip>\n'
        )

    def test_parse_link_target(self):
        assert parse_link_target("Note") == ("Note", None, None)
        assert parse_link_target("Note#H|Alias") == ("Note", "H", "Alias")
        assert parse_link_target("#H") == ("#H", None, None)

    def test_parse_embed_target(self):
        assert parse_embed_target("a.png|300x200") == ("a.png", 300, 200, None)
        assert parse_embed_target("a.png|cat") == ("a.png", None, None, "cat")
        assert parse_embed_target("a.png") == ("a.png", None, None, None)

    def test_mime_types(self):
        assert get_mime_type("JPG") == "image/jpeg"
        assert get_mime_type(".svg") == "image/svg+xml"
        assert get_mime_type("xyz") == "application/octet-stream"

    def test_base_name(self):
        assert get_base_name("a/b/Note.md") == "Note"
        assert get_base_name(".hidden") == ".hidden"


# ---------------------------------------------------------------------------
# Frontmatter
# ---------------------------------------------------------------------------

class TestFrontmatter:
    def test_split(self):
        fm, body = split_frontmatter("---\ntitle: X\n---\nBody")
        assert fm == {"title": "X"}
        assert body == "Body"

    def test_no_frontmatter(self):
        assert split_frontmatter("Just text") == ({}, "Just text")

    def test_unclosed_block_is_body(self):
        assert split_frontmatter("---\ntitle: X") == ({}, "---\ntitle: X")

    def test_malformed_yaml_ignored(self):
        fm, body = split_frontmatter("---\ntitle: [unclosed\n---\nBody")
        assert fm == {}
        assert body == "Body"

    def test_tags_from_both_sources(self):
        content = "---\ntags: [a, '#b']\n---\nText #c and #a, `#code` [[Note#sec]] #123\n"
        assert extract_note_tags(content) == ["a", "b", "c"]

    def test_string_tags(self):
        assert extract_note_tags("---\ntags: x, y z\n---\n") == ["x", "y", "z"]

    def test_fenced_code_skipped(self):
        assert extract_note_tags("```\n#nope\n```\n#yes") == ["yes"]


# ---------------------------------------------------------------------------
# Error results
# ---------------------------------------------------------------------------

class TestErrorResult:
    def test_codes(self):
        assert error_result(NoteNotFoundError("a.md"))["code"] == "not_found"
        assert error_result(PromptNotFoundError("p"))["code"] == "not_found"
        assert error_result(NoteExistsError("a.md"))["code"] == "exists"
        assert error_result(LineOutOfRangeError(9, 3)) == {
            "error": "Invalid line number: 9 (document has 3 lines)",
            "code": "invalid",
        }
