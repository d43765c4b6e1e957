"""
Tests for prompts/scanner.py and prompts/merger.py.

Covers:
- Every per-construct scanner (positions, raw text, parsed content)
- Image vs embed classification
- Overlap resolution: earliest start wins, ties go to the earlier scanner
- merge_segments coverage: segments tile the note exactly
- keep_blank_gaps=False drops whitespace-only gaps
"""

import sys
from pathlib import Path

# Add src to path so imports work without installation
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from models.segment import SegmentKind
from prompts.merger import drop_overlaps, merge_segments
from prompts.scanner import (
    scan_callouts,
    scan_code_blocks,
    scan_embeds,
    scan_links,
    scan_queries,
    scan_segments,
    scan_variables,
)


def _merged(content, **kwargs):
    return merge_segments(content, scan_segments(content), **kwargs)


# ---------------------------------------------------------------------------
# Scanners
# ---------------------------------------------------------------------------

class TestScanVariables:
    def test_names_and_positions(self):
        content = "Hi {{name}}!"
        [seg] = scan_variables(content)
        assert seg.kind == SegmentKind.VARIABLE
        assert seg.content.name == "name"
        assert seg.content.default is None
        assert (seg.start, seg.end) == (3, 11)
        assert seg.raw == "{{name}}"

    def test_inner_whitespace_and_default(self):
        segs = scan_variables("{{ topic }} {{tone|friendly and brief}}")
        assert [s.content.name for s in segs] == ["topic", "tone"]
        assert segs[1].content.default == "friendly and brief"

    def test_not_a_variable(self):
        assert scan_variables("{{two words}} {single}") == []


class TestScanLinks:
    def test_plain(self):
        [seg] = scan_links("See [[Other]].")
        assert seg.content.path == "Other"
        assert seg.content.section is None
        assert seg.raw == "[[Other]]"

    def test_section_and_alias(self):
        [seg] = scan_links("[[Folder/Note#Setup|the setup]]")
        assert seg.content.path == "Folder/Note"
        assert seg.content.section == "Setup"
        assert seg.content.alias == "the setup"


class TestScanEmbeds:
    def test_image_with_dimensions(self):
        [seg] = scan_embeds("![[img/cat.png|300x200]]")
        assert seg.kind == SegmentKind.IMAGE
        assert seg.content.path == "img/cat.png"
        assert (seg.content.width, seg.content.height) == (300, 200)

    def test_image_width_only(self):
        [seg] = scan_embeds("![[cat.JPG|120]]")
        assert seg.kind == SegmentKind.IMAGE
        assert seg.content.width == 120
        assert seg.content.height is None

    def test_image_alt(self):
        [seg] = scan_embeds("![[cat.png|A sleepy cat]]")
        assert seg.content.alt == "A sleepy cat"

    def test_note_embed(self):
        [seg] = scan_embeds("![[Other#Part]]")
        assert seg.kind == SegmentKind.EMBED
        assert seg.content.path == "Other"
        assert seg.content.section == "Part"

    def test_pdf_is_an_embed(self):
        [seg] = scan_embeds("![[paper.pdf]]")
        assert seg.kind == SegmentKind.EMBED


class TestScanCallouts:
    CONTENT = "> [!warning]- Careful\n> line one\n>  line two\nafter"

    def test_header_fields(self):
        [seg] = scan_callouts(self.CONTENT)
        assert seg.kind == SegmentKind.CALLOUT
        assert seg.content.type == "warning"
        assert seg.content.title == "Careful"
        assert seg.content.foldable is True
        assert seg.content.default_folded is True

    def test_body_and_range(self):
        [seg] = scan_callouts(self.CONTENT)
        assert seg.content.body == "line one\nline two"
        assert seg.raw == "> [!warning]- Careful\n> line one\n>  line two"
        assert seg.start == 0
        assert seg.end == len(seg.raw)

    def test_expanded_fold_and_no_title(self):
        [seg] = scan_callouts("> [!note]+\n> body")
        assert seg.content.title is None
        assert seg.content.foldable is True
        assert seg.content.default_folded is False

    def test_plain_callout_not_foldable(self):
        [seg] = scan_callouts("> [!tip] Hint")
        assert seg.content.foldable is False
        assert seg.content.body == ""

    def test_consecutive_callouts(self):
        segs = scan_callouts("> [!a]\n> one\n> [!b]\n> two")
        assert [s.content.type for s in segs] == ["a", "b"]
        assert [s.content.body for s in segs] == ["one", "two"]

    def test_plain_quote_ignored(self):
        assert scan_callouts("> just a quote\n> more") == []


class TestScanCodeBlocks:
    def test_language_and_code(self):
        [seg] = scan_code_blocks("```python\nprint(1)\n```")
        assert seg.content.language == "python"
        assert seg.content.code == "print(1)"

    def test_language_defaults_to_text(self):
        [seg] = scan_code_blocks("```\nplain\n```")
        assert seg.content.language == "text"

    def test_query_blocks_skipped(self):
        assert scan_code_blocks("```dataview\nLIST\n```") == []


class TestScanQueries:
    def test_block(self):
        [seg] = scan_queries("```dataview\nLIST FROM #book\n```")
        assert seg.content.form == "block"
        assert seg.content.query == "LIST FROM #book"

    def test_inline(self):
        [seg] = scan_queries("Name: `= this.file.name` done")
        assert seg.content.form == "inline"
        assert seg.content.query == "this.file.name"
        assert seg.raw == "`= this.file.name`"


# ---------------------------------------------------------------------------
# Merging
# ---------------------------------------------------------------------------

class TestMerge:
    DOC = (
        "Hello {{name}}, see [[Other#Intro]] and ![[Other]].\n"
        "![[img/cat.png|100]]\n"
        "> [!tip] Hint\n"
        "> Use {{tone}}\n"
        "```python\nprint('{{x}}')\n```\n"
        "Count: `= length(this.tags)`\n"
    )

    def test_tiles_content_exactly(self):
        segments = _merged(self.DOC)
        assert segments[0].start == 0
        assert segments[-1].end == len(self.DOC)
        for prev, nxt in zip(segments, segments[1:]):
            assert prev.end == nxt.start
        assert "".join(s.raw for s in segments) == self.DOC

    def test_no_overlaps(self):
        segments = _merged(self.DOC)
        for i, a in enumerate(segments):
            for b in segments[i + 1:]:
                assert not a.position.overlaps(b.position)

    def test_kinds_in_order(self):
        kinds = [s.kind for s in _merged(self.DOC) if s.kind != SegmentKind.TEXT]
        assert kinds == [
            SegmentKind.VARIABLE,
            SegmentKind.LINK,
            SegmentKind.EMBED,
            SegmentKind.IMAGE,
            SegmentKind.CALLOUT,
            SegmentKind.CODE_BLOCK,
            SegmentKind.QUERY,
        ]

    def test_embed_beats_inner_link(self):
        segments = _merged("![[Other]]")
        assert [s.kind for s in segments] == [SegmentKind.EMBED]

    def test_constructs_inside_code_are_dropped(self):
        segments = _merged("```python\nprint({{x}})\n```")
        assert [s.kind for s in segments] == [SegmentKind.CODE_BLOCK]

    def test_tie_goes_to_earlier_scanner(self):
        # Both span [0, 5)
        link = scan_links("[[A]]")
        variable = scan_variables("{{a}}")
        assert [s.kind for s in drop_overlaps(link + variable)] == [SegmentKind.LINK]
        assert [s.kind for s in drop_overlaps(variable + link)] == [SegmentKind.VARIABLE]

    def test_plain_text_is_one_segment(self):
        [seg] = _merged("nothing special")
        assert seg.kind == SegmentKind.TEXT
        assert seg.content.text == "nothing special"

    def test_empty_note(self):
        assert _merged("") == []

    def test_blank_gaps_kept_by_default(self):
        segments = _merged("{{a}} {{b}}")
        assert [s.kind for s in segments] == [
            SegmentKind.VARIABLE,
            SegmentKind.TEXT,
            SegmentKind.VARIABLE,
        ]

    def test_blank_gaps_dropped(self):
        segments = _merged("{{a}} {{b}} x", keep_blank_gaps=False)
        assert [s.kind for s in segments] == [
            SegmentKind.VARIABLE,
            SegmentKind.VARIABLE,
            SegmentKind.TEXT,
        ]
