"""
Segment scanner for prompt notes.

Each scan_* function finds every occurrence of one construct and returns it
as a positioned ParsedSegment. scan_segments() runs them all in a fixed order
and concatenates the results; the matches may overlap and are unordered
across kinds. prompts.merger turns them into a clean linear sequence.

Constructs:
    {{name}} / {{name|default}}     variable
    [[target#section|alias]]        link
    ![[file.png|300x200]]           image (known image extension)
    ![[Other note#section]]         embed (anything else)
    > [!type]+/- title              callout, plus following '>' lines
    ```lang ... ```                 code block
    ```dataview ... ``` / `= expr`  query (block / inline)
"""

import re
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from models.segment import (
    CalloutContent,
    CodeBlockContent,
    EmbedContent,
    ImageContent,
    LinkContent,
    ParsedSegment,
    Position,
    QueryContent,
    SegmentKind,
    VariableContent,
)
from query.dataview import QUERY_KEYWORD
from utils.markup import (
    get_file_extension,
    is_image_extension,
    parse_embed_target,
    parse_link_target,
)

VARIABLE_PATTERN = re.compile(r"\{\{\s*(\w+)\s*(?:\|([^{}\n]*))?\}\}")
_LINK = re.compile(r"\[\[([^\]]+)\]\]")
_EMBED = re.compile(r"!\[\[([^\]]+)\]\]")
_CALLOUT_HEADER = re.compile(r"^>\s*\[!([\w-]+)\]([+-]?)\s*(.*)$")
_CODE_BLOCK = re.compile(
    r"^```([^\s`]*)[ \t]*([^\n]*)\n(.*?)^```[ \t]*$", re.MULTILINE | re.DOTALL
)
_QUERY_BLOCK = re.compile(
    rf"^```{QUERY_KEYWORD}[ \t]*\n(.*?)^```[ \t]*$", re.MULTILINE | re.DOTALL
)
_QUERY_INLINE = re.compile(r"`=\s*([^`]*?)\s*`")


def _segment(kind: SegmentKind, content, m: "re.Match") -> ParsedSegment:
    return ParsedSegment(
        kind=kind,
        content=content,
        position=Position(m.start(), m.end()),
        raw=m.group(0),
    )


def _strip_final_newline(text: str) -> str:
    return text[:-1] if text.endswith("\n") else text


# ---------------------------------------------------------------------------
# Per-construct scanners
# ---------------------------------------------------------------------------

def scan_variables(content: str) -> List[ParsedSegment]:
    return [
        _segment(SegmentKind.VARIABLE, VariableContent(name=m.group(1), default=m.group(2)), m)
        for m in VARIABLE_PATTERN.finditer(content)
    ]


def scan_links(content: str) -> List[ParsedSegment]:
    segments = []
    for m in _LINK.finditer(content):
        path, section, alias = parse_link_target(m.group(1))
        segments.append(
            _segment(SegmentKind.LINK, LinkContent(path=path, section=section, alias=alias), m)
        )
    return segments


def scan_embeds(content: str) -> List[ParsedSegment]:
    """Images and embeds share the ``![[...]]`` syntax; the extension decides."""
    segments = []
    for m in _EMBED.finditer(content):
        path, width, height, alt = parse_embed_target(m.group(1))
        if is_image_extension(get_file_extension(path)):
            content_ = ImageContent(path=path, width=width, height=height, alt=alt)
            segments.append(_segment(SegmentKind.IMAGE, content_, m))
        else:
            note_path, section, alias = parse_link_target(m.group(1))
            content_ = EmbedContent(path=note_path, section=section, alias=alias)
            segments.append(_segment(SegmentKind.EMBED, content_, m))
    return segments


@dataclass
class _OpenCallout:
    start: int
    end: int
    type: str
    fold: str
    title: Optional[str]
    body: List[str] = field(default_factory=list)

    def to_segment(self, content: str) -> ParsedSegment:
        return ParsedSegment(
            kind=SegmentKind.CALLOUT,
            content=CalloutContent(
                type=self.type,
                body="\n".join(self.body),
                title=self.title,
                foldable=self.fold != "",
                default_folded=self.fold == "-",
            ),
            position=Position(self.start, self.end),
            raw=content[self.start : self.end],
        )


def scan_callouts(content: str) -> List[ParsedSegment]:
    """
    Line-oriented callout scan.

    A block runs from its ``> [!type]`` header through every directly
    following line that starts with ``>``. A non-'>' line or another header
    closes it. The range ends at the last line's final character.
    """
    segments: List[ParsedSegment] = []
    current: Optional[_OpenCallout] = None
    offset = 0

    for line in content.split("\n"):
        line_start, line_end = offset, offset + len(line)
        offset = line_end + 1

        header = _CALLOUT_HEADER.match(line)
        if header:
            if current:
                segments.append(current.to_segment(content))
            current = _OpenCallout(
                start=line_start,
                end=line_end,
                type=header.group(1),
                fold=header.group(2),
                title=header.group(3).strip() or None,
            )
        elif current and line.startswith(">"):
            current.body.append(line[1:].strip())
            current.end = line_end
        elif current:
            segments.append(current.to_segment(content))
            current = None

    if current:
        segments.append(current.to_segment(content))
    return segments


def scan_code_blocks(content: str) -> List[ParsedSegment]:
    """Fenced code blocks, except query blocks (owned by scan_queries)."""
    segments = []
    for m in _CODE_BLOCK.finditer(content):
        language = m.group(1)
        if language == QUERY_KEYWORD:
            continue
        content_ = CodeBlockContent(
            code=_strip_final_newline(m.group(3)),
            language=language or "text",
            meta=m.group(2).strip() or None,
        )
        segments.append(_segment(SegmentKind.CODE_BLOCK, content_, m))
    return segments


def scan_queries(content: str) -> List[ParsedSegment]:
    blocks = [
        _segment(
            SegmentKind.QUERY,
            QueryContent(query=_strip_final_newline(m.group(1)), form="block"),
            m,
        )
        for m in _QUERY_BLOCK.finditer(content)
    ]
    inline = [
        _segment(SegmentKind.QUERY, QueryContent(query=m.group(1), form="inline"), m)
        for m in _QUERY_INLINE.finditer(content)
    ]
    return blocks + inline


# Order matters: on equal start offsets the earlier scanner's match survives
# the merge.
SCANNERS: List[Callable[[str], List[ParsedSegment]]] = [
    scan_variables,
    scan_links,
    scan_embeds,
    scan_callouts,
    scan_code_blocks,
    scan_queries,
]


def scan_segments(content: str) -> List[ParsedSegment]:
    segments: List[ParsedSegment] = []
    for scanner in SCANNERS:
        segments.extend(scanner(content))
    return segments
