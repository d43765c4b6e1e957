"""
Segment models for prompt compilation.

A ParsedSegment is a positioned span of a prompt note recognised as one
construct. Its ``content`` is one of the per-kind dataclasses below; the
``kind`` field says which.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal, Optional, Union


class SegmentKind(str, Enum):
    TEXT = "text"
    VARIABLE = "variable"
    LINK = "link"
    IMAGE = "image"
    EMBED = "embed"
    CALLOUT = "callout"
    CODE_BLOCK = "code"
    QUERY = "query"


@dataclass(frozen=True)
class Position:
    """Half-open character range ``[start, end)`` in the source note."""

    start: int
    end: int

    def overlaps(self, other: Position) -> bool:
        return self.start < other.end and other.start < self.end


@dataclass
class TextContent:
    text: str


@dataclass
class VariableContent:
    name: str
    default: Optional[str] = None


@dataclass
class LinkContent:
    path: str
    section: Optional[str] = None
    alias: Optional[str] = None


@dataclass
class EmbedContent:
    path: str
    section: Optional[str] = None
    alias: Optional[str] = None


@dataclass
class ImageContent:
    path: str
    width: Optional[int] = None
    height: Optional[int] = None
    alt: Optional[str] = None


@dataclass
class CalloutContent:
    type: str
    body: str
    title: Optional[str] = None
    foldable: bool = False
    default_folded: bool = False


@dataclass
class CodeBlockContent:
    code: str
    language: str = "text"
    meta: Optional[str] = None


@dataclass
class QueryContent:
    query: str
    form: Literal["block", "inline"] = "block"


SegmentContent = Union[
    TextContent,
    VariableContent,
    LinkContent,
    EmbedContent,
    ImageContent,
    CalloutContent,
    CodeBlockContent,
    QueryContent,
]


@dataclass
class ParsedSegment:
    kind: SegmentKind
    content: SegmentContent
    position: Position
    raw: str

    @property
    def start(self) -> int:
        return self.position.start

    @property
    def end(self) -> int:
        return self.position.end
