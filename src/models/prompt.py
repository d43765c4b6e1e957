"""
Prompt compilation models: output messages, arguments and the per-compile
processing context.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, FrozenSet, List, Literal, Optional

DEFAULT_MAX_DEPTH = 5

MessageRole = Literal["user", "assistant", "system"]


@dataclass
class MessageContent:
    """One output item: a run of text or a base64-encoded image."""

    type: Literal["text", "image"]
    text: Optional[str] = None
    data: Optional[str] = None
    mime_type: Optional[str] = None

    def to_dict(self) -> dict:
        if self.type == "image":
            return {"type": "image", "data": self.data, "mimeType": self.mime_type}
        return {"type": "text", "text": self.text or ""}


@dataclass
class PromptMessage:
    content: MessageContent
    role: MessageRole = "user"

    def to_dict(self) -> dict:
        return {"role": self.role, "content": self.content.to_dict()}


@dataclass
class PromptArgument:
    """A declarable prompt parameter discovered from a ``{{name}}`` placeholder."""

    name: str
    description: str
    required: bool = True
    default: Optional[str] = None

    def to_dict(self) -> dict:
        d = {"name": self.name, "description": self.description, "required": self.required}
        if self.default is not None:
            d["default"] = self.default
        return d


@dataclass
class ProcessingContext:
    """
    State for one compile call.

    ``visited`` and ``current_depth`` describe the path from the root note to
    the note being compiled and are copied on every descent (see descend());
    ``errors`` and ``warnings`` are shared so diagnostics from nested notes
    land in the same result.
    """

    variables: Dict[str, str]
    source_path: str
    max_depth: int = DEFAULT_MAX_DEPTH
    current_depth: int = 0
    visited: FrozenSet[str] = frozenset()
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @classmethod
    def for_root(
        cls,
        source_path: str,
        variables: Optional[Dict[str, str]] = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> ProcessingContext:
        return cls(
            variables=dict(variables or {}),
            source_path=source_path,
            max_depth=max_depth,
            visited=frozenset({source_path}),
        )

    def descend(self, path: str) -> ProcessingContext:
        """Context for compiling ``path`` one level further down."""
        return replace(
            self,
            source_path=path,
            current_depth=self.current_depth + 1,
            visited=self.visited | {path},
        )


@dataclass
class PromptMetadata:
    variables: List[str] = field(default_factory=list)
    links: List[str] = field(default_factory=list)
    embeds: List[str] = field(default_factory=list)
    images: List[str] = field(default_factory=list)
    has_queries: bool = False
    has_callouts: bool = False
    has_code_blocks: bool = False

    def to_dict(self) -> dict:
        return {
            "variables": list(self.variables),
            "links": list(self.links),
            "embeds": list(self.embeds),
            "images": list(self.images),
            "has_queries": self.has_queries,
            "has_callouts": self.has_callouts,
            "has_code_blocks": self.has_code_blocks,
        }


@dataclass
class ProcessingResult:
    messages: List[PromptMessage]
    metadata: PromptMetadata
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        """All text content joined, images omitted."""
        return "".join(m.content.text or "" for m in self.messages if m.content.type == "text")

    def to_dict(self) -> dict:
        return {
            "messages": [m.to_dict() for m in self.messages],
            "metadata": self.metadata.to_dict(),
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }


@dataclass
class PromptResource:
    """A note registered as a prompt template."""

    name: str
    path: str
    uri: str
    description: str

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "path": self.path,
            "uri": self.uri,
            "description": self.description,
        }
