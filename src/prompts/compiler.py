"""
Prompt compiler: turns a prompt note plus argument bindings into messages.

    compiler = PromptCompiler(store, resolver, index)
    result = compiler.compile(content, {"name": "Alice"}, source_path="Prompts/Greet.md")

Collaborators (duck-typed; VaultCache implements all three):
    store     read(path) → str, read_binary(path) → bytes
    resolver  resolve(link_target, from_path) → path or None
    index     list(), tags_of(path), frontmatter_of(path)  (queries only)

Resolution failures, cycles and the depth limit never abort a compile: the
segment falls back to its raw text (or is dropped, for images) and a
diagnostic is recorded in the result.
"""

import base64
import logging
import re
from typing import Callable, Dict, List, Optional

from models.prompt import (
    DEFAULT_MAX_DEPTH,
    MessageContent,
    ProcessingContext,
    ProcessingResult,
    PromptMessage,
    PromptMetadata,
)
from models.segment import ParsedSegment, SegmentKind
from prompts.merger import merge_segments
from prompts.scanner import scan_segments
from query.dataview import execute_query
from utils.errors import VaultError
from utils.markup import (
    close_node,
    get_base_name,
    get_file_extension,
    get_mime_type,
    open_node,
    sanitize_tag_name,
    wrap_in_node,
)

log = logging.getLogger(__name__)

QUERY_RESULTS_TAG = "dataview-results"

_HEADING = re.compile(r"^(#{1,6})\s+(.*?)\s*#*\s*$")

Items = List[MessageContent]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _text(text: str) -> MessageContent:
    return MessageContent(type="text", text=text)


def extract_section(content: str, heading: str) -> Optional[str]:
    """
    The part of ``content`` under ``heading``, heading line included.

    The section ends before the next heading of the same or a higher level.
    Matching is case-insensitive. Returns None when there is no such heading.
    """
    wanted = heading.strip().lower()
    lines = content.split("\n")
    start = level = None
    for i, line in enumerate(lines):
        m = _HEADING.match(line)
        if not m:
            continue
        if start is None:
            if m.group(2).lower() == wanted:
                start, level = i, len(m.group(1))
        elif len(m.group(1)) <= level:
            return "\n".join(lines[start:i]).rstrip("\n")
    if start is None:
        return None
    return "\n".join(lines[start:]).rstrip("\n")


def coalesce(items: Items) -> List[PromptMessage]:
    """Merge runs of text items into one message; every image is its own."""
    messages: List[PromptMessage] = []
    for item in items:
        if item.type == "text":
            last = messages[-1].content if messages else None
            if last is not None and last.type == "text":
                last.text = (last.text or "") + (item.text or "")
                continue
            messages.append(PromptMessage(content=_text(item.text or "")))
        else:
            messages.append(PromptMessage(content=item))
    return messages


def collect_metadata(segments: List[ParsedSegment]) -> PromptMetadata:
    """Summary of the constructs a note uses, names deduplicated in order."""
    by_kind: Dict[SegmentKind, List[str]] = {
        SegmentKind.VARIABLE: [],
        SegmentKind.LINK: [],
        SegmentKind.EMBED: [],
        SegmentKind.IMAGE: [],
    }
    kinds = set()
    for segment in segments:
        kinds.add(segment.kind)
        names = by_kind.get(segment.kind)
        if names is None:
            continue
        name = segment.content.name if segment.kind == SegmentKind.VARIABLE else segment.content.path
        if name not in names:
            names.append(name)

    return PromptMetadata(
        variables=by_kind[SegmentKind.VARIABLE],
        links=by_kind[SegmentKind.LINK],
        embeds=by_kind[SegmentKind.EMBED],
        images=by_kind[SegmentKind.IMAGE],
        has_queries=SegmentKind.QUERY in kinds,
        has_callouts=SegmentKind.CALLOUT in kinds,
        has_code_blocks=SegmentKind.CODE_BLOCK in kinds,
    )


# ---------------------------------------------------------------------------
# PromptCompiler
# ---------------------------------------------------------------------------

class PromptCompiler:
    """
    Compiles prompt notes segment by segment.

    Each SegmentKind maps to one handler returning output items. Linked and
    embedded notes are compiled with the same bindings one level deeper, so
    nested placeholders and links are expanded too, bounded by max_depth and
    guarded against cycles.
    """

    def __init__(self, store, resolver, index=None, logger: Optional[logging.Logger] = None) -> None:
        self._store = store
        self._resolver = resolver
        self._index = index if index is not None else store
        self._log = logger or log
        self._handlers: Dict[SegmentKind, Callable[[ParsedSegment, ProcessingContext], Items]] = {
            SegmentKind.TEXT: self._compile_text,
            SegmentKind.VARIABLE: self._compile_variable,
            SegmentKind.LINK: self._compile_reference,
            SegmentKind.EMBED: self._compile_reference,
            SegmentKind.IMAGE: self._compile_image,
            SegmentKind.CALLOUT: self._compile_callout,
            SegmentKind.CODE_BLOCK: self._compile_code_block,
            SegmentKind.QUERY: self._compile_query,
        }

    def compile(
        self,
        content: str,
        bindings: Optional[Dict[str, str]] = None,
        source_path: str = "",
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> ProcessingResult:
        context = ProcessingContext.for_root(source_path, bindings, max_depth)
        segments = merge_segments(content, scan_segments(content))
        items = self._compile_segments(segments, context)

        for message in context.errors:
            self._log.debug("Prompt %s: error: %s", source_path or "<inline>", message)
        for message in context.warnings:
            self._log.debug("Prompt %s: warning: %s", source_path or "<inline>", message)

        return ProcessingResult(
            messages=coalesce(items),
            metadata=collect_metadata(segments),
            errors=context.errors,
            warnings=context.warnings,
        )

    # ------------------------------------------------------------------
    # Segment dispatch
    # ------------------------------------------------------------------

    def _compile_segments(self, segments: List[ParsedSegment], context: ProcessingContext) -> Items:
        items: Items = []
        for segment in segments:
            items.extend(self._handlers[segment.kind](segment, context))
        return items

    def _compile_document(self, content: str, context: ProcessingContext) -> Items:
        return self._compile_segments(merge_segments(content, scan_segments(content)), context)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _compile_text(self, segment: ParsedSegment, context: ProcessingContext) -> Items:
        return [_text(segment.content.text)]

    def _compile_variable(self, segment: ParsedSegment, context: ProcessingContext) -> Items:
        variable = segment.content
        value = context.variables.get(variable.name)
        if isinstance(value, str) and value:
            return [_text(value)]
        if variable.default is not None:
            return [_text(variable.default)]
        context.warnings.append(f"Unbound variable: {variable.name}")
        return [_text(segment.raw)]

    def _compile_reference(self, segment: ParsedSegment, context: ProcessingContext) -> Items:
        """Links and embeds: inline the target note wrapped in a named node."""
        reference = segment.content
        label = "embed" if segment.kind == SegmentKind.EMBED else "link"

        target = self._resolver.resolve(reference.path, context.source_path)
        if target is None:
            context.warnings.append(f"Unresolved {label}: {reference.path}")
            return [_text(segment.raw)]
        if target in context.visited:
            context.warnings.append(f"Circular reference detected: {target}")
            return [_text(segment.raw)]
        if context.current_depth >= context.max_depth:
            context.warnings.append(f"Max depth ({context.max_depth}) reached for: {target}")
            return [_text(segment.raw)]

        try:
            content = self._store.read(target)
        except (VaultError, OSError, UnicodeDecodeError) as exc:
            context.errors.append(f"Failed to read {label} {target}: {exc}")
            return [_text(segment.raw)]

        if reference.section:
            section = extract_section(content, reference.section)
            if section is None:
                context.warnings.append(
                    f"Heading '{reference.section}' not found in {target}; inlining whole note"
                )
            else:
                content = section

        tag = sanitize_tag_name(get_base_name(target))
        nested = self._compile_document(content, context.descend(target))
        return [_text(open_node(tag)), *nested, _text(close_node(tag))]

    def _compile_image(self, segment: ParsedSegment, context: ProcessingContext) -> Items:
        image = segment.content
        target = self._resolver.resolve(image.path, context.source_path)
        if target is None:
            context.warnings.append(f"Image not found: {image.path}")
            return []
        try:
            data = self._store.read_binary(target)
        except (VaultError, OSError) as exc:
            context.errors.append(f"Failed to read image {target}: {exc}")
            return []
        return [
            MessageContent(
                type="image",
                data=base64.b64encode(data).decode("ascii"),
                mime_type=get_mime_type(get_file_extension(target)),
            )
        ]

    def _compile_callout(self, segment: ParsedSegment, context: ProcessingContext) -> Items:
        callout = segment.content
        attributes = {"title": callout.title} if callout.title else None
        return [_text(wrap_in_node(sanitize_tag_name(callout.type), callout.body, attributes))]

    def _compile_code_block(self, segment: ParsedSegment, context: ProcessingContext) -> Items:
        block = segment.content
        return [_text(wrap_in_node("code", block.code, {"language": block.language}))]

    def _compile_query(self, segment: ParsedSegment, context: ProcessingContext) -> Items:
        results = execute_query(segment.content.query, self._index)
        return [_text(wrap_in_node(QUERY_RESULTS_TAG, results))]


def compile_prompt(
    content: str,
    bindings: Optional[Dict[str, str]],
    store,
    resolver=None,
    index=None,
    source_path: str = "",
    max_depth: int = DEFAULT_MAX_DEPTH,
    logger: Optional[logging.Logger] = None,
) -> ProcessingResult:
    """
    One-shot compile. ``resolver`` and ``index`` default to ``store``, which
    suits VaultCache.
    """
    compiler = PromptCompiler(
        store,
        resolver if resolver is not None else store,
        index,
        logger=logger,
    )
    return compiler.compile(content, bindings, source_path=source_path, max_depth=max_depth)
