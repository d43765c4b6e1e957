"""
Turn the scanner's overlapping matches into a linear segment sequence.
"""

from typing import List

from models.segment import ParsedSegment, Position, SegmentKind, TextContent


def _text_segment(content: str, start: int, end: int) -> ParsedSegment:
    raw = content[start:end]
    return ParsedSegment(
        kind=SegmentKind.TEXT,
        content=TextContent(text=raw),
        position=Position(start, end),
        raw=raw,
    )


def drop_overlaps(segments: List[ParsedSegment]) -> List[ParsedSegment]:
    """
    Sort by start offset and keep each segment that does not overlap the last
    kept one.

    The sort is stable, so for equal start offsets the segment that came
    first in ``segments`` (i.e. the earlier scanner) wins.
    """
    accepted: List[ParsedSegment] = []
    for segment in sorted(segments, key=lambda s: s.start):
        if accepted and segment.position.overlaps(accepted[-1].position):
            continue
        accepted.append(segment)
    return accepted


def merge_segments(
    content: str, segments: List[ParsedSegment], keep_blank_gaps: bool = True
) -> List[ParsedSegment]:
    """
    Ordered, non-overlapping segments with the uncovered spans filled by text.

    With ``keep_blank_gaps`` (the default) every non-empty gap becomes a text
    segment, so the result covers ``content`` exactly. Passing False drops
    gaps that are whitespace only.
    """
    merged: List[ParsedSegment] = []
    cursor = 0

    def fill(start: int, end: int) -> None:
        if end <= start:
            return
        if not keep_blank_gaps and not content[start:end].strip():
            return
        merged.append(_text_segment(content, start, end))

    for segment in drop_overlaps(segments):
        fill(cursor, segment.start)
        merged.append(segment)
        cursor = segment.end

    fill(cursor, len(content))
    return merged
