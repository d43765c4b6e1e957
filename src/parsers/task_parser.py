"""
Parser for emoji-annotated task lines.

Main API:
    parse_task_line(line, location)        → Task  (raises TaskParseError)
    parse_tasks_from_content(content, path) → List[Task]

A task line is ``- [c] description`` with optional leading whitespace. The
description may carry Obsidian Tasks metadata anywhere on the line:

    - [ ] Water plants ⏫ 📅 2026-03-01 🔁 every week #home

Metadata is pulled out into the Task fields and stripped from ``text``.
parsers.task_formatter renders a Task back into this convention.
"""

import re
from typing import List, Optional, Tuple

from models.task import Task, TaskLocation
from utils.errors import TaskParseError
from utils.formatting import (
    DATE_EMOJIS,
    ISO_DATE,
    PRIORITY_EMOJIS,
    RECURRENCE_EMOJI,
    all_metadata_emojis,
    emoji_pattern,
    status_from_checkbox,
)

_TASK_LINE = re.compile(r"^(\s*)-\s*\[(.)\]")
_CHECKBOX_PREFIX = re.compile(r"^\s*-\s*\[.\]\s*")
_HEADING = re.compile(r"^#+\s+")
_TAG = re.compile(r"#([\w-]+)")
_TRAILING_TAGS = re.compile(r"(?:(?:^|\s+)#[\w-]+)+\s*$")
_WIKI_LINK = re.compile(r"\[\[.*?\]\]")

# Recurrence text runs until the next metadata emoji, a #tag, or end of line.
_RECURRENCE = re.compile(
    rf"{emoji_pattern([RECURRENCE_EMOJI])}\s*(.+?)"
    rf"(?=\s*{emoji_pattern(all_metadata_emojis())}|\s+#[\w-]|\s*$)"
)
_DATE_PATTERNS = {
    kind: re.compile(rf"{emoji_pattern([emoji])}\s*({ISO_DATE})")
    for kind, emoji in DATE_EMOJIS.items()
}
_PRIORITY_PATTERNS = {
    priority: re.compile(emoji_pattern([emoji])) for priority, emoji in PRIORITY_EMOJIS.items()
}
# A priority emoji and whatever follows it, up to the next metadata emoji.
_PRIORITY_BLOCK = re.compile(
    rf"{emoji_pattern(PRIORITY_EMOJIS.values())}.*?(?={emoji_pattern(all_metadata_emojis())}|$)"
)


# ---------------------------------------------------------------------------
# Low-level parsers
# ---------------------------------------------------------------------------

def is_task_line(line: str) -> bool:
    return _TASK_LINE.match(line) is not None


def _mask_wiki_links(text: str) -> str:
    """Blank out [[...]] so '#section' references are not read as tags."""
    return _WIKI_LINK.sub(lambda m: " " * len(m.group()), text)


def parse_indent(line: str) -> int:
    return len(line) - len(line.lstrip())


def parse_priority(line: str) -> Optional[str]:
    for priority, pattern in _PRIORITY_PATTERNS.items():
        if pattern.search(line):
            return priority
    return None


def parse_dates(line: str) -> dict:
    """Return {kind: ISO date} for every date kind present on the line."""
    dates = {}
    for kind, pattern in _DATE_PATTERNS.items():
        m = pattern.search(line)
        if m:
            dates[kind] = m.group(1)
    return dates


def parse_recurrence(line: str) -> Optional[str]:
    m = _RECURRENCE.search(line)
    if not m:
        return None
    return m.group(1).strip() or None


def parse_tags(line: str) -> List[str]:
    """Bare tag names in left-to-right order, duplicates kept."""
    return _TAG.findall(_mask_wiki_links(line))


def parse_task_text(line: str) -> str:
    """
    Description with the checkbox and all recognised metadata removed.

    Tags that trail the description are treated as metadata; tags inside the
    sentence stay part of the text.
    """
    text = _CHECKBOX_PREFIX.sub("", line, count=1)
    text = _RECURRENCE.sub("", text)
    for pattern in _DATE_PATTERNS.values():
        text = pattern.sub("", text)
    text = _PRIORITY_BLOCK.sub("", text)
    masked = _mask_wiki_links(text)
    trailing = _TRAILING_TAGS.search(masked)
    if trailing:
        text = text[: trailing.start()]
    return re.sub(r"\s{2,}", " ", text).strip()


def split_trailing_tags(text: str) -> Tuple[str, List[str]]:
    """Split a description into its sentence and the run of tags trailing it."""
    trailing = _TRAILING_TAGS.search(_mask_wiki_links(text))
    if not trailing or trailing.start() == 0:
        return text, []
    return text[: trailing.start()].rstrip(), parse_tags(text[trailing.start() :])


def parse_heading(line: str) -> Optional[str]:
    """Heading text if ``line`` is a heading (``#`` run then whitespace)."""
    if not _HEADING.match(line):
        return None
    return _HEADING.sub("", line, count=1).strip()


# ---------------------------------------------------------------------------
# Main parse API
# ---------------------------------------------------------------------------

def parse_task_line(line: str, location: TaskLocation) -> Task:
    """
    Parse one line into a Task.

    Raises:
        TaskParseError: if the line is not a task line
    """
    m = _TASK_LINE.match(line)
    if not m:
        raise TaskParseError("Not a valid task line")

    return Task(
        text=parse_task_text(line),
        status=status_from_checkbox(m.group(2)),
        priority=parse_priority(line),
        dates=parse_dates(line),
        recurrence=parse_recurrence(line),
        tags=parse_tags(line),
        location=location,
        indent=len(m.group(1)),
    )


def parse_tasks_from_content(content: str, file_path: str) -> List[Task]:
    """
    Parse every task line in a note, top to bottom.

    Each task records the nearest preceding heading. Lines that are not tasks
    are skipped.
    """
    tasks: List[Task] = []
    current_heading: Optional[str] = None

    for line_num, line in enumerate(content.split("\n"), start=1):
        heading = parse_heading(line)
        if heading is not None:
            current_heading = heading
            continue

        if not is_task_line(line):
            continue

        location = TaskLocation(file=file_path, line=line_num, heading=current_heading)
        try:
            tasks.append(parse_task_line(line, location))
        except TaskParseError:
            continue

    return tasks
