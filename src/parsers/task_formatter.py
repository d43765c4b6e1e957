"""
Render Task records back into task lines and edit task lines inside notes.

Main API:
    format_task(task)                                  → str
    apply_updates(task, changes)                       → Task
    update_task_in_content(content, line_number, line) → str
    create_task_line(text, ...)                        → str
    insert_task_into_content(content, line, ...)       → (str, int)

Metadata is always written in the same order, so formatting is idempotent:
priority, due, scheduled, start, completed, created, recurrence, tags.
"""

import copy
from collections import Counter
from typing import Dict, Iterable, List, Optional, Tuple

from models.task import Task, TaskLocation
from parsers.task_parser import parse_heading, parse_tags, split_trailing_tags
from utils.errors import HeadingNotFoundError, InvalidUpdateError, LineOutOfRangeError
from utils.formatting import (
    DATE_KINDS,
    PRIORITIES,
    STATUSES,
    render_checkbox,
    render_date,
    render_priority,
    render_recurrence,
    render_tags,
)

# Fields accepted by apply_updates
UPDATABLE_FIELDS = frozenset(
    {"text", "status", "priority", "due", "scheduled", "start", "recurrence", "tags"}
)
_DATE_FIELDS = frozenset({"due", "scheduled", "start"})

INSERT_POSITIONS = ("append", "prepend", "after_heading")


def _tags_to_append(text: str, tags: Iterable[str]) -> List[str]:
    """Tags not already written inline in ``text``, preserving order."""
    inline = Counter(parse_tags(text))
    extra = []
    for tag in tags:
        if inline[tag] > 0:
            inline[tag] -= 1
        else:
            extra.append(tag)
    return extra


def _fold_trailing_tags(text: str, tags: Iterable[str]) -> Tuple[str, List[str]]:
    """Move tags trailing ``text`` into the tag list so they render as metadata."""
    text, trailing = split_trailing_tags(text)
    folded = list(trailing)
    folded.extend(t for t in tags if t not in trailing)
    return text, folded


def _check_status(status) -> None:
    if status not in STATUSES:
        raise InvalidUpdateError(f"Invalid status: {status!r}")


def _check_priority(priority) -> None:
    if priority is not None and priority not in PRIORITIES:
        raise InvalidUpdateError(f"Invalid priority: {priority!r}")


def format_task(task: Task) -> str:
    """Build the canonical task line for ``task``."""
    parts = [f"{' ' * task.indent}- {render_checkbox(task.status)} {task.text}"]

    if task.priority:
        parts.append(render_priority(task.priority))

    for kind in DATE_KINDS:
        if task.dates.get(kind):
            parts.append(render_date(kind, task.dates[kind]))

    if task.recurrence:
        parts.append(render_recurrence(task.recurrence))

    extra_tags = _tags_to_append(task.text, task.tags)
    if extra_tags:
        parts.append(render_tags(extra_tags))

    return " ".join(parts)


def apply_updates(task: Task, changes: Dict[str, Optional[object]]) -> Task:
    """
    Return a copy of ``task`` with ``changes`` applied.

    A key missing from ``changes`` leaves that field alone, ``None`` clears it
    and any other value replaces it. ``text`` and ``status`` cannot be cleared.
    Tags trailing a new ``text`` move into ``tags``.

    Raises:
        InvalidUpdateError: unknown field, bad enum value, or clearing a
            required field
    """
    unknown = set(changes) - UPDATABLE_FIELDS
    if unknown:
        raise InvalidUpdateError(f"Unknown task field(s): {', '.join(sorted(unknown))}")

    updated = copy.deepcopy(task)

    if "text" in changes:
        if changes["text"] is None:
            raise InvalidUpdateError("Task text cannot be cleared")
        updated.text = str(changes["text"])

    if "status" in changes:
        _check_status(changes["status"])
        updated.status = changes["status"]

    if "priority" in changes:
        _check_priority(changes["priority"])
        updated.priority = changes["priority"]

    for kind in _DATE_FIELDS:
        if kind in changes:
            if changes[kind] is None:
                updated.dates.pop(kind, None)
            else:
                updated.dates[kind] = str(changes[kind])

    if "recurrence" in changes:
        updated.recurrence = changes["recurrence"] or None

    if "tags" in changes:
        updated.tags = [t.lstrip("#") for t in (changes["tags"] or [])]

    if "text" in changes:
        updated.text, updated.tags = _fold_trailing_tags(updated.text, updated.tags)

    return updated


def update_task_in_content(content: str, line_number: int, new_line: str) -> str:
    """
    Replace the 1-indexed line ``line_number`` of ``content`` with ``new_line``.

    Raises:
        LineOutOfRangeError: if the line number is outside [1, line count]
    """
    lines = content.split("\n")
    if line_number < 1 or line_number > len(lines):
        raise LineOutOfRangeError(line_number, len(lines))
    lines[line_number - 1] = new_line
    return "\n".join(lines)


def create_task_line(
    text: str,
    *,
    status: str = "open",
    priority: Optional[str] = None,
    due: Optional[str] = None,
    scheduled: Optional[str] = None,
    start: Optional[str] = None,
    created: Optional[str] = None,
    recurrence: Optional[str] = None,
    tags: Optional[List[str]] = None,
    indent: int = 0,
) -> str:
    """Build a new task line; the location is filled in once it is inserted."""
    _check_status(status)
    _check_priority(priority)
    dates = {
        kind: value
        for kind, value in (("due", due), ("scheduled", scheduled), ("start", start), ("created", created))
        if value
    }
    text, folded_tags = _fold_trailing_tags(text, [t.lstrip("#") for t in (tags or [])])
    task = Task(
        text=text,
        status=status,
        priority=priority,
        dates=dates,
        recurrence=recurrence,
        tags=folded_tags,
        location=TaskLocation(file="", line=0),
        indent=indent,
    )
    return format_task(task)


def insert_task_into_content(
    content: str,
    task_line: str,
    position: str = "append",
    heading: Optional[str] = None,
) -> Tuple[str, int]:
    """
    Insert ``task_line`` into a note.

    Returns:
        (new content, 1-based line number of the inserted task)

    Raises:
        HeadingNotFoundError: position is after_heading and no heading
            with that text exists
        ValueError: unknown position, or after_heading without a heading
    """
    if position not in INSERT_POSITIONS:
        raise ValueError(f"Unknown position: {position!r}")

    if position == "append":
        if not content:
            return task_line, 1
        body = content[:-1] if content.endswith("\n") else content
        new_content = f"{body}\n{task_line}"
        if content.endswith("\n"):
            new_content += "\n"
        return new_content, len(body.split("\n")) + 1

    if position == "prepend":
        return (f"{task_line}\n{content}" if content else task_line), 1

    if not heading:
        raise ValueError("after_heading requires a heading")
    lines = content.split("\n")
    wanted = heading.strip().lstrip("#").strip()
    for index, line in enumerate(lines):
        if parse_heading(line) == wanted:
            lines.insert(index + 1, task_line)
            return "\n".join(lines), index + 2
    raise HeadingNotFoundError(heading)
