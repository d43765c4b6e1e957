"""
Task data models.

A Task is one checklist line from a note. It captures everything needed to
re-render the line via parsers.task_formatter: formatting a Task and parsing
the result gives back the same status, priority, dates, recurrence, tags and
indent.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional

TaskStatus = Literal["open", "done", "in_progress", "cancelled"]
Priority = Literal["highest", "high", "low", "lowest"]


@dataclass
class TaskLocation:
    """Where a task line lives: vault path, 1-based line, enclosing heading."""

    file: str
    line: int
    heading: Optional[str] = None


@dataclass
class Task:
    """A single checklist item parsed from a note."""

    text: str
    status: TaskStatus = "open"
    priority: Optional[Priority] = None
    dates: Dict[str, str] = field(default_factory=dict)
    recurrence: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    location: TaskLocation = field(default_factory=lambda: TaskLocation(file="", line=0))
    indent: int = 0

    @property
    def ref(self) -> str:
        """Task reference in 'path:line' format."""
        return f"{self.location.file}:{self.location.line}"

    @property
    def is_recurring(self) -> bool:
        return bool(self.recurrence)

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "status": self.status,
            "priority": self.priority,
            "dates": dict(self.dates),
            "recurrence": self.recurrence,
            "tags": list(self.tags),
            "location": {
                "file": self.location.file,
                "line": self.location.line,
                "heading": self.location.heading,
            },
            "indent": self.indent,
        }


@dataclass
class TaskFilter:
    """
    Task query descriptor. Every criterion left as None matches all tasks.

    Date bounds are inclusive; ``tags`` requires every listed tag; a
    non-positive ``limit`` means unlimited.
    """

    status: Optional[TaskStatus] = None
    priority: Optional[Priority] = None
    path: Optional[str] = None
    due_before: Optional[str] = None
    due_after: Optional[str] = None
    is_recurring: Optional[bool] = None
    tags: Optional[List[str]] = None
    limit: Optional[int] = None
