"""
Task filtering and text search.

filter_tasks() applies a TaskFilter as a conjunction of independent
predicates. A predicate whose criterion is None always passes.
"""

import re
from typing import Callable, Dict, List, Optional, Sequence

from models.task import Task, TaskFilter

DEFAULT_CONTEXT_LENGTH = 30


def _matches_status(task: Task, status: Optional[str]) -> bool:
    return status is None or task.status == status


def _matches_priority(task: Task, priority: Optional[str]) -> bool:
    return priority is None or task.priority == priority


def _matches_path(task: Task, path: Optional[str]) -> bool:
    return not path or path in task.location.file


def _matches_due_before(task: Task, bound: Optional[str]) -> bool:
    if not bound:
        return True
    due = task.dates.get("due")
    # ISO dates are zero-padded, so string order is date order
    return due is not None and due <= bound


def _matches_due_after(task: Task, bound: Optional[str]) -> bool:
    if not bound:
        return True
    due = task.dates.get("due")
    return due is not None and due >= bound


def _matches_recurring(task: Task, is_recurring: Optional[bool]) -> bool:
    return is_recurring is None or task.is_recurring == is_recurring


def _matches_tags(task: Task, tags: Optional[Sequence[str]]) -> bool:
    if not tags:
        return True
    return set(t.lstrip("#") for t in tags) <= set(task.tags)


_PREDICATES: Dict[str, Callable[[Task, object], bool]] = {
    "status": _matches_status,
    "priority": _matches_priority,
    "path": _matches_path,
    "due_before": _matches_due_before,
    "due_after": _matches_due_after,
    "is_recurring": _matches_recurring,
    "tags": _matches_tags,
}


def matches_filter(task: Task, criteria: TaskFilter) -> bool:
    return all(
        predicate(task, getattr(criteria, name)) for name, predicate in _PREDICATES.items()
    )


def filter_tasks(tasks: List[Task], criteria: TaskFilter) -> List[Task]:
    """Tasks matching every criterion, in their original order, then limited."""
    matched = [task for task in tasks if matches_filter(task, criteria)]
    if criteria.limit and criteria.limit > 0:
        matched = matched[: criteria.limit]
    return matched


def search_task_text(task: Task, query: str, case_sensitive: bool = False) -> bool:
    if case_sensitive:
        return query in task.text
    return query.lower() in task.text.lower()


def get_match_context(
    text: str, query: str, context_length: int = DEFAULT_CONTEXT_LENGTH
) -> Dict[str, str]:
    """
    First case-insensitive match of ``query`` in ``text`` plus surrounding text.

    Returns:
        {"matched_text": ..., "context": ...}. With no match, matched_text is
        empty and context is the whole text.
    """
    m = re.search(re.escape(query), text, re.IGNORECASE) if query else None
    if m is None:
        return {"matched_text": "", "context": text}

    start = max(0, m.start() - context_length)
    stop = min(len(text), m.end() + context_length)
    return {"matched_text": m.group(), "context": text[start:stop]}
