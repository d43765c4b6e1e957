"""
Task tool handlers.

Core logic lives in handle_* functions (return dicts).
MCP wrappers in register_task_tools() serialize to JSON strings.

Tasks are addressed by note path plus 1-based line number; every mutation
reads the note, rewrites exactly that line (or inserts one) and writes the
note back through the cache.
"""

import json
import logging
from datetime import date
from typing import Dict, List, Optional, Union

from mcp.server.fastmcp import FastMCP

from models.task import Task, TaskFilter, TaskLocation
from parsers.task_formatter import (
    apply_updates,
    create_task_line,
    format_task,
    insert_task_into_content,
    update_task_in_content,
)
from parsers.task_parser import parse_tasks_from_content
from query.task_filter import DEFAULT_CONTEXT_LENGTH, filter_tasks, get_match_context, search_task_text
from utils.dates import require_date
from utils.errors import HANDLED_ERRORS, LineOutOfRangeError, TaskParseError, error_result

log = logging.getLogger(__name__)

_DATE_FIELDS = ("due", "scheduled", "start")


def _split_tags(tags: Union[str, List[str], None]) -> List[str]:
    """Accept "a, #b" or ["a", "#b"]; return bare tag names."""
    if not tags:
        return []
    items = tags.split(",") if isinstance(tags, str) else tags
    return [t.strip().lstrip("#") for t in items if t.strip().lstrip("#")]


def _optional_date(value: Optional[str], field: str) -> Optional[str]:
    return require_date(value, field) if value else None


def _task_at(content: str, file: str, line: int) -> Task:
    """
    The task on 1-based ``line`` of a note.

    Raises:
        LineOutOfRangeError: line outside the note
        TaskParseError: that line is not a task
    """
    line_count = len(content.split("\n"))
    if line < 1 or line > line_count:
        raise LineOutOfRangeError(line, line_count)
    for task in parse_tasks_from_content(content, file):
        if task.location.line == line:
            return task
    raise TaskParseError(f"Line {line} of {file} is not a task")


def _rewrite_task(cache, task: Task) -> Task:
    """Write ``task`` back over its own line and return it as re-parsed."""
    file, line = task.location.file, task.location.line
    content = cache.read(file)
    cache.write(file, update_task_in_content(content, line, format_task(task)))
    return _task_at(cache.read(file), file, line)


# ---------------------------------------------------------------------------
# Handler functions (return dicts, shared by MCP tools and REST API)
# ---------------------------------------------------------------------------


def handle_task_list(
    cache,
    *,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    path: Optional[str] = None,
    due_before: Optional[str] = None,
    due_after: Optional[str] = None,
    is_recurring: Optional[bool] = None,
    tags: Union[str, List[str], None] = None,
    limit: Optional[int] = None,
) -> Union[List[dict], dict]:
    try:
        criteria = TaskFilter(
            status=status or None,
            priority=priority or None,
            path=path or None,
            due_before=_optional_date(due_before, "due_before"),
            due_after=_optional_date(due_after, "due_after"),
            is_recurring=is_recurring,
            tags=_split_tags(tags) or None,
            limit=limit,
        )
    except HANDLED_ERRORS as e:
        return error_result(e)
    return [t.to_dict() for t in filter_tasks(cache.all_tasks(), criteria)]


def handle_task_search(
    cache,
    *,
    query: str,
    path: Optional[str] = None,
    search_completed: bool = False,
    case_sensitive: bool = False,
    context_length: int = DEFAULT_CONTEXT_LENGTH,
    limit: int = 50,
) -> List[dict]:
    results = []
    for task in cache.all_tasks():
        if path and path not in task.location.file:
            continue
        if not search_completed and task.status == "done":
            continue
        if not search_task_text(task, query, case_sensitive):
            continue
        d = task.to_dict()
        d["match"] = get_match_context(task.text, query, context_length)
        results.append(d)
        if limit and len(results) >= limit:
            break
    return results


def handle_task_create(
    cache,
    *,
    file: str,
    text: str,
    position: str = "append",
    heading: Optional[str] = None,
    status: str = "open",
    priority: Optional[str] = None,
    due: Optional[str] = None,
    scheduled: Optional[str] = None,
    start: Optional[str] = None,
    recurrence: Optional[str] = None,
    tags: Union[str, List[str], None] = None,
    indent: int = 0,
) -> dict:
    try:
        line = create_task_line(
            text,
            status=status,
            priority=priority or None,
            due=_optional_date(due, "due"),
            scheduled=_optional_date(scheduled, "scheduled"),
            start=_optional_date(start, "start"),
            created=date.today().isoformat(),
            recurrence=recurrence or None,
            tags=_split_tags(tags),
            indent=indent,
        )
        content = cache.read(file) if cache.exists(file) else ""
        new_content, line_number = insert_task_into_content(content, line, position, heading)
        written = cache.write(file, new_content)
        task = _task_at(new_content, written, line_number)
    except HANDLED_ERRORS as e:
        return error_result(e)

    log.info("Created task at %s:%d", written, line_number)
    return {"line": line, "task": task.to_dict()}


def handle_task_update(cache, *, file: str, line: int, changes: Dict[str, object]) -> dict:
    """
    Apply a patch to the task at ``file:line``.

    ``changes`` follows apply_updates: a missing key leaves the field alone,
    None or "" clears it. Dates accept natural language; tags accept a
    comma-separated string.
    """
    normalized: Dict[str, object] = {}
    try:
        for key, value in changes.items():
            if value == "":
                value = None
            if key in _DATE_FIELDS and value is not None:
                value = require_date(str(value), key)
            elif key == "tags" and value is not None:
                value = _split_tags(value)
            normalized[key] = value

        task = _task_at(cache.read(file), file, line)
        updated = _rewrite_task(cache, apply_updates(task, normalized))
    except HANDLED_ERRORS as e:
        return error_result(e)
    return updated.to_dict()


def handle_task_complete(
    cache, *, file: str, line: int, completed: Optional[str] = None
) -> dict:
    try:
        completed_on = _optional_date(completed, "completed") or date.today().isoformat()
        task = apply_updates(_task_at(cache.read(file), file, line), {"status": "done"})
        task.dates["completed"] = completed_on
        updated = _rewrite_task(cache, task)
    except HANDLED_ERRORS as e:
        return error_result(e)
    return updated.to_dict()


# ---------------------------------------------------------------------------
# MCP tool registration (thin wrappers)
# ---------------------------------------------------------------------------


def register_task_tools(mcp: FastMCP, cache) -> None:
    """Register all task-related MCP tools onto the FastMCP instance."""

    @mcp.tool()
    def task_list(
        status: Optional[str] = None,
        priority: Optional[str] = None,
        path: Optional[str] = None,
        due_before: Optional[str] = None,
        due_after: Optional[str] = None,
        is_recurring: Optional[bool] = None,
        tags: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> str:
        """
        List tasks across the vault with optional filtering.

        Every filter you pass must match; omitted filters match everything.

        Args:
            status: "open", "done", "in_progress" or "cancelled"
            priority: "highest", "high", "low" or "lowest"
            path: Only tasks whose note path contains this text
            due_before: Due on or before this date (ISO or natural language)
            due_after: Due on or after this date (ISO or natural language)
            is_recurring: True = only recurring tasks, False = only one-off tasks
            tags: Comma-separated tags the task must all carry (e.g. "work,urgent")
            limit: Maximum number of results (omit or <= 0 for all)

        Returns:
            JSON array of task objects
        """
        return json.dumps(
            handle_task_list(
                cache,
                status=status,
                priority=priority,
                path=path,
                due_before=due_before,
                due_after=due_after,
                is_recurring=is_recurring,
                tags=tags,
                limit=limit,
            ),
            indent=2,
        )

    @mcp.tool()
    def task_search(
        query: str,
        path: Optional[str] = None,
        search_completed: bool = False,
        case_sensitive: bool = False,
        limit: int = 50,
    ) -> str:
        """
        Search task descriptions for text.

        Args:
            query: Text to look for in task descriptions
            path: Only tasks whose note path contains this text
            search_completed: Include done tasks (default False)
            case_sensitive: Match case exactly (default False)
            limit: Maximum number of results (default 50)

        Returns:
            JSON array of task objects, each with a "match" {matched_text, context}
        """
        return json.dumps(
            handle_task_search(
                cache,
                query=query,
                path=path,
                search_completed=search_completed,
                case_sensitive=case_sensitive,
                limit=limit,
            ),
            indent=2,
        )

    @mcp.tool()
    def task_create(
        file: str,
        text: str,
        position: str = "append",
        heading: Optional[str] = None,
        priority: Optional[str] = None,
        due: Optional[str] = None,
        scheduled: Optional[str] = None,
        start: Optional[str] = None,
        recurrence: Optional[str] = None,
        tags: Optional[str] = None,
    ) -> str:
        """
        Add a new task line to a note (the note is created if missing).

        A created date of today is added automatically.

        Args:
            file: Vault-relative note path
            text: Task description
            position: "append" (end of note), "prepend" (top) or "after_heading"
            heading: Heading text to insert under (position="after_heading")
            priority: "highest", "high", "low" or "lowest"
            due: Due date (ISO or natural language: "Friday", "in 3 days")
            scheduled: Scheduled date (ISO or natural language)
            start: Start date (ISO or natural language)
            recurrence: Recurrence rule, e.g. "every week"
            tags: Comma-separated tags

        Returns:
            JSON {line, task} or error message
        """
        return json.dumps(
            handle_task_create(
                cache,
                file=file,
                text=text,
                position=position,
                heading=heading,
                priority=priority,
                due=due,
                scheduled=scheduled,
                start=start,
                recurrence=recurrence,
                tags=tags,
            ),
            indent=2,
        )

    @mcp.tool()
    def task_update(
        file: str,
        line: int,
        text: Optional[str] = None,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        due: Optional[str] = None,
        scheduled: Optional[str] = None,
        start: Optional[str] = None,
        recurrence: Optional[str] = None,
        tags: Optional[str] = None,
    ) -> str:
        """
        Update the task on a given line of a note.

        Only fields you pass will be changed. Pass an empty string to clear a field.

        Args:
            file: Vault-relative note path
            line: 1-based line number of the task
            text: New description
            status: "open", "done", "in_progress" or "cancelled"
            priority: "highest", "high", "low", "lowest" (or "" to clear)
            due: New due date (ISO, natural language, or "" to clear)
            scheduled: New scheduled date (or "" to clear)
            start: New start date (or "" to clear)
            recurrence: New recurrence rule (or "" to clear)
            tags: Comma-separated replacement tags (or "" to clear)

        Returns:
            Updated task JSON or error message
        """
        passed = {
            "text": text,
            "status": status,
            "priority": priority,
            "due": due,
            "scheduled": scheduled,
            "start": start,
            "recurrence": recurrence,
            "tags": tags,
        }
        changes = {key: value for key, value in passed.items() if value is not None}
        return json.dumps(
            handle_task_update(cache, file=file, line=line, changes=changes), indent=2
        )

    @mcp.tool()
    def task_complete(file: str, line: int, completed: Optional[str] = None) -> str:
        """
        Mark the task on a given line as done and stamp its completed date.

        Args:
            file: Vault-relative note path
            line: 1-based line number of the task
            completed: Completion date (default today)

        Returns:
            Updated task JSON or error message
        """
        return json.dumps(
            handle_task_complete(cache, file=file, line=line, completed=completed), indent=2
        )
