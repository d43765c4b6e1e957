from .task_parser import parse_task_line, parse_tasks_from_content
from .task_formatter import (
    apply_updates,
    create_task_line,
    format_task,
    insert_task_into_content,
    update_task_in_content,
)
from .frontmatter import extract_note_tags, split_frontmatter

__all__ = [
    "parse_task_line",
    "parse_tasks_from_content",
    "apply_updates",
    "create_task_line",
    "format_task",
    "insert_task_into_content",
    "update_task_in_content",
    "extract_note_tags",
    "split_frontmatter",
]
