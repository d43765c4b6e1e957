from .task_filter import filter_tasks, get_match_context, matches_filter, search_task_text
from .dataview import execute_query

__all__ = [
    "filter_tasks",
    "get_match_context",
    "matches_filter",
    "search_task_text",
    "execute_query",
]
