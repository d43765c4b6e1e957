"""
Canonical emoji tables for task-line metadata.

This module is the single source of truth for how each piece of task metadata
is written back to markdown. The tables follow the Obsidian Tasks plugin
convention:

- Priority: ⏫ highest, 🔼 high, 🔽 low, ⏬ lowest
- Dates: 📅 due, ⏳ scheduled, 🛫 start, ✅ completed, ➕ created
- Recurrence: 🔁 <free text>
- Checkbox: ``[ ]`` open, ``[x]`` done, ``[/]`` in-progress, ``[-]`` cancelled
"""

import re
from typing import Dict, Iterable, List, Optional

# Checked in this order when a line carries several priority emojis.
PRIORITY_EMOJIS: Dict[str, str] = {
    "highest": "⏫",
    "high": "🔼",
    "low": "🔽",
    "lowest": "⏬",
}

# Also the order date blocks are rendered in.
DATE_EMOJIS: Dict[str, str] = {
    "due": "📅",
    "scheduled": "⏳",
    "start": "🛫",
    "completed": "✅",
    "created": "➕",
}

RECURRENCE_EMOJI = "🔁"

STATUS_TO_CHECKBOX: Dict[str, str] = {
    "open": " ",
    "done": "x",
    "in_progress": "/",
    "cancelled": "-",
}

CHECKBOX_TO_STATUS: Dict[str, str] = {v: k for k, v in STATUS_TO_CHECKBOX.items()}

STATUSES = tuple(STATUS_TO_CHECKBOX)
PRIORITIES = tuple(PRIORITY_EMOJIS)
DATE_KINDS = tuple(DATE_EMOJIS)

# Emoji are sometimes followed by U+FE0F (emoji presentation selector).
VARIATION_SELECTOR = "\ufe0f"

ISO_DATE = r"\d{4}-\d{2}-\d{2}"


def all_metadata_emojis() -> List[str]:
    """Every emoji that introduces task metadata."""
    return [*PRIORITY_EMOJIS.values(), *DATE_EMOJIS.values(), RECURRENCE_EMOJI]


def emoji_pattern(emojis: Iterable[str]) -> str:
    """Regex alternation matching any of ``emojis`` plus an optional selector."""
    alternation = "|".join(re.escape(e) for e in emojis)
    return f"(?:{alternation}){VARIATION_SELECTOR}?"


def status_from_checkbox(char: str) -> str:
    """Map a checkbox character to a status; unknown markers read as open."""
    return CHECKBOX_TO_STATUS.get(char.lower(), "open")


def render_checkbox(status: str) -> str:
    return f"[{STATUS_TO_CHECKBOX[status]}]"


def render_priority(priority: Optional[str]) -> str:
    return PRIORITY_EMOJIS[priority] if priority else ""


def render_date(kind: str, value: Optional[str]) -> str:
    """Render a date block, e.g. ``📅 2026-02-15``."""
    if not value:
        return ""
    return f"{DATE_EMOJIS[kind]} {value}"


def render_recurrence(recurrence: Optional[str]) -> str:
    if not recurrence:
        return ""
    return f"{RECURRENCE_EMOJI} {recurrence}"


def render_tags(tags: Iterable[str]) -> str:
    """Render bare tag names as a space-separated ``#tag`` string."""
    return " ".join(f"#{tag}" for tag in tags)
