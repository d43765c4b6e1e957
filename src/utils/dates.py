"""
Date parsing for task tool input.

Tool callers may pass "Friday" or "in 3 days" where a task line needs an ISO
date; everything stored in a note is ``YYYY-MM-DD``.
"""

import re
from datetime import date, datetime, timedelta
from typing import Optional

_DAY_NAMES = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


def parse_date(date_str: str, today: Optional[date] = None) -> Optional[str]:
    """
    Parse various date formats into ISO 8601 (YYYY-MM-DD).

    Supports:
    - ISO 8601: "2026-02-15"
    - Natural language: "today", "tomorrow", "Friday", "next Monday"
    - Relative: "in 3 days", "in 2 weeks"
    - Prose prefixes: "before March 15", "by Friday", "due Friday"

    Returns:
        ISO 8601 date string or None if unparseable
    """
    if not date_str:
        return None

    date_str = date_str.strip()
    today = today or date.today()
    lowered = date_str.lower()

    if lowered in ("today", "now"):
        return today.isoformat()
    if lowered == "tomorrow":
        return (today + timedelta(days=1)).isoformat()
    if lowered == "yesterday":
        return (today - timedelta(days=1)).isoformat()

    for prefix in ("before ", "by ", "due ", "on "):
        if lowered.startswith(prefix):
            date_str = date_str[len(prefix):].strip()
            lowered = date_str.lower()

    try:
        return datetime.strptime(date_str, "%Y-%m-%d").date().isoformat()
    except ValueError:
        pass

    for fmt in ("%B %d, %Y", "%b %d, %Y"):
        try:
            return datetime.strptime(date_str, fmt).date().isoformat()
        except ValueError:
            continue

    # Year-less forms resolve to the next occurrence.
    for fmt in ("%B %d", "%b %d", "%m/%d"):
        try:
            parsed = datetime.strptime(f"{date_str} {today.year}", f"{fmt} %Y").date()
        except ValueError:
            continue
        if parsed < today:
            parsed = parsed.replace(year=today.year + 1)
        return parsed.isoformat()

    is_next = lowered.startswith("next ")
    if is_next:
        lowered = lowered[5:].strip()

    if lowered in _DAY_NAMES:
        days_ahead = _DAY_NAMES.index(lowered) - today.weekday()
        if days_ahead <= 0 or is_next:
            days_ahead += 7
        return (today + timedelta(days=days_ahead)).isoformat()

    relative = re.match(r"in (\d+) (days?|weeks?)$", lowered)
    if relative:
        amount = int(relative.group(1))
        unit = relative.group(2)
        delta = timedelta(weeks=amount) if unit.startswith("week") else timedelta(days=amount)
        return (today + delta).isoformat()

    return None


def require_date(value: str, field: str = "date") -> str:
    """Like parse_date, but raise ValueError for input it cannot read."""
    parsed = parse_date(value)
    if parsed is None:
        raise ValueError(f"Unrecognised {field}: {value!r}")
    return parsed
