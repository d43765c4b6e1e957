"""
Interpreter for the two query shapes a prompt may embed.

    LIST FROM #tag                  → bullet list of links to tagged notes
    TABLE field1, field2 FROM #tag  → pipe table, one row per tagged note

Anything else renders as an HTML comment saying the query is unsupported.
Field cells come from the note's frontmatter; missing fields show ``-``.
"""

import re
from typing import Any, List, Optional

from utils.markup import get_base_name

QUERY_KEYWORD = "dataview"
NO_RESULTS = "No results found"

_LIST_QUERY = re.compile(r"^\s*LIST\s+FROM\s+#([\w/-]+)", re.IGNORECASE)
_TABLE_QUERY = re.compile(r"^\s*TABLE\s+(.+?)\s+FROM\s+#([\w/-]+)", re.IGNORECASE | re.DOTALL)


def _tagged_paths(index, tag: str) -> List[str]:
    # Obsidian tags are case-insensitive
    wanted = tag.lower()
    return [
        path for path in index.list() if wanted in {t.lower() for t in index.tags_of(path)}
    ]


def _cell(value: Any) -> str:
    if value is None or value == "":
        return "-"
    if isinstance(value, (list, tuple)):
        value = ", ".join(str(v) for v in value)
    return str(value).replace("|", "\\|").replace("\n", " ")


def render_list(index, tag: str) -> str:
    lines = [f"- [[{get_base_name(path)}]]" for path in _tagged_paths(index, tag)]
    return "\n".join(lines) or NO_RESULTS


def render_table(index, fields: List[str], tag: str) -> str:
    paths = _tagged_paths(index, tag)
    if not paths:
        return NO_RESULTS

    header = " | ".join(["File", *fields])
    separator = " | ".join("---" for _ in range(len(fields) + 1))
    rows = []
    for path in paths:
        frontmatter = index.frontmatter_of(path)
        cells = [f"[[{get_base_name(path)}]]"]
        cells.extend(_cell(frontmatter.get(name)) for name in fields)
        rows.append(" | ".join(cells))
    return "\n".join([header, separator, *rows])


def parse_query(query: str) -> Optional[tuple]:
    """Classify a query: ("list", tag), ("table", fields, tag) or None."""
    m = _LIST_QUERY.match(query)
    if m:
        return ("list", m.group(1))
    m = _TABLE_QUERY.match(query)
    if m:
        fields = [f.strip() for f in m.group(1).split(",") if f.strip()]
        return ("table", fields, m.group(2))
    return None


def execute_query(query: str, index) -> str:
    """
    Render ``query`` against a tag/metadata index.

    ``index`` needs ``list()``, ``tags_of(path)`` and ``frontmatter_of(path)``.
    """
    parsed = parse_query(query)
    if parsed is None:
        return f"<!-- Unsupported query: {query.strip()} -->"
    if parsed[0] == "list":
        return render_list(index, parsed[1])
    return render_table(index, parsed[1], parsed[2])
