"""
Frontmatter and tag extraction for notes.

Feeds the vault cache's tag/metadata index:
    split_frontmatter(content) → (frontmatter dict, body)
    extract_note_tags(content) → List[str]  (bare names, first-seen order)

Tags come from the ``tags``/``tag`` frontmatter key (list or comma/space
separated string) and from inline ``#tags`` in the body, skipping fenced and
inline code.
"""

import logging
import re
from typing import Any, Dict, List, Tuple

import yaml

log = logging.getLogger(__name__)

_FENCED_CODE = re.compile(r"^```.*?^```[ \t]*$", re.MULTILINE | re.DOTALL)
_INLINE_CODE = re.compile(r"`[^`\n]*`")
_WIKI_LINK = re.compile(r"\[\[.*?\]\]")
_INLINE_TAG = re.compile(r"(?:^|(?<=\s))#([\w/-]+)")


def _frontmatter_bounds(lines: List[str]) -> Tuple[int, int]:
    """
    Locate a YAML frontmatter block at the top of the note.

    Returns:
        (first content line index, body start index); (0, 0) when the note
        has no closed frontmatter block.
    """
    if not lines or lines[0].strip() != "---":
        return 0, 0
    for i in range(1, len(lines)):
        if lines[i].strip() in ("---", "..."):
            return 1, i + 1
    # Never closed: treat as no frontmatter
    return 0, 0


def split_frontmatter(content: str) -> Tuple[Dict[str, Any], str]:
    """Return the parsed frontmatter mapping and the remaining body text."""
    lines = content.split("\n")
    fm_start, body_start = _frontmatter_bounds(lines)
    if body_start == 0:
        return {}, content

    raw = "\n".join(lines[fm_start : body_start - 1])
    body = "\n".join(lines[body_start:])
    try:
        data = yaml.safe_load(raw) if raw.strip() else {}
    except yaml.YAMLError as exc:
        log.warning("Ignoring malformed frontmatter: %s", exc)
        return {}, body
    if not isinstance(data, dict):
        return {}, body
    return data, body


def _frontmatter_tags(frontmatter: Dict[str, Any]) -> List[str]:
    raw = frontmatter.get("tags", frontmatter.get("tag"))
    if raw is None:
        return []
    if isinstance(raw, str):
        items = re.split(r"[,\s]+", raw)
    elif isinstance(raw, (list, tuple)):
        items = [str(item) for item in raw if item is not None]
    else:
        items = [str(raw)]
    return [item.strip().lstrip("#") for item in items if item.strip().lstrip("#")]


def _body_tags(body: str) -> List[str]:
    body = _FENCED_CODE.sub("", body)
    body = _INLINE_CODE.sub("", body)
    body = _WIKI_LINK.sub("", body)
    # Pure numbers (#1, #2024) are not tags
    return [tag for tag in _INLINE_TAG.findall(body) if not tag.isdigit()]


def collect_tags(frontmatter: Dict[str, Any], body: str) -> List[str]:
    """Unique tags from an already-split note, frontmatter tags first."""
    seen = {}
    for tag in _frontmatter_tags(frontmatter) + _body_tags(body):
        seen.setdefault(tag, None)
    return list(seen)


def extract_note_tags(content: str) -> List[str]:
    return collect_tags(*split_frontmatter(content))
