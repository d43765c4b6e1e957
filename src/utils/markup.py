"""
Helpers for turning vault markup into tagged prompt text.

Pure functions, no external dependencies.
"""

import re
from pathlib import PurePosixPath
from typing import Dict, Optional, Tuple

MIME_TYPES: Dict[str, str] = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "svg": "image/svg+xml",
    "bmp": "image/bmp",
    "ico": "image/x-icon",
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "ogg": "audio/ogg",
    "pdf": "application/pdf",
}

DEFAULT_MIME_TYPE = "application/octet-stream"

IMAGE_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "gif", "webp", "svg", "bmp", "ico"})

DEFAULT_TAG_NAME = "note"

_DIMENSIONS = re.compile(r"^(\d+)(?:x(\d+))?$")


def sanitize_tag_name(name: str) -> str:
    """
    Turn an arbitrary name into something usable as an XML-ish tag.

    Whitespace, hyphens and dots become underscores, anything else that is not
    alphanumeric is dropped, and the result always starts with a letter or
    underscore. An empty name falls back to ``note``.
    """
    if not name:
        return DEFAULT_TAG_NAME
    tag = re.sub(r"[\s\-.]", "_", name)
    tag = re.sub(r"[^a-zA-Z0-9_]", "", tag)
    if not tag:
        return DEFAULT_TAG_NAME
    if not re.match(r"[a-zA-Z_]", tag):
        tag = f"_{tag}"
    return tag


def escape_xml_attribute(value: str) -> str:
    return (
        value.replace("&", "&amp;")
        .replace('"', "&quot;")
        .replace("'", "&apos;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
    )


def open_node(tag: str, attributes: Optional[Dict[str, str]] = None) -> str:
    attrs = ""
    if attributes:
        attrs = " " + " ".join(
            f'{key}="{escape_xml_attribute(value)}"' for key, value in attributes.items()
        )
    return f"\n<{tag}{attrs}>\n"


def close_node(tag: str) -> str:
    return f"\n</{tag}>\n"


def wrap_in_node(tag: str, content: str, attributes: Optional[Dict[str, str]] = None) -> str:
    """
    Wrap ``content`` in ``<tag attr="...">`` ... ``</tag>`` on separate lines.

    The result is padded with a newline on each side so that it can be
    spliced into running text.
    """
    return f"{open_node(tag, attributes)}{content}{close_node(tag)}"


def get_file_extension(path: str) -> str:
    """Lower-cased extension without the dot, or "" if there is none."""
    m = re.search(r"\.([^./]+)$", path)
    return m.group(1).lower() if m else ""


def get_mime_type(extension: str) -> str:
    return MIME_TYPES.get(extension.lower().lstrip("."), DEFAULT_MIME_TYPE)


def is_image_extension(extension: str) -> bool:
    return extension.lower().lstrip(".") in IMAGE_EXTENSIONS


def get_base_name(path: str) -> str:
    """File name without directory or extension (``a/b/Note.md`` → ``Note``)."""
    name = path.rsplit("/", 1)[-1]
    dot = name.rfind(".")
    return name[:dot] if dot > 0 else name


def sanitize_path(path: str) -> str:
    """Normalise separators and strip leading/trailing slashes."""
    path = re.sub(r"/+", "/", path.replace("\\", "/"))
    return path.strip("/")


def parent_dir(path: str) -> str:
    parent = str(PurePosixPath(path).parent)
    return "" if parent == "." else parent


def parse_link_target(target: str) -> Tuple[str, Optional[str], Optional[str]]:
    """
    Split a wiki-link target into ``(path, section, alias)``.

    ``Folder/Note#Heading|Shown`` → ``("Folder/Note", "Heading", "Shown")``.
    """
    path_and_section, _, alias = target.partition("|")
    path, hash_sign, section = path_and_section.partition("#")
    if not hash_sign or not path or not section:
        return path_and_section, None, alias or None
    return path, section, alias or None


def parse_embed_target(
    target: str,
) -> Tuple[str, Optional[int], Optional[int], Optional[str]]:
    """
    Split an embed target into ``(path, width, height, alt)``.

    The token after ``|`` is read as ``WIDTHxHEIGHT`` / ``WIDTH`` when it is
    numeric, and as alt text otherwise.
    """
    path, _, extra = target.partition("|")
    if not extra:
        return path, None, None, None
    m = _DIMENSIONS.match(extra)
    if m:
        height = int(m.group(2)) if m.group(2) else None
        return path, int(m.group(1)), height, None
    return path, None, None, extra
