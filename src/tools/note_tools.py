"""
Note tool handlers.

Core logic lives in handle_* functions (return dicts or lists of dicts).
MCP wrappers in register_note_tools() serialize to JSON strings.
"""

import json
import logging
import re
from pathlib import Path
from typing import List, Optional, Set

from mcp.server.fastmcp import FastMCP

from models.note import PluginInfo
from utils.errors import HANDLED_ERRORS, NoteNotFoundError, error_result

log = logging.getLogger(__name__)

OBSIDIAN_DIR = ".obsidian"
CORE_PLUGINS_HELP_URL = "https://help.obsidian.md/Plugins/Core+plugins"

CORE_PLUGIN_IDS = frozenset(
    {
        "file-explorer",
        "global-search",
        "switcher",
        "graph",
        "backlink",
        "page-preview",
        "note-composer",
        "command-palette",
        "editor-status",
        "markdown-importer",
        "word-count",
        "file-recovery",
    }
)

_GITHUB_SPONSOR = re.compile(r"github\.com/sponsors/([^/]+)")


# ---------------------------------------------------------------------------
# Plugin manifests
# ---------------------------------------------------------------------------

def documentation_url(plugin_id: str, manifest: dict) -> Optional[str]:
    """
    Best guess at a plugin's documentation page.

    GitHub author URL, then GitHub sponsor URL (→ profile), then any author
    or funding URL, then the core-plugin help page.
    """
    author_url = manifest.get("authorUrl") or ""
    funding_url = manifest.get("fundingUrl") or ""
    if not isinstance(funding_url, str):
        # fundingUrl may be a {label: url} mapping
        funding_url = next(iter(funding_url.values()), "") if funding_url else ""

    if "github.com" in author_url:
        return author_url
    if "github.com" in funding_url:
        m = _GITHUB_SPONSOR.search(funding_url)
        return f"https://github.com/{m.group(1)}" if m else funding_url
    if author_url:
        return author_url
    if funding_url:
        return funding_url
    if plugin_id in CORE_PLUGIN_IDS:
        return CORE_PLUGINS_HELP_URL
    return None


def _read_json(path: Path):
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        log.warning("Could not read %s", path)
        return None


def load_plugins(vault_root: Path) -> List[PluginInfo]:
    """Installed community plugins from ``.obsidian``, sorted by name."""
    config_dir = vault_root / OBSIDIAN_DIR
    enabled: Set[str] = set()
    enabled_path = config_dir / "community-plugins.json"
    if enabled_path.is_file():
        enabled_list = _read_json(enabled_path)
        if isinstance(enabled_list, list):
            enabled = {str(p) for p in enabled_list}

    plugins: List[PluginInfo] = []
    plugins_dir = config_dir / "plugins"
    if not plugins_dir.is_dir():
        return plugins

    for manifest_path in sorted(plugins_dir.glob("*/manifest.json")):
        manifest = _read_json(manifest_path)
        if not isinstance(manifest, dict):
            continue
        plugin_id = manifest.get("id") or manifest_path.parent.name
        funding = manifest.get("fundingUrl")
        plugins.append(
            PluginInfo(
                id=plugin_id,
                name=manifest.get("name") or plugin_id,
                description=manifest.get("description", ""),
                version=manifest.get("version", ""),
                author=manifest.get("author", ""),
                enabled=plugin_id in enabled,
                documentation_url=documentation_url(plugin_id, manifest),
                author_url=manifest.get("authorUrl"),
                funding_url=funding if isinstance(funding, str) else None,
            )
        )
    return sorted(plugins, key=lambda p: p.name.lower())


# ---------------------------------------------------------------------------
# Handler functions (return dicts, shared by MCP tools and REST API)
# ---------------------------------------------------------------------------


def handle_notes(cache) -> List[dict]:
    files = (cache.get_file(path) for path in cache.list())
    return [f.metadata().to_dict() for f in files if f is not None]


def handle_read(cache, *, path: str) -> dict:
    try:
        return {"path": path, "content": cache.read(path)}
    except HANDLED_ERRORS as e:
        return error_result(e)


def handle_create(cache, *, path: str, content: str = "") -> dict:
    try:
        created = cache.create(path, content)
    except HANDLED_ERRORS as e:
        return error_result(e)
    return {"message": f"Created note: {created}", "path": created}


def handle_update(cache, *, path: str, content: str) -> dict:
    try:
        if not cache.exists(path):
            return error_result(NoteNotFoundError(path))
        updated = cache.write(path, content)
    except HANDLED_ERRORS as e:
        return error_result(e)
    return {"message": f"Updated note: {updated}", "path": updated}


def handle_delete(cache, *, path: str) -> dict:
    try:
        cache.delete(path)
    except HANDLED_ERRORS as e:
        return error_result(e)
    return {"message": f"Deleted note: {path}", "path": path}


def handle_search(cache, *, query: str, limit: int = 50) -> List[dict]:
    return [meta.to_dict() for meta in cache.search_notes(query, limit=limit)]


def handle_tags(cache) -> List[str]:
    return sorted({f"#{tag}" for tag in cache.all_tags()})


def handle_plugins(cache) -> List[dict]:
    return [p.to_dict() for p in load_plugins(cache.vault_root)]


def handle_cache_status(cache) -> dict:
    return cache.status()


# ---------------------------------------------------------------------------
# MCP tool registration (thin wrappers)
# ---------------------------------------------------------------------------


def register_note_tools(mcp: FastMCP, cache) -> None:
    """Register all note-related MCP tools onto the FastMCP instance."""

    @mcp.tool()
    def notes() -> str:
        """
        List all notes in the vault.

        Returns:
            JSON array of {path, name, created, modified, size, tags}
        """
        return json.dumps(handle_notes(cache), indent=2)

    @mcp.tool()
    def read(path: str) -> str:
        """
        Read the content of a note.

        Args:
            path: Vault-relative path to the note (e.g. "Projects/Plan.md")

        Returns:
            JSON {path, content} or error message
        """
        return json.dumps(handle_read(cache, path=path), indent=2)

    @mcp.tool()
    def create(path: str, content: str = "") -> str:
        """
        Create a new note. Fails if the note already exists.

        Args:
            path: Vault-relative path for the new note
            content: Initial content of the note
        """
        return json.dumps(handle_create(cache, path=path, content=content), indent=2)

    @mcp.tool()
    def update(path: str, content: str) -> str:
        """
        Replace the content of an existing note.

        Args:
            path: Vault-relative path to the note
            content: New content for the note
        """
        return json.dumps(handle_update(cache, path=path, content=content), indent=2)

    @mcp.tool()
    def delete(path: str) -> str:
        """
        Delete a note.

        Args:
            path: Vault-relative path to the note
        """
        return json.dumps(handle_delete(cache, path=path), indent=2)

    @mcp.tool()
    def search(query: str, limit: int = 50) -> str:
        """
        Search notes by title or content (case-insensitive substring).

        Args:
            query: Text to look for
            limit: Maximum number of results (default 50)

        Returns:
            JSON array of note metadata
        """
        return json.dumps(handle_search(cache, query=query, limit=limit), indent=2)

    @mcp.tool()
    def tags() -> str:
        """
        Get all tags used in the vault.

        Returns:
            JSON array of unique '#'-prefixed tags, sorted
        """
        return json.dumps(handle_tags(cache), indent=2)

    @mcp.tool()
    def plugins() -> str:
        """
        List installed Obsidian community plugins.

        Returns:
            JSON array of {id, name, description, version, author, enabled,
            documentation_url, author_url, funding_url}
        """
        return json.dumps(handle_plugins(cache), indent=2)

    @mcp.tool()
    def cache_status() -> str:
        """
        Get vault cache diagnostics.

        Returns:
            JSON object with indexed file, note, task and tag counts
        """
        return json.dumps(handle_cache_status(cache), indent=2)
