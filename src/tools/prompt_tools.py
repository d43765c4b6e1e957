"""
Prompt tool handlers and MCP prompt registration.

Every template the PromptRegistry discovers is exposed twice:
    - as an MCP prompt (arguments from its {{placeholders}}, rendering
      returns the compiled messages)
    - through the prompt_list / prompt_get / prompt_complete tools
"""

import json
import logging
from typing import Callable, Dict, List, Optional, Set

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.prompts.base import Prompt
from mcp.server.fastmcp.prompts.base import PromptArgument as MCPPromptArgument

from utils.errors import HANDLED_ERRORS, error_result

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Handler functions (return dicts, shared by MCP tools and REST API)
# ---------------------------------------------------------------------------


def handle_prompt_list(registry) -> List[dict]:
    results = []
    for prompt in registry.list_prompts():
        d = prompt.to_dict()
        try:
            d["arguments"] = [a.to_dict() for a in registry.arguments(prompt.name)]
        except HANDLED_ERRORS as e:
            log.warning("Could not read prompt %s: %s", prompt.path, e)
            d["arguments"] = []
        results.append(d)
    return results


def handle_prompt_info(registry, *, name: str) -> dict:
    try:
        arguments = registry.arguments(name)
    except HANDLED_ERRORS as e:
        return error_result(e)
    d = registry.get(name).to_dict()
    d["arguments"] = [a.to_dict() for a in arguments]
    return d


def handle_prompt_get(registry, *, name: str, arguments: Optional[Dict[str, str]] = None) -> dict:
    try:
        result = registry.render(name, arguments or {})
    except HANDLED_ERRORS as e:
        return error_result(e)
    d = result.to_dict()
    d["name"] = name
    return d


def handle_prompt_complete(registry, *, value: str = "") -> dict:
    names = registry.complete(value)
    return {"values": names, "total": len(names), "hasMore": False}


# ---------------------------------------------------------------------------
# MCP prompt registration
# ---------------------------------------------------------------------------


def _renderer(registry, name: str) -> Callable[..., List[dict]]:
    def render(**arguments: str) -> List[dict]:
        result = registry.render(name, arguments)
        for warning in result.warnings:
            log.debug("Prompt %s: %s", name, warning)
        return [m.to_dict() for m in result.messages]

    render.__name__ = name
    return render


def build_prompt(registry, name: str) -> Prompt:
    """MCP Prompt object for a registered template."""
    resource = registry.get(name)
    arguments = [
        MCPPromptArgument(name=a.name, description=a.description, required=a.required)
        for a in registry.arguments(name)
    ]
    return Prompt(
        name=name,
        description=resource.description if resource else None,
        arguments=arguments,
        fn=_renderer(registry, name),
    )


def sync_prompts(mcp, registry, registered: Set[str]) -> List[str]:
    """
    Register templates not yet known to ``mcp``; returns the names added.

    FastMCP has no prompt removal, so a template deleted from the vault stays
    listed until restart; rendering it reports that the prompt is gone.
    """
    added = []
    for resource in registry.list_prompts():
        if resource.name in registered:
            continue
        try:
            mcp.add_prompt(build_prompt(registry, resource.name))
        except HANDLED_ERRORS as e:
            log.warning("Skipping prompt %s: %s", resource.path, e)
            continue
        registered.add(resource.name)
        added.append(resource.name)
    return added


# ---------------------------------------------------------------------------
# MCP tool registration (thin wrappers)
# ---------------------------------------------------------------------------


def register_prompt_tools(mcp: FastMCP, registry) -> Callable[..., List[str]]:
    """
    Register prompt tools plus one MCP prompt per discovered template.

    Returns a callback that registers templates discovered later; hook it up
    as a cache change listener after the registry's own refresh.
    """
    registered: Set[str] = set()

    def sync(changed_path: Optional[str] = None) -> List[str]:
        return sync_prompts(mcp, registry, registered)

    sync()

    @mcp.tool()
    def prompt_list() -> str:
        """
        List prompt templates found in the vault.

        Returns:
            JSON array of {name, path, uri, description, arguments}
        """
        sync()
        return json.dumps(handle_prompt_list(registry), indent=2)

    @mcp.tool()
    def prompt_get(name: str, arguments: Optional[Dict[str, str]] = None) -> str:
        """
        Compile a prompt template with the given arguments.

        Links and embeds are inlined, images base64-encoded, callouts and code
        blocks wrapped in tags, and dataview queries evaluated.

        Args:
            name: Prompt name as returned by prompt_list
            arguments: Values for the template's {{placeholders}}

        Returns:
            JSON {name, messages, metadata, errors, warnings} or error message
        """
        return json.dumps(handle_prompt_get(registry, name=name, arguments=arguments), indent=2)

    @mcp.tool()
    def prompt_complete(value: str = "") -> str:
        """
        Complete a partial prompt name.

        Args:
            value: Text the prompt name should contain (case-insensitive)

        Returns:
            JSON {values, total, hasMore}
        """
        return json.dumps(handle_prompt_complete(registry, value=value), indent=2)

    return sync
