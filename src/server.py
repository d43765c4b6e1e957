"""
Vault Prompt MCP Server entry point.

Startup sequence:
1. Read Settings from environment
2. Initialize VaultCache (full vault scan)
3. Discover prompt templates (PromptRegistry)
4. Start cache background worker thread
5. Start VaultWatcher daemon thread
6. Register all MCP tools and prompts
7. Start REST API server in background thread (if API_ENABLED)
8. Run MCP server (stdio transport)
"""

import logging
import sys
import threading

from mcp.server.fastmcp import FastMCP

from cache.vault_cache import VaultCache
from config import Settings
from prompts.registry import PromptRegistry
from tools import register_note_tools, register_prompt_tools, register_task_tools
from watcher.vault_watcher import VaultWatcher

log = logging.getLogger(__name__)


def _start_api_server(cache, registry, port: int) -> None:
    """Run the FastAPI/uvicorn server in a daemon thread."""
    import uvicorn

    from api.app import create_app

    app = create_app(cache, registry)
    log.info("Starting REST API on port %d", port)
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="warning")


def main() -> None:
    settings = Settings.from_env()

    # stdout belongs to the stdio transport
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if settings.vault_root is None:
        log.error("VAULT_ROOT environment variable is not set")
        sys.exit(1)

    vault_root = settings.vault_root
    if not vault_root.is_dir():
        log.error("VAULT_ROOT does not exist or is not a directory: %s", vault_root)
        sys.exit(1)

    exclude_dirs = set(settings.exclude_dirs)
    log.info("Vault root: %s", vault_root)
    log.info("Excluded dirs: %s", exclude_dirs)

    # Initialize cache and perform full vault scan
    cache = VaultCache()
    cache.initialize(vault_root, exclude_dirs)

    registry = PromptRegistry(
        cache,
        prompt_folders=settings.prompt_folders,
        prompt_tags=settings.prompt_tags,
        max_depth=settings.max_depth,
    )
    registry.refresh()
    cache.add_listener(registry.refresh)

    # Start background worker that drains the update queue
    cache.start_worker()

    # Start file system watcher
    watcher = VaultWatcher(cache, poll_interval=settings.poll_interval)
    watcher.start()

    # Start REST API in a daemon thread
    if settings.api_enabled:
        api_thread = threading.Thread(
            target=_start_api_server, args=(cache, registry, settings.api_port), daemon=True
        )
        api_thread.start()

    # Create MCP server and register tools
    mcp = FastMCP("vault-prompt-mcp")
    register_note_tools(mcp, cache)
    register_task_tools(mcp, cache)
    cache.add_listener(register_prompt_tools(mcp, registry))

    log.info("Starting vault-prompt-mcp server")
    try:
        mcp.run(transport="stdio")
    finally:
        watcher.stop()
        cache.stop_worker()


if __name__ == "__main__":
    main()
