"""
Server settings, read from environment variables.

    VAULT_ROOT      vault directory (required)
    EXCLUDE_DIRS    comma-separated directory names to skip
    PROMPT_FOLDERS  comma-separated vault folders holding prompt templates
    PROMPT_TAGS     comma-separated tags marking prompt templates ('#' optional)
    MAX_DEPTH       link/embed nesting limit when compiling prompts
    API_ENABLED     serve the REST API alongside MCP
    API_PORT        REST API port
    POLL_INTERVAL   watcher polling interval in seconds
    DEBUG           log at DEBUG level
"""

import os
from pathlib import Path
from typing import List, Mapping, Optional

from pydantic import BaseModel

from models.prompt import DEFAULT_MAX_DEPTH
from watcher.vault_watcher import DEFAULT_POLL_INTERVAL

DEFAULT_EXCLUDE_DIRS = ".git,.obsidian,node_modules,.trash"
DEFAULT_API_PORT = 3983


def _env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    value = env.get(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(env: Mapping[str, str], name: str, default: str = "") -> List[str]:
    raw = env.get(name, default)
    return [part.strip() for part in raw.split(",") if part.strip()]


class Settings(BaseModel):
    vault_root: Optional[Path] = None
    exclude_dirs: List[str] = DEFAULT_EXCLUDE_DIRS.split(",")
    prompt_folders: List[str] = []
    prompt_tags: List[str] = []
    max_depth: int = DEFAULT_MAX_DEPTH
    api_enabled: bool = True
    api_port: int = DEFAULT_API_PORT
    poll_interval: float = DEFAULT_POLL_INTERVAL
    debug: bool = False

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env
        vault_root = env.get("VAULT_ROOT", "").strip()
        return cls(
            vault_root=Path(vault_root) if vault_root else None,
            exclude_dirs=_env_list(env, "EXCLUDE_DIRS", DEFAULT_EXCLUDE_DIRS),
            prompt_folders=_env_list(env, "PROMPT_FOLDERS"),
            prompt_tags=_env_list(env, "PROMPT_TAGS"),
            max_depth=int(env.get("MAX_DEPTH", DEFAULT_MAX_DEPTH)),
            api_enabled=_env_bool(env, "API_ENABLED", True),
            api_port=int(env.get("API_PORT", DEFAULT_API_PORT)),
            poll_interval=float(env.get("POLL_INTERVAL", DEFAULT_POLL_INTERVAL)),
            debug=_env_bool(env, "DEBUG", False),
        )
