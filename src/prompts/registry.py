"""
Discovery of prompt-template notes in the vault.

A note is a prompt template when it lives under one of the configured prompt
folders or carries one of the configured prompt tags. Templates are keyed by
a name derived from the file name (lower-cased, whitespace → '-').
"""

import logging
import re
import threading
from typing import Dict, Iterable, List, Optional

from models.prompt import DEFAULT_MAX_DEPTH, ProcessingResult, PromptArgument, PromptResource
from prompts.compiler import compile_prompt
from prompts.variables import extract_variables
from utils.errors import PromptNotFoundError
from utils.markup import get_base_name, sanitize_path

log = logging.getLogger(__name__)

PROMPT_URI_SCHEME = "obsidian://prompt/"
MAX_COMPLETIONS = 100


def prompt_name(path: str) -> str:
    return re.sub(r"\s+", "-", get_base_name(path).strip().lower())


class PromptRegistry:
    """
    Name → template index over a VaultCache.

    refresh() re-runs discovery; register it as a cache change listener to
    keep the registry current.
    """

    def __init__(
        self,
        cache,
        prompt_folders: Iterable[str] = (),
        prompt_tags: Iterable[str] = (),
        max_depth: int = DEFAULT_MAX_DEPTH,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._cache = cache
        self._folders = [sanitize_path(f) for f in prompt_folders if sanitize_path(f)]
        self._tags = {t.strip().lstrip("#").lower() for t in prompt_tags if t.strip().lstrip("#")}
        self._max_depth = max_depth
        self._log = logger or log
        self._lock = threading.RLock()
        self._prompts: Dict[str, PromptResource] = {}

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def is_prompt(self, path: str) -> bool:
        for folder in self._folders:
            if path == folder or path.startswith(folder + "/"):
                return True
        if self._tags:
            return any(t.lower() in self._tags for t in self._cache.tags_of(path))
        return False

    def refresh(self, changed_path: Optional[str] = None) -> None:
        discovered: Dict[str, PromptResource] = {}
        for path in self._cache.list():
            if not self.is_prompt(path):
                continue
            name = prompt_name(path)
            if name in discovered:
                self._log.warning(
                    "Prompt name %r from %s already used by %s; skipping",
                    name,
                    path,
                    discovered[name].path,
                )
                continue
            discovered[name] = PromptResource(
                name=name,
                path=path,
                uri=f"{PROMPT_URI_SCHEME}{path}",
                description=f"Prompt from {path}",
            )

        with self._lock:
            added = sorted(set(discovered) - set(self._prompts))
            removed = sorted(set(self._prompts) - set(discovered))
            self._prompts = discovered

        if added:
            self._log.info("Prompts added: %s", ", ".join(added))
        if removed:
            self._log.info("Prompts removed: %s", ", ".join(removed))

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def list_prompts(self) -> List[PromptResource]:
        with self._lock:
            return sorted(self._prompts.values(), key=lambda p: p.name)

    def get(self, name: str) -> Optional[PromptResource]:
        with self._lock:
            return self._prompts.get(name)

    def _require(self, name: str) -> PromptResource:
        prompt = self.get(name)
        if prompt is None:
            raise PromptNotFoundError(name)
        return prompt

    def arguments(self, name: str) -> List[PromptArgument]:
        prompt = self._require(name)
        return extract_variables(self._cache.read(prompt.path))

    def render(self, name: str, bindings: Optional[Dict[str, str]] = None) -> ProcessingResult:
        """
        Compile the named template.

        Raises:
            PromptNotFoundError: no such prompt
            NoteNotFoundError: its note has disappeared
        """
        prompt = self._require(name)
        content = self._cache.read(prompt.path)
        return compile_prompt(
            content,
            bindings,
            self._cache,
            source_path=prompt.path,
            max_depth=self._max_depth,
            logger=self._log,
        )

    def complete(self, value: str) -> List[str]:
        """Prompt names containing ``value`` (case-insensitive)."""
        needle = value.lower()
        names = [p.name for p in self.list_prompts() if needle in p.name]
        return names[:MAX_COMPLETIONS]
