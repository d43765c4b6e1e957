"""
Vault file models held in the vault cache.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from models.task import Task


@dataclass
class CachedFile:
    """
    One file in the vault cache.

    ``path`` is vault-relative with forward slashes. Only Markdown notes carry
    frontmatter, tags and tasks; attachments keep just their stat data.
    """

    path: str
    mtime: float
    ctime: float
    size: int
    is_note: bool = False
    frontmatter: Dict[str, Any] = field(default_factory=dict)
    tags: List[str] = field(default_factory=list)
    tasks: List[Task] = field(default_factory=list)

    @property
    def name(self) -> str:
        """Base name without extension."""
        filename = self.path.rsplit("/", 1)[-1]
        return filename[:-3] if filename.endswith(".md") else filename

    def metadata(self) -> NoteMetadata:
        return NoteMetadata(
            path=self.path,
            name=self.name,
            created=self.ctime,
            modified=self.mtime,
            size=self.size,
            tags=[f"#{t}" for t in self.tags],
        )


@dataclass
class NoteMetadata:
    path: str
    name: str
    created: float
    modified: float
    size: int
    tags: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "name": self.name,
            "created": self.created,
            "modified": self.modified,
            "size": self.size,
            "tags": list(self.tags),
        }


@dataclass
class PluginInfo:
    id: str
    name: str
    description: str = ""
    version: str = ""
    author: str = ""
    enabled: bool = False
    documentation_url: Optional[str] = None
    author_url: Optional[str] = None
    funding_url: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "version": self.version,
            "author": self.author,
            "enabled": self.enabled,
            "documentation_url": self.documentation_url,
            "author_url": self.author_url,
            "funding_url": self.funding_url,
        }
