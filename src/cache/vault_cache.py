"""
Thread-safe in-memory vault cache with SQLite tag index.

Design:
    Primary store:   Dict[str, CachedFile]   (vault-relative POSIX path → stat,
                                               frontmatter, tags, tasks)
    SQLite:          note_tags table         (tag-scoped lookups)

The cache is the document store, link resolver and tag/metadata index the
prompt compiler and the tools work against. Paths handed in and out are
vault-relative with forward slashes; every one is checked to stay inside the
vault root before touching disk.

All mutations acquire _lock (threading.RLock).
The file watcher queues events on _update_queue; a worker thread drains it.
Change listeners are called (outside the lock) with the vault-relative path
of every note that was added, modified or removed.
"""

import logging
import posixpath
import queue
import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Set

from models.note import CachedFile, NoteMetadata
from models.task import Task
from parsers.frontmatter import collect_tags, split_frontmatter
from parsers.task_parser import parse_tasks_from_content
from utils.errors import NoteExistsError, NoteNotFoundError, VaultPathError
from utils.markup import get_base_name, parent_dir, sanitize_path

log = logging.getLogger(__name__)

NOTE_EXTENSION = ".md"

ChangeListener = Callable[[str], None]

# ---------------------------------------------------------------------------
# SQLite schema
# ---------------------------------------------------------------------------

_CREATE_TAGS_TABLE = """
CREATE TABLE IF NOT EXISTS note_tags (
    path TEXT NOT NULL,
    tag TEXT NOT NULL,
    PRIMARY KEY (path, tag)
);
"""

_CREATE_TAGS_INDEX = """
CREATE INDEX IF NOT EXISTS idx_note_tags_tag ON note_tags (tag COLLATE NOCASE);
"""


# ---------------------------------------------------------------------------
# VaultCache
# ---------------------------------------------------------------------------

class VaultCache:
    """
    Thread-safe in-memory vault cache.

    Initialize with initialize(), then start the background worker with
    start_worker(). The watcher calls enqueue_refresh() to schedule file
    re-parses without blocking the watcher thread.
    """

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._log = logger or log
        self._lock = threading.RLock()
        self._files: Dict[str, CachedFile] = {}
        self._vault_root: Optional[Path] = None
        self._exclude_dirs: Set[str] = set()
        self._db: sqlite3.Connection = sqlite3.connect(":memory:", check_same_thread=False)
        self._db.row_factory = sqlite3.Row
        self._db.executescript(_CREATE_TAGS_TABLE + _CREATE_TAGS_INDEX)
        self._update_queue: "queue.Queue[Optional[Path]]" = queue.Queue()
        self._worker_thread: Optional[threading.Thread] = None
        self._last_full_scan: Optional[datetime] = None
        self._listeners: List[ChangeListener] = []

    # ------------------------------------------------------------------
    # Initialisation
    # ------------------------------------------------------------------

    def initialize(self, vault_root: Path, exclude_dirs: Set[str]) -> None:
        """
        Full vault scan. Blocks until complete.
        Call once at server startup before starting the watcher.
        """
        self._vault_root = vault_root.resolve()
        self._exclude_dirs = set(exclude_dirs)
        self._log.info("Starting vault scan: %s", self._vault_root)
        with self._lock:
            for path in self.walk_files():
                self._load_file(path)
        self._last_full_scan = datetime.now()
        self._log.info(
            "Vault scan complete: %d files, %d notes, %d tasks",
            len(self._files),
            len(self.list()),
            len(self.all_tasks()),
        )

    def start_worker(self) -> None:
        """Start the background queue-drain worker thread (daemon)."""
        self._worker_thread = threading.Thread(
            target=self._worker_loop, daemon=True, name="vault-cache-worker"
        )
        self._worker_thread.start()

    def stop_worker(self) -> None:
        """Signal the worker thread to stop and wait for it."""
        self._update_queue.put(None)  # sentinel
        if self._worker_thread:
            self._worker_thread.join(timeout=5)

    def add_listener(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    @property
    def vault_root(self) -> Optional[Path]:
        return self._vault_root

    @property
    def exclude_dirs(self) -> Set[str]:
        return set(self._exclude_dirs)

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def is_excluded(self, path: Path) -> bool:
        """True when any directory between the vault root and ``path`` is excluded."""
        try:
            rel = path.relative_to(self._vault_root)
        except ValueError:
            return True
        return any(part in self._exclude_dirs for part in rel.parts[:-1])

    def walk_files(self) -> Iterator[Path]:
        """Yield every file under the vault root, respecting exclusions."""
        assert self._vault_root is not None
        for path in self._vault_root.rglob("*"):
            if path.is_file() and not self.is_excluded(path):
                yield path

    def relative_path(self, path: Path) -> str:
        return path.relative_to(self._vault_root).as_posix()

    def absolute_path(self, rel_path: str) -> Path:
        """
        Map a vault-relative path onto disk.

        Raises:
            VaultPathError: the path is empty or resolves outside the vault
        """
        assert self._vault_root is not None
        clean = sanitize_path(rel_path)
        if not clean:
            raise VaultPathError(rel_path)
        resolved = (self._vault_root / clean).resolve()
        try:
            resolved.relative_to(self._vault_root)
        except ValueError:
            raise VaultPathError(rel_path) from None
        return resolved

    # ------------------------------------------------------------------
    # Internal scanning
    # ------------------------------------------------------------------

    def _load_file(self, path: Path) -> None:
        """Index one file (no lock, internal use)."""
        try:
            stat = path.stat()
            rel = self.relative_path(path)
            cached = CachedFile(
                path=rel,
                mtime=stat.st_mtime,
                ctime=stat.st_ctime,
                size=stat.st_size,
                is_note=path.suffix.lower() == NOTE_EXTENSION,
            )
            if cached.is_note:
                content = path.read_text(encoding="utf-8")
                frontmatter, body = split_frontmatter(content)
                cached.frontmatter = frontmatter
                cached.tags = collect_tags(frontmatter, body)
                cached.tasks = parse_tasks_from_content(content, rel)
            self._upsert_file(cached)
        except Exception:
            self._log.exception("Failed to index %s", path)

    def _upsert_file(self, cached: CachedFile) -> None:
        """
        Store a CachedFile in all indexes. Caller must hold _lock or call
        from single-threaded init.
        """
        self._files[cached.path] = cached
        self._db.execute("DELETE FROM note_tags WHERE path = ?", (cached.path,))
        self._db.executemany(
            "INSERT OR IGNORE INTO note_tags (path, tag) VALUES (?, ?)",
            [(cached.path, tag) for tag in cached.tags],
        )
        self._db.commit()

    def _remove_file(self, rel: str) -> bool:
        """Remove a deleted file from all indexes."""
        with self._lock:
            cached = self._files.pop(rel, None)
            if not cached:
                return False
            self._db.execute("DELETE FROM note_tags WHERE path = ?", (rel,))
            self._db.commit()
            return cached.is_note

    def _notify(self, rel: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(rel)
            except Exception:
                self._log.exception("Change listener failed for %s", rel)

    # ------------------------------------------------------------------
    # Background worker
    # ------------------------------------------------------------------

    def _worker_loop(self) -> None:
        """Drain the update queue, re-parsing files as they arrive."""
        while True:
            item = self._update_queue.get()
            if item is None:  # sentinel → stop
                break
            try:
                self.refresh_file(item)
            except Exception:
                self._log.exception("Worker failed to refresh %s", item)

    # ------------------------------------------------------------------
    # Public cache refresh methods
    # ------------------------------------------------------------------

    def enqueue_refresh(self, path: Path) -> None:
        """
        Schedule a file re-parse from a watcher callback (non-blocking).
        """
        self._update_queue.put(path)

    def refresh_file(self, path: Path, force: bool = False) -> None:
        """
        Re-index a single file (absolute path) and notify listeners if a
        note changed. Thread-safe; blocks on _lock.
        """
        try:
            rel = self.relative_path(path)
        except ValueError:
            return

        if not path.exists():
            if self._remove_file(rel):
                self._notify(rel)
            return

        if self.is_excluded(path) or not path.is_file():
            return

        try:
            mtime = path.stat().st_mtime
        except OSError:
            return

        with self._lock:
            existing = self._files.get(rel)
            if existing and existing.mtime >= mtime and not force:
                return  # Already up to date
            self._load_file(path)
            cached = self._files.get(rel)

        if cached and cached.is_note:
            self._notify(rel)

    # ------------------------------------------------------------------
    # Document store
    # ------------------------------------------------------------------

    def exists(self, path: str) -> bool:
        try:
            return self.absolute_path(path).is_file()
        except VaultPathError:
            return False

    def read(self, path: str) -> str:
        """
        Raises:
            NoteNotFoundError: no such file
            VaultPathError: path outside the vault
        """
        target = self.absolute_path(path)
        if not target.is_file():
            raise NoteNotFoundError(path)
        return target.read_text(encoding="utf-8")

    def read_binary(self, path: str) -> bytes:
        target = self.absolute_path(path)
        if not target.is_file():
            raise NoteNotFoundError(path)
        return target.read_bytes()

    def list(self) -> List[str]:
        """Vault-relative paths of all Markdown notes, sorted."""
        with self._lock:
            return sorted(p for p, f in self._files.items() if f.is_note)

    def list_files(self) -> List[str]:
        with self._lock:
            return sorted(self._files)

    def write(self, path: str, content: str) -> str:
        """Create or overwrite a file, then re-index it. Returns the clean path."""
        target = self.absolute_path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        self.refresh_file(target, force=True)
        return self.relative_path(target)

    def create(self, path: str, content: str = "") -> str:
        """
        Raises:
            NoteExistsError: the file already exists
        """
        if self.exists(path):
            raise NoteExistsError(path)
        return self.write(path, content)

    def delete(self, path: str) -> None:
        """
        Raises:
            NoteNotFoundError: no such file
        """
        target = self.absolute_path(path)
        if not target.is_file():
            raise NoteNotFoundError(path)
        target.unlink()
        self.refresh_file(target)

    # ------------------------------------------------------------------
    # Link resolution
    # ------------------------------------------------------------------

    def resolve(self, link: str, from_path: str = "") -> Optional[str]:
        """
        Resolve a wiki-link target the way Obsidian does.

        Tries the exact vault path, then a path relative to the linking
        note's folder, then any file whose path ends with the target. A
        target without an extension also matches ``<target>.md``. Among
        several suffix matches the linking note's folder wins, then the
        shortest path, then lexical order.
        """
        target = sanitize_path(link)
        if not target:
            return None
        candidates = [target]
        if not target.lower().endswith(NOTE_EXTENSION):
            candidates.append(target + NOTE_EXTENSION)

        source_dir = parent_dir(from_path) if from_path else ""

        with self._lock:
            for candidate in candidates:
                if candidate in self._files:
                    return candidate

            if source_dir:
                for candidate in candidates:
                    relative = posixpath.normpath(posixpath.join(source_dir, candidate))
                    if relative in self._files:
                        return relative

            matches = [
                path
                for path in self._files
                for candidate in candidates
                if path == candidate or path.endswith("/" + candidate)
            ]

        if not matches:
            return None
        return min(set(matches), key=lambda p: (parent_dir(p) != source_dir, len(p), p))

    # ------------------------------------------------------------------
    # Tag / metadata index
    # ------------------------------------------------------------------

    def get_file(self, path: str) -> Optional[CachedFile]:
        with self._lock:
            return self._files.get(path)

    def tags_of(self, path: str) -> List[str]:
        with self._lock:
            cached = self._files.get(path)
            return list(cached.tags) if cached else []

    def frontmatter_of(self, path: str) -> dict:
        with self._lock:
            cached = self._files.get(path)
            return dict(cached.frontmatter) if cached else {}

    def all_tags(self) -> List[str]:
        with self._lock:
            rows = self._db.execute("SELECT DISTINCT tag FROM note_tags ORDER BY tag").fetchall()
            return [row["tag"] for row in rows]

    def paths_with_tag(self, tag: str) -> List[str]:
        """Notes carrying ``tag`` (case-insensitive, '#' optional), sorted."""
        with self._lock:
            rows = self._db.execute(
                "SELECT DISTINCT path FROM note_tags WHERE tag = ? COLLATE NOCASE ORDER BY path",
                (tag.lstrip("#"),),
            ).fetchall()
            return [row["path"] for row in rows]

    def note_metadata(self, path: str) -> NoteMetadata:
        cached = self.get_file(path)
        if cached is None:
            raise NoteNotFoundError(path)
        return cached.metadata()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def all_tasks(self) -> List[Task]:
        """Tasks of every note: notes in sorted path order, tasks top to bottom."""
        with self._lock:
            tasks: List[Task] = []
            for path in sorted(self._files):
                tasks.extend(self._files[path].tasks)
            return tasks

    def search_notes(self, query: str, limit: int = 50) -> List[NoteMetadata]:
        """Notes whose base name or content contains ``query`` (case-insensitive)."""
        needle = query.lower()
        results: List[NoteMetadata] = []
        for path in self.list():
            if needle in get_base_name(path).lower():
                matched = True
            else:
                try:
                    matched = needle in self.read(path).lower()
                except (NoteNotFoundError, OSError):
                    continue
            if matched:
                cached = self.get_file(path)
                if cached:
                    results.append(cached.metadata())
                if len(results) >= limit:
                    break
        return results

    # ------------------------------------------------------------------
    # Status / diagnostics
    # ------------------------------------------------------------------

    def status(self) -> dict:
        with self._lock:
            notes = [f for f in self._files.values() if f.is_note]
            tag_count = self._db.execute("SELECT COUNT(DISTINCT tag) FROM note_tags").fetchone()[0]
            return {
                "files_indexed": len(self._files),
                "notes_indexed": len(notes),
                "tasks_indexed": sum(len(f.tasks) for f in notes),
                "tags_indexed": tag_count,
                "last_full_scan": self._last_full_scan.isoformat() if self._last_full_scan else None,
                "vault_root": str(self._vault_root) if self._vault_root else None,
                "exclude_dirs": sorted(self._exclude_dirs),
            }
