"""
Tests for cache/vault_cache.py.

Covers:
- initialize() scans notes and attachments, honouring excluded directories
- Frontmatter and inline tags, case-insensitive tag lookups
- Link resolution order
- Document store: read / write / create / delete and path containment
- refresh_file() and change listeners
- Background worker draining enqueued refreshes
"""

import os
import sys
from pathlib import Path

# Add src to path so imports work without installation
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from cache.vault_cache import VaultCache
from utils.errors import NoteExistsError, NoteNotFoundError, VaultPathError


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_vault(tmp_path: Path) -> Path:
    vault = tmp_path / "vault"
    (vault / "Projects").mkdir(parents=True)
    (vault / "Archive" / "Projects").mkdir(parents=True)
    (vault / "img").mkdir()
    (vault / ".obsidian").mkdir()

    (vault / "Inbox.md").write_text(
        "# Inbox\n\n"
        "- [ ] Buy milk 📅 2024-01-15 #errand\n"
        "- [x] Call mom ✅ 2024-01-10\n",
        encoding="utf-8",
    )
    (vault / "Projects" / "Plan.md").write_text(
        "---\ntags: [project, planning]\nstatus: active\n---\n"
        "# Plan\n\n- [ ] Draft outline ⏫ 📅 2024-03-01 #work\n",
        encoding="utf-8",
    )
    (vault / "Archive" / "Projects" / "Plan.md").write_text("old plan\n", encoding="utf-8")
    (vault / "Projects" / "Notes.md").write_text("See [[Plan]]\n", encoding="utf-8")
    (vault / "img" / "cat.png").write_bytes(b"\x89PNG")
    (vault / ".obsidian" / "app.json").write_text("{}", encoding="utf-8")
    return vault


def _make_cache(tmp_path: Path) -> VaultCache:
    cache = VaultCache()
    cache.initialize(_make_vault(tmp_path), {".obsidian"})
    return cache


# ---------------------------------------------------------------------------
# Scan
# ---------------------------------------------------------------------------

class TestInitialize:
    def test_lists_notes_sorted(self, tmp_path):
        cache = _make_cache(tmp_path)
        assert cache.list() == [
            "Archive/Projects/Plan.md",
            "Inbox.md",
            "Projects/Notes.md",
            "Projects/Plan.md",
        ]

    def test_attachments_indexed_but_not_notes(self, tmp_path):
        cache = _make_cache(tmp_path)
        assert "img/cat.png" in cache.list_files()
        assert "img/cat.png" not in cache.list()

    def test_excluded_dirs_skipped(self, tmp_path):
        cache = _make_cache(tmp_path)
        assert not any(p.startswith(".obsidian") for p in cache.list_files())

    def test_tasks_parsed(self, tmp_path):
        cache = _make_cache(tmp_path)
        tasks = cache.all_tasks()
        assert [t.text for t in tasks] == ["Buy milk", "Call mom", "Draft outline"]
        assert tasks[2].location.file == "Projects/Plan.md"
        assert tasks[2].location.line == 7
        assert tasks[2].location.heading == "Plan"

    def test_status(self, tmp_path):
        status = _make_cache(tmp_path).status()
        assert status["files_indexed"] == 5
        assert status["notes_indexed"] == 4
        assert status["tasks_indexed"] == 3
        assert status["exclude_dirs"] == [".obsidian"]
        assert status["last_full_scan"] is not None


# ---------------------------------------------------------------------------
# Tags and metadata
# ---------------------------------------------------------------------------

class TestTags:
    def test_frontmatter_and_inline_tags(self, tmp_path):
        cache = _make_cache(tmp_path)
        assert cache.tags_of("Projects/Plan.md") == ["project", "planning", "work"]

    def test_all_tags(self, tmp_path):
        assert _make_cache(tmp_path).all_tags() == ["errand", "planning", "project", "work"]

    def test_paths_with_tag_case_insensitive(self, tmp_path):
        cache = _make_cache(tmp_path)
        assert cache.paths_with_tag("#WORK") == ["Projects/Plan.md"]
        assert cache.paths_with_tag("nothing") == []

    def test_frontmatter_of(self, tmp_path):
        cache = _make_cache(tmp_path)
        assert cache.frontmatter_of("Projects/Plan.md")["status"] == "active"
        assert cache.frontmatter_of("missing.md") == {}

    def test_note_metadata(self, tmp_path):
        cache = _make_cache(tmp_path)
        meta = cache.note_metadata("Projects/Plan.md")
        assert meta.name == "Plan"
        assert meta.tags == ["#project", "#planning", "#work"]
        with pytest.raises(NoteNotFoundError):
            cache.note_metadata("missing.md")

    def test_search_notes(self, tmp_path):
        cache = _make_cache(tmp_path)
        assert [m.path for m in cache.search_notes("MILK")] == ["Inbox.md"]
        assert [m.path for m in cache.search_notes("notes")] == ["Projects/Notes.md"]


# ---------------------------------------------------------------------------
# Link resolution
# ---------------------------------------------------------------------------

class TestResolve:
    def test_exact_path(self, tmp_path):
        assert _make_cache(tmp_path).resolve("Projects/Plan.md") == "Projects/Plan.md"

    def test_implied_extension(self, tmp_path):
        assert _make_cache(tmp_path).resolve("Inbox") == "Inbox.md"

    def test_attachment(self, tmp_path):
        assert _make_cache(tmp_path).resolve("cat.png") == "img/cat.png"

    def test_relative_to_source_folder(self, tmp_path):
        cache = _make_cache(tmp_path)
        assert cache.resolve("Plan", "Archive/Projects/Other.md") == "Archive/Projects/Plan.md"
        assert cache.resolve("../Inbox", "Projects/Notes.md") == "Inbox.md"

    def test_shortest_suffix_match(self, tmp_path):
        assert _make_cache(tmp_path).resolve("Plan") == "Projects/Plan.md"

    def test_unresolved(self, tmp_path):
        cache = _make_cache(tmp_path)
        assert cache.resolve("Nowhere") is None
        assert cache.resolve("") is None


# ---------------------------------------------------------------------------
# Document store
# ---------------------------------------------------------------------------

class TestDocumentStore:
    def test_read(self, tmp_path):
        assert _make_cache(tmp_path).read("Projects/Notes.md") == "See [[Plan]]\n"

    def test_read_missing(self, tmp_path):
        with pytest.raises(NoteNotFoundError):
            _make_cache(tmp_path).read("missing.md")

    def test_read_binary(self, tmp_path):
        assert _make_cache(tmp_path).read_binary("img/cat.png") == b"\x89PNG"

    def test_path_escape_rejected(self, tmp_path):
        cache = _make_cache(tmp_path)
        (tmp_path / "outside.md").write_text("secret", encoding="utf-8")
        with pytest.raises(VaultPathError):
            cache.read("../outside.md")
        with pytest.raises(VaultPathError):
            cache.write("../outside.md", "x")
        assert not cache.exists("../outside.md")

    def test_write_reindexes(self, tmp_path):
        cache = _make_cache(tmp_path)
        assert cache.write("New/Idea.md", "- [ ] Think #idea\n") == "New/Idea.md"
        assert "New/Idea.md" in cache.list()
        assert cache.tags_of("New/Idea.md") == ["idea"]
        assert "Think" in [t.text for t in cache.all_tasks()]

    def test_write_overwrites(self, tmp_path):
        cache = _make_cache(tmp_path)
        cache.write("Inbox.md", "# Inbox\n")
        assert cache.read("Inbox.md") == "# Inbox\n"
        assert cache.tags_of("Inbox.md") == []

    def test_create_existing_rejected(self, tmp_path):
        with pytest.raises(NoteExistsError):
            _make_cache(tmp_path).create("Inbox.md", "x")

    def test_create(self, tmp_path):
        cache = _make_cache(tmp_path)
        cache.create("Fresh.md", "hello")
        assert cache.read("Fresh.md") == "hello"

    def test_delete(self, tmp_path):
        cache = _make_cache(tmp_path)
        cache.delete("Inbox.md")
        assert "Inbox.md" not in cache.list()
        assert "errand" not in cache.all_tags()
        with pytest.raises(NoteNotFoundError):
            cache.delete("Inbox.md")


# ---------------------------------------------------------------------------
# Refresh and listeners
# ---------------------------------------------------------------------------

class TestRefresh:
    def test_listener_notified_on_write_and_delete(self, tmp_path):
        cache = _make_cache(tmp_path)
        seen = []
        cache.add_listener(seen.append)
        cache.write("Fresh.md", "x")
        cache.delete("Fresh.md")
        assert seen == ["Fresh.md", "Fresh.md"]

    def test_attachment_changes_not_notified(self, tmp_path):
        cache = _make_cache(tmp_path)
        seen = []
        cache.add_listener(seen.append)
        target = cache.absolute_path("img/dog.png")
        target.write_bytes(b"x")
        cache.refresh_file(target)
        assert "img/dog.png" in cache.list_files()
        assert seen == []

    def test_failing_listener_does_not_break_others(self, tmp_path):
        cache = _make_cache(tmp_path)
        seen = []

        def broken(path):
            raise RuntimeError("boom")

        cache.add_listener(broken)
        cache.add_listener(seen.append)
        cache.write("Fresh.md", "x")
        assert seen == ["Fresh.md"]

    def test_refresh_picks_up_disk_edit(self, tmp_path):
        cache = _make_cache(tmp_path)
        target = cache.absolute_path("Projects/Notes.md")
        target.write_text("- [ ] New task #fresh\n", encoding="utf-8")
        later = target.stat().st_mtime + 10
        os.utime(target, (later, later))
        cache.refresh_file(target)
        assert cache.tags_of("Projects/Notes.md") == ["fresh"]

    def test_unchanged_file_skipped(self, tmp_path):
        cache = _make_cache(tmp_path)
        seen = []
        cache.add_listener(seen.append)
        cache.refresh_file(cache.absolute_path("Inbox.md"))
        assert seen == []

    def test_worker_drains_queue(self, tmp_path):
        cache = _make_cache(tmp_path)
        target = cache.absolute_path("Queued.md")
        target.write_text("#queued\n", encoding="utf-8")
        cache.start_worker()
        cache.enqueue_refresh(target)
        cache.stop_worker()
        assert cache.tags_of("Queued.md") == ["queued"]
