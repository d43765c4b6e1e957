"""
Tests for the REST API routes.

Uses FastAPI TestClient against a real VaultCache with a temp vault.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from fastapi.testclient import TestClient

from api.app import create_app
from cache.vault_cache import VaultCache
from prompts.registry import PromptRegistry


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_vault(tmp_path: Path) -> Path:
    vault = tmp_path / "vault"
    vault.mkdir()

    (vault / "Inbox.md").write_text(
        "# Inbox\n\n"
        "- [ ] Buy milk 📅 2024-01-15 #errand\n"
        "- [x] Call mom ✅ 2024-01-10\n",
        encoding="utf-8",
    )
    (vault / "Books").mkdir()
    (vault / "Books" / "Dune.md").write_text(
        "---\nauthor: Frank Herbert\ntags: book\n---\nSpice.\n", encoding="utf-8"
    )
    (vault / "Prompts").mkdir()
    (vault / "Prompts" / "Reading.md").write_text(
        "Books for {{reader}}:\n```dataview\nTABLE author FROM #book\n```\n", encoding="utf-8"
    )
    return vault


@pytest.fixture
def client(tmp_path):
    cache = VaultCache()
    cache.initialize(_make_vault(tmp_path), set())
    registry = PromptRegistry(cache, prompt_folders=["Prompts"])
    registry.refresh()
    return TestClient(create_app(cache, registry))


# ---------------------------------------------------------------------------
# Notes
# ---------------------------------------------------------------------------

class TestNoteRoutes:
    def test_list_notes(self, client):
        resp = client.get("/api/notes")
        assert resp.status_code == 200
        assert [n["path"] for n in resp.json()] == ["Books/Dune.md", "Inbox.md", "Prompts/Reading.md"]

    def test_read_note(self, client):
        resp = client.get("/api/notes/Books/Dune.md")
        assert resp.status_code == 200
        assert resp.json()["content"].endswith("Spice.\n")

    def test_read_missing(self, client):
        resp = client.get("/api/notes/nope.md")
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Note not found: nope.md"

    def test_create_note(self, client):
        resp = client.post("/api/notes/Ideas/New.md", json={"content": "fresh"})
        assert resp.status_code == 201
        assert client.get("/api/notes/Ideas/New.md").json()["content"] == "fresh"

    def test_create_existing(self, client):
        assert client.post("/api/notes/Inbox.md", json={"content": "x"}).status_code == 409

    def test_update_note(self, client):
        assert client.put("/api/notes/Inbox.md", json={"content": "# Inbox\n"}).status_code == 200
        assert client.get("/api/notes/Inbox.md").json()["content"] == "# Inbox\n"

    def test_update_missing(self, client):
        assert client.put("/api/notes/nope.md", json={"content": "x"}).status_code == 404

    def test_delete_note(self, client):
        assert client.delete("/api/notes/Inbox.md").status_code == 200
        assert client.get("/api/notes/Inbox.md").status_code == 404

    def test_search(self, client):
        resp = client.get("/api/search", params={"query": "spice"})
        assert [n["path"] for n in resp.json()] == ["Books/Dune.md"]

    def test_tags(self, client):
        assert client.get("/api/tags").json() == ["#book", "#errand"]

    def test_plugins_without_config(self, client):
        assert client.get("/api/plugins").json() == []

    def test_cache_status(self, client):
        data = client.get("/api/cache/status").json()
        assert data["notes_indexed"] == 3
        assert data["tasks_indexed"] == 2


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------

class TestTaskRoutes:
    def test_list_tasks(self, client):
        resp = client.get("/api/tasks", params={"status": "done"})
        assert resp.status_code == 200
        assert [t["text"] for t in resp.json()] == ["Call mom"]

    def test_list_bad_date(self, client):
        assert client.get("/api/tasks", params={"due_before": "someday"}).status_code == 400

    def test_search_tasks(self, client):
        data = client.get("/api/tasks/search", params={"query": "milk"}).json()
        assert data[0]["match"]["matched_text"] == "milk"

    def test_create_task(self, client):
        resp = client.post(
            "/api/tasks",
            json={"file": "Inbox.md", "text": "Pay rent", "priority": "high", "tags": ["bills"]},
        )
        assert resp.status_code == 201
        task = resp.json()["task"]
        assert task["priority"] == "high"
        assert task["tags"] == ["bills"]
        assert task["location"]["line"] == 5

    def test_create_task_bad_heading(self, client):
        resp = client.post(
            "/api/tasks",
            json={"file": "Inbox.md", "text": "x", "position": "after_heading", "heading": "Nope"},
        )
        assert resp.status_code == 400

    def test_patch_sets_only_sent_fields(self, client):
        resp = client.patch("/api/tasks", json={"file": "Inbox.md", "line": 3, "priority": "high"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["priority"] == "high"
        assert data["dates"] == {"due": "2024-01-15"}

    def test_patch_null_clears(self, client):
        data = client.patch("/api/tasks", json={"file": "Inbox.md", "line": 3, "due": None}).json()
        assert data["dates"] == {}
        assert data["tags"] == ["errand"]

    def test_patch_out_of_range(self, client):
        resp = client.patch("/api/tasks", json={"file": "Inbox.md", "line": 42, "status": "done"})
        assert resp.status_code == 400
        assert "Invalid line number" in resp.json()["detail"]

    def test_patch_missing_note(self, client):
        resp = client.patch("/api/tasks", json={"file": "nope.md", "line": 1, "status": "done"})
        assert resp.status_code == 404

    def test_complete_task(self, client):
        resp = client.post(
            "/api/tasks/complete", json={"file": "Inbox.md", "line": 3, "completed": "2024-01-14"}
        )
        assert resp.status_code == 200
        assert resp.json()["dates"]["completed"] == "2024-01-14"


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

class TestPromptRoutes:
    def test_list_prompts(self, client):
        data = client.get("/api/prompts").json()
        assert [p["name"] for p in data] == ["reading"]
        assert data[0]["arguments"][0]["name"] == "reader"

    def test_prompt_info(self, client):
        data = client.get("/api/prompts/reading").json()
        assert data["uri"] == "obsidian://prompt/Prompts/Reading.md"

    def test_prompt_info_missing(self, client):
        assert client.get("/api/prompts/nope").status_code == 404

    def test_render(self, client):
        resp = client.post("/api/prompts/reading/render", json={"arguments": {"reader": "Ana"}})
        assert resp.status_code == 200
        text = resp.json()["messages"][0]["content"]["text"]
        assert text.startswith("Books for Ana:\n")
        assert "[[Dune]] | Frank Herbert" in text

    def test_render_missing(self, client):
        assert client.post("/api/prompts/nope/render", json={}).status_code == 404

    def test_complete(self, client):
        data = client.get("/api/prompts/complete", params={"value": "rea"}).json()
        assert data["values"] == ["reading"]
