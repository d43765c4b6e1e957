"""REST API routes for note operations."""

from fastapi import APIRouter, Query
from pydantic import BaseModel

from api.common import raise_for_error
from tools.note_tools import (
    handle_cache_status,
    handle_create,
    handle_delete,
    handle_notes,
    handle_plugins,
    handle_read,
    handle_search,
    handle_tags,
    handle_update,
)


class NoteBody(BaseModel):
    content: str = ""


def register_note_routes(app_router: APIRouter, cache) -> None:
    """Attach note REST routes that use the shared cache."""

    @app_router.get("/notes")
    def list_notes():
        return handle_notes(cache)

    @app_router.get("/notes/{path:path}")
    def read_note(path: str):
        return raise_for_error(handle_read(cache, path=path))

    @app_router.post("/notes/{path:path}", status_code=201)
    def create_note(path: str, body: NoteBody):
        return raise_for_error(handle_create(cache, path=path, content=body.content))

    @app_router.put("/notes/{path:path}")
    def update_note(path: str, body: NoteBody):
        return raise_for_error(handle_update(cache, path=path, content=body.content))

    @app_router.delete("/notes/{path:path}")
    def delete_note(path: str):
        return raise_for_error(handle_delete(cache, path=path))

    @app_router.get("/search")
    def search_notes(query: str = Query(...), limit: int = Query(50)):
        return handle_search(cache, query=query, limit=limit)

    @app_router.get("/tags")
    def list_tags():
        return handle_tags(cache)

    @app_router.get("/plugins")
    def list_plugins():
        return handle_plugins(cache)

    @app_router.get("/cache/status")
    def get_cache_status():
        return handle_cache_status(cache)
