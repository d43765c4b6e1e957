"""FastAPI application factory for the vault REST API."""

from fastapi import APIRouter, FastAPI

from api.note_routes import register_note_routes
from api.prompt_routes import register_prompt_routes
from api.task_routes import register_task_routes


def create_app(cache, registry) -> FastAPI:
    """Build and return a FastAPI app wired to the given VaultCache and PromptRegistry."""
    app = FastAPI(
        title="vault-prompt-mcp", docs_url="/api/docs", openapi_url="/api/openapi.json"
    )

    api = APIRouter(prefix="/api")
    register_note_routes(api, cache)
    register_task_routes(api, cache)
    register_prompt_routes(api, registry)
    app.include_router(api)

    return app
