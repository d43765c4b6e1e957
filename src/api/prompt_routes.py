"""REST API routes for prompt templates."""

from typing import Dict

from fastapi import APIRouter, Query
from pydantic import BaseModel

from api.common import raise_for_error
from tools.prompt_tools import (
    handle_prompt_complete,
    handle_prompt_get,
    handle_prompt_info,
    handle_prompt_list,
)


class PromptRenderBody(BaseModel):
    arguments: Dict[str, str] = {}


def register_prompt_routes(app_router: APIRouter, registry) -> None:
    """Attach prompt REST routes that use the shared registry."""

    @app_router.get("/prompts")
    def list_prompts():
        return handle_prompt_list(registry)

    @app_router.get("/prompts/complete")
    def complete_prompt(value: str = Query("")):
        return handle_prompt_complete(registry, value=value)

    @app_router.get("/prompts/{name}")
    def get_prompt(name: str):
        return raise_for_error(handle_prompt_info(registry, name=name))

    @app_router.post("/prompts/{name}/render")
    def render_prompt(name: str, body: PromptRenderBody):
        return raise_for_error(handle_prompt_get(registry, name=name, arguments=body.arguments))
