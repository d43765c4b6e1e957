"""REST API routes for task operations."""

from typing import List, Optional, Union

from fastapi import APIRouter, Query
from pydantic import BaseModel

from api.common import raise_for_error
from tools.task_tools import (
    handle_task_complete,
    handle_task_create,
    handle_task_list,
    handle_task_search,
    handle_task_update,
)


class TaskCreateBody(BaseModel):
    file: str
    text: str
    position: str = "append"
    heading: Optional[str] = None
    status: str = "open"
    priority: Optional[str] = None
    due: Optional[str] = None
    scheduled: Optional[str] = None
    start: Optional[str] = None
    recurrence: Optional[str] = None
    tags: Union[List[str], str, None] = None
    indent: int = 0


class TaskUpdateBody(BaseModel):
    """
    Patch for one task. Fields left out are unchanged; fields sent as null
    (or "") are cleared.
    """

    file: str
    line: int
    text: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    due: Optional[str] = None
    scheduled: Optional[str] = None
    start: Optional[str] = None
    recurrence: Optional[str] = None
    tags: Union[List[str], str, None] = None


class TaskCompleteBody(BaseModel):
    file: str
    line: int
    completed: Optional[str] = None


def register_task_routes(app_router: APIRouter, cache) -> None:
    """Attach task REST routes that use the shared cache."""

    @app_router.get("/tasks")
    def list_tasks(
        status: Optional[str] = Query(None),
        priority: Optional[str] = Query(None),
        path: Optional[str] = Query(None),
        due_before: Optional[str] = Query(None),
        due_after: Optional[str] = Query(None),
        is_recurring: Optional[bool] = Query(None),
        tags: Optional[str] = Query(None),
        limit: Optional[int] = Query(None),
    ):
        return raise_for_error(
            handle_task_list(
                cache,
                status=status,
                priority=priority,
                path=path,
                due_before=due_before,
                due_after=due_after,
                is_recurring=is_recurring,
                tags=tags,
                limit=limit,
            )
        )

    @app_router.get("/tasks/search")
    def search_tasks(
        query: str = Query(...),
        path: Optional[str] = Query(None),
        search_completed: bool = Query(False),
        case_sensitive: bool = Query(False),
        limit: int = Query(50),
    ):
        return handle_task_search(
            cache,
            query=query,
            path=path,
            search_completed=search_completed,
            case_sensitive=case_sensitive,
            limit=limit,
        )

    @app_router.post("/tasks", status_code=201)
    def create_task(body: TaskCreateBody):
        return raise_for_error(handle_task_create(cache, **body.model_dump()))

    @app_router.patch("/tasks")
    def update_task(body: TaskUpdateBody):
        changes = body.model_dump(exclude_unset=True)
        file, line = changes.pop("file"), changes.pop("line")
        return raise_for_error(handle_task_update(cache, file=file, line=line, changes=changes))

    @app_router.post("/tasks/complete")
    def complete_task(body: TaskCompleteBody):
        return raise_for_error(handle_task_complete(cache, **body.model_dump()))
