"""
api/routes/tasks.py -- Task CRUD routes for the TaskTracker REST API.

Routes (relative to Settings.api_prefix):
  GET    /tasks             -- list the caller's tasks (?status=&q=&sort=)
  POST   /tasks             -- create a task
  PUT    /tasks/{task_id}   -- edit title / description / isCompleted
  DELETE /tasks/{task_id}   -- delete a task

Ownership:
  Every store call carries current_user.id. A task id that belongs to
  another user yields the same 404 as an id that does not exist, so the API
  never confirms that someone else's task is there.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request
from sqlalchemy.exc import SQLAlchemyError

from api.models import MessageResponse, TaskCreate, TaskResponse, TaskSortOrder, TaskStatusFilter, TaskUpdate
from auth.dependencies import get_current_user
from auth.models import User
from tasks.models import Task
from tasks.store import TaskStore

logger = logging.getLogger("tasktracker.api.tasks")

# All task routes require authentication. FastAPI caches the guard per request,
# so the current_user parameters below reuse the same resolved User.
router = APIRouter(dependencies=[Depends(get_current_user)])

_NOT_FOUND = {"code": "not_found", "message": "Task not found or unauthorized."}

# SQLite INTEGER is signed 64-bit; ids outside it are a 400, not a driver error.
_MIN_ROW_ID = -(2**63)
_MAX_ROW_ID = 2**63 - 1


def _store_failure(message: str, exc: SQLAlchemyError) -> HTTPException:
    return HTTPException(
        status_code=500,
        detail={"code": "internal_error", "message": message, "detail": str(exc)},
    )


@router.get("/tasks", response_model=list[TaskResponse])
def list_tasks(
    request: Request,
    status: TaskStatusFilter = Query(default=TaskStatusFilter.all),
    q: Optional[str] = Query(default=None, max_length=200),
    sort: Optional[TaskSortOrder] = Query(default=None),
    current_user: User = Depends(get_current_user),
) -> list[TaskResponse]:
    """List the caller's tasks. Without query parameters, all of them in creation order."""
    task_store: TaskStore = request.app.state.task_store
    try:
        tasks = task_store.list_tasks(
            current_user.id,
            status=status.value,
            search=q,
            sort=sort.value if sort is not None else None,
        )
    except SQLAlchemyError as exc:
        logger.exception("Listing tasks failed for user id=%d", current_user.id)
        raise _store_failure("Failed to fetch tasks.", exc) from exc
    return [TaskResponse.from_task(t) for t in tasks]


@router.post("/tasks", response_model=TaskResponse, status_code=201)
def create_task(
    request: Request,
    body: TaskCreate,
    current_user: User = Depends(get_current_user),
) -> TaskResponse:
    """Create a task owned by the caller. isCompleted always starts false."""
    if not body.title:
        raise HTTPException(
            status_code=400,
            detail={"code": "validation_error", "message": "Title is required."},
        )
    task_store: TaskStore = request.app.state.task_store
    try:
        task_id = task_store.create_task(
            Task(title=body.title, description=body.description, user_id=current_user.id)
        )
        created = task_store.get_task(task_id, current_user.id)
    except SQLAlchemyError as exc:
        logger.exception("Creating task failed for user id=%d", current_user.id)
        raise _store_failure("Failed to add task.", exc) from exc
    if created is None:
        raise HTTPException(
            status_code=500,
            detail={"code": "internal_error", "message": "Task not found after write."},
        )
    return TaskResponse.from_task(created)


@router.put("/tasks/{task_id}", response_model=TaskResponse)
def edit_task(
    request: Request,
    body: TaskUpdate,
    task_id: int = Path(ge=_MIN_ROW_ID, le=_MAX_ROW_ID),
    current_user: User = Depends(get_current_user),
) -> TaskResponse:
    """Apply the sent fields to an owned task. 404 if missing or not the caller's."""
    fields = body.submitted()
    if "title" in fields and not fields["title"]:
        raise HTTPException(
            status_code=400,
            detail={"code": "validation_error", "message": "Title cannot be empty."},
        )
    task_store: TaskStore = request.app.state.task_store
    try:
        task = task_store.update_task(task_id, current_user.id, **fields)
    except SQLAlchemyError as exc:
        logger.exception("Updating task %d failed", task_id)
        raise _store_failure("Failed to update task.", exc) from exc
    if task is None:
        raise HTTPException(status_code=404, detail=_NOT_FOUND)
    return TaskResponse.from_task(task)


@router.delete("/tasks/{task_id}", response_model=MessageResponse)
def delete_task(
    request: Request,
    task_id: int = Path(ge=_MIN_ROW_ID, le=_MAX_ROW_ID),
    current_user: User = Depends(get_current_user),
) -> MessageResponse:
    """Delete an owned task. 404 if missing or not the caller's."""
    task_store: TaskStore = request.app.state.task_store
    try:
        deleted = task_store.delete_task(task_id, current_user.id)
    except SQLAlchemyError as exc:
        logger.exception("Deleting task %d failed", task_id)
        raise _store_failure("Failed to delete task.", exc) from exc
    if not deleted:
        raise HTTPException(status_code=404, detail=_NOT_FOUND)
    return MessageResponse(message="Task deleted successfully.")
