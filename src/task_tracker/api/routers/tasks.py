from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, status

from ..schemas import DeleteConfirmation, ErrorResponse, TaskCreate, TaskOut, TaskStatusUpdate
from ..store import TaskStore

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/tasks",
    tags=["tasks"],
)

_NOT_FOUND = {"model": ErrorResponse, "description": "Task not found"}
_INVALID = {"model": ErrorResponse, "description": "Invalid data"}
_SERVER_ERROR = {"model": ErrorResponse, "description": "Internal server error"}


def get_store(request: Request) -> TaskStore:
    """
    Dependency returning the store built once at startup and kept on app.state.
    """
    return request.app.state.store


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[TaskOut],
    summary="List Tasks",
    description="Retrieve every task in insertion order.",
    responses={500: _SERVER_ERROR},
)
def list_tasks(store: TaskStore = Depends(get_store)) -> List[TaskOut]:
    """
    List all tasks.
    """
    return [TaskOut(**t) for t in store.list_tasks()]


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=TaskOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create Task",
    description="Add a new task. Status defaults to 'pending' when omitted.",
    responses={400: _INVALID, 500: _SERVER_ERROR},
)
def create_task(payload: TaskCreate, store: TaskStore = Depends(get_store)) -> TaskOut:
    """
    Create a new task and return it with its generated id.
    """
    created = store.create_task(payload)
    logger.info("Task %s created", created["id"])
    return TaskOut(**created)


# PUBLIC_INTERFACE
@router.get(
    "/{task_id}",
    response_model=TaskOut,
    summary="Get Task",
    description="Get a single task by ID.",
    responses={404: _NOT_FOUND, 500: _SERVER_ERROR},
)
def get_task(task_id: str, store: TaskStore = Depends(get_store)) -> TaskOut:
    item = store.get_task(task_id)
    if item is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    return TaskOut(**item)


# PUBLIC_INTERFACE
@router.patch(
    "/{task_id}",
    response_model=TaskOut,
    summary="Update Task Status",
    description="Update only the status of a task (pending or done).",
    responses={400: _INVALID, 404: _NOT_FOUND, 500: _SERVER_ERROR},
)
def update_task_status(
    task_id: str, payload: TaskStatusUpdate, store: TaskStore = Depends(get_store)
) -> TaskOut:
    """
    Replace the status of a task; other fields are left untouched.
    """
    updated = store.update_task_status(task_id, payload)
    if updated is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    logger.info("Task %s status set to %s", task_id, payload.status.value)
    return TaskOut(**updated)


# PUBLIC_INTERFACE
@router.put(
    "/{task_id}",
    response_model=TaskOut,
    summary="Update Task",
    description="Replace title, description and status of a task.",
    responses={400: _INVALID, 404: _NOT_FOUND, 500: _SERVER_ERROR},
)
def update_task(task_id: str, payload: TaskCreate, store: TaskStore = Depends(get_store)) -> TaskOut:
    """
    Full update. An omitted status falls back to 'pending', as on create.
    """
    updated = store.update_task(task_id, payload)
    if updated is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    logger.info("Task %s updated", task_id)
    return TaskOut(**updated)


# PUBLIC_INTERFACE
@router.delete(
    "/{task_id}",
    response_model=DeleteConfirmation,
    summary="Delete Task",
    description="Remove a task by ID. Deleted ids are never reused.",
    responses={404: _NOT_FOUND, 500: _SERVER_ERROR},
)
def delete_task(task_id: str, store: TaskStore = Depends(get_store)) -> DeleteConfirmation:
    """
    Delete a task. Returns a confirmation on success, 404 if not found.
    """
    if not store.delete_task(task_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    logger.info("Task %s deleted", task_id)
    return DeleteConfirmation(message="Task deleted")
