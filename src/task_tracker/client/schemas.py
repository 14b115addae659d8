"""
Client-side view of the task contract.

These models validate both what the client sends and what the server
returns. They mirror the wire contract, not the server's code.
"""
from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

TITLE_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 200


class TaskStatus(str, Enum):
    PENDING = "pending"
    DONE = "done"

    def toggled(self) -> "TaskStatus":
        return TaskStatus.PENDING if self is TaskStatus.DONE else TaskStatus.DONE


class Task(BaseModel):
    """A task as held in the client cache. Frozen so cached collections can be shared as snapshots."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    status: TaskStatus


class CreateTaskData(BaseModel):
    """Payload for POST /tasks and PUT /tasks/{id}."""

    title: str = Field(..., min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str = Field(..., min_length=1, max_length=DESCRIPTION_MAX_LENGTH)
    status: TaskStatus = TaskStatus.PENDING

    @field_validator("title", "description", mode="before")
    @classmethod
    def strip_text(cls, v):
        # Trim before the length constraints run, so whitespace-only input is rejected.
        return v.strip() if isinstance(v, str) else v


class UpdateTaskStatusData(BaseModel):
    """Payload for PATCH /tasks/{id}."""

    status: TaskStatus
