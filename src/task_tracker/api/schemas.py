from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import TaskStatus

TITLE_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 200


def _require_text(value: str, field: str, max_length: int) -> str:
    """
    Strip surrounding whitespace and enforce 1..max_length characters.
    """
    s = value.strip()
    if not (1 <= len(s) <= max_length):
        raise ValueError(f"{field} length must be between 1 and {max_length} characters")
    return s


# PUBLIC_INTERFACE
class TaskCreate(BaseModel):
    """
    Schema for creating a task, also used by PUT to replace every mutable field.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Implement user authentication",
                "description": "Add JWT-based authentication to the application",
                "status": "pending",
            }
        }
    )

    title: str = Field(..., description="Short title for the task, 1-100 characters after stripping")
    description: str = Field(..., description="What the task is about, 1-200 characters after stripping")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="Task status: pending or done")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return _require_text(v, "title", TITLE_MAX_LENGTH)

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str) -> str:
        return _require_text(v, "description", DESCRIPTION_MAX_LENGTH)


# PUBLIC_INTERFACE
class TaskStatusUpdate(BaseModel):
    """
    Schema for PATCH: only the status can change.
    """

    model_config = ConfigDict(json_schema_extra={"example": {"status": "done"}})

    status: TaskStatus = Field(..., description="New status: pending or done")


# PUBLIC_INTERFACE
class TaskOut(BaseModel):
    """
    Schema returned by the API for a task.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "1",
                "title": "Complete project documentation",
                "description": "Write comprehensive documentation for the task management API",
                "status": "pending",
            }
        }
    )

    id: str = Field(..., description="Unique identifier of the task")
    title: str = Field(..., description="Short title for the task")
    description: str = Field(..., description="What the task is about")
    status: TaskStatus = Field(..., description="Task status: pending or done")


class DeleteConfirmation(BaseModel):
    """Body returned after a successful delete."""

    message: str = Field(..., description="Confirmation message")


class ErrorResponse(BaseModel):
    """Error body shared by every failing endpoint."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": "Invalid data",
                "details": [{"loc": ["body", "title"], "msg": "Field required", "type": "missing"}],
            }
        }
    )

    error: str = Field(..., description="Human readable error message")
    details: Optional[List[Any]] = Field(default=None, description="Field-level validation issues")
