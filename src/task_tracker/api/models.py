from __future__ import annotations

from enum import Enum
from typing import TypedDict


# PUBLIC_INTERFACE
class TaskStatus(str, Enum):
    """The two states a task can be in."""

    PENDING = "pending"
    DONE = "done"


# PUBLIC_INTERFACE
class TaskEntity(TypedDict):
    """
    A lightweight domain record for a task held by the in-memory store.

    Fields:
    - id: Opaque string identifier assigned by the store, never reused
    - title: Short title (1..100 chars, trimmed on input via schemas)
    - description: Description (1..200 chars, trimmed on input via schemas)
    - status: 'pending' or 'done'
    """

    id: str
    title: str
    description: str
    status: TaskStatus
