from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from threading import RLock
from typing import Dict, List, Optional

from .models import TaskEntity, TaskStatus
from .schemas import TaskCreate, TaskStatusUpdate
from .settings import Settings

logger = logging.getLogger(__name__)

SAMPLE_TASK = TaskCreate(
    title="Sample Task",
    description="This is a sample task",
    status=TaskStatus.PENDING,
)


# PUBLIC_INTERFACE
class TaskStore(ABC):
    """Abstract store contract for the canonical task collection."""

    @abstractmethod
    def list_tasks(self) -> List[TaskEntity]:
        """Return every task in insertion order."""

    @abstractmethod
    def create_task(self, data: TaskCreate) -> TaskEntity:
        """Assign a fresh id, append and return the new task."""

    @abstractmethod
    def get_task(self, task_id: str) -> Optional[TaskEntity]:
        """Return a task by id, or None if not found."""

    @abstractmethod
    def update_task_status(self, task_id: str, data: TaskStatusUpdate) -> Optional[TaskEntity]:
        """Replace only the status. Return the updated task or None if not found."""

    @abstractmethod
    def update_task(self, task_id: str, data: TaskCreate) -> Optional[TaskEntity]:
        """Replace title, description and status. Return the updated task or None if not found."""

    @abstractmethod
    def delete_task(self, task_id: str) -> bool:
        """Delete a task by id. Return True if deleted, False if not found."""


class InMemoryTaskStore(TaskStore):
    """
    Thread-safe in-memory store. Contents reset when the process restarts.

    Ids come from a monotonic counter and are never reused, even after delete.
    """

    def __init__(self, seed: bool = False) -> None:
        self._lock = RLock()
        self._items: Dict[str, TaskEntity] = {}
        self._next_id = 1
        if seed:
            self.create_task(SAMPLE_TASK)

    def _allocate_id(self) -> str:
        with self._lock:
            i = self._next_id
            self._next_id += 1
            return str(i)

    def list_tasks(self) -> List[TaskEntity]:
        with self._lock:
            # Return copies to avoid external mutation
            return [t.copy() for t in self._items.values()]

    def create_task(self, data: TaskCreate) -> TaskEntity:
        with self._lock:
            entity: TaskEntity = {
                "id": self._allocate_id(),
                "title": data.title,
                "description": data.description,
                "status": data.status,
            }
            self._items[entity["id"]] = entity
            logger.debug("Created task %s", entity["id"])
            return entity.copy()

    def get_task(self, task_id: str) -> Optional[TaskEntity]:
        with self._lock:
            item = self._items.get(task_id)
            return None if item is None else item.copy()

    def update_task_status(self, task_id: str, data: TaskStatusUpdate) -> Optional[TaskEntity]:
        with self._lock:
            existing = self._items.get(task_id)
            if existing is None:
                return None
            existing["status"] = data.status
            return existing.copy()

    def update_task(self, task_id: str, data: TaskCreate) -> Optional[TaskEntity]:
        with self._lock:
            existing = self._items.get(task_id)
            if existing is None:
                return None
            existing["title"] = data.title
            existing["description"] = data.description
            existing["status"] = data.status
            return existing.copy()

    def delete_task(self, task_id: str) -> bool:
        with self._lock:
            deleted = self._items.pop(task_id, None) is not None
        if deleted:
            logger.debug("Deleted task %s", task_id)
        return deleted


# PUBLIC_INTERFACE
def create_store(settings: Settings) -> TaskStore:
    """
    Build the process-wide store once at startup.
    The sample task is seeded when settings.seed_sample_task is enabled.
    """
    return InMemoryTaskStore(seed=settings.seed_sample_task)
