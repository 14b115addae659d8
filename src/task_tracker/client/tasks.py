from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from .cache import QueryCache, QueryKey
from .config import ClientConfig
from .errors import NotFoundError, TaskClientError, ValidationError
from .schemas import CreateTaskData, Task, TaskStatus
from .transport import TaskAPI

logger = logging.getLogger(__name__)

TASKS_KEY: QueryKey = ("tasks",)
TaskList = Tuple[Task, ...]


def task_key(task_id: str) -> QueryKey:
    return TASKS_KEY + (task_id,)


@dataclass
class MutationState:
    """Progress of one mutation kind, as seen by a presentation layer."""

    in_flight: int = 0
    status: str = "idle"  # idle | pending | success | error
    error: Optional[TaskClientError] = None

    @property
    def is_pending(self) -> bool:
        return self.in_flight > 0

    def begin(self) -> None:
        self.in_flight += 1
        self.status = "pending"

    def settle(self, error: Optional[BaseException]) -> None:
        self.in_flight -= 1
        if error is None:
            self.status, self.error = "success", None
        else:
            self.status = "error"
            self.error = error if isinstance(error, TaskClientError) else None


def _replace(tasks: TaskList, task_id: str, record: Task) -> TaskList:
    return tuple(record if t.id == task_id else t for t in tasks)


def _create_payload(title: Any, description: Any, status: Any) -> CreateTaskData:
    try:
        return CreateTaskData(title=title, description=description, status=status)
    except PydanticValidationError as exc:
        raise ValidationError("Invalid task data", 0, exc.errors(include_context=False)) from exc


def _status(value: Union[TaskStatus, str]) -> TaskStatus:
    try:
        return TaskStatus(value)
    except ValueError as exc:
        raise ValidationError(f"Status must be either 'pending' or 'done', got {value!r}") from exc


# PUBLIC_INTERFACE
class TaskSync:
    """
    Keeps a local, eventually consistent mirror of the task list and applies
    mutations optimistically.

    Every mutation follows the same steps:
    1. cancel in-flight reads of the list and snapshot the cached list
    2. apply the change to the cached list right away
    3. send the request
    4. on success merge the server's record; on failure restore the snapshot
       and re-raise
    5. in both cases invalidate the list so it is refetched in the background

    Snapshots are taken per call. Overlapping mutations settle in whatever
    order their responses arrive, the last settlement wins.
    """

    def __init__(self, api: TaskAPI, config: Optional[ClientConfig] = None, cache: Optional[QueryCache] = None) -> None:
        self.config = config or ClientConfig()
        self.api = api
        self.cache = cache or QueryCache(stale_time=self.config.stale_time, cache_time=self.config.cache_time)
        self.creating = MutationState()
        self.updating_status = MutationState()
        self.updating = MutationState()
        self.deleting = MutationState()

    @classmethod
    def from_config(cls, config: ClientConfig) -> "TaskSync":
        return cls(TaskAPI(config), config)

    async def __aenter__(self) -> "TaskSync":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        self.cache.cancel_queries(())
        await self.api.aclose()

    # -- reads --------------------------------------------------------------

    async def _fetch_tasks(self) -> TaskList:
        tasks = tuple(await self.api.get_tasks())
        logger.debug("Tasks fetched successfully: %d tasks", len(tasks))
        return tasks

    # PUBLIC_INTERFACE
    async def list_tasks(self) -> TaskList:
        """
        Return the task list. The list is always refetched on access (stale
        time zero); concurrent calls share one request.
        """
        return await self.cache.fetch_query(TASKS_KEY, self._fetch_tasks, stale_time=0)

    # PUBLIC_INTERFACE
    async def get_task(self, task_id: str) -> Task:
        """Return one task, served from cache while younger than config.stale_time."""
        return await self.cache.fetch_query(
            task_key(task_id), lambda: self.api.get_task(task_id), stale_time=self.config.stale_time
        )

    async def refetch(self) -> None:
        """Reload the task list from the server now."""
        await self.cache.fetch_query(TASKS_KEY, self._fetch_tasks, stale_time=0)

    # -- mutations ------------------------------------------------------------

    async def _mutate(
        self,
        state: MutationState,
        label: str,
        optimistic: Callable[[TaskList], TaskList],
        request: Callable[[], Awaitable[Any]],
        reconcile: Callable[[TaskList, Any], TaskList],
    ) -> Any:
        state.begin()
        snapshot: Optional[TaskList] = None
        try:
            self.cache.cancel_queries(TASKS_KEY, exact=True)
            snapshot = self.cache.get_query_data(TASKS_KEY)
            if snapshot is not None:
                self.cache.set_query_data(TASKS_KEY, optimistic(snapshot))
            result = await request()
            if self.cache.get_query_data(TASKS_KEY) is not None:
                self.cache.set_query_data(TASKS_KEY, lambda current: reconcile(current, result))
        except BaseException as exc:
            if snapshot is not None:
                self.cache.set_query_data(TASKS_KEY, snapshot)
            logger.warning("Failed to %s, cache rolled back: %s", label, exc)
            state.settle(exc)
            raise
        else:
            state.settle(None)
            return result
        finally:
            self.cache.invalidate_queries(TASKS_KEY)

    # PUBLIC_INTERFACE
    async def create_task(
        self, title: str, description: str, status: Union[TaskStatus, str] = TaskStatus.PENDING
    ) -> Task:
        """
        Create a task. A placeholder with a local id is shown until the server
        answers, then replaced by the server's record.
        """
        data = _create_payload(title, description, status)
        placeholder = Task(id=f"local-{uuid.uuid4().hex}", **data.model_dump())

        def reconcile(current: TaskList, created: Task) -> TaskList:
            if any(t.id == placeholder.id for t in current):
                return _replace(current, placeholder.id, created)
            if any(t.id == created.id for t in current):
                return current
            return current + (created,)

        created: Task = await self._mutate(
            self.creating,
            "create task",
            lambda tasks: tasks + (placeholder,),
            lambda: self.api.create_task(data),
            reconcile,
        )
        self.cache.set_query_data(task_key(created.id), created)
        return created

    # PUBLIC_INTERFACE
    async def update_task_status(self, task_id: str, status: Union[TaskStatus, str]) -> Task:
        """Set the status of a task."""
        new_status = _status(status)
        updated: Task = await self._mutate(
            self.updating_status,
            f"update status of task {task_id}",
            lambda tasks: tuple(t.model_copy(update={"status": new_status}) if t.id == task_id else t for t in tasks),
            lambda: self.api.update_task_status(task_id, new_status),
            lambda current, record: _replace(current, task_id, record),
        )
        self.cache.set_query_data(task_key(task_id), updated)
        return updated

    # PUBLIC_INTERFACE
    async def toggle_status(self, task_id: str) -> Task:
        """
        Flip a task between 'pending' and 'done', based on the latest cached
        list. Raises NotFoundError without any request if the id is not cached.
        """
        current: TaskList = self.cache.get_query_data(TASKS_KEY) or ()
        task = next((t for t in current if t.id == task_id), None)
        if task is None:
            raise NotFoundError("Task not found")
        return await self.update_task_status(task_id, task.status.toggled())

    # PUBLIC_INTERFACE
    async def update_task(
        self, task_id: str, title: str, description: str, status: Union[TaskStatus, str]
    ) -> Task:
        """Replace title, description and status of a task."""
        data = _create_payload(title, description, status)
        fields = data.model_dump()
        updated: Task = await self._mutate(
            self.updating,
            f"update task {task_id}",
            lambda tasks: tuple(t.model_copy(update=fields) if t.id == task_id else t for t in tasks),
            lambda: self.api.update_task(task_id, data),
            lambda current, record: _replace(current, task_id, record),
        )
        self.cache.set_query_data(task_key(task_id), updated)
        return updated

    # PUBLIC_INTERFACE
    async def delete_task(self, task_id: str) -> None:
        """Delete a task. It disappears from the cached list immediately."""

        def without(tasks: TaskList, *_: Any) -> TaskList:
            return tuple(t for t in tasks if t.id != task_id)

        await self._mutate(
            self.deleting,
            f"delete task {task_id}",
            without,
            lambda: self.api.delete_task(task_id),
            without,
        )
        self.cache.remove_queries(task_key(task_id), exact=True)

    # -- state for a presentation layer ---------------------------------------

    @property
    def tasks(self) -> TaskList:
        return self.cache.get_query_data(TASKS_KEY) or ()

    @property
    def loading(self) -> bool:
        entry = self.cache.get_entry(TASKS_KEY)
        return entry is None or (not entry.has_data and entry.error is None)

    @property
    def is_fetching(self) -> bool:
        return self.cache.is_fetching(TASKS_KEY)

    @property
    def is_stale(self) -> bool:
        return self.cache.is_stale(TASKS_KEY, 0)

    @property
    def is_creating(self) -> bool:
        return self.creating.is_pending

    @property
    def is_updating(self) -> bool:
        return self.updating_status.is_pending or self.updating.is_pending

    @property
    def is_deleting(self) -> bool:
        return self.deleting.is_pending

    @property
    def error(self) -> Optional[str]:
        entry = self.cache.get_entry(TASKS_KEY)
        candidates = [entry.error if entry is not None else None] + [
            s.error for s in (self.creating, self.updating_status, self.updating, self.deleting)
        ]
        for err in candidates:
            if err is not None:
                return getattr(err, "message", None) or str(err)
        return None
