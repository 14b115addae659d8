from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError as PydanticValidationError

from .config import ClientConfig
from .errors import NetworkError, ServerError, TaskClientError, error_for_status
from .schemas import CreateTaskData, Task, TaskStatus, UpdateTaskStatusData

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


def _task_path(task_id: str) -> str:
    # Ids are opaque strings, so every reserved character is encoded
    return f"/tasks/{quote(str(task_id), safe='')}"


# PUBLIC_INTERFACE
class TaskAPI:
    """
    Async HTTP client for the Task API.

    Every method returns validated client models or raises a TaskClientError
    subclass. Reads are retried config.retry_count times with exponential
    backoff; mutations are retried config.mutation_retry times with a fixed
    delay. Only network failures and 5xx responses are retried.

    Usage:
        async with TaskAPI(config) as api:
            tasks = await api.get_tasks()
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._config = config or ClientConfig()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self._config.base_url,
            timeout=self._config.request_timeout,
            headers={"Content-Type": "application/json"},
        )
        self._sleep = sleep

    async def __aenter__(self) -> "TaskAPI":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _retry_delay(self, attempt: int, mutation: bool) -> float:
        if mutation:
            return self._config.retry_delay
        return min(self._config.retry_delay * 2 ** attempt, self._config.retry_max_delay)

    async def _send(self, method: str, path: str, payload: Optional[dict]) -> Any:
        try:
            response = await self._client.request(method, path, json=payload)
        except httpx.TransportError as exc:
            logger.warning("Network error on %s %s: %s", method, path, exc)
            raise NetworkError("Network error occurred", 0, str(exc)) from exc

        if response.is_error:
            try:
                body = response.json()
            except ValueError:
                # Response doesn't contain JSON
                body = None
            if isinstance(body, dict) and body.get("error"):
                message = str(body["error"])
            else:
                message = f"HTTP {response.status_code}: {response.reason_phrase}"
            logger.warning("API error on %s %s: %s", method, path, message)
            raise error_for_status(response.status_code, message, body)

        # Handle responses with no content
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    async def _request(self, method: str, path: str, payload: Optional[dict] = None) -> Any:
        mutation = method != "GET"
        retries = self._config.mutation_retry if mutation else self._config.retry_count
        attempt = 0
        while True:
            try:
                return await self._send(method, path, payload)
            except TaskClientError as exc:
                if not exc.retryable or attempt >= retries:
                    raise
                delay = self._retry_delay(attempt, mutation)
                attempt += 1
                logger.info("Retrying %s %s in %.2fs (attempt %d/%d)", method, path, delay, attempt, retries)
                await self._sleep(delay)

    @staticmethod
    def _parse_task(data: Any) -> Task:
        try:
            return Task.model_validate(data)
        except PydanticValidationError as exc:
            raise ServerError(f"Invalid task data: {exc}", 0, exc.errors()) from exc

    # PUBLIC_INTERFACE
    async def get_tasks(self) -> List[Task]:
        """Retrieve every task from the server."""
        data = await self._request("GET", "/tasks")
        if not isinstance(data, list):
            raise ServerError("Invalid task list payload", 0, data)
        return [self._parse_task(item) for item in data]

    # PUBLIC_INTERFACE
    async def get_task(self, task_id: str) -> Task:
        """Retrieve a single task by its id."""
        return self._parse_task(await self._request("GET", _task_path(task_id)))

    # PUBLIC_INTERFACE
    async def create_task(self, data: CreateTaskData) -> Task:
        """Create a task and return the server's record, with its generated id."""
        return self._parse_task(await self._request("POST", "/tasks", data.model_dump(mode="json")))

    # PUBLIC_INTERFACE
    async def update_task_status(self, task_id: str, status: TaskStatus) -> Task:
        """Update only the status of a task."""
        payload = UpdateTaskStatusData(status=status).model_dump(mode="json")
        return self._parse_task(await self._request("PATCH", _task_path(task_id), payload))

    # PUBLIC_INTERFACE
    async def update_task(self, task_id: str, data: CreateTaskData) -> Task:
        """Replace title, description and status of a task."""
        return self._parse_task(await self._request("PUT", _task_path(task_id), data.model_dump(mode="json")))

    # PUBLIC_INTERFACE
    async def delete_task(self, task_id: str) -> None:
        """Delete a task. Resolves once the server confirms."""
        await self._request("DELETE", _task_path(task_id))
