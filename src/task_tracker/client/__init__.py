"""
Client for the Task API.

TaskSync keeps a cached mirror of the task list and applies mutations
optimistically, rolling back on failure. TaskAPI is the underlying HTTP
transport.
"""

from .cache import QueryCache  # noqa: F401
from .config import ClientConfig, get_client_config  # noqa: F401
from .errors import (  # noqa: F401
    NetworkError,
    NotFoundError,
    ServerError,
    TaskClientError,
    ValidationError,
)
from .schemas import CreateTaskData, Task, TaskStatus  # noqa: F401
from .tasks import TASKS_KEY, TaskSync, task_key  # noqa: F401
from .transport import TaskAPI  # noqa: F401
