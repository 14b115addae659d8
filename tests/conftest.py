# tests/conftest.py

import httpx
import pytest
import pytest_asyncio

from task_tracker.api.main import create_app
from task_tracker.api.settings import get_settings
from task_tracker.api.store import InMemoryTaskStore
from task_tracker.client import ClientConfig, TaskAPI, TaskSync

from .fakes import ControlledTransport, run_pending

BASE_URL = "http://testserver/api"


@pytest.fixture()
def store():
    """Real in-memory store seeded with the sample task; isolated per test."""
    return InMemoryTaskStore(seed=True)


@pytest.fixture()
def config():
    # No retry delays in tests
    return ClientConfig(base_url=BASE_URL, retry_count=3, mutation_retry=1, retry_delay=0.0)


@pytest.fixture()
def transport(store):
    app = create_app(get_settings(), store=store)
    return ControlledTransport(httpx.ASGITransport(app=app))


@pytest_asyncio.fixture()
async def sync(config, transport):
    """TaskSync talking to the real app in-process."""
    async with httpx.AsyncClient(transport=transport, base_url=config.base_url) as http:
        client = TaskSync(TaskAPI(config, client=http), config)
        yield client
        client.cache.cancel_queries(())
        await run_pending()
