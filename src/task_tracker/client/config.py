from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class ClientConfig:
    """
    Client settings loaded from environment variables.

    Env vars (durations in seconds):
    - TASKS_API_BASE_URL: base URL of the Task API. Default 'http://localhost:3000/api'
    - TASKS_STALE_TIME: how long cached data counts as fresh. Default 300
    - TASKS_CACHE_TIME: how long unused cache entries are retained. Default 600
    - TASKS_RETRY_COUNT: retries for failed reads. Default 3
    - TASKS_MUTATION_RETRY: retries for failed mutations. Default 1
    - TASKS_RETRY_DELAY: base delay between retries. Default 1.0
    - TASKS_RETRY_MAX_DELAY: cap for the exponential read backoff. Default 30.0
    - TASKS_REQUEST_TIMEOUT: per-request timeout handed to httpx. Default 10.0
    """

    base_url: str = "http://localhost:3000/api"
    stale_time: float = 300.0
    cache_time: float = 600.0
    retry_count: int = 3
    mutation_retry: int = 1
    retry_delay: float = 1.0
    retry_max_delay: float = 30.0
    request_timeout: float = 10.0


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_float(value: str, default: float) -> float:
    try:
        parsed = float(value.strip())
    except ValueError:
        return default
    return parsed if parsed >= 0 else default


def _parse_int(value: str, default: int) -> int:
    try:
        parsed = int(value.strip())
    except ValueError:
        return default
    return parsed if parsed >= 0 else default


# PUBLIC_INTERFACE
def get_client_config() -> ClientConfig:
    """Return client settings loaded from environment variables."""
    d = ClientConfig()
    return ClientConfig(
        base_url=_get_env("TASKS_API_BASE_URL", d.base_url).strip().rstrip("/"),
        stale_time=_parse_float(_get_env("TASKS_STALE_TIME", str(d.stale_time)), d.stale_time),
        cache_time=_parse_float(_get_env("TASKS_CACHE_TIME", str(d.cache_time)), d.cache_time),
        retry_count=_parse_int(_get_env("TASKS_RETRY_COUNT", str(d.retry_count)), d.retry_count),
        mutation_retry=_parse_int(_get_env("TASKS_MUTATION_RETRY", str(d.mutation_retry)), d.mutation_retry),
        retry_delay=_parse_float(_get_env("TASKS_RETRY_DELAY", str(d.retry_delay)), d.retry_delay),
        retry_max_delay=_parse_float(
            _get_env("TASKS_RETRY_MAX_DELAY", str(d.retry_max_delay)), d.retry_max_delay
        ),
        request_timeout=_parse_float(
            _get_env("TASKS_REQUEST_TIMEOUT", str(d.request_timeout)), d.request_timeout
        ),
    )
