from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

QueryKey = Tuple[str, ...]
QueryFn = Callable[[], Awaitable[Any]]
Clock = Callable[[], float]


@dataclass
class CacheEntry:
    """
    State kept per query key.

    Fields:
    - data: last successfully fetched (or explicitly set) value
    - updated_at: clock reading when data was last written; None until then
    - accessed_at: clock reading of the last read or write, drives retention
    - invalidated: set by invalidate_queries until the next write
    - error: failure of the most recent fetch, cleared by the next write
    - fetch: the in-flight fetch task, if any
    - query_fn: how to refetch this key, registered by fetch_query
    """

    data: Any = None
    updated_at: Optional[float] = None
    accessed_at: float = 0.0
    invalidated: bool = False
    error: Optional[BaseException] = None
    fetch: Optional["asyncio.Task[Any]"] = None
    query_fn: Optional[QueryFn] = None

    @property
    def has_data(self) -> bool:
        return self.updated_at is not None

    @property
    def is_fetching(self) -> bool:
        return self.fetch is not None and not self.fetch.done()


def _matches(key: QueryKey, prefix: QueryKey, exact: bool) -> bool:
    if exact:
        return key == prefix
    return key[: len(prefix)] == prefix


# PUBLIC_INTERFACE
class QueryCache:
    """
    Key-value cache of query results with single-flight fetching, cancellation,
    invalidation with background refetch, and time-based retention.

    Keys are tuples; operations that take a key also match every longer key it
    prefixes unless exact=True, so ("tasks",) covers ("tasks", "1").

    A fetch that is cancelled never writes to the cache. Failures of fetches
    nobody awaits (background refetches) are logged and recorded on the entry.
    """

    def __init__(self, stale_time: float = 300.0, cache_time: float = 600.0, clock: Clock = time.monotonic) -> None:
        self.stale_time = stale_time
        self.cache_time = cache_time
        self._clock = clock
        self._entries: Dict[QueryKey, CacheEntry] = {}

    def _entry(self, key: QueryKey) -> CacheEntry:
        entry = self._entries.get(key)
        if entry is None:
            entry = CacheEntry(accessed_at=self._clock())
            self._entries[key] = entry
        return entry

    def _matching(self, key: QueryKey, exact: bool = False) -> List[Tuple[QueryKey, CacheEntry]]:
        return [(k, e) for k, e in self._entries.items() if _matches(k, key, exact)]

    def get_entry(self, key: QueryKey) -> Optional[CacheEntry]:
        return self._entries.get(key)

    # PUBLIC_INTERFACE
    def get_query_data(self, key: QueryKey) -> Any:
        """Return the cached value for key, or None."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        entry.accessed_at = self._clock()
        return entry.data

    # PUBLIC_INTERFACE
    def set_query_data(self, key: QueryKey, updater: Any) -> Any:
        """
        Write a value for key. If updater is callable it receives the current
        value and returns the new one. The entry becomes fresh and error-free.
        """
        entry = self._entry(key)
        data = updater(entry.data) if callable(updater) else updater
        now = self._clock()
        entry.data = data
        entry.updated_at = now
        entry.accessed_at = now
        entry.invalidated = False
        entry.error = None
        return data

    def remove_queries(self, key: QueryKey, exact: bool = False) -> None:
        """Drop matching entries, cancelling their in-flight fetches."""
        for k, entry in self._matching(key, exact):
            if entry.is_fetching:
                entry.fetch.cancel()
            del self._entries[k]

    def is_stale(self, key: QueryKey, stale_time: Optional[float] = None) -> bool:
        entry = self._entries.get(key)
        if entry is None or not entry.has_data or entry.invalidated:
            return True
        stale_time = self.stale_time if stale_time is None else stale_time
        return self._clock() - entry.updated_at >= stale_time

    def is_fetching(self, key: QueryKey, exact: bool = True) -> bool:
        return any(entry.is_fetching for _, entry in self._matching(key, exact))

    async def _run_fetch(self, key: QueryKey, entry: CacheEntry, query_fn: QueryFn) -> Any:
        logger.debug("Fetching %s", key)
        try:
            data = await query_fn()
        except asyncio.CancelledError:
            logger.debug("Fetch of %s cancelled", key)
            raise
        except Exception as exc:
            entry.error = exc
            raise
        finally:
            if entry.fetch is asyncio.current_task():
                entry.fetch = None
        # Only reached when not cancelled; re-attach the entry if it was collected meanwhile.
        self._entries.setdefault(key, entry)
        self.set_query_data(key, data)
        return data

    @staticmethod
    def _report(key: QueryKey, task: "asyncio.Task[Any]") -> None:
        # Retrieves the exception so it never surfaces as "never retrieved".
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Fetch of %s failed: %s", key, exc)

    def _start_fetch(self, key: QueryKey, entry: CacheEntry, query_fn: QueryFn) -> "asyncio.Task[Any]":
        task = asyncio.get_running_loop().create_task(self._run_fetch(key, entry, query_fn))
        task.add_done_callback(lambda t: self._report(key, t))
        entry.fetch = task
        return task

    # PUBLIC_INTERFACE
    async def fetch_query(self, key: QueryKey, query_fn: QueryFn, stale_time: Optional[float] = None) -> Any:
        """
        Return cached data for key if fresh, otherwise fetch it.

        Concurrent callers share one in-flight fetch. If that fetch is
        cancelled (see cancel_queries) the caller receives the current cached
        value instead, or a new fetch is started when nothing is cached.
        Fetch failures are raised to the caller.
        """
        self.collect_garbage()
        entry = self._entry(key)
        entry.query_fn = query_fn
        entry.accessed_at = self._clock()
        if not self.is_stale(key, stale_time):
            return entry.data

        while True:
            task = entry.fetch if entry.is_fetching else self._start_fetch(key, entry, query_fn)
            # asyncio.wait does not propagate the fetch's cancellation to this caller.
            await asyncio.wait({task})
            if not task.cancelled():
                return task.result()
            if entry.has_data:
                return entry.data
            entry = self._entry(key)
            entry.query_fn = query_fn

    # PUBLIC_INTERFACE
    def cancel_queries(self, key: QueryKey, exact: bool = False) -> int:
        """
        Cancel in-flight fetches for matching keys. Returns how many were cancelled.
        The cancelled fetches will not write to the cache.
        """
        cancelled = 0
        for k, entry in self._matching(key, exact):
            if entry.is_fetching:
                entry.fetch.cancel()
                entry.fetch = None
                cancelled += 1
                logger.debug("Cancelled in-flight fetch of %s", k)
        return cancelled

    # PUBLIC_INTERFACE
    def invalidate_queries(self, key: QueryKey, exact: bool = False) -> List["asyncio.Task[Any]"]:
        """
        Mark matching entries stale and refetch, in the background, those that
        have a registered query function. A fetch already in flight is
        replaced, since it may have started before the data changed.
        """
        started: List["asyncio.Task[Any]"] = []
        for k, entry in self._matching(key, exact):
            entry.invalidated = True
            if entry.query_fn is None:
                continue
            if entry.is_fetching:
                entry.fetch.cancel()
            started.append(self._start_fetch(k, entry, entry.query_fn))
        if started:
            logger.debug("Invalidated %s, refetching %d quer%s", key, len(started), "y" if len(started) == 1 else "ies")
        return started

    # PUBLIC_INTERFACE
    def collect_garbage(self) -> List[QueryKey]:
        """
        Drop entries not read or written within cache_time that have no
        fetch in flight. Returns the removed keys.
        """
        now = self._clock()
        expired = [
            k
            for k, entry in self._entries.items()
            if not entry.is_fetching and now - entry.accessed_at >= self.cache_time
        ]
        for k in expired:
            del self._entries[k]
        if expired:
            logger.debug("Collected %d expired cache entr%s", len(expired), "y" if len(expired) == 1 else "ies")
        return expired

    # PUBLIC_INTERFACE
    async def wait_idle(self) -> None:
        """Wait until no fetch is in flight, including refetches started meanwhile."""
        while True:
            pending = {e.fetch for e in self._entries.values() if e.is_fetching}
            if not pending:
                return
            await asyncio.wait(pending)
