# tests/fakes.py

import asyncio
from typing import Dict, List, Tuple, Union

import httpx

Outcome = Union[int, Exception]


class ControlledTransport(httpx.AsyncBaseTransport):
    """
    Forwards requests to the real app, recording every call.

    fail(method, ...) queues outcomes for the next requests of that method:
    an int becomes an error response with that status, an exception is raised.
    hold(method) makes the next request of that method reach the server and
    then wait for the returned event before its response is delivered.
    """

    def __init__(self, inner: httpx.AsyncBaseTransport) -> None:
        self.inner = inner
        self.calls: List[Tuple[str, str]] = []
        self._failures: Dict[str, List[Outcome]] = {}
        self._gates: Dict[str, asyncio.Event] = {}
        self._reached: Dict[str, asyncio.Event] = {}

    def fail(self, method: str, *outcomes: Outcome) -> None:
        self._failures.setdefault(method, []).extend(outcomes)

    def hold(self, method: str) -> asyncio.Event:
        gate = asyncio.Event()
        self._gates[method] = gate
        self._reached[method] = asyncio.Event()
        return gate

    async def reached(self, method: str, timeout: float = 5.0) -> None:
        """Wait until the held request of this method has its server response."""
        await asyncio.wait_for(self._reached[method].wait(), timeout)

    def count(self, method: str) -> int:
        return sum(1 for m, _ in self.calls if m == method)

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        self.calls.append((request.method, request.url.path))
        queued = self._failures.get(request.method)
        if queued:
            outcome = queued.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return httpx.Response(outcome, json={"error": "Injected failure"})

        response = await self.inner.handle_async_request(request)
        gate = self._gates.pop(request.method, None)
        if gate is not None:
            self._reached[request.method].set()
            await gate.wait()
        return response


class FakeClock:
    """Manually advanced replacement for time.monotonic."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


async def run_pending(rounds: int = 10) -> None:
    """Give scheduled tasks a chance to run up to their next real suspension."""
    for _ in range(rounds):
        await asyncio.sleep(0)
