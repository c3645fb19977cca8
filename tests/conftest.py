"""Shared test fixtures for the posagent test suite.

FakeServer stands in for the central backend behind ``httpx.MockTransport``,
so every engine module can be exercised headless without a network.
"""

import asyncio
import json
from collections.abc import Callable
from unittest.mock import AsyncMock

import httpx
import pytest
from loguru import logger

from posagent.engine.backend import BackendClient
from posagent.engine.config import AgentCredential
from posagent.engine.session import Session

BASE_URL = "http://b"


# ── SSE body helpers ──

def sse(*payloads, comment: bool = True) -> bytes:
    """Encode payload dicts as ``data:`` frames (plus a heartbeat comment)."""
    out = b": heartbeat\n\n" if comment else b""
    for payload in payloads:
        text = payload if isinstance(payload, str) else json.dumps(payload)
        out += f"data: {text}\n\n".encode()
    return out


def streamBody(*chunks: bytes, hold: bool = False):
    """Async byte stream; with ``hold`` the stream stays open after the chunks."""

    async def gen():
        for chunk in chunks:
            yield chunk
            await asyncio.sleep(0)
        if hold:
            await asyncio.Event().wait()

    return gen()


def streamResponse(*chunks: bytes, hold: bool = False, status: int = 200) -> httpx.Response:
    return httpx.Response(
        status,
        headers={"Content-Type": "text/event-stream"},
        content=streamBody(*chunks, hold=hold),
    )


async def eventually(predicate: Callable[[], bool], timeout: float = 3.0) -> None:
    """Yield to the loop until ``predicate()`` holds, failing after ``timeout``."""
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0.001)


# ── Fake backend ──

class FakeServer:
    """Route table keyed by (method, path) with a log of every request seen.

    A route is either a callable ``(request) -> httpx.Response`` or a JSON
    body returned with status 200.
    """

    def __init__(self):
        self.routes: dict[tuple[str, str], Callable | object] = {}
        self.requests: list[httpx.Request] = []

    def route(self, method: str, path: str, handler) -> None:
        self.routes[(method, path)] = handler

    def json(self, method: str, path: str, body, status: int = 200) -> None:
        self.route(method, path, lambda request: httpx.Response(status, json=body))

    def fail(self, method: str, path: str) -> None:
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        self.route(method, path, handler)

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def bodies(self, method: str, path: str) -> list[dict]:
        return [json.loads(r.content) for r in self.calls(method, path)]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"message": "not found"})

        if callable(handler):
            return handler(request)

        return httpx.Response(200, json=handler)


@pytest.fixture
def server() -> FakeServer:
    return FakeServer()


@pytest.fixture
def http(server) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(server), base_url=BASE_URL)


@pytest.fixture
def backend(http) -> BackendClient:
    return BackendClient(BASE_URL, http)


@pytest.fixture
def credential() -> AgentCredential:
    return AgentCredential(username="u", password="p", label="A")


@pytest.fixture
def session() -> Session:
    return Session(token="T", label="A", theaterId="TH1")


@pytest.fixture
def submit() -> AsyncMock:
    """Replacement for ``Spooler.submit`` that records calls instead of printing."""
    return AsyncMock(return_value=None)


@pytest.fixture
def logs():
    """Collect formatted loguru messages emitted during a test."""
    found: list[str] = []
    handlerId = logger.add(lambda msg: found.append(str(msg)), level="DEBUG", format="{level} {message}")
    yield found
    logger.remove(handlerId)


# ── Sample orders ──

@pytest.fixture
def cashOrder() -> dict:
    """Settled cash order with one sized item."""
    return {
        "orderNumber": "N1",
        "createdAt": "2026-10-19T08:35:00.000Z",
        "payment": {"method": "Cash", "status": "Completed"},
        "pricing": {"total": 236, "tax": 36, "discount": 0},
        "items": [
            {"productName": "Popcorn", "quantity": 2, "unitPrice": 100, "originalQuantity": "Large"}
        ],
        "theater": {"name": "Galaxy Cinemas"},
    }
