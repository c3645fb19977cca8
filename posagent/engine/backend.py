"""Thin async client for the central HTTP/SSE backend.

Methods return decoded JSON bodies and raise ``httpx.HTTPError`` (transport
failure or non-2xx status) or ``ValueError`` (undecodable body). Callers
decide whether a failure is fatal, falls back, or drops an event.
"""
from __future__ import annotations

from typing import Any, Final
from urllib.parse import quote

import httpx

from posagent.engine.session import Session

# non-stream requests; the SSE stream overrides the read timeout with None
DEFAULT_TIMEOUT: Final = httpx.Timeout(15.0, connect=10.0)
STREAM_TIMEOUT: Final = httpx.Timeout(15.0, connect=10.0, read=None)


def describeError(e: Exception) -> str:
    """Short human description of a request failure, including any server message."""
    if isinstance(e, httpx.HTTPStatusError):
        detail = ""
        try:
            body = e.response.json()
            if isinstance(body, dict):
                detail = body.get("message") or body.get("error") or ""
        except ValueError:
            pass

        status = f"HTTP {e.response.status_code}"
        return f"{status}: {detail}" if detail else status

    return str(e) or e.__class__.__name__


class BackendClient:
    """Wraps one shared ``httpx.AsyncClient`` rooted at the backend base URL."""

    def __init__(self, baseUrl: str, http: httpx.AsyncClient | None = None):
        self.baseUrl = baseUrl.rstrip("/")
        self.http = http or httpx.AsyncClient(base_url=self.baseUrl, timeout=DEFAULT_TIMEOUT)

    async def aclose(self) -> None:
        await self.http.aclose()

    async def requestJson(
        self,
        method: str,
        path: str,
        *,
        session: Session | None = None,
        body: dict[str, Any] | None = None,
    ) -> Any:
        headers = session.bearer() if session else None
        response = await self.http.request(method, path, json=body, headers=headers)
        response.raise_for_status()
        return response.json()

    async def login(self, username: str, password: str) -> Any:
        return await self.requestJson(
            "POST", "/api/auth/login", body={"username": username, "password": password}
        )

    async def validatePin(self, body: dict[str, Any]) -> Any:
        return await self.requestJson("POST", "/api/auth/validate-pin", body=body)

    async def theaters(self, session: Session) -> Any:
        return await self.requestJson("GET", "/api/theaters", session=session)

    async def printerSettings(self, session: Session) -> Any:
        return await self.requestJson("GET", "/api/settings/pos-printer", session=session)

    async def order(self, session: Session, theaterId: str, orderId: str) -> Any:
        path = f"/api/orders/theater/{quote(theaterId, safe='')}/{quote(orderId, safe='')}"
        return await self.requestJson("GET", path, session=session)

    def openStream(self, session: Session, theaterId: str):
        """Async context manager yielding the streaming SSE response.

        The token travels in the query string because the stream endpoint
        does not read the Authorization header.
        """
        return self.http.stream(
            "GET",
            f"/api/pos-stream/{quote(theaterId, safe='')}",
            params={"token": session.token},
            headers={"Accept": "text/event-stream", "Cache-Control": "no-cache"},
            timeout=STREAM_TIMEOUT,
        )
