"""Pytest configuration and fixtures for sequentum-mcp tests."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any
from unittest.mock import AsyncMock, Mock

import pytest
import requests
from mcp.server.streamable_http import MCP_SESSION_ID_HEADER
from starlette.responses import JSONResponse

from sequentum_mcp.api.client import SequentumApiClient
from sequentum_mcp.metrics import ApiMetrics

BASE_URL = "https://api.example.test"


def make_response(
    status_code: int = 200,
    body: Any = None,
    *,
    headers: dict[str, str] | None = None,
    reason: str | None = None,
    url: str = f"{BASE_URL}/api/v1/test",
) -> requests.Response:
    """Build a real ``requests.Response``.

    Dicts and lists are sent as JSON; strings are sent as-is.
    """
    response = requests.Response()
    response.status_code = status_code
    response.reason = reason if reason is not None else HTTPStatus(status_code).phrase
    response.url = url
    response.headers.update(headers or {})
    if isinstance(body, (dict, list)):
        response._content = json.dumps(body).encode()
        response.headers.setdefault("Content-Type", "application/json; charset=utf-8")
    elif isinstance(body, str):
        response._content = body.encode()
    else:
        response._content = b""
    response.encoding = "utf-8"
    return response


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    """A clock tests advance by hand."""
    return FakeClock()


@pytest.fixture
def sleep() -> AsyncMock:
    """Backoff sleep that returns immediately and records its delays."""
    return AsyncMock(return_value=None)


@pytest.fixture
def metrics() -> ApiMetrics:
    """Fresh metrics, isolated from the process-wide instance."""
    return ApiMetrics()


@pytest.fixture
def http_session() -> Mock:
    """A ``requests.Session`` double; set ``request.side_effect`` or ``return_value``."""
    return Mock(spec=requests.Session)


@pytest.fixture
def api_client(http_session: Mock, sleep: AsyncMock, metrics: ApiMetrics) -> SequentumApiClient:
    """API client authenticated with an API key, dispatching to ``http_session``."""
    return SequentumApiClient(
        BASE_URL,
        "sk-test-key",
        session=http_session,
        sleep=sleep,
        metrics=metrics,
    )


class FakeSessionServer:
    """Stands in for an MCP session server.

    ``handle_request`` answers with ``status`` and echoes ``session_id`` in the
    ``mcp-session-id`` header.
    """

    def __init__(
        self,
        session_id: str = "session-1",
        *,
        status: int = 200,
        error: Exception | None = None,
        hang_on_close: bool = False,
    ):
        self.session_id = session_id
        self.status = status
        self.error = error
        self.hang_on_close = hang_on_close
        self.api_client = Mock()
        self.requests = 0
        self.close_calls = 0

    async def handle_request(self, scope: Any, receive: Any, send: Any) -> None:
        self.requests += 1
        if self.error is not None:
            raise self.error
        response = JSONResponse(
            {"jsonrpc": "2.0", "id": 1, "result": {}},
            status_code=self.status,
            headers={MCP_SESSION_ID_HEADER: self.session_id},
        )
        await response(scope, receive, send)

    async def close(self) -> None:
        self.close_calls += 1
        if self.hang_on_close:
            await asyncio.Event().wait()


class FakeSessionFactory:
    """Hands out prepared servers in order and records the tokens it was given."""

    def __init__(self, *servers: FakeSessionServer):
        self.servers = list(servers)
        self.tokens: list[str | None] = []

    async def __call__(self, access_token: str | None) -> FakeSessionServer:
        self.tokens.append(access_token)
        return self.servers.pop(0)


@dataclass
class AsgiResponse:
    status: int
    headers: dict[str, str]
    body: bytes

    def json(self) -> Any:
        return json.loads(self.body)


async def asgi_request(
    app: Any,
    method: str,
    path: str = "/mcp",
    *,
    headers: dict[str, str] | None = None,
    body: bytes = b"",
    client: tuple[str, int] = ("203.0.113.5", 50000),
) -> AsgiResponse:
    """Drive an ASGI app with a single HTTP request and collect its response."""
    raw_headers = [(b"host", b"testserver")]
    raw_headers += [(k.lower().encode("latin-1"), v.encode("latin-1")) for k, v in (headers or {}).items()]
    scope = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method,
        "scheme": "http",
        "path": path,
        "raw_path": path.encode(),
        "root_path": "",
        "query_string": b"",
        "headers": raw_headers,
        "client": client,
        "server": ("testserver", 80),
    }
    incoming = [{"type": "http.request", "body": body, "more_body": False}]
    sent: list[dict[str, Any]] = []

    async def receive() -> dict[str, Any]:
        if incoming:
            return incoming.pop(0)
        await asyncio.Event().wait()
        return {"type": "http.disconnect"}

    async def send(message: dict[str, Any]) -> None:
        sent.append(message)

    await app(scope, receive, send)

    start = next(m for m in sent if m["type"] == "http.response.start")
    return AsgiResponse(
        status=start["status"],
        headers={k.decode("latin-1").lower(): v.decode("latin-1") for k, v in start.get("headers", [])},
        body=b"".join(m.get("body", b"") for m in sent if m["type"] == "http.response.body"),
    )
