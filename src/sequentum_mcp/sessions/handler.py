"""ASGI endpoint for the streamable HTTP transport at ``/mcp``.

Routes each request to the session named by its ``mcp-session-id`` header,
opening a new session for requests that carry no known identifier.
"""

from __future__ import annotations

import logging
from typing import Any

from mcp.server.streamable_http import MCP_SESSION_ID_HEADER
from starlette.datastructures import Headers
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.types import Message, Receive, Scope, Send

from sequentum_mcp.sessions.runtime import McpSessionServer, SessionFactory
from sequentum_mcp.sessions.store import (
    SessionCapacityError,
    SessionError,
    SessionSlot,
    SessionStore,
    SessionStoreClosedError,
    close_session,
)

# Configure logging
logger = logging.getLogger(__name__)

# JSON-RPC error codes
AUTH_REQUIRED = -32001
SERVER_ERROR = -32000
INTERNAL_ERROR = -32603

PROTECTED_RESOURCE_PATH = "/.well-known/oauth-protected-resource"


def extract_bearer_token(headers: Headers) -> str | None:
    """Return the token of a ``Bearer`` Authorization header, if any."""
    auth_header = headers.get("authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header[len("Bearer ") :] or None
    return None


def request_origin(request: Request) -> str:
    """This server's origin as seen by the client (proxy headers already applied)."""
    return f"{request.url.scheme}://{request.url.netloc}"


def jsonrpc_error(
    code: int,
    message: str,
    status_code: int,
    data: Any = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """JSON-RPC error body with no request id."""
    error: dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return JSONResponse({"jsonrpc": "2.0", "error": error, "id": None}, status_code=status_code, headers=headers)


class ResponseWatcher:
    """ASGI ``send`` wrapper that records the status and session header of a response."""

    def __init__(self, send: Send):
        self._send = send
        self.status: int | None = None
        self.session_id: str | None = None

    @property
    def started(self) -> bool:
        return self.status is not None

    @property
    def succeeded(self) -> bool:
        return self.status is not None and 200 <= self.status < 300

    async def __call__(self, message: Message) -> None:
        if message["type"] == "http.response.start":
            self.status = message["status"]
            for name, value in message.get("headers", []):
                if name.decode("latin-1").lower() == MCP_SESSION_ID_HEADER:
                    self.session_id = value.decode("latin-1")
        await self._send(message)


class McpConnectionHandler:
    """Session lifecycle for the streamable HTTP transport.

    A session is registered only after its transport answered the opening
    request successfully and echoed a session id; otherwise its server is
    closed straight away. A capacity slot is held while the server opens, so
    concurrent opens never exceed the store's ceiling. Termination removes a
    session from the store before closing it.

    Args:
        store: Registry of active sessions
        session_factory: Opens a session server for a bearer token
        require_auth: Refuse to open sessions without a bearer token
        debug: Report internal error details to the client
    """

    def __init__(
        self,
        store: SessionStore,
        session_factory: SessionFactory,
        *,
        require_auth: bool = True,
        debug: bool = False,
    ):
        self.store = store
        self.session_factory = session_factory
        self.require_auth = require_auth
        self.debug = debug

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive)
        if request.method == "POST":
            await self.handle_post(request, scope, receive, send)
        elif request.method == "GET":
            await self.handle_get(request, scope, receive, send)
        elif request.method == "DELETE":
            await self.handle_delete(request, scope, receive, send)
        else:
            response = jsonrpc_error(SERVER_ERROR, "Method not allowed", 405, headers={"Allow": "GET, POST, DELETE"})
            await response(scope, receive, send)

    async def handle_post(self, request: Request, scope: Scope, receive: Receive, send: Send) -> None:
        watcher = ResponseWatcher(send)
        try:
            session = self.store.get(request.headers.get(MCP_SESSION_ID_HEADER))
            if session is None:
                await self._open_session(request, scope, receive, watcher)
                return

            self.store.touch(session, extract_bearer_token(request.headers))
            await session.server.handle_request(scope, receive, watcher)
        except Exception as e:
            logger.exception("Error handling MCP POST request")
            if not watcher.started:
                message = (str(e) or "Internal server error") if self.debug else "Internal server error"
                await jsonrpc_error(INTERNAL_ERROR, message, 500)(scope, receive, send)

    async def _open_session(self, request: Request, scope: Scope, receive: Receive, send: ResponseWatcher) -> None:
        token = extract_bearer_token(request.headers)
        if token:
            logger.debug("Bearer token received for new session")

        if self.require_auth and not token:
            origin = request_origin(request)
            response = jsonrpc_error(
                AUTH_REQUIRED,
                "Authentication required",
                401,
                data={"protectedResourceMetadata": f"{origin}{PROTECTED_RESOURCE_PATH}"},
                headers={"WWW-Authenticate": f'Bearer resource="{origin}"'},
            )
            logger.info("401 - Authentication required, no Bearer token provided")
            await response(scope, receive, send)
            return

        try:
            slot = self.store.reserve()
        except SessionStoreClosedError:
            logger.warning("503 - Server shutting down, rejecting new session")
            await jsonrpc_error(SERVER_ERROR, "Server is shutting down.", 503)(scope, receive, send)
            return
        except SessionCapacityError:
            logger.warning(f"503 - Session limit reached ({self.store.max_sessions}), rejecting new session")
            await jsonrpc_error(SERVER_ERROR, "Server at capacity. Please try again later.", 503)(scope, receive, send)
            return

        with slot:
            server = await self.session_factory(token)
            registered = False
            try:
                await server.handle_request(scope, receive, send)
                registered = self._register(slot, server, send)
            finally:
                if not registered:
                    await self._discard(server)

    def _register(self, slot: SessionSlot, server: McpSessionServer, response: ResponseWatcher) -> bool:
        if not response.succeeded or not response.session_id:
            logger.warning(f"No session established (status {response.status}), cleaning up orphaned session")
            return False
        try:
            slot.commit(response.session_id, server)
        except SessionError as e:
            logger.warning(f"Not registering session {response.session_id}: {e}")
            return False
        logger.info(f"Session created: {response.session_id} ({len(self.store)} active)")
        return True

    async def _discard(self, server: McpSessionServer) -> None:
        try:
            await server.close()
        except Exception:
            logger.exception("Error closing orphaned session")

    async def handle_get(self, request: Request, scope: Scope, receive: Receive, send: Send) -> None:
        session_id = request.headers.get(MCP_SESSION_ID_HEADER)
        if not session_id:
            await jsonrpc_error(SERVER_ERROR, "Missing session ID for SSE stream", 400)(scope, receive, send)
            return

        session = self.store.get(session_id)
        if session is None:
            await jsonrpc_error(SERVER_ERROR, "Invalid or expired session", 400)(scope, receive, send)
            return

        self.store.touch(session, extract_bearer_token(request.headers))
        watcher = ResponseWatcher(send)
        try:
            await session.server.handle_request(scope, receive, watcher)
        except Exception:
            logger.exception("Error handling MCP GET request")
            if not watcher.started:
                await jsonrpc_error(INTERNAL_ERROR, "SSE stream error", 500)(scope, receive, send)

    async def handle_delete(self, request: Request, scope: Scope, receive: Receive, send: Send) -> None:
        session_id = request.headers.get(MCP_SESSION_ID_HEADER)
        session = self.store.remove(session_id) if session_id else None
        if session is not None:
            await close_session(session, "terminated")
            logger.info(f"Session terminated: {session_id} ({len(self.store)} active)")
        await JSONResponse({"message": "Session terminated"})(scope, receive, send)
