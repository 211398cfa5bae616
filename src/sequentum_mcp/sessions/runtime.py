"""Per-session MCP server bound to a streamable HTTP transport."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from uuid import uuid4

from mcp.server.fastmcp import FastMCP
from mcp.server.streamable_http import StreamableHTTPServerTransport
from starlette.types import Receive, Scope, Send

from sequentum_mcp.api.client import SequentumApiClient

# Configure logging
logger = logging.getLogger(__name__)

# Seconds to wait for the server task to wind down after its transport is terminated
SERVER_STOP_TIMEOUT = 5.0


class McpSessionServer:
    """An MCP server, its transport and the API client it calls, for one connection.

    The transport is created with a fresh identifier which it echoes in the
    ``mcp-session-id`` header of the response to ``initialize``.

    Args:
        mcp: Server with the tools, resources and prompts registered against ``api_client``
        api_client: Client owned by this session
        json_response: Answer POSTs with JSON instead of SSE streams
    """

    def __init__(self, mcp: FastMCP, api_client: SequentumApiClient, *, json_response: bool = False):
        self.mcp = mcp
        self.api_client = api_client
        self.session_id = uuid4().hex
        self.transport = StreamableHTTPServerTransport(
            mcp_session_id=self.session_id,
            is_json_response_enabled=json_response,
        )
        self._task: asyncio.Task[None] | None = None
        self._closed = False

    async def start(self) -> None:
        """Connect the transport and run the MCP server in a background task."""
        ready = asyncio.Event()
        self._task = asyncio.create_task(self._run(ready), name=f"mcp-session-{self.session_id}")
        await ready.wait()

    async def _run(self, ready: asyncio.Event) -> None:
        lowlevel = self.mcp._mcp_server
        try:
            async with self.transport.connect() as (read_stream, write_stream):
                ready.set()
                await lowlevel.run(
                    read_stream,
                    write_stream,
                    lowlevel.create_initialization_options(),
                    stateless=False,
                )
        except Exception:
            logger.exception(f"Session {self.session_id} crashed")
        finally:
            ready.set()

    async def handle_request(self, scope: Scope, receive: Receive, send: Send) -> None:
        await self.transport.handle_request(scope, receive, send)

    async def close(self) -> None:
        """Terminate the transport, stop the server task and release the API client.

        Safe to call more than once.
        """
        if self._closed:
            return
        self._closed = True
        try:
            await self.transport.terminate()
            if self._task is not None and not self._task.done():
                done, _ = await asyncio.wait({self._task}, timeout=SERVER_STOP_TIMEOUT)
                if not done:
                    self._task.cancel()
        finally:
            self.api_client.close()


SessionFactory = Callable[[str | None], Awaitable[McpSessionServer]]


def make_session_factory(
    create_server: Callable[[SequentumApiClient], FastMCP],
    create_client: Callable[[str | None], SequentumApiClient],
    *,
    json_response: bool = False,
) -> SessionFactory:
    """Build the coroutine that opens a session for a bearer token.

    Args:
        create_server: Builds an MCP server around an API client
        create_client: Builds an API client holding the given token
        json_response: Answer POSTs with JSON instead of SSE streams
    """

    async def open_session(access_token: str | None) -> McpSessionServer:
        api_client = create_client(access_token)
        server = McpSessionServer(create_server(api_client), api_client, json_response=json_response)
        await server.start()
        return server

    return open_session
