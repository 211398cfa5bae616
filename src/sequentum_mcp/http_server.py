"""Streamable HTTP transport: Starlette app, session endpoint and uvicorn runner."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from collections.abc import AsyncIterator
from types import FrameType

import uvicorn
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.routing import Route
from starlette.types import ASGIApp, Receive, Scope, Send

from sequentum_mcp.admin import create_admin_routes
from sequentum_mcp.api.client import SequentumApiClient
from sequentum_mcp.core.config import Settings
from sequentum_mcp.core.log import redact_headers
from sequentum_mcp.ratelimit import ClientRateLimiter, RateLimitMiddleware
from sequentum_mcp.server import create_mcp_server
from sequentum_mcp.sessions import (
    McpConnectionHandler,
    SessionReaper,
    SessionStore,
    ShutdownCoordinator,
    make_session_factory,
)
from sequentum_mcp.sessions.runtime import SessionFactory
from sequentum_mcp.sessions.shutdown import SHUTDOWN_TIMEOUT_SECONDS

# Configure logging
logger = logging.getLogger(__name__)

MCP_PATH = "/mcp"


class RequestLoggingMiddleware:
    """Log method, URL and redacted headers of MCP requests at DEBUG level."""

    def __init__(self, app: ASGIApp, path_prefix: str = MCP_PATH):
        self.app = app
        self.path_prefix = path_prefix

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and scope["path"].startswith(self.path_prefix):
            headers = [(k.decode("latin-1"), v.decode("latin-1")) for k, v in scope.get("headers", [])]
            query = scope.get("query_string", b"").decode("latin-1")
            logger.debug(f"{scope['method']} {scope['path']}{'?' + query if query else ''}")
            logger.debug(f"Headers: {redact_headers(headers)}")
        await self.app(scope, receive, send)


def default_session_factory(settings: Settings, version: str) -> SessionFactory:
    """Sessions whose API client authenticates with the client's bearer token."""

    def create_client(access_token: str | None) -> SequentumApiClient:
        return SequentumApiClient(
            settings.api_url,
            None,
            access_token=access_token,
            timeout_ms=settings.request_timeout_ms,
            max_retries=settings.max_retries,
        )

    return make_session_factory(lambda client: create_mcp_server(client, version), create_client)


def create_app(
    settings: Settings,
    version: str,
    *,
    store: SessionStore | None = None,
    reaper: SessionReaper | None = None,
    session_factory: SessionFactory | None = None,
    rate_limiter: ClientRateLimiter | None = None,
) -> Starlette:
    """Build the Starlette application serving ``/mcp`` and the admin routes.

    Args:
        settings: Server settings
        version: Server version
        store: Session store (default: new store sized by ``settings.max_sessions``)
        reaper: Idle-session reaper run for the lifetime of the app
        session_factory: Opens session servers (default: real MCP servers)
        rate_limiter: Per-client limiter for ``/mcp`` (default: 100 requests/minute)
    """
    store = store if store is not None else SessionStore(settings.max_sessions)
    handler = McpConnectionHandler(
        store,
        session_factory or default_session_factory(settings, version),
        require_auth=settings.require_auth,
        debug=settings.debug,
    )

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        if reaper is not None:
            reaper.start()
        try:
            yield
        finally:
            if reaper is not None:
                await reaper.stop()

    middleware = [
        Middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
            allow_headers=["Content-Type", "Accept", "Authorization", "mcp-session-id", "mcp-protocol-version"],
            expose_headers=["mcp-session-id"],
        ),
        Middleware(RateLimitMiddleware, limiter=rate_limiter or ClientRateLimiter(), path_prefix=MCP_PATH),
    ]
    if settings.debug:
        middleware.append(Middleware(RequestLoggingMiddleware))

    routes = [
        *create_admin_routes(settings, store, version),
        Route(MCP_PATH, handler),
    ]
    app = Starlette(routes=routes, middleware=middleware, lifespan=lifespan)
    app.state.store = store
    return app


class GracefulServer(uvicorn.Server):
    """uvicorn server that hands termination signals to a ShutdownCoordinator."""

    coordinator: ShutdownCoordinator | None = None

    def __init__(self, config: uvicorn.Config):
        super().__init__(config)
        self._loop: asyncio.AbstractEventLoop | None = None

    async def serve(self, sockets=None) -> None:
        self._loop = asyncio.get_running_loop()
        await super().serve(sockets)

    def stop_accepting(self) -> None:
        self.should_exit = True

    def handle_exit(self, sig: int, frame: FrameType | None) -> None:
        if self.coordinator is None or self._loop is None:
            super().handle_exit(sig, frame)
            return
        self._loop.call_soon_threadsafe(self.coordinator.request_shutdown, signal.Signals(sig).name)


async def serve_http(settings: Settings, version: str) -> int:
    """Run the HTTP transport until a termination signal has been handled.

    Returns:
        Process exit status
    """
    store = SessionStore(settings.max_sessions)
    reaper = SessionReaper(store)
    app = create_app(settings, version, store=store, reaper=reaper)

    config = uvicorn.Config(
        app,
        host=settings.host,
        port=settings.port,
        proxy_headers=settings.trust_proxy,
        forwarded_allow_ips="*" if settings.trust_proxy else None,
        timeout_graceful_shutdown=int(SHUTDOWN_TIMEOUT_SECONDS),
        log_config=None,
        log_level="debug" if settings.debug else "info",
    )
    server = GracefulServer(config)
    coordinator = ShutdownCoordinator(store, reaper, stop_accepting=server.stop_accepting)
    server.coordinator = coordinator

    logger.info("Sequentum MCP Server running on HTTP")
    logger.info(f"  URL: http://{settings.host}:{settings.port}{MCP_PATH}")
    logger.info("  Transport: Streamable HTTP")
    logger.info(f"  Connected to: {settings.api_url}")
    logger.info(f"  Health check: http://{settings.host}:{settings.port}/health")
    logger.info(f"  Max sessions: {settings.max_sessions}")

    await server.serve()
    if coordinator.task is not None:
        return await coordinator.task
    return 0


def run_http_server(settings: Settings, version: str) -> int:
    return asyncio.run(serve_http(settings, version))
