"""Health, discovery and stats routes."""

from __future__ import annotations

from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from sequentum_mcp.admin.service import (
    build_oauth_metadata,
    build_protected_resource_metadata,
    get_stats,
)
from sequentum_mcp.core.config import Settings
from sequentum_mcp.sessions.handler import request_origin
from sequentum_mcp.sessions.store import SessionStore


def create_admin_routes(settings: Settings, store: SessionStore, version: str) -> list[Route]:
    """Build the non-MCP routes of the HTTP server.

    Args:
        settings: Server settings
        store: Session store reported by the stats endpoint
        version: Server version reported by the health check
    """

    async def health_check(request: Request) -> JSONResponse:
        """Health check endpoint for container orchestration."""
        return JSONResponse({"status": "ok", "version": version, "transport": "streamable-http"})

    async def oauth_authorization_server(request: Request) -> JSONResponse:
        return JSONResponse(build_oauth_metadata(settings.api_url, settings.oauth_client_id))

    async def oauth_protected_resource(request: Request) -> JSONResponse:
        return JSONResponse(build_protected_resource_metadata(request_origin(request), settings.api_url))

    async def api_stats(request: Request) -> JSONResponse:
        """Upstream request metrics and session counts."""
        return JSONResponse(get_stats(store))

    return [
        Route("/health", health_check, methods=["GET"]),
        Route("/.well-known/oauth-authorization-server", oauth_authorization_server, methods=["GET"]),
        Route("/.well-known/oauth-protected-resource", oauth_protected_resource, methods=["GET"]),
        Route("/api/stats", api_stats, methods=["GET"]),
    ]
