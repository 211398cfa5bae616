"""Discovery documents and server statistics."""

from __future__ import annotations

from typing import Any

from sequentum_mcp.metrics import ApiMetrics, get_metrics
from sequentum_mcp.sessions.store import SessionStore

# Scopes shared by the authorization server and protected resource metadata
SUPPORTED_SCOPES = (
    "agents:read",
    "runs:read",
    "spaces:read",
    "agents:write",
    "offline_access",
)


def build_oauth_metadata(api_url: str, client_id: str | None = None) -> dict[str, Any]:
    """OAuth 2.0 Authorization Server Metadata (RFC 8414).

    The Sequentum API host is also the authorization server. Clients register
    by pre-registered id (when configured), a Client ID Metadata Document, or
    Dynamic Client Registration as a fallback.

    Args:
        api_url: Upstream API base URL
        client_id: Pre-registered public client id to advertise

    Returns:
        The metadata document
    """
    metadata: dict[str, Any] = {
        "issuer": api_url,
        "authorization_endpoint": f"{api_url}/api/oauth/authorize",
        "token_endpoint": f"{api_url}/api/oauth/token",
        "registration_endpoint": f"{api_url}/api/oauth/register",
        # Public clients with PKCE
        "token_endpoint_auth_methods_supported": ["none"],
        "grant_types_supported": ["authorization_code", "refresh_token"],
        "response_types_supported": ["code"],
        "scopes_supported": list(SUPPORTED_SCOPES),
        "code_challenge_methods_supported": ["S256"],
        "service_documentation": "https://docs.sequentum.com/api",
        "resource_indicators_supported": True,
        "client_id_metadata_document_supported": True,
    }
    if client_id:
        metadata["client_id"] = client_id
    return metadata


def build_protected_resource_metadata(resource_url: str, api_url: str) -> dict[str, Any]:
    """OAuth 2.0 Protected Resource Metadata (RFC 9728).

    ``resource`` must be this server's own origin: MCP clients compare it with
    the URL they connected to.
    """
    return {
        "resource": resource_url,
        "authorization_servers": [api_url],
        "scopes_supported": list(SUPPORTED_SCOPES),
        "bearer_methods_supported": ["header"],
    }


def get_stats(store: SessionStore | None = None, metrics: ApiMetrics | None = None) -> dict[str, Any]:
    """Get upstream request metrics and session counts.

    Args:
        store: Session store of the HTTP transport, if any
        metrics: Metrics to report (default: the process-wide metrics)

    Returns:
        Dictionary with request metrics and a ``sessions`` section
    """
    stats = (metrics or get_metrics()).snapshot()
    if store is not None:
        stats["sessions"] = {
            "active": len(store),
            "max": store.max_sessions,
        }
    return stats
