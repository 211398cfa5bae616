"""Administrative HTTP endpoints.

The admin module follows a router -> service pattern:
- router.py: health, OAuth discovery and stats routes
- service.py: discovery documents and statistics
"""

from sequentum_mcp.admin.router import create_admin_routes
from sequentum_mcp.admin.service import (
    SUPPORTED_SCOPES,
    build_oauth_metadata,
    build_protected_resource_metadata,
    get_stats,
)

__all__ = [
    "create_admin_routes",
    "SUPPORTED_SCOPES",
    "build_oauth_metadata",
    "build_protected_resource_metadata",
    "get_stats",
]
