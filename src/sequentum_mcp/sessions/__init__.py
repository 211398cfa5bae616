"""Per-connection session lifecycle for the streamable HTTP transport.

- store.py: registry of active sessions
- runtime.py: MCP server + transport + API client bound to one session
- handler.py: ASGI endpoint routing requests to sessions
- reaper.py: periodic eviction of idle sessions
- shutdown.py: bounded graceful shutdown
"""

from sequentum_mcp.sessions.handler import McpConnectionHandler
from sequentum_mcp.sessions.reaper import SessionReaper
from sequentum_mcp.sessions.runtime import McpSessionServer, make_session_factory
from sequentum_mcp.sessions.shutdown import ShutdownCoordinator
from sequentum_mcp.sessions.store import (
    Session,
    SessionCapacityError,
    SessionConflictError,
    SessionSlot,
    SessionStore,
    SessionStoreClosedError,
    close_session,
)

__all__ = [
    "McpConnectionHandler",
    "McpSessionServer",
    "Session",
    "SessionCapacityError",
    "SessionConflictError",
    "SessionReaper",
    "SessionSlot",
    "SessionStore",
    "SessionStoreClosedError",
    "ShutdownCoordinator",
    "close_session",
    "make_session_factory",
]
