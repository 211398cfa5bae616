"""In-memory registry of active MCP sessions."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any, Protocol

# Configure logging
logger = logging.getLogger(__name__)

DEFAULT_MAX_SESSIONS = 1000


class SessionError(Exception):
    """Base class for session registry errors."""


class SessionCapacityError(SessionError):
    """The store already holds its maximum number of sessions."""

    def __init__(self, max_sessions: int):
        super().__init__(f"Session limit reached ({max_sessions})")
        self.max_sessions = max_sessions


class SessionConflictError(SessionError):
    """A session is already registered under the identifier."""

    def __init__(self, session_id: str):
        super().__init__(f"Session already registered: {session_id}")
        self.session_id = session_id


class SessionStoreClosedError(SessionError):
    """The store has been drained for shutdown and accepts no new sessions."""

    def __init__(self):
        super().__init__("Session store is closed")


class SessionServer(Protocol):
    """What the store needs from a session's server: its API client and a close hook."""

    api_client: Any

    async def close(self) -> None: ...


@dataclass
class Session:
    """One client connection: its MCP server, transport and API client."""

    session_id: str
    server: SessionServer
    created_at: float
    last_activity_at: float

    @property
    def api_client(self) -> Any:
        return self.server.api_client

    def idle_seconds(self, now: float) -> float:
        return now - self.last_activity_at


class SessionSlot:
    """Capacity held for a session whose server is still opening.

    Use as a context manager; the slot is released on exit unless it was
    committed to a registered session.
    """

    def __init__(self, store: SessionStore):
        self._store = store
        self.held = True

    def __enter__(self) -> SessionSlot:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()

    def release(self) -> None:
        if self.held:
            self.held = False
            self._store._pending -= 1

    def commit(self, session_id: str, server: SessionServer) -> Session:
        """Register the session in place of this slot.

        Raises:
            SessionError: If the session cannot be registered
        """
        self.release()
        return self._store.create(session_id, server)


class SessionStore:
    """Sessions keyed by transport-assigned identifier.

    Every method is synchronous, so no mutation can interleave with another
    coroutine on the event loop.

    Args:
        max_sessions: Ceiling on registered sessions
        clock: Monotonic time source in seconds
    """

    def __init__(
        self,
        max_sessions: int = DEFAULT_MAX_SESSIONS,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")
        self.max_sessions = max_sessions
        self.clock = clock
        self._sessions: dict[str, Session] = {}
        self._pending = 0
        self.closed = False

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __iter__(self) -> Iterator[Session]:
        return iter(list(self._sessions.values()))

    @property
    def pending(self) -> int:
        """Slots held by sessions that are still opening."""
        return self._pending

    def is_full(self) -> bool:
        return len(self._sessions) + self._pending >= self.max_sessions

    def reserve(self) -> SessionSlot:
        """Hold a capacity slot for a session about to open.

        Raises:
            SessionStoreClosedError: If the store has been drained
            SessionCapacityError: If registered and opening sessions fill the store
        """
        if self.closed:
            raise SessionStoreClosedError()
        if self.is_full():
            raise SessionCapacityError(self.max_sessions)
        self._pending += 1
        return SessionSlot(self)

    def create(self, session_id: str, server: SessionServer) -> Session:
        """Register a session whose transport has assigned ``session_id``.

        Existence and capacity are checked here, at insertion time, since the
        caller may have awaited since it last looked.

        Raises:
            SessionStoreClosedError: If the store has been drained
            SessionConflictError: If the identifier is already registered
            SessionCapacityError: If the store is full
        """
        if not session_id:
            raise ValueError("session_id must be non-empty")
        if self.closed:
            raise SessionStoreClosedError()
        if session_id in self._sessions:
            raise SessionConflictError(session_id)
        if self.is_full():
            raise SessionCapacityError(self.max_sessions)

        now = self.clock()
        session = Session(session_id=session_id, server=server, created_at=now, last_activity_at=now)
        self._sessions[session_id] = session
        logger.debug(f"Session registered: {session_id} ({len(self._sessions)} active)")
        return session

    def get(self, session_id: str | None) -> Session | None:
        if not session_id:
            return None
        return self._sessions.get(session_id)

    def touch(self, session: Session, access_token: str | None = None) -> None:
        """Record activity on a session and adopt a freshly presented bearer token."""
        session.last_activity_at = self.clock()
        if access_token:
            session.api_client.set_access_token(access_token)

    def remove(self, session_id: str) -> Session | None:
        """Unregister a session. Closing it is the caller's job."""
        return self._sessions.pop(session_id, None)

    def sweep(self, max_idle_seconds: float) -> list[Session]:
        """Unregister and return every session idle for longer than ``max_idle_seconds``."""
        now = self.clock()
        expired = [s for s in self._sessions.values() if s.idle_seconds(now) > max_idle_seconds]
        for session in expired:
            del self._sessions[session.session_id]
        return expired

    def drain(self) -> list[Session]:
        """Unregister and return all sessions, and refuse any registered later."""
        self.closed = True
        sessions = list(self._sessions.values())
        self._sessions.clear()
        return sessions


async def close_session(session: Session, reason: str) -> bool:
    """Close a session that has already been removed from its store.

    Failures are logged and swallowed.

    Returns:
        True if the server closed cleanly
    """
    try:
        await session.server.close()
    except Exception:
        logger.exception(f"Error closing session {session.session_id} ({reason})")
        return False
    logger.debug(f"Session closed: {session.session_id} ({reason})")
    return True
