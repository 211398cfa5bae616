"""Bounded graceful shutdown for the HTTP transport."""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable

from sequentum_mcp.sessions.reaper import SessionReaper
from sequentum_mcp.sessions.store import SessionStore, close_session

# Configure logging
logger = logging.getLogger(__name__)

SHUTDOWN_TIMEOUT_SECONDS = 10.0


class ShutdownCoordinator:
    """Close every session on a termination signal, within a hard time limit.

    Args:
        store: Session store to drain
        reaper: Reaper whose recurring sweep is cancelled
        stop_accepting: Tells the HTTP server to stop accepting connections
        timeout: Seconds allowed for closing sessions before forcing exit
        force_exit: Called with exit status 1 when closing sessions exceeds ``timeout``
    """

    def __init__(
        self,
        store: SessionStore,
        reaper: SessionReaper | None = None,
        *,
        stop_accepting: Callable[[], None] | None = None,
        timeout: float = SHUTDOWN_TIMEOUT_SECONDS,
        force_exit: Callable[[int], object] = os._exit,
    ):
        self.store = store
        self.reaper = reaper
        self.stop_accepting = stop_accepting
        self.timeout = timeout
        self._force_exit = force_exit
        self.task: asyncio.Task[int] | None = None

    @property
    def shutting_down(self) -> bool:
        return self.task is not None

    def request_shutdown(self, signal_name: str) -> asyncio.Task[int] | None:
        """Start shutting down in the background. Repeated signals are ignored.

        Must be called from the event loop thread.
        """
        if self.task is not None:
            logger.debug(f"{signal_name} received while shutting down, ignoring")
            return None
        self.task = asyncio.get_running_loop().create_task(self.shutdown(signal_name), name="shutdown")
        return self.task

    async def shutdown(self, signal_name: str) -> int:
        """Stop accepting connections, cancel the reaper and close all sessions.

        Returns:
            Exit status: 0 if every session closed in time, 1 otherwise
        """
        logger.info(f"{signal_name} received, shutting down gracefully...")

        if self.stop_accepting is not None:
            self.stop_accepting()
        if self.reaper is not None:
            await self.reaper.stop()

        sessions = self.store.drain()
        if not sessions:
            logger.info("No active sessions. Shutdown complete.")
            return 0

        closing = [asyncio.create_task(close_session(s, "shutdown")) for s in sessions]
        _, pending = await asyncio.wait(closing, timeout=self.timeout)
        if pending:
            logger.error(
                f"Graceful shutdown timed out after {self.timeout:g}s "
                f"with {len(pending)} of {len(closing)} sessions still closing, forcing exit"
            )
            for task in pending:
                task.cancel()
            self._force_exit(1)
            return 1

        logger.info(f"All {len(closing)} sessions closed. Shutdown complete.")
        return 0
