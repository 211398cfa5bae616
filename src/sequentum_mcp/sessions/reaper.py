"""Periodic eviction of idle sessions."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable

from sequentum_mcp.sessions.store import SessionStore, close_session

# Configure logging
logger = logging.getLogger(__name__)

SESSION_CLEANUP_INTERVAL_SECONDS = 15 * 60
SESSION_MAX_IDLE_SECONDS = 60 * 60


class SessionReaper:
    """Sweep the store on a fixed interval and close sessions idle beyond a threshold.

    No session outlives its last activity by more than ``max_idle + interval``.

    Args:
        store: Session store to sweep
        interval: Seconds between sweeps
        max_idle: Idle seconds after which a session is evicted
        sleep: Awaitable sleep, injected by tests
    """

    def __init__(
        self,
        store: SessionStore,
        *,
        interval: float = SESSION_CLEANUP_INTERVAL_SECONDS,
        max_idle: float = SESSION_MAX_IDLE_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if interval >= max_idle:
            raise ValueError("interval must be shorter than max_idle")
        self.store = store
        self.interval = interval
        self.max_idle = max_idle
        self._sleep = sleep
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def sweep_once(self) -> int:
        """Evict idle sessions now.

        Returns:
            Number of sessions evicted
        """
        expired = self.store.sweep(self.max_idle)
        if expired:
            await asyncio.gather(*(close_session(s, "idle") for s in expired))
            logger.info(f"Session cleanup: removed {len(expired)} stale sessions, {len(self.store)} active")
        else:
            logger.debug(f"Session cleanup: no stale sessions, {len(self.store)} active")
        return len(expired)

    async def _run(self) -> None:
        while True:
            await self._sleep(self.interval)
            try:
                await self.sweep_once()
            except Exception:
                logger.exception("Session cleanup failed")

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="session-reaper")

    async def stop(self) -> None:
        """Cancel the recurring sweep. Safe to call when not running."""
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
