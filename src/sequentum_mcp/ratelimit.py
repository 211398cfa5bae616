"""Per-client rate limiting for the MCP endpoint."""

from __future__ import annotations

import logging
import math
import time

from limits import RateLimitItem, parse
from limits.storage import MemoryStorage, Storage
from limits.strategies import FixedWindowRateLimiter
from starlette.requests import Request
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from sequentum_mcp.sessions.handler import jsonrpc_error

# Configure logging
logger = logging.getLogger(__name__)

DEFAULT_RATE_LIMIT = "100/minute"
RATE_LIMITED = -32029


class ClientRateLimiter:
    """Fixed-window request budget per client key.

    Args:
        limit: Rate limit in ``limits`` notation, e.g. "100/minute"
        storage: Counter storage (default: in-process memory)
        namespace: Prefix separating these counters from other limits in the storage
    """

    def __init__(self, limit: str = DEFAULT_RATE_LIMIT, storage: Storage | None = None, namespace: str = "mcp"):
        self.item: RateLimitItem = parse(limit)
        self.namespace = namespace
        self._strategy = FixedWindowRateLimiter(storage or MemoryStorage())

    @property
    def max_requests(self) -> int:
        return self.item.amount

    def hit(self, key: str) -> bool:
        """Count a request for ``key``.

        Returns:
            False if the key is over its limit for the current window
        """
        return self._strategy.hit(self.item, self.namespace, key)

    def headers(self, key: str) -> dict[str, str]:
        """``RateLimit-*`` response headers describing the budget of ``key``."""
        stats = self._strategy.get_window_stats(self.item, self.namespace, key)
        return {
            "RateLimit-Limit": str(self.max_requests),
            "RateLimit-Remaining": str(max(0, stats.remaining)),
            "RateLimit-Reset": str(max(0, math.ceil(stats.reset_time - time.time()))),
        }


class RateLimitMiddleware:
    """Answer 429 with a JSON-RPC error once a client exceeds its request budget.

    Clients are keyed by IP address (the forwarded address when proxy headers
    are trusted). Only paths under ``path_prefix`` are limited.
    """

    def __init__(self, app: ASGIApp, limiter: ClientRateLimiter, path_prefix: str = "/mcp"):
        self.app = app
        self.limiter = limiter
        self.path_prefix = path_prefix

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not scope["path"].startswith(self.path_prefix):
            await self.app(scope, receive, send)
            return

        request = Request(scope)
        key = request.client.host if request.client else "unknown"
        allowed = self.limiter.hit(key)
        headers = self.limiter.headers(key)
        if not allowed:
            logger.warning(f"429 - Rate limit exceeded for {key}")
            response = jsonrpc_error(RATE_LIMITED, "Too many requests. Please slow down.", 429, headers=headers)
            await response(scope, receive, send)
            return

        raw_headers = [(name.lower().encode("latin-1"), value.encode("latin-1")) for name, value in headers.items()]

        async def send_with_headers(message: Message) -> None:
            if message["type"] == "http.response.start":
                message["headers"] = [*message.get("headers", []), *raw_headers]
            await send(message)

        await self.app(scope, receive, send_with_headers)
