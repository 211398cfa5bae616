"""Retry policy: attempt budget, backoff delay and per-failure decisions."""

from __future__ import annotations

import random
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from sequentum_mcp.api.classifier import NEVER_RETRY_STATUS_CODES, is_retryable
from sequentum_mcp.api.errors import ApiRequestError, RateLimitError

# Default retry configuration for transient failures
DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY_MS = 1000
DEFAULT_MAX_DELAY_MS = 30000

# POST triggers side effects upstream (e.g. starting an agent) and is never
# retried automatically
NON_IDEMPOTENT_METHODS = frozenset({"POST"})

# Multiplicative jitter applied to exponential backoff
JITTER_LOW = 0.75
JITTER_HIGH = 1.25


def is_idempotent(method: str) -> bool:
    """Whether a request with this HTTP method may be repeated safely."""
    return method.upper() not in NON_IDEMPOTENT_METHODS


class Decision(Enum):
    """Outcome of a failed attempt."""

    RETRY = "retry"
    FAIL = "fail"


@dataclass(frozen=True)
class RetryPolicy:
    """Retry budget and backoff shape for one API client."""

    max_retries: int = DEFAULT_MAX_RETRIES
    base_delay_ms: float = DEFAULT_BASE_DELAY_MS
    max_delay_ms: float = DEFAULT_MAX_DELAY_MS

    def max_attempts(self, method: str) -> int:
        """Total attempts allowed for a request using ``method``."""
        if not is_idempotent(method):
            return 1
        return max(0, self.max_retries) + 1

    def backoff_delay_ms(
        self,
        attempt: int,
        retry_after_seconds: int | None = None,
        rng: Callable[[], float] = random.random,
    ) -> float:
        """Delay before the attempt following ``attempt`` (0-based).

        A positive server-provided Retry-After wins over exponential backoff.
        Both are capped at ``max_delay_ms``.
        """
        if retry_after_seconds is not None and retry_after_seconds > 0:
            return min(retry_after_seconds * 1000, self.max_delay_ms)

        exponential = self.base_delay_ms * (2**attempt)
        jitter = JITTER_LOW + rng() * (JITTER_HIGH - JITTER_LOW)
        return min(exponential * jitter, self.max_delay_ms)

    def decide_for_response(self, error: ApiRequestError, attempt: int, max_attempts: int) -> Decision:
        """Retry or fail after a classified HTTP failure."""
        if error.status_code in NEVER_RETRY_STATUS_CODES:
            return Decision.FAIL
        if is_retryable(error) and attempt < max_attempts - 1:
            return Decision.RETRY
        return Decision.FAIL

    def decide_for_transport_failure(self, attempt: int, max_attempts: int) -> Decision:
        """Retry or fail after a timeout or connection failure."""
        if attempt < max_attempts - 1:
            return Decision.RETRY
        return Decision.FAIL


def retry_after_hint(error: Exception) -> int | None:
    """Server-provided Retry-After seconds carried by ``error``, if any."""
    if isinstance(error, RateLimitError):
        return error.retry_after_seconds
    return None
