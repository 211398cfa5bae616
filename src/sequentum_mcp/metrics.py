"""Counters for upstream Sequentum API traffic, reported by ``/api/stats``."""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

# Labels produced by api.classifier.failure_kind
FAILURE_KINDS = (
    "rate_limited",
    "timeout",
    "auth",
    "not_found",
    "client_error",
    "server_error",
    "connection",
    "other",
)

_ID_SEGMENT = re.compile(r"/\d+(?=/|$)")


def endpoint_key(endpoint: str) -> str:
    """Collapse numeric path segments so totals are kept per route, not per agent.

    >>> endpoint_key("/api/v1/agent/5/runs/12")
    '/api/v1/agent/{id}/runs/{id}'
    """
    return _ID_SEGMENT.sub("/{id}", endpoint.split("?", 1)[0])


@dataclass
class EndpointTotals:
    """Totals for one API route."""

    calls: int = 0
    failures: int = 0
    retries: int = 0
    elapsed_ms: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "calls": self.calls,
            "failures": self.failures,
            "retries": self.retries,
            "avg_ms": round(self.elapsed_ms / self.calls, 1) if self.calls else 0.0,
        }


@dataclass
class ApiMetrics:
    """Process-wide counters for logical API requests.

    A logical request is one client method call, however many HTTP attempts
    it took. Failures are counted once, under the kind of the final error.
    """

    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    requests: int = 0
    failures: int = 0
    retries: int = 0
    failures_by_kind: Counter[str] = field(default_factory=Counter)
    endpoints: dict[str, EndpointTotals] = field(default_factory=dict)
    last_retry_after_seconds: int | None = None
    last_failure: dict[str, Any] | None = None

    def record_request(
        self,
        endpoint: str,
        *,
        attempts: int = 1,
        elapsed_ms: float = 0.0,
        status_code: int | None = None,
        failure_kind: str | None = None,
        error: str | None = None,
    ) -> None:
        """Record a completed logical request.

        Args:
            endpoint: The API path that was called
            attempts: HTTP attempts made (1 = no retries)
            elapsed_ms: Time across all attempts and backoff sleeps
            status_code: Final HTTP status, if a response was received
            failure_kind: Kind of the final error; None if the request succeeded
            error: Description of the final error
        """
        totals = self.endpoints.setdefault(endpoint_key(endpoint), EndpointTotals())
        totals.calls += 1
        totals.retries += attempts - 1
        totals.elapsed_ms += elapsed_ms
        self.requests += 1
        self.retries += attempts - 1

        if failure_kind is None:
            return

        totals.failures += 1
        self.failures += 1
        self.failures_by_kind[failure_kind] += 1
        self.last_failure = {
            "endpoint": endpoint,
            "kind": failure_kind,
            "status_code": status_code,
            "error": error,
            "at": datetime.now(timezone.utc).isoformat(),
        }

    def observe_retry_after(self, seconds: int) -> None:
        """Remember the most recent Retry-After hint sent by the API."""
        self.last_retry_after_seconds = seconds

    def snapshot(self) -> dict[str, Any]:
        """JSON-serialisable view of the counters."""
        uptime = (datetime.now(timezone.utc) - self.started_at).total_seconds()
        return {
            "started_at": self.started_at.isoformat(),
            "uptime_seconds": round(uptime, 1),
            "requests": {
                "total": self.requests,
                "succeeded": self.requests - self.failures,
                "failed": self.failures,
                "retries": self.retries,
            },
            "failures": {kind: self.failures_by_kind.get(kind, 0) for kind in FAILURE_KINDS},
            "last_retry_after_seconds": self.last_retry_after_seconds,
            "last_failure": self.last_failure,
            "endpoints": {key: totals.to_dict() for key, totals in sorted(self.endpoints.items())},
        }


_metrics = ApiMetrics()


def get_metrics() -> ApiMetrics:
    """The process-wide metrics shared by every API client."""
    return _metrics
