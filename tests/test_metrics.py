"""Tests for upstream API metrics."""

from __future__ import annotations

import pytest
import requests

from sequentum_mcp.api.classifier import failure_kind
from sequentum_mcp.api.errors import (
    ApiRequestError,
    AuthenticationError,
    RateLimitError,
    RequestTimeoutError,
)
from sequentum_mcp.metrics import FAILURE_KINDS, ApiMetrics, endpoint_key, get_metrics


class TestEndpointKey:
    """Tests for endpoint_key function."""

    def test_ids_collapsed(self) -> None:
        """Test that agent, run and file ids share one route."""
        assert endpoint_key("/api/v1/agent/5/run/12/file/3/download") == (
            "/api/v1/agent/{id}/run/{id}/file/{id}/download"
        )

    def test_query_dropped(self) -> None:
        """Test that version segments survive and query strings are dropped."""
        assert endpoint_key("/api/v1/agent/all?pageIndex=2") == "/api/v1/agent/all"


class TestRecordRequest:
    """Tests for ApiMetrics.record_request."""

    def test_success(self) -> None:
        """Test a request that succeeded after a retry."""
        metrics = ApiMetrics()

        metrics.record_request("/api/v1/agent/7", attempts=2, elapsed_ms=40.0, status_code=200)

        assert metrics.requests == 1
        assert metrics.failures == 0
        assert metrics.retries == 1
        assert metrics.last_failure is None
        assert metrics.endpoints["/api/v1/agent/{id}"].retries == 1

    def test_failures_by_kind(self) -> None:
        """Test that failures are counted under the kind of the final error."""
        metrics = ApiMetrics()
        metrics.record_request("/api/v1/agent/1", status_code=404, failure_kind="not_found", error="gone")
        metrics.record_request("/api/v1/agent/2", status_code=503, failure_kind="server_error")
        metrics.record_request("/api/v1/agent/3", status_code=503, failure_kind="server_error")

        assert metrics.failures == 3
        assert metrics.failures_by_kind == {"not_found": 1, "server_error": 2}
        assert metrics.last_failure["endpoint"] == "/api/v1/agent/3"
        assert metrics.last_failure["status_code"] == 503

    def test_per_endpoint_totals(self) -> None:
        """Test that totals are kept per route."""
        metrics = ApiMetrics()
        metrics.record_request("/api/v1/agent/1/runs", elapsed_ms=10.0)
        metrics.record_request("/api/v1/agent/2/runs", elapsed_ms=30.0, failure_kind="timeout")
        metrics.record_request("/api/v1/space/all", elapsed_ms=5.0)

        runs = metrics.endpoints["/api/v1/agent/{id}/runs"]

        assert runs.calls == 2
        assert runs.failures == 1
        assert runs.to_dict()["avg_ms"] == 20.0
        assert set(metrics.endpoints) == {"/api/v1/agent/{id}/runs", "/api/v1/space/all"}

    def test_retry_after_observed(self) -> None:
        """Test that the latest Retry-After hint is kept."""
        metrics = ApiMetrics()
        metrics.observe_retry_after(5)
        metrics.observe_retry_after(30)

        assert metrics.last_retry_after_seconds == 30


class TestSnapshot:
    """Tests for ApiMetrics.snapshot."""

    def test_empty(self) -> None:
        """Test the snapshot of a server that made no requests."""
        data = ApiMetrics().snapshot()

        assert data["requests"] == {"total": 0, "succeeded": 0, "failed": 0, "retries": 0}
        assert data["failures"] == {kind: 0 for kind in FAILURE_KINDS}
        assert data["last_retry_after_seconds"] is None
        assert data["last_failure"] is None
        assert data["endpoints"] == {}
        assert data["uptime_seconds"] >= 0

    def test_counts(self) -> None:
        """Test the snapshot after mixed traffic."""
        metrics = ApiMetrics()
        metrics.record_request("/api/v1/billing/credits", attempts=3)
        metrics.record_request("/api/v1/agent/9", failure_kind="rate_limited", status_code=429)

        data = metrics.snapshot()

        assert data["requests"] == {"total": 2, "succeeded": 1, "failed": 1, "retries": 2}
        assert data["failures"]["rate_limited"] == 1
        assert data["endpoints"]["/api/v1/agent/{id}"] == {"calls": 1, "failures": 1, "retries": 0, "avg_ms": 0.0}


class TestFailureKind:
    """Tests for failure_kind function."""

    @pytest.mark.parametrize(
        "error,expected",
        [
            (RateLimitError("slow down", "/a", 5), "rate_limited"),
            (RequestTimeoutError(30000, "/a"), "timeout"),
            (AuthenticationError(), "auth"),
            (ApiRequestError(401, "Unauthorized", "bad token", "/a"), "auth"),
            (ApiRequestError(403, "Forbidden", "no", "/a"), "auth"),
            (ApiRequestError(404, "Not Found", "missing", "/a"), "not_found"),
            (ApiRequestError(400, "Bad Request", "bad", "/a"), "client_error"),
            (ApiRequestError(502, "Bad Gateway", "down", "/a"), "server_error"),
            (requests.ConnectionError("refused"), "connection"),
            (RuntimeError("boom"), "other"),
        ],
    )
    def test_kinds(self, error: Exception, expected: str) -> None:
        """Test the label of each error type."""
        assert failure_kind(error) == expected
        assert expected in FAILURE_KINDS


def test_global_metrics_is_shared() -> None:
    """Test that get_metrics returns the same instance every time."""
    assert get_metrics() is get_metrics()
