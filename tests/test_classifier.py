"""Tests for error response classification."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from sequentum_mcp.api.classifier import (
    MAX_ERROR_TEXT_LENGTH,
    classify_response,
    is_retryable,
    parse_error_body,
    parse_retry_after,
)
from sequentum_mcp.api.errors import ApiRequestError, RateLimitError

NOW = datetime(2026, 1, 20, 12, 0, 0, tzinfo=timezone.utc)


class TestParseErrorBody:
    """Tests for the ordered body parsing strategies."""

    def test_flat_message(self) -> None:
        """Test the BadRequestError shape yields its message verbatim."""
        assert parse_error_body('{"message":"Invalid API key"}') == "Invalid API key"

    def test_problem_details_title_and_detail(self) -> None:
        """Test RFC 7807 bodies combine title and detail."""
        assert parse_error_body('{"title":"Not Found","detail":"agent 999"}') == "Not Found: agent 999"

    def test_problem_details_detail_only(self) -> None:
        """Test RFC 7807 bodies with only a detail."""
        assert parse_error_body('{"detail":"agent 999"}') == "agent 999"

    def test_problem_details_title_only(self) -> None:
        """Test RFC 7807 bodies with only a title."""
        assert parse_error_body('{"title":"Conflict","status":409}') == "Conflict"

    def test_status_description(self) -> None:
        """Test statusDescription is used when there is no message."""
        body = '{"statusCode":400,"statusDescription":"Bad Request","severity":"Error"}'
        assert parse_error_body(body) == "Bad Request"

    def test_message_wins_over_problem_details(self) -> None:
        """Test the flat message strategy is tried first."""
        assert parse_error_body('{"message":"first","title":"second"}') == "first"

    def test_empty_body(self) -> None:
        """Test an empty body yields no message."""
        assert parse_error_body("") is None

    def test_unknown_json_shape(self) -> None:
        """Test JSON without known fields yields no message."""
        assert parse_error_body('{"foo":"bar"}') is None
        assert parse_error_body("[1, 2]") is None

    def test_raw_text(self) -> None:
        """Test non-JSON bodies are returned as text."""
        assert parse_error_body("Bad Gateway") == "Bad Gateway"

    def test_raw_text_truncated(self) -> None:
        """Test long non-JSON bodies are truncated."""
        message = parse_error_body("<html>" + "x" * 1000)
        assert len(message) == MAX_ERROR_TEXT_LENGTH + 3
        assert message.endswith("...")


class TestParseRetryAfter:
    """Tests for Retry-After parsing."""

    def test_seconds(self) -> None:
        """Test delta-seconds values."""
        assert parse_retry_after("120") == 120
        assert parse_retry_after(" 0 ") == 0

    def test_http_date(self) -> None:
        """Test HTTP-date values are converted to seconds from now."""
        assert parse_retry_after("Tue, 20 Jan 2026 12:00:30 GMT", now=NOW) == 30

    def test_http_date_in_past(self) -> None:
        """Test past dates clamp to zero."""
        assert parse_retry_after("Tue, 20 Jan 2026 11:00:00 GMT", now=NOW) == 0

    @pytest.mark.parametrize("value", [None, "", "soon", "-5", "1.5"])
    def test_unparseable(self, value: str | None) -> None:
        """Test missing or malformed values yield None."""
        assert parse_retry_after(value, now=NOW) is None


class TestClassifyResponse:
    """Tests for classify_response."""

    def test_empty_500_falls_back_to_status(self) -> None:
        """Test the fallback message uses status and reason."""
        error = classify_response(500, "Internal Server Error", "", {}, "/api/v1/agent/all")
        assert type(error) is ApiRequestError
        assert error.message == "API Error 500: Internal Server Error"
        assert error.is_server_error
        assert error.endpoint == "/api/v1/agent/all"

    def test_not_found(self) -> None:
        """Test 404 responses keep the parsed message."""
        error = classify_response(404, "Not Found", '{"title":"Not Found","detail":"agent 999"}', {}, "/x")
        assert error.is_not_found
        assert error.message == "Not Found: agent 999"

    def test_rate_limit_with_retry_after(self) -> None:
        """Test 429 yields a RateLimitError carrying the hint."""
        error = classify_response(429, "Too Many Requests", "", {"retry-after": "120"}, "/x")
        assert isinstance(error, RateLimitError)
        assert error.retry_after_seconds == 120
        assert error.is_rate_limited

    def test_rate_limit_without_retry_after(self) -> None:
        """Test 429 without a header has no hint."""
        error = classify_response(429, "Too Many Requests", "", {}, "/x")
        assert isinstance(error, RateLimitError)
        assert error.retry_after_seconds is None

    def test_classification_does_not_raise(self) -> None:
        """Test classification returns errors instead of raising them."""
        error = classify_response(401, "Unauthorized", '{"message":"Invalid API key"}', {}, "/x")
        assert error.is_unauthorized
        assert str(error) == "Invalid API key"


class TestIsRetryable:
    """Tests for the retryable status set."""

    @pytest.mark.parametrize("status", [429, 502, 503, 504])
    def test_retryable(self, status: int) -> None:
        """Test transient statuses are retryable."""
        assert is_retryable(ApiRequestError(status, "", "", "/x"))

    @pytest.mark.parametrize("status", [400, 401, 403, 404, 500, 501])
    def test_terminal(self, status: int) -> None:
        """Test other statuses are terminal."""
        assert not is_retryable(ApiRequestError(status, "", "", "/x"))
