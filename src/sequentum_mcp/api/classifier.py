"""Classification of failed HTTP responses into typed API errors.

Classification never raises: it returns the error value and leaves the
decision to raise (or retry) to the executor.
"""

from __future__ import annotations

import json
import math
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any

import requests

from sequentum_mcp.api.errors import ApiRequestError, AuthenticationError, RateLimitError, RequestTimeoutError

# Status codes that are safe to retry on idempotent requests
RETRYABLE_STATUS_CODES = frozenset({429, 502, 503, 504})

# Authorization failures will not change on retry
NEVER_RETRY_STATUS_CODES = frozenset({401, 403})

# Cap for raw (non-JSON) error bodies such as HTML error pages
MAX_ERROR_TEXT_LENGTH = 500

ErrorBodyParser = Callable[[Mapping[str, Any]], str | None]


def _flat_message(body: Mapping[str, Any]) -> str | None:
    """BadRequestError / InternalServerError shape: ``{"message": ...}``."""
    message = body.get("message")
    return str(message) if message else None


def _problem_details(body: Mapping[str, Any]) -> str | None:
    """RFC 7807 shape: ``{"title": ..., "detail": ...}``."""
    title = body.get("title")
    detail = body.get("detail")
    if detail:
        return f"{title}: {detail}" if title else str(detail)
    if title:
        return str(title)
    return None


def _status_description(body: Mapping[str, Any]) -> str | None:
    description = body.get("statusDescription")
    return str(description) if description else None


# Tried in order; the first strategy returning a message wins
ERROR_BODY_PARSERS: tuple[ErrorBodyParser, ...] = (
    _flat_message,
    _problem_details,
    _status_description,
)


def parse_error_body(text: str) -> str | None:
    """Extract a human-readable message from an error response body.

    Args:
        text: Raw response body

    Returns:
        The parsed message, the truncated raw text when the body is not JSON,
        or None when nothing usable was found (empty body, unknown JSON shape)
    """
    if not text:
        return None

    try:
        body = json.loads(text)
    except ValueError:
        if len(text) > MAX_ERROR_TEXT_LENGTH:
            return text[:MAX_ERROR_TEXT_LENGTH] + "..."
        return text

    if not isinstance(body, Mapping):
        return None

    for parser in ERROR_BODY_PARSERS:
        message = parser(body)
        if message:
            return message
    return None


def parse_retry_after(value: str | None, now: datetime | None = None) -> int | None:
    """Parse a Retry-After header into whole seconds.

    Accepts delta-seconds ("120") or an HTTP-date. Dates in the past yield 0.

    Args:
        value: Raw header value
        now: Reference time for HTTP-date values (default: current UTC time)

    Returns:
        Seconds to wait, or None if the header is missing or unparseable
    """
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None

    if value.isascii() and value.isdigit():
        return int(value)

    try:
        retry_at = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if retry_at is None:
        return None

    if retry_at.tzinfo is None:
        retry_at = retry_at.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    remaining = (retry_at - now).total_seconds()
    return max(0, math.ceil(remaining))


def _header(headers: Mapping[str, str], name: str) -> str | None:
    value = headers.get(name)
    if value is not None:
        return value
    lowered = name.lower()
    for key, candidate in headers.items():
        if key.lower() == lowered:
            return candidate
    return None


def classify_response(
    status_code: int,
    reason: str,
    body: str,
    headers: Mapping[str, str],
    endpoint: str,
    now: datetime | None = None,
) -> ApiRequestError:
    """Build the typed error for a non-success response.

    Args:
        status_code: HTTP status code
        reason: HTTP status text (e.g. "Not Found")
        body: Response body text (may be empty)
        headers: Response headers
        endpoint: API path that was called
        now: Reference time for Retry-After dates

    Returns:
        RateLimitError for 429, ApiRequestError otherwise
    """
    message = parse_error_body(body) or f"API Error {status_code}: {reason}"

    if status_code == 429:
        retry_after = parse_retry_after(_header(headers, "Retry-After"), now=now)
        return RateLimitError(message, endpoint, retry_after)

    return ApiRequestError(status_code, reason, message, endpoint)


def is_retryable(error: ApiRequestError) -> bool:
    """Whether a classified failure may be retried."""
    if error.status_code in NEVER_RETRY_STATUS_CODES:
        return False
    return error.status_code in RETRYABLE_STATUS_CODES


def failure_kind(error: Exception) -> str:
    """Label a terminal request failure for the stats endpoint."""
    if isinstance(error, RateLimitError):
        return "rate_limited"
    if isinstance(error, RequestTimeoutError):
        return "timeout"
    if isinstance(error, AuthenticationError):
        return "auth"
    if isinstance(error, ApiRequestError):
        if error.is_unauthorized or error.is_forbidden:
            return "auth"
        if error.is_not_found:
            return "not_found"
        if error.is_server_error:
            return "server_error"
        return "client_error"
    if isinstance(error, requests.ConnectionError):
        return "connection"
    return "other"
