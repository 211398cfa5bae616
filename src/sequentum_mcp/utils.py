"""Validation helpers for tool arguments."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import Any


def parse_iso_datetime(value: str) -> datetime:
    """Parse an ISO 8601 timestamp; a missing offset is taken as UTC.

    Raises:
        ValueError: If the value is not ISO 8601
    """
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def validate_start_time_in_future(
    start_time: str,
    minutes_ahead: int = 1,
    now: datetime | None = None,
) -> None:
    """Check that a start time is valid ISO 8601 and far enough in the future.

    Args:
        start_time: The start time to validate (ISO 8601)
        minutes_ahead: Minimum minutes in the future required (default: 1)
        now: Reference time (default: current UTC time)

    Raises:
        ValueError: If the time cannot be parsed or is not later than
            ``now + minutes_ahead``
    """
    try:
        start = parse_iso_datetime(start_time)
    except ValueError:
        raise ValueError(
            f"Invalid startTime format: {start_time}. "
            "Use ISO 8601 format (e.g., 2026-01-20T14:30:00Z)"
        ) from None

    now = now or datetime.now(timezone.utc)
    if start <= now + timedelta(minutes=minutes_ahead):
        raise ValueError(
            f"startTime must be at least {minutes_ahead} minute(s) in the future (UTC). "
            f"Provided: {start_time}"
        )


def validate_json_string(value: str, field_name: str) -> None:
    """Check that ``value`` is a JSON document.

    Raises:
        ValueError: With the first 100 characters of the value if it does not parse
    """
    try:
        json.loads(value)
    except ValueError:
        preview = value[:100] + ("..." if len(value) > 100 else "")
        raise ValueError(f"Invalid parameter '{field_name}': must be a valid JSON string. Got: {preview}") from None


def json_parameter_text(value: dict[str, Any] | list[Any] | str | None, field_name: str) -> str | None:
    """Return tool input parameters as JSON text.

    MCP clients may send the parameters as a JSON string or as an already
    decoded object; the API expects a string either way.

    Raises:
        ValueError: If a string value is not JSON
    """
    if value is None:
        return None
    if isinstance(value, str):
        validate_json_string(value, field_name)
        return value
    return json.dumps(value)
