"""Business logic shared by the MCP tools: validation, summaries and error reporting."""

from __future__ import annotations

import functools
import json
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any, ParamSpec

from mcp.types import CallToolResult, TextContent

from sequentum_mcp.api.errors import (
    ApiRequestError,
    AuthenticationError,
    RateLimitError,
    RequestTimeoutError,
)
from sequentum_mcp.models import AgentRunStatus, ScheduleType
from sequentum_mcp.utils import validate_start_time_in_future

# Configure logging
logger = logging.getLogger(__name__)

P = ParamSpec("P")

DEFAULT_PAGE_INDEX = 1
DEFAULT_RECORDS_PER_PAGE = 50


def to_json(data: Any) -> str:
    """Pretty-print an API payload for a text content block."""
    return json.dumps(data, indent=2, ensure_ascii=False)


def format_tool_error(error: BaseException) -> str:
    """Build the user-facing ``"<category>: <message>"`` text for a failed tool call.

    Args:
        error: The exception raised while running the tool

    Returns:
        Categorised error text
    """
    if isinstance(error, RateLimitError):
        if error.retry_after_seconds:
            hint = f" Try again in {error.retry_after_seconds} seconds."
        else:
            hint = " Please wait a moment before retrying."
        return f"Rate Limited: The Sequentum API rate limit has been reached.{hint}"

    if isinstance(error, AuthenticationError):
        return f"Authentication Error: {error.message}"

    if isinstance(error, ApiRequestError):
        if error.is_unauthorized:
            return (
                "Authentication Failed: Your API key or OAuth token is invalid or has expired. "
                "Please check your credentials."
            )
        if error.is_forbidden:
            return (
                "Access Denied: You don't have permission to perform this action. "
                "Check your API key permissions."
            )
        if error.is_not_found:
            return f"Not Found: {error.message}"
        if error.is_server_error:
            return (
                f"Server Error: The Sequentum API encountered an internal error ({error.status_code}). "
                "This is a server-side issue, please try again later."
            )
        return f"API Error ({error.status_code}): {error.message}"

    if isinstance(error, RequestTimeoutError):
        return f"Request Timeout: {error}"

    return f"Error: {str(error) or 'An unknown error occurred'}"


def tool_errors(fn: Callable[P, Awaitable[str]]) -> Callable[P, Awaitable[str | CallToolResult]]:
    """Report exceptions from a tool as an ``isError`` result instead of a protocol error."""

    @functools.wraps(fn)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> str | CallToolResult:
        try:
            return await fn(*args, **kwargs)
        except Exception as e:
            text = format_tool_error(e)
            logger.warning(f"Tool {fn.__name__} failed: {text}")
            return CallToolResult(content=[TextContent(type="text", text=text)], isError=True)

    return wrapper


def run_status_label(status: int | None) -> str:
    """Human-readable label for an agent's last run status."""
    if status is None:
        return "Never Run"
    try:
        return AgentRunStatus(status).name.title()
    except ValueError:
        return f"Unknown ({status})"


def summarize_agents(agents: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Reduce agent records to the fields shown in listings."""
    return [
        {
            "id": agent.get("id"),
            "name": agent.get("name"),
            "description": agent.get("description"),
            "status": run_status_label(agent.get("status")),
            "configType": agent.get("configType"),
            "version": agent.get("version"),
            "lastActivity": agent.get("lastActivity"),
        }
        for agent in agents
    ]


def summarize_run_files(files: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Reduce run file records to id, name, type, size in KB and creation time."""
    return [
        {
            "id": f.get("id"),
            "name": f.get("name"),
            "fileType": f.get("fileType"),
            "fileSize": f"{(f.get('fileSize') or 0) / 1024:.2f} KB",
            "created": f.get("created"),
        }
        for f in files
    ]


def parse_sort_order(sort_order: str | None) -> int | None:
    """Map "asc"/"desc" to the API's 0/1 sort order.

    Raises:
        ValueError: For any other value
    """
    if not sort_order:
        return None
    if sort_order not in ("asc", "desc"):
        raise ValueError(f"Invalid parameter 'sortOrder': must be \"asc\" or \"desc\", got \"{sort_order}\"")
    return 1 if sort_order == "desc" else 0


def build_agent_list(response: Any, page_index: int, records_per_page: int) -> Any:
    """Shape the agent list response for display.

    The API answers with a plain list, or with ``{"agents": [...], "totalRecordCount": n}``
    when it paginates.

    Raises:
        ValueError: If the response has neither shape
    """
    if isinstance(response, list):
        return summarize_agents(response)

    if isinstance(response, dict) and isinstance(response.get("agents"), list):
        return {
            "agents": summarize_agents(response["agents"]),
            "pagination": {
                "totalRecordCount": response.get("totalRecordCount"),
                "pageIndex": page_index,
                "recordsPerPage": records_per_page,
            },
        }

    logger.debug(f"Unknown agent list structure: {str(response)[:500]}")
    raise ValueError(f"Unexpected response type: {type(response).__name__}")


def resolve_create_schedule_type(
    schedule_type: int | None,
    *,
    start_time: str | None = None,
    cron_expression: str | None = None,
    run_every_count: int | None = None,
    run_every_period: int | None = None,
    now: datetime | None = None,
) -> int:
    """Validate the fields a new schedule needs for its type.

    Args:
        schedule_type: 1=RunOnce, 2=RunEvery, 3=CRON (default: CRON)
        start_time: First run time; required for RunOnce
        cron_expression: Required for CRON
        run_every_count: Required for RunEvery
        run_every_period: Required for RunEvery
        now: Reference time for start time checks

    Returns:
        The effective schedule type

    Raises:
        ValueError: If a required field is missing or the start time is not in the future
    """
    effective = schedule_type or ScheduleType.CRON

    if effective == ScheduleType.RUN_ONCE:
        if not start_time:
            raise ValueError("startTime is required when scheduleType is 1 (RunOnce)")
        validate_start_time_in_future(start_time, 1, now=now)

    elif effective == ScheduleType.RUN_EVERY:
        if run_every_count is None or run_every_period is None:
            raise ValueError(
                "runEveryCount and runEveryPeriod are required when scheduleType is 2 (RunEvery)"
            )
        if start_time:
            validate_start_time_in_future(start_time, 0, now=now)

    elif effective == ScheduleType.CRON and not cron_expression:
        raise ValueError("cronExpression is required when scheduleType is 3 (CRON)")

    return int(effective)


def resolve_update_schedule_type(
    schedule_type: int | None,
    *,
    start_time: str | None = None,
    cron_expression: str | None = None,
    run_every_count: int | None = None,
    run_every_period: int | None = None,
    now: datetime | None = None,
) -> int | None:
    """Infer and validate the schedule type of an update.

    Without an explicit type, a cron expression implies CRON and run-every
    fields imply RunEvery. Supplying both without a type is ambiguous.

    Returns:
        The effective schedule type, or None if it cannot be inferred

    Raises:
        ValueError: On conflicting fields or a start time not in the future
    """
    has_cron = cron_expression is not None
    has_run_every = run_every_count is not None or run_every_period is not None

    if has_cron and has_run_every and schedule_type is None:
        raise ValueError(
            "Conflicting schedule fields: both cronExpression and runEveryCount/runEveryPeriod "
            "were provided without an explicit scheduleType. "
            "Specify scheduleType to clarify intent (2=RunEvery, 3=CRON)."
        )

    effective = schedule_type
    if effective is None:
        if has_cron:
            effective = ScheduleType.CRON
        elif has_run_every:
            effective = ScheduleType.RUN_EVERY

    if start_time and effective == ScheduleType.RUN_ONCE:
        validate_start_time_in_future(start_time, 1, now=now)
    elif start_time and effective == ScheduleType.RUN_EVERY:
        validate_start_time_in_future(start_time, 0, now=now)

    return int(effective) if effective is not None else None
