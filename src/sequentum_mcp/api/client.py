"""Typed request facade over the Sequentum control-plane REST API."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any
from urllib.parse import urljoin

import requests

from sequentum_mcp.api.auth import Credentials
from sequentum_mcp.api.executor import DEFAULT_REQUEST_TIMEOUT_MS, RequestExecutor
from sequentum_mcp.api.retry import DEFAULT_MAX_RETRIES, RetryPolicy
from sequentum_mcp.metrics import ApiMetrics
from sequentum_mcp.models import (
    CreateScheduleRequest,
    ListAgentsRequest,
    StartAgentRequest,
    UpdateScheduleRequest,
)

# Configure logging
logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


def _query(**params: Any) -> dict[str, str]:
    """Drop unset values and render the rest the way the API expects."""
    query: dict[str, str] = {}
    for key, value in params.items():
        if value is None or value == "":
            continue
        if isinstance(value, bool):
            query[key] = "true" if value else "false"
        else:
            query[key] = str(value)
    return query


class SequentumApiClient:
    """Client for the Sequentum API.

    One instance per MCP session. The bearer token can be swapped in place via
    ``set_access_token`` and is picked up by the next request attempt.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        *,
        access_token: str | None = None,
        timeout_ms: int = DEFAULT_REQUEST_TIMEOUT_MS,
        max_retries: int = DEFAULT_MAX_RETRIES,
        session: requests.Session | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        metrics: ApiMetrics | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: API base URL, e.g. "https://dashboard.sequentum.com"
            api_key: Static API key (used when no bearer token is set)
            access_token: OAuth2 bearer token
            timeout_ms: Per-attempt deadline in milliseconds (default: 30000)
            max_retries: Retries for idempotent requests (default: 3)
            session: requests session to use (default: new session)
            sleep: Backoff sleep coroutine, injectable for tests
            metrics: Metrics sink (default: the process-wide metrics)
        """
        self.credentials = Credentials(api_key=api_key, access_token=access_token)
        self.executor = RequestExecutor(
            base_url,
            self.credentials,
            timeout_ms=timeout_ms,
            policy=RetryPolicy(max_retries=max_retries),
            session=session,
            sleep=sleep,
            metrics=metrics,
        )

    @property
    def base_url(self) -> str:
        return self.executor.base_url

    @property
    def access_token(self) -> str | None:
        return self.credentials.access_token

    def set_access_token(self, token: str | None) -> None:
        """Replace the bearer token used by subsequent requests."""
        if token and token != self.credentials.access_token:
            logger.debug("Access token updated for API client")
        self.credentials.set_access_token(token)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json_body: Any = None,
    ) -> Any:
        response = await self.executor.execute(
            method, f"{API_PREFIX}{path}", params=params or None, json_body=json_body
        )
        return self._decode(response)

    async def _request_void(self, method: str, path: str, *, json_body: Any = None) -> None:
        await self.executor.execute(method, f"{API_PREFIX}{path}", json_body=json_body)

    @staticmethod
    def _decode(response: requests.Response) -> Any:
        content_type = response.headers.get("Content-Type", "")
        if "application/json" in content_type:
            return response.json()
        return response.text

    # Agent operations

    async def get_all_agents(self, filters: ListAgentsRequest | None = None) -> Any:
        """List agents.

        Returns:
            A list of agents, or a paginated object when pagination was requested
        """
        params = filters.to_query() if filters else None
        return await self._request("GET", "/agent/all", params=params)

    async def get_agent(self, agent_id: int) -> dict[str, Any]:
        return await self._request("GET", f"/agent/{agent_id}")

    async def search_agents(self, query: str, max_records: int | None = None) -> list[dict[str, Any]]:
        """Search agents by name or description.

        Args:
            query: Search term
            max_records: Maximum number of results (server default: 50)
        """
        return await self._request(
            "GET", "/agent/search", params=_query(query=query, maxRecords=max_records)
        )

    # Run operations

    async def get_agent_runs(self, agent_id: int, max_records: int | None = None) -> list[dict[str, Any]]:
        return await self._request(
            "GET", f"/agent/{agent_id}/runs", params=_query(maxRecords=max_records or None)
        )

    async def get_run_status(self, agent_id: int, run_id: int) -> dict[str, Any]:
        return await self._request("GET", f"/agent/{agent_id}/run/{run_id}/status")

    async def start_agent(self, agent_id: int, request: StartAgentRequest | None = None) -> Any:
        """Start an agent run.

        Returns:
            The run record, or the run output when the run is synchronous
        """
        request = request or StartAgentRequest()
        body = request.to_body()
        return await self._request("POST", f"/agent/{agent_id}/start", json_body=body)

    async def stop_agent(self, agent_id: int, run_id: int) -> None:
        await self._request_void("POST", f"/agent/{agent_id}/run/{run_id}/stop")

    async def kill_agent(self, agent_id: int, run_id: int) -> None:
        """Kill a run: the first call stops gracefully, a second call forces termination."""
        await self._request_void("POST", f"/agent/{agent_id}/run/{run_id}/kill")

    # File operations

    async def get_run_files(self, agent_id: int, run_id: int) -> list[dict[str, Any]]:
        return await self._request("GET", f"/agent/{agent_id}/run/{run_id}/files")

    async def download_run_file(self, agent_id: int, run_id: int, file_id: int) -> dict[str, str]:
        """Resolve the download URL of a run output file.

        The API answers with a redirect to a time-limited URL. The redirect is
        not followed; its target is returned instead.

        Returns:
            ``{"redirectUrl": <url>}``
        """
        endpoint = f"{API_PREFIX}/agent/{agent_id}/run/{run_id}/file/{file_id}/download"
        response = await self.executor.execute("GET", endpoint, allow_redirects=False)

        location = response.headers.get("Location")
        if response.is_redirect and location:
            return {"redirectUrl": urljoin(response.url, location)}

        decoded = self._decode(response)
        if isinstance(decoded, dict) and "redirectUrl" in decoded:
            return decoded
        return {"redirectUrl": response.url}

    # Version operations

    async def get_agent_versions(self, agent_id: int) -> list[dict[str, Any]]:
        return await self._request("GET", f"/agent/{agent_id}/versions")

    async def restore_agent_version(self, agent_id: int, version_number: int, comments: str) -> None:
        await self._request_void(
            "POST",
            f"/agent/{agent_id}/version/{version_number}/restore",
            json_body={"content": comments},
        )

    # Schedule operations

    async def get_agent_schedules(self, agent_id: int) -> list[dict[str, Any]]:
        return await self._request("GET", f"/agent/{agent_id}/schedules")

    async def create_agent_schedule(self, agent_id: int, request: CreateScheduleRequest) -> dict[str, Any]:
        return await self._request("POST", f"/agent/{agent_id}/schedules", json_body=request.to_body())

    async def delete_agent_schedule(self, agent_id: int, schedule_id: int) -> None:
        await self._request_void("DELETE", f"/agent/{agent_id}/schedules/{schedule_id}")

    async def get_agent_schedule(self, agent_id: int, schedule_id: int) -> dict[str, Any]:
        return await self._request("GET", f"/agent/{agent_id}/schedules/{schedule_id}")

    async def update_agent_schedule(
        self, agent_id: int, schedule_id: int, request: UpdateScheduleRequest
    ) -> dict[str, Any]:
        return await self._request(
            "PUT", f"/agent/{agent_id}/schedules/{schedule_id}", json_body=request.to_body()
        )

    async def enable_agent_schedule(self, agent_id: int, schedule_id: int) -> None:
        await self._request_void("POST", f"/agent/{agent_id}/schedules/{schedule_id}/enable")

    async def disable_agent_schedule(self, agent_id: int, schedule_id: int) -> None:
        await self._request_void("POST", f"/agent/{agent_id}/schedules/{schedule_id}/disable")

    async def get_upcoming_schedules(
        self, start_date: str | None = None, end_date: str | None = None
    ) -> list[dict[str, Any]]:
        return await self._request(
            "GET",
            "/analytics/schedules/upcoming",
            params=_query(startDate=start_date, endDate=end_date),
        )

    # Billing operations

    async def get_credits_balance(self) -> dict[str, Any]:
        return await self._request("GET", "/billing/credits")

    async def get_spending_summary(
        self, start_date: str | None = None, end_date: str | None = None
    ) -> dict[str, Any]:
        return await self._request(
            "GET", "/billing/spending", params=_query(startDate=start_date, endDate=end_date)
        )

    async def get_credit_history(
        self, page_index: int | None = None, records_per_page: int | None = None
    ) -> dict[str, Any]:
        return await self._request(
            "GET",
            "/billing/history",
            params=_query(pageIndex=page_index, recordsPerPage=records_per_page),
        )

    # Space operations

    async def get_all_spaces(self) -> list[dict[str, Any]]:
        return await self._request("GET", "/spaces")

    async def get_space(self, space_id: int) -> dict[str, Any]:
        return await self._request("GET", f"/spaces/{space_id}")

    async def get_space_agents(self, space_id: int) -> list[dict[str, Any]]:
        return await self._request("GET", f"/spaces/{space_id}/agents")

    async def search_space_by_name(self, name: str) -> dict[str, Any]:
        return await self._request("GET", "/spaces/search", params={"name": name})

    async def run_space_agents(self, space_id: int, input_parameters: str | None = None) -> dict[str, Any]:
        return await self._request(
            "POST",
            f"/spaces/{space_id}/run-all",
            json_body={"InputParameters": input_parameters},
        )

    # Analytics operations

    async def get_runs_summary(
        self,
        start_date: str | None = None,
        end_date: str | None = None,
        status: str | None = None,
        include_details: bool | None = None,
    ) -> dict[str, Any]:
        return await self._request(
            "GET",
            "/analytics/runs/summary",
            params=_query(
                startDate=start_date,
                endDate=end_date,
                status=status,
                includeDetails=include_details,
            ),
        )

    async def get_records_summary(
        self,
        start_date: str | None = None,
        end_date: str | None = None,
        agent_id: int | None = None,
    ) -> dict[str, Any]:
        return await self._request(
            "GET",
            "/analytics/records/summary",
            params=_query(startDate=start_date, endDate=end_date, agentId=agent_id),
        )

    async def get_run_diagnostics(self, agent_id: int, run_id: int) -> dict[str, Any]:
        return await self._request("GET", f"/analytics/agents/{agent_id}/runs/{run_id}/diagnostics")

    async def get_latest_failure(self, agent_id: int) -> dict[str, Any]:
        return await self._request("GET", f"/analytics/agents/{agent_id}/latest-failure")

    def close(self) -> None:
        """Release the underlying HTTP session."""
        self.executor.close()
