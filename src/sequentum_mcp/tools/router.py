"""MCP tool definitions for the Sequentum control plane.

Tool argument names are camelCase: they are the public wire contract seen by
MCP clients and referenced by the prompts.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any, Literal

from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations
from pydantic import Field

from sequentum_mcp.api.client import SequentumApiClient
from sequentum_mcp.models import (
    CreateScheduleRequest,
    ListAgentsRequest,
    StartAgentRequest,
    UpdateScheduleRequest,
)
from sequentum_mcp.tools.service import (
    DEFAULT_PAGE_INDEX,
    DEFAULT_RECORDS_PER_PAGE,
    build_agent_list,
    parse_sort_order,
    resolve_create_schedule_type,
    resolve_update_schedule_type,
    summarize_agents,
    summarize_run_files,
    to_json,
    tool_errors,
)
from sequentum_mcp.utils import json_parameter_text

# Configure logging
logger = logging.getLogger(__name__)

READ_ONLY = ToolAnnotations(readOnlyHint=True)
MUTATING = ToolAnnotations(readOnlyHint=False, destructiveHint=False)
DESTRUCTIVE = ToolAnnotations(readOnlyHint=False, destructiveHint=True)

AgentId = Annotated[int, Field(ge=1, description="The unique ID of the agent. Get this from list_agents or search_agents.")]
RunId = Annotated[int, Field(ge=1, description="The run ID. Get this from start_agent or get_agent_runs.")]
ScheduleId = Annotated[int, Field(ge=1, description="The schedule ID. Get this from list_agent_schedules.")]
SpaceId = Annotated[int, Field(ge=1, description="The unique ID of the space. Get this from list_spaces or search_space_by_name.")]
MaxRecords = Annotated[int | None, Field(ge=1, le=1000, description="Maximum number of results to return. Default: 50.")]
DateParam = Annotated[str | None, Field(description="Date in ISO 8601 format, e.g. '2026-01-15'.")]
InputParameters = Annotated[
    dict[str, Any] | list[Any] | str | None,
    Field(description="Input parameters as a JSON object or JSON string, e.g. '{\"url\": \"https://example.com\"}'."),
]
ScheduleTypeParam = Annotated[
    Literal[1, 2, 3] | None,
    Field(description="1=RunOnce (single execution), 2=RunEvery (recurring interval), 3=CRON (cron expression)."),
]
StartTime = Annotated[
    str | None,
    Field(
        description=(
            "ISO 8601 UTC datetime, e.g. '2026-01-20T14:30:00Z'. Required for RunOnce "
            "(at least 1 minute ahead); optional first run for RunEvery (must be in the future)."
        )
    ),
]
CronExpression = Annotated[
    str | None,
    Field(description="CRON expression 'minute hour day month weekday', e.g. '0 9 * * 1,4' (Mon/Thu 9am)."),
]
RunEveryCount = Annotated[int | None, Field(ge=1, description="RunEvery interval count, e.g. 30 with runEveryPeriod=1 is every 30 minutes.")]
RunEveryPeriod = Annotated[
    Literal[1, 2, 3, 4, 5] | None,
    Field(description="RunEvery time unit: 1=minutes, 2=hours, 3=days, 4=weeks, 5=months."),
]
Timezone = Annotated[str | None, Field(description="Timezone for the schedule, e.g. 'America/New_York'. Default: UTC.")]
Parallelism = Annotated[int | None, Field(ge=1, le=50, description="Number of parallel instances. Default: 1.")]
ParallelMaxConcurrency = Annotated[int | None, Field(ge=1, description="Maximum concurrent parallel instances.")]
ParallelExportParam = Annotated[
    Literal["Combined", "Separated"] | None,
    Field(description="'Combined' merges parallel output, 'Separated' keeps per-instance files."),
]
LogLevelParam = Annotated[Literal["Fatal", "Error", "Warning", "Info"] | None, Field(description="Log verbosity. Default: 'Info'.")]
LogModeParam = Annotated[Literal["Text", "TextAndHtml"] | None, Field(description="Log format. Default: 'Text'.")]


def register_agent_tools(mcp: FastMCP, client: SequentumApiClient) -> None:
    """Register agent discovery, run control, file and version tools.

    Args:
        mcp: FastMCP server instance to register tools on
        client: API client owned by the session
    """

    @mcp.tool(annotations=READ_ONLY, structured_output=False)
    @tool_errors
    async def list_agents(
        status: Annotated[
            int | None,
            Field(
                ge=0,
                le=12,
                description=(
                    "Filter by last run status: 0=Invalid, 1=Running, 2=Exporting, 3=Starting, 4=Queuing, "
                    "5=Stopping, 6=Failure, 7=Failed, 8=Stopped, 9=Completed, 10=Success, 11=Skipped, 12=Waiting."
                ),
            ),
        ] = None,
        spaceId: Annotated[int | None, Field(ge=1, description="Filter by space ID.")] = None,
        search: Annotated[str | None, Field(description="Case-insensitive partial match on agent name.")] = None,
        configType: Annotated[
            Literal["Agent", "Command", "Api", "Shared"] | None,
            Field(description="'Agent' = web scrapers, 'Command' = data inputs, 'Api' = API configs, 'Shared' = reusable components."),
        ] = None,
        sortColumn: Annotated[
            Literal["name", "lastActivity", "created", "updated", "status", "configType"] | None,
            Field(description="Column to sort by."),
        ] = None,
        sortOrder: Annotated[Literal["asc", "desc"] | None, Field(description="Sort direction. Default: 'asc'.")] = None,
        pageIndex: Annotated[int | None, Field(ge=1, description="Page number (1-based). Default: 1.")] = None,
        recordsPerPage: Annotated[int | None, Field(ge=1, le=100, description="Results per page. Default: 50.")] = None,
    ) -> str:
        """List web scraping agents with IDs, names, last run status and configuration.

        Use this first to discover agents before running or managing them. Results are
        always paginated (defaults: pageIndex=1, recordsPerPage=50). Use 'search' to find
        agents by name or 'status' to filter by last run status.
        """
        page_index = pageIndex or DEFAULT_PAGE_INDEX
        records_per_page = recordsPerPage or DEFAULT_RECORDS_PER_PAGE
        filters = ListAgentsRequest(
            status=status,
            space_id=spaceId,
            search=search or None,
            config_type=configType,
            sort_column=sortColumn,
            sort_order=parse_sort_order(sortOrder),
            page_index=page_index,
            records_per_page=records_per_page,
        )
        logger.debug(f"Listing agents with filters: {filters.to_query()}")
        response = await client.get_all_agents(filters)
        return to_json(build_agent_list(response, page_index, records_per_page))

    @mcp.tool(annotations=READ_ONLY, structured_output=False)
    @tool_errors
    async def get_agent(agentId: AgentId) -> str:
        """Get full details of one agent: configuration, input parameters, documentation and start URL."""
        return to_json(await client.get_agent(agentId))

    @mcp.tool(annotations=READ_ONLY, structured_output=False)
    @tool_errors
    async def search_agents(
        query: Annotated[str, Field(description="Search term matched against agent names and descriptions.")],
        maxRecords: MaxRecords = None,
    ) -> str:
        """Search agents by name or description (case-insensitive partial match).

        Prefer this over list_agents when the user mentions an agent by name.
        """
        if not query.strip():
            raise ValueError("Search query cannot be empty")
        return to_json(summarize_agents(await client.search_agents(query, maxRecords)))

    @mcp.tool(annotations=READ_ONLY, structured_output=False)
    @tool_errors
    async def get_agent_runs(agentId: AgentId, maxRecords: MaxRecords = None) -> str:
        """Get the run history of an agent: status, timing, records extracted and errors."""
        return to_json(await client.get_agent_runs(agentId, maxRecords))

    @mcp.tool(annotations=READ_ONLY, structured_output=False)
    @tool_errors
    async def get_run_status(agentId: AgentId, runId: RunId) -> str:
        """Get the current status of one run. Use after start_agent to monitor progress."""
        return to_json(await client.get_run_status(agentId, runId))

    @mcp.tool(annotations=MUTATING, structured_output=False)
    @tool_errors
    async def start_agent(
        agentId: AgentId,
        inputParameters: InputParameters = None,
        isRunSynchronously: Annotated[
            bool | None,
            Field(description="Wait for completion and return the scraped data. Default: false."),
        ] = None,
        timeout: Annotated[
            int | None,
            Field(ge=1, le=3600, description="Timeout in seconds for synchronous runs. Default: 60."),
        ] = None,
        parallelism: Parallelism = None,
    ) -> str:
        """Start an agent run.

        By default the run is asynchronous and the response carries the run ID; poll it
        with get_run_status. With isRunSynchronously=true the scraped data is returned
        directly (best for agents finishing in under a minute). Check the accepted
        inputParameters with get_agent first.
        """
        inputParameters = json_parameter_text(inputParameters, "inputParameters")

        result = await client.start_agent(
            agentId,
            StartAgentRequest(
                input_parameters=inputParameters,
                is_run_synchronously=isRunSynchronously or False,
                timeout=timeout or 60,
                parallelism=parallelism or 1,
            ),
        )
        if isinstance(result, str):
            # Synchronous runs answer with the output itself
            return result
        return f"Agent started successfully.\n\n{to_json(result)}"

    @mcp.tool(annotations=MUTATING, structured_output=False)
    @tool_errors
    async def stop_agent(agentId: AgentId, runId: RunId) -> str:
        """Stop a running agent execution."""
        await client.stop_agent(agentId, runId)
        return f"Successfully stopped run {runId} for agent {agentId}"

    @mcp.tool(annotations=DESTRUCTIVE, structured_output=False)
    @tool_errors
    async def kill_agent(agentId: AgentId, runId: RunId) -> str:
        """Force-terminate a run when stop_agent is not working.

        The first call initiates a graceful stop; a second call forces immediate
        termination if the run is still stopping.
        """
        await client.kill_agent(agentId, runId)
        return (
            f"Kill command sent for run {runId} of agent {agentId}. If the agent was running, "
            "it will initiate graceful stop. If already stopping, it will force immediate termination."
        )

    @mcp.tool(annotations=READ_ONLY, structured_output=False)
    @tool_errors
    async def get_run_files(agentId: AgentId, runId: RunId) -> str:
        """List the output files of a run (CSV, JSON, Excel, ...) with their IDs and sizes."""
        files = await client.get_run_files(agentId, runId)
        if not files:
            return "No files found for this run."
        return to_json(summarize_run_files(files))

    @mcp.tool(annotations=READ_ONLY, structured_output=False)
    @tool_errors
    async def get_file_download_url(
        agentId: AgentId,
        runId: RunId,
        fileId: Annotated[int, Field(ge=1, description="The file ID from get_run_files.")],
    ) -> str:
        """Get a temporary download URL for one output file."""
        result = await client.download_run_file(agentId, runId, fileId)
        return f"Download URL:\n{result['redirectUrl']}\n\nNote: This URL is temporary and will expire."

    @mcp.tool(annotations=READ_ONLY, structured_output=False)
    @tool_errors
    async def get_agent_versions(agentId: AgentId) -> str:
        """List the saved configuration versions of an agent."""
        return to_json(await client.get_agent_versions(agentId))

    @mcp.tool(annotations=MUTATING, structured_output=False)
    @tool_errors
    async def restore_agent_version(
        agentId: AgentId,
        versionNumber: Annotated[int, Field(ge=1, description="Version to restore. Get this from get_agent_versions.")],
        comments: Annotated[str, Field(description="Reason for the restore, recorded in the version history.")],
    ) -> str:
        """Restore an agent to a previous version. This creates a new version from the restored configuration."""
        await client.restore_agent_version(agentId, versionNumber, comments)
        return (
            f"Successfully restored agent {agentId} to version {versionNumber}.\n\n"
            f"A new version has been created based on version {versionNumber}."
        )


def register_schedule_tools(mcp: FastMCP, client: SequentumApiClient) -> None:
    """Register schedule management tools.

    Args:
        mcp: FastMCP server instance to register tools on
        client: API client owned by the session
    """

    @mcp.tool(annotations=READ_ONLY, structured_output=False)
    @tool_errors
    async def list_agent_schedules(agentId: AgentId) -> str:
        """List the schedules of an agent with their timing and enabled state."""
        return to_json(await client.get_agent_schedules(agentId))

    @mcp.tool(annotations=MUTATING, structured_output=False)
    @tool_errors
    async def create_agent_schedule(
        agentId: AgentId,
        name: Annotated[str, Field(description="A descriptive name, e.g. 'Daily Morning Run'.")],
        scheduleType: ScheduleTypeParam = None,
        startTime: StartTime = None,
        cronExpression: CronExpression = None,
        runEveryCount: RunEveryCount = None,
        runEveryPeriod: RunEveryPeriod = None,
        timezone: Timezone = None,
        inputParameters: InputParameters = None,
        isEnabled: Annotated[bool | None, Field(description="Whether the schedule is active. Default: true.")] = None,
        parallelism: Parallelism = None,
        parallelMaxConcurrency: ParallelMaxConcurrency = None,
        parallelExport: ParallelExportParam = None,
        logLevel: LogLevelParam = None,
        logMode: LogModeParam = None,
        isExclusive: Annotated[bool | None, Field(description="Prevent concurrent runs of this agent.")] = None,
        isWaitOnFailure: Annotated[bool | None, Field(description="Wait before retrying after a failure.")] = None,
    ) -> str:
        """Create a schedule that runs an agent automatically.

        RunOnce (1) runs once at startTime (at least 1 minute ahead, UTC). RunEvery (2)
        repeats every runEveryCount periods. CRON (3, default) follows cronExpression.
        Examples: {scheduleType:3, cronExpression:'0 9 * * *'};
        {scheduleType:1, startTime:'2026-01-20T14:30:00Z'};
        {scheduleType:2, runEveryCount:30, runEveryPeriod:1}.
        """
        inputParameters = json_parameter_text(inputParameters, "inputParameters")

        effective_type = resolve_create_schedule_type(
            scheduleType,
            start_time=startTime,
            cron_expression=cronExpression,
            run_every_count=runEveryCount,
            run_every_period=runEveryPeriod,
        )
        request = CreateScheduleRequest(
            name=name,
            schedule_type=effective_type,
            start_time=startTime,
            cron_expression=cronExpression,
            run_every_count=runEveryCount,
            run_every_period=runEveryPeriod,
            timezone=timezone,
            input_parameters=inputParameters,
            is_enabled=True if isEnabled is None else isEnabled,
            parallelism=parallelism or 1,
            parallel_max_concurrency=parallelMaxConcurrency,
            parallel_export=parallelExport,
            log_level=logLevel,
            log_mode=logMode,
            is_exclusive=isExclusive,
            is_wait_on_failure=isWaitOnFailure,
        )
        schedule = await client.create_agent_schedule(agentId, request)
        return f"Schedule created successfully.\n\n{to_json(schedule)}"

    @mcp.tool(annotations=DESTRUCTIVE, structured_output=False)
    @tool_errors
    async def delete_agent_schedule(agentId: AgentId, scheduleId: ScheduleId) -> str:
        """Permanently delete a schedule from an agent."""
        await client.delete_agent_schedule(agentId, scheduleId)
        return f"Successfully deleted schedule {scheduleId} from agent {agentId}"

    @mcp.tool(annotations=READ_ONLY, structured_output=False)
    @tool_errors
    async def get_agent_schedule(agentId: AgentId, scheduleId: ScheduleId) -> str:
        """Get the full settings of one schedule."""
        return to_json(await client.get_agent_schedule(agentId, scheduleId))

    @mcp.tool(annotations=MUTATING, structured_output=False)
    @tool_errors
    async def update_agent_schedule(
        agentId: AgentId,
        scheduleId: ScheduleId,
        name: Annotated[str, Field(description="A descriptive name for the schedule.")],
        scheduleType: ScheduleTypeParam = None,
        startTime: StartTime = None,
        cronExpression: CronExpression = None,
        runEveryCount: RunEveryCount = None,
        runEveryPeriod: RunEveryPeriod = None,
        timezone: Timezone = None,
        inputParameters: InputParameters = None,
        isEnabled: Annotated[bool | None, Field(description="Whether the schedule is active.")] = None,
        parallelism: Parallelism = None,
        parallelMaxConcurrency: ParallelMaxConcurrency = None,
        parallelExport: ParallelExportParam = None,
        logLevel: LogLevelParam = None,
        logMode: LogModeParam = None,
        isExclusive: Annotated[bool | None, Field(description="Prevent concurrent runs of this agent.")] = None,
        isWaitOnFailure: Annotated[bool | None, Field(description="Wait before retrying after a failure.")] = None,
    ) -> str:
        """Update an existing schedule's timing, parameters or settings.

        The schedule type is inferred when omitted: a cronExpression implies CRON (3),
        runEvery fields imply RunEvery (2). Check current settings with get_agent_schedule first.
        """
        inputParameters = json_parameter_text(inputParameters, "inputParameters")

        effective_type = resolve_update_schedule_type(
            scheduleType,
            start_time=startTime,
            cron_expression=cronExpression,
            run_every_count=runEveryCount,
            run_every_period=runEveryPeriod,
        )
        request = UpdateScheduleRequest(
            name=name,
            schedule_type=effective_type,
            start_time=startTime,
            cron_expression=cronExpression,
            run_every_count=runEveryCount,
            run_every_period=runEveryPeriod,
            timezone=timezone,
            input_parameters=inputParameters,
            is_enabled=isEnabled,
            parallelism=parallelism,
            parallel_max_concurrency=parallelMaxConcurrency,
            parallel_export=parallelExport,
            log_level=logLevel,
            log_mode=logMode,
            is_exclusive=isExclusive,
            is_wait_on_failure=isWaitOnFailure,
        )
        updated = await client.update_agent_schedule(agentId, scheduleId, request)
        return f"Schedule updated successfully.\n\n{to_json(updated)}"

    @mcp.tool(annotations=MUTATING, structured_output=False)
    @tool_errors
    async def enable_agent_schedule(agentId: AgentId, scheduleId: ScheduleId) -> str:
        """Enable a disabled schedule so it runs according to its configuration."""
        await client.enable_agent_schedule(agentId, scheduleId)
        return (
            f"Successfully enabled schedule {scheduleId} for agent {agentId}. "
            "The schedule will now run according to its configuration."
        )

    @mcp.tool(annotations=MUTATING, structured_output=False)
    @tool_errors
    async def disable_agent_schedule(agentId: AgentId, scheduleId: ScheduleId) -> str:
        """Disable a schedule without deleting it. Re-activate with enable_agent_schedule."""
        await client.disable_agent_schedule(agentId, scheduleId)
        return (
            f"Successfully disabled schedule {scheduleId} for agent {agentId}. "
            "The schedule will not run until re-enabled."
        )

    @mcp.tool(annotations=READ_ONLY, structured_output=False)
    @tool_errors
    async def get_scheduled_runs(startDate: DateParam = None, endDate: DateParam = None) -> str:
        """List upcoming scheduled runs across all agents. Defaults to the next 7 days."""
        return to_json(await client.get_upcoming_schedules(startDate, endDate))


def register_billing_tools(mcp: FastMCP, client: SequentumApiClient) -> None:
    """Register credit balance and spending tools."""

    @mcp.tool(annotations=READ_ONLY, structured_output=False)
    @tool_errors
    async def get_credits_balance() -> str:
        """Get the organization's available credits balance."""
        return to_json(await client.get_credits_balance())

    @mcp.tool(annotations=READ_ONLY, structured_output=False)
    @tool_errors
    async def get_spending_summary(startDate: DateParam = None, endDate: DateParam = None) -> str:
        """Get credits spent in a date range (current period if no dates are given)."""
        return to_json(await client.get_spending_summary(startDate, endDate))

    @mcp.tool(annotations=READ_ONLY, structured_output=False)
    @tool_errors
    async def get_credit_history(
        pageIndex: Annotated[int | None, Field(ge=1, description="Page number (1-based). Default: 1.")] = None,
        recordsPerPage: Annotated[int | None, Field(ge=1, le=100, description="Records per page. Default: 50.")] = None,
    ) -> str:
        """Get the credit transaction history (purchases and usage deductions)."""
        return to_json(await client.get_credit_history(pageIndex, recordsPerPage))


def register_space_tools(mcp: FastMCP, client: SequentumApiClient) -> None:
    """Register space (agent folder) tools."""

    @mcp.tool(annotations=READ_ONLY, structured_output=False)
    @tool_errors
    async def list_spaces() -> str:
        """List all accessible spaces (folders grouping agents)."""
        return to_json(await client.get_all_spaces())

    @mcp.tool(annotations=READ_ONLY, structured_output=False)
    @tool_errors
    async def get_space(spaceId: SpaceId) -> str:
        """Get the details of one space."""
        return to_json(await client.get_space(spaceId))

    @mcp.tool(annotations=READ_ONLY, structured_output=False)
    @tool_errors
    async def get_space_agents(spaceId: SpaceId) -> str:
        """List the agents in a space."""
        return to_json(await client.get_space_agents(spaceId))

    @mcp.tool(annotations=READ_ONLY, structured_output=False)
    @tool_errors
    async def search_space_by_name(
        name: Annotated[str, Field(description="The space name to search for. Case-insensitive.")],
    ) -> str:
        """Find a space by name. Use the returned ID with get_space_agents or run_space_agents."""
        return to_json(await client.search_space_by_name(name))

    @mcp.tool(annotations=MUTATING, structured_output=False)
    @tool_errors
    async def run_space_agents(spaceId: SpaceId, inputParameters: InputParameters = None) -> str:
        """Start every agent in a space at once. Check get_space_agents first to see what will run."""
        inputParameters = json_parameter_text(inputParameters, "inputParameters")
        result = await client.run_space_agents(spaceId, inputParameters)
        return f"Started agents in space.\n\n{to_json(result)}"


def register_analytics_tools(mcp: FastMCP, client: SequentumApiClient) -> None:
    """Register run statistics and diagnostics tools."""

    @mcp.tool(annotations=READ_ONLY, structured_output=False)
    @tool_errors
    async def get_runs_summary(
        startDate: DateParam = None,
        endDate: DateParam = None,
        status: Annotated[
            str | None,
            Field(description="Only count runs with this status: 'Failed', 'Completed', 'CompletedWithErrors', 'Running'."),
        ] = None,
        includeDetails: Annotated[
            bool | None,
            Field(description="Include failedRunDetails with agent names and error messages."),
        ] = None,
    ) -> str:
        """Get aggregate run counts (completed, failed, running, ...) for a date range."""
        return to_json(await client.get_runs_summary(startDate, endDate, status, includeDetails))

    @mcp.tool(annotations=READ_ONLY, structured_output=False)
    @tool_errors
    async def get_records_summary(
        startDate: DateParam = None,
        endDate: DateParam = None,
        agentId: Annotated[int | None, Field(ge=1, description="Only count records of this agent.")] = None,
    ) -> str:
        """Get the number of records extracted and exported in a date range."""
        return to_json(await client.get_records_summary(startDate, endDate, agentId))

    @mcp.tool(annotations=READ_ONLY, structured_output=False)
    @tool_errors
    async def get_run_diagnostics(agentId: AgentId, runId: RunId) -> str:
        """Get diagnostics for one run: error message, possible causes and suggested actions."""
        return to_json(await client.get_run_diagnostics(agentId, runId))

    @mcp.tool(annotations=READ_ONLY, structured_output=False)
    @tool_errors
    async def get_latest_failure(agentId: AgentId) -> str:
        """Get diagnostics for the most recent failed run of an agent."""
        return to_json(await client.get_latest_failure(agentId))


def register_tools(mcp: FastMCP, client: SequentumApiClient) -> None:
    """Register every Sequentum tool on the MCP server.

    Args:
        mcp: FastMCP server instance to register tools on
        client: API client owned by the session
    """
    register_agent_tools(mcp, client)
    register_schedule_tools(mcp, client)
    register_billing_tools(mcp, client)
    register_space_tools(mcp, client)
    register_analytics_tools(mcp, client)
