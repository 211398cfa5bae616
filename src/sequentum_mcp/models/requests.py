"""Pydantic models for request bodies and query strings sent to the Sequentum API.

Field names are snake_case in Python and PascalCase on the wire (the API's
request DTO convention). ``to_body()`` drops unset optional fields so the
server applies its own defaults.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_pascal

from sequentum_mcp.models.enums import (
    AgentRunStatus,
    ConfigType,
    LogLevel,
    LogMode,
    ParallelExport,
)


class ApiRequestModel(BaseModel):
    """Base for models serialised with PascalCase keys."""

    model_config = ConfigDict(alias_generator=to_pascal, populate_by_name=True, use_enum_values=True)

    def to_body(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ListAgentsRequest(BaseModel):
    """Filters, sorting and pagination for the agent list."""

    status: AgentRunStatus | None = None
    space_id: int | None = None
    search: str | None = None
    config_type: ConfigType | None = None
    sort_column: str | None = None
    sort_order: int | None = Field(default=None, description="0 = ascending, 1 = descending")
    page_index: int | None = Field(default=None, ge=1)
    records_per_page: int | None = Field(default=None, ge=1, le=1000)

    def to_query(self) -> dict[str, str]:
        """Build the query string; ``search`` is sent as ``name``."""
        query: dict[str, str] = {}
        if self.status is not None:
            query["status"] = str(int(self.status))
        if self.space_id is not None:
            query["spaceId"] = str(self.space_id)
        if self.search:
            query["name"] = self.search
        if self.config_type:
            query["configType"] = ConfigType(self.config_type).value
        if self.sort_column:
            query["sortColumn"] = self.sort_column
        if self.sort_order is not None:
            query["sortOrder"] = str(self.sort_order)
        if self.page_index is not None:
            query["pageIndex"] = str(self.page_index)
        if self.records_per_page is not None:
            query["recordsPerPage"] = str(self.records_per_page)
        return query


class StartAgentRequest(ApiRequestModel):
    """Run configuration for starting an agent."""

    parallelism: int = 1
    parallel_max_concurrency: int = 1
    parallel_export: ParallelExport = ParallelExport.COMBINED
    proxy_pool_id: int | None = None
    input_parameters: str | None = None
    timeout: int = 60
    is_exclusive: bool = True
    is_wait_on_failure: bool = False
    is_run_synchronously: bool = False
    log_level: LogLevel = LogLevel.INFO
    log_mode: LogMode = LogMode.TEXT


class CreateScheduleRequest(ApiRequestModel):
    name: str
    is_enabled: bool = True
    parallelism: int = 1
    schedule_type: int | None = None
    cron_expression: str | None = None
    start_time: str | None = None
    run_every_count: int | None = None
    run_every_period: int | None = None
    timezone: str | None = None
    input_parameters: str | None = None
    parallel_max_concurrency: int | None = None
    parallel_export: str | None = None
    log_level: str | None = None
    log_mode: str | None = None
    is_exclusive: bool | None = None
    is_wait_on_failure: bool | None = None


class UpdateScheduleRequest(ApiRequestModel):
    """Full replacement of a schedule; only ``name`` is mandatory."""

    name: str
    schedule_type: int | None = None
    cron_expression: str | None = None
    local_schedule: str | None = None
    start_time: str | None = None
    run_every_count: int | None = None
    run_every_period: int | None = None
    timezone: str | None = None
    input_parameters: str | None = None
    is_enabled: bool | None = None
    parallelism: int | None = None
    parallel_max_concurrency: int | None = None
    parallel_export: str | None = None
    proxy_pool_id: int | None = None
    server_group_id: int | None = None
    log_level: str | None = None
    log_mode: str | None = None
    is_exclusive: bool | None = None
    is_wait_on_failure: bool | None = None
