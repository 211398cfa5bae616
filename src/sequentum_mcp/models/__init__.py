"""Pydantic data models for Sequentum API requests.

This module defines the request structures sent to the control-plane API:
- Agent listing filters (ListAgentsRequest)
- Run configuration (StartAgentRequest)
- Schedule creation and replacement (CreateScheduleRequest, UpdateScheduleRequest)

Responses are passed through as decoded JSON.
"""

from sequentum_mcp.models.enums import (
    AgentRunStatus,
    ConfigType,
    LogLevel,
    LogMode,
    ParallelExport,
    RunStatus,
    ScheduleType,
)
from sequentum_mcp.models.requests import (
    CreateScheduleRequest,
    ListAgentsRequest,
    StartAgentRequest,
    UpdateScheduleRequest,
)

__all__ = [
    # Enums
    "AgentRunStatus",
    "ConfigType",
    "LogLevel",
    "LogMode",
    "ParallelExport",
    "RunStatus",
    "ScheduleType",
    # Request models
    "ListAgentsRequest",
    "StartAgentRequest",
    "CreateScheduleRequest",
    "UpdateScheduleRequest",
]
