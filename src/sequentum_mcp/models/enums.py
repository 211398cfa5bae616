"""Enumerations shared by the Sequentum API request models."""

from __future__ import annotations

from enum import Enum, IntEnum


class AgentRunStatus(IntEnum):
    """Status of an agent's most recent run as reported on the agent list."""

    INVALID = 0
    RUNNING = 1
    EXPORTING = 2
    STARTING = 3
    QUEUING = 4
    STOPPING = 5
    FAILURE = 6
    FAILED = 7
    STOPPED = 8
    COMPLETED = 9
    SUCCESS = 10
    SKIPPED = 11
    WAITING = 12


class ConfigType(str, Enum):
    AGENT = "Agent"
    COMMAND = "Command"
    API = "Api"
    SHARED = "Shared"


class RunStatus(str, Enum):
    """Status of an individual run."""

    UNKNOWN = "Unknown"
    QUEUING = "Queuing"
    QUEUED = "Queued"
    STARTING = "Starting"
    RUNNING = "Running"
    STOPPING = "Stopping"
    STOPPED = "Stopped"
    COMPLETED = "Completed"
    COMPLETED_WITH_ERRORS = "CompletedWithErrors"
    FAILED = "Failed"
    FAILED_TO_START = "FailedToStart"
    WAITING_ON_FAILURE = "WaitingOnFailure"


class LogLevel(str, Enum):
    TRACE = "Trace"
    DEBUG = "Debug"
    INFO = "Info"
    WARNING = "Warning"
    ERROR = "Error"
    CRITICAL = "Critical"


class LogMode(str, Enum):
    TEXT = "Text"
    JSON = "Json"


class ParallelExport(str, Enum):
    COMBINED = "Combined"
    SEPARATE = "Separate"


class ScheduleType(IntEnum):
    """Schedule kinds accepted by the schedule endpoints."""

    RUN_ONCE = 1
    RUN_EVERY = 2
    CRON = 3
