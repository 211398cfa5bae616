"""MCP tools for the Sequentum control plane.

The tools module follows a router -> service pattern:
- router.py: MCP tool definitions and registration
- service.py: Argument validation, response shaping and error reporting

Every tool reports failures as an ``isError`` result with a categorised
message instead of raising a protocol error.
"""

from sequentum_mcp.tools.router import register_tools
from sequentum_mcp.tools.service import (
    build_agent_list,
    format_tool_error,
    resolve_create_schedule_type,
    resolve_update_schedule_type,
    summarize_agents,
    summarize_run_files,
    tool_errors,
)

__all__ = [
    # Registration
    "register_tools",
    # Service functions
    "build_agent_list",
    "format_tool_error",
    "resolve_create_schedule_type",
    "resolve_update_schedule_type",
    "summarize_agents",
    "summarize_run_files",
    "tool_errors",
]
