"""Reusable prompts that walk a client through common multi-step workflows."""

from __future__ import annotations

from typing import Annotated

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.prompts.base import Message, UserMessage
from pydantic import Field

AgentName = Annotated[str, Field(description="The name (or partial name) of the agent.")]


def debug_agent(agentName: AgentName) -> list[Message]:
    """Diagnose why an agent is failing.

    Searches for the agent, checks recent runs, retrieves failure diagnostics
    and suggests fixes.
    """
    return [
        UserMessage(
            f'Diagnose why the agent "{agentName}" is failing. Follow these steps:\n\n'
            f'1. Use the search_agents tool to find the agent by name "{agentName}".\n'
            "2. Use get_agent_runs to check its recent execution history.\n"
            "3. Use get_latest_failure to retrieve detailed failure diagnostics including "
            "error messages, possible causes, and suggested fixes.\n"
            "4. If needed, use get_run_diagnostics on specific failed runs for additional detail.\n"
            "5. Summarize the root cause and provide actionable recommendations to fix the issue."
        )
    ]


def agent_health_check(agentName: AgentName) -> list[Message]:
    """Get a health overview for an agent: status, recent runs, schedules and version history."""
    return [
        UserMessage(
            f'Perform a comprehensive health check on the agent "{agentName}". Follow these steps:\n\n'
            f'1. Use search_agents to find the agent by name "{agentName}".\n'
            "2. Use get_agent to retrieve its full configuration and details.\n"
            "3. Use get_agent_runs to review recent execution history. Note successes, failures, and timing.\n"
            "4. Use list_agent_schedules to check if the agent has any active schedules.\n"
            "5. Use get_agent_versions to review recent configuration changes.\n"
            "6. Provide a health summary including: current status, success rate, any recent failures, "
            "schedule status, and recent version changes."
        )
    ]


def spending_report() -> list[Message]:
    """Generate a spending and credits report: balance, this month's spending and recent transactions."""
    return [
        UserMessage(
            "Generate a comprehensive spending and credits report. Follow these steps:\n\n"
            "1. Use get_credits_balance to check the current available credits.\n"
            "2. Use get_spending_summary to get spending for the current month.\n"
            "3. Use get_credit_history to retrieve recent credit transactions (additions and deductions).\n"
            "4. Summarize the findings: current balance, total spent this month, and notable transactions."
        )
    ]


def run_and_monitor(agentName: AgentName) -> list[Message]:
    """Start an agent and monitor it until completion.

    Finds the agent, reviews its input parameters, starts execution, polls for
    status and lists output files when done.
    """
    return [
        UserMessage(
            f'Start the agent "{agentName}" and monitor it until completion. Follow these steps:\n\n'
            f'1. Use search_agents to find the agent by name "{agentName}".\n'
            "2. Use get_agent to check what input parameters the agent accepts.\n"
            "3. Use start_agent to begin execution (async mode).\n"
            "4. Use get_run_status to poll the run status periodically until it completes or fails.\n"
            "5. Once completed, use get_run_files to list the output files produced.\n"
            "6. If the run failed, use get_run_diagnostics to understand what went wrong.\n"
            "7. Report the final outcome: status, records extracted, files produced, or error details."
        )
    ]


def register_prompts(mcp: FastMCP) -> None:
    """Register the workflow prompts under their public names."""
    mcp.prompt(name="debug-agent")(debug_agent)
    mcp.prompt(name="agent-health-check")(agent_health_check)
    mcp.prompt(name="spending-report")(spending_report)
    mcp.prompt(name="run-and-monitor")(run_and_monitor)
