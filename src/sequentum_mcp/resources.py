"""Read-only MCP resources: agents, spaces and the credits balance by URI."""

from __future__ import annotations

from mcp.server.fastmcp import FastMCP

from sequentum_mcp.api.client import SequentumApiClient
from sequentum_mcp.models import ListAgentsRequest
from sequentum_mcp.tools.service import DEFAULT_RECORDS_PER_PAGE, to_json

JSON_MIME = "application/json"


def register_resources(mcp: FastMCP, client: SequentumApiClient) -> None:
    """Register the static resources and URI templates.

    Args:
        mcp: FastMCP server instance
        client: API client owned by the session
    """

    @mcp.resource("sequentum://agents", name="Agent List", mime_type=JSON_MIME)
    async def agent_list() -> str:
        """Overview of all web scraping agents (first page, up to 50 agents).

        Shows id, name, status, configType, version and lastActivity for each agent.
        """
        filters = ListAgentsRequest(page_index=1, records_per_page=DEFAULT_RECORDS_PER_PAGE)
        return to_json(await client.get_all_agents(filters))

    @mcp.resource("sequentum://spaces", name="Spaces", mime_type=JSON_MIME)
    async def spaces() -> str:
        """List of all accessible spaces (folders for organizing agents)."""
        return to_json(await client.get_all_spaces())

    @mcp.resource("sequentum://billing/balance", name="Credits Balance", mime_type=JSON_MIME)
    async def credits_balance() -> str:
        """Current available credits balance for the organization."""
        return to_json(await client.get_credits_balance())

    @mcp.resource("sequentum://agents/{agent_id}", name="Agent Detail", mime_type=JSON_MIME)
    async def agent_detail(agent_id: int) -> str:
        """Configuration, input parameters and documentation of one agent."""
        return to_json(await client.get_agent(agent_id))

    @mcp.resource("sequentum://agents/{agent_id}/versions", name="Agent Versions", mime_type=JSON_MIME)
    async def agent_versions(agent_id: int) -> str:
        """Version history of an agent's configuration."""
        return to_json(await client.get_agent_versions(agent_id))

    @mcp.resource("sequentum://agents/{agent_id}/schedules", name="Agent Schedules", mime_type=JSON_MIME)
    async def agent_schedules(agent_id: int) -> str:
        """Scheduled tasks configured for one agent."""
        return to_json(await client.get_agent_schedules(agent_id))

    @mcp.resource("sequentum://spaces/{space_id}", name="Space Detail", mime_type=JSON_MIME)
    async def space_detail(space_id: int) -> str:
        """Details of one space."""
        return to_json(await client.get_space(space_id))

    @mcp.resource("sequentum://spaces/{space_id}/agents", name="Space Agents", mime_type=JSON_MIME)
    async def space_agents(space_id: int) -> str:
        """Agents belonging to one space."""
        return to_json(await client.get_space_agents(space_id))
