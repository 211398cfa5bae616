"""MCP server factory for the Sequentum control plane."""

from __future__ import annotations

from mcp.server.fastmcp import FastMCP

from sequentum_mcp.api.client import SequentumApiClient
from sequentum_mcp.prompts import register_prompts
from sequentum_mcp.resources import register_resources
from sequentum_mcp.tools import register_tools

SERVER_NAME = "sequentum-mcp-server"

INSTRUCTIONS = (
    "Tools for the Sequentum web scraping platform: discover and run agents, "
    "monitor runs and download their output files, manage schedules and spaces, "
    "and review credits, spending and run analytics. Start with list_agents or "
    "search_agents to find agent IDs."
)


def create_mcp_server(api_client: SequentumApiClient, version: str) -> FastMCP:
    """Create an MCP server with every tool, resource and prompt bound to ``api_client``.

    Each HTTP session gets its own server so tool calls use that session's credentials.

    Args:
        api_client: The API client the tools call
        version: Server version reported during initialization

    Returns:
        Configured FastMCP instance
    """
    mcp = FastMCP(SERVER_NAME, instructions=INSTRUCTIONS)
    mcp._mcp_server.version = version

    register_tools(mcp, api_client)
    register_resources(mcp, api_client)
    register_prompts(mcp)
    return mcp
