"""Main entry point for the Sequentum MCP server."""

from __future__ import annotations

import logging
import sys

from sequentum_mcp import __version__
from sequentum_mcp.api.client import SequentumApiClient
from sequentum_mcp.core.config import TRANSPORT_HTTP, Settings
from sequentum_mcp.core.log import configure_logging
from sequentum_mcp.http_server import run_http_server
from sequentum_mcp.server import create_mcp_server

# Configure logging
logger = logging.getLogger(__name__)


def run_stdio(settings: Settings) -> int:
    """Serve one session over stdin/stdout, authenticated with the static API key."""
    if not settings.api_key:
        logger.error("SEQUENTUM_API_KEY environment variable is required")
        logger.error("Please set your API key (format: sk-...), e.g. export SEQUENTUM_API_KEY=\"sk-your-api-key-here\"")
        return 1

    client = SequentumApiClient(
        settings.api_url,
        settings.api_key,
        timeout_ms=settings.request_timeout_ms,
        max_retries=settings.max_retries,
    )
    mcp = create_mcp_server(client, __version__)
    logger.info("Sequentum MCP Server running on stdio")
    logger.info(f"Connected to: {settings.api_url}")
    try:
        mcp.run(transport="stdio")
    finally:
        client.close()
    return 0


def main() -> None:
    """Main entry point."""
    try:
        settings = Settings.from_env()
    except ValueError as e:
        configure_logging()
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    configure_logging(settings.debug)
    logger.debug(f"API_BASE_URL = {settings.api_url}")

    try:
        if settings.transport == TRANSPORT_HTTP:
            code = run_http_server(settings, __version__)
        else:
            code = run_stdio(settings)
    except Exception:
        logger.exception("Fatal error starting server")
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
