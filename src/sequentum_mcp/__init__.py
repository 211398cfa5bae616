"""MCP server for the Sequentum web scraping platform."""

__version__ = "1.0.0"
