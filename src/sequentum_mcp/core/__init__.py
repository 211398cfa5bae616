"""Core infrastructure shared across the application.

- config.py: Settings read from environment variables
- log.py: stderr logging setup and header redaction
"""

from sequentum_mcp.core.config import Settings
from sequentum_mcp.core.log import configure_logging, redact_headers

__all__ = [
    "Settings",
    "configure_logging",
    "redact_headers",
]
