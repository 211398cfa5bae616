"""Logging setup.

stdout carries the MCP protocol in stdio mode, so all records go to stderr.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterable, Mapping

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

SENSITIVE_HEADERS = frozenset({"authorization", "cookie", "x-api-key"})
REDACTED = "[REDACTED]"


def configure_logging(debug: bool = False) -> None:
    """Send log records to stderr at INFO, or DEBUG when ``debug`` is set."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format=LOG_FORMAT,
        stream=sys.stderr,
        force=True,
    )
    # Keep upstream request chatter out of INFO logs
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def redact_headers(headers: Mapping[str, str] | Iterable[tuple[str, str]]) -> dict[str, str]:
    """Copy headers with credential-bearing values replaced.

    Args:
        headers: Header mapping or (name, value) pairs

    Returns:
        Lower-cased header names mapped to values safe to log
    """
    items = headers.items() if isinstance(headers, Mapping) else headers
    return {
        name.lower(): (REDACTED if name.lower() in SENSITIVE_HEADERS else value)
        for name, value in items
    }
