"""Runtime configuration read from environment variables."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

DEFAULT_API_URL = "https://dashboard.sequentum.com"
DEFAULT_PORT = 3000
DEFAULT_HOST = "0.0.0.0"
DEFAULT_MAX_SESSIONS = 1000

TRANSPORT_STDIO = "stdio"
TRANSPORT_HTTP = "http"


def _flag(env: Mapping[str, str], name: str, default: str) -> bool:
    return env.get(name, default).lower() in ("true", "1", "yes")


def _int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


@dataclass(frozen=True)
class Settings:
    """Server settings.

    Attributes:
        api_url: Upstream API base URL without trailing slash
        api_key: Static API key (required for stdio transport)
        debug: Verbose logging and unsanitised internal error messages
        transport: "stdio" or "http"
        host: HTTP bind address
        port: HTTP bind port
        oauth_client_id: Pre-registered public OAuth client id, if any
        require_auth: Reject new HTTP sessions without a bearer token
        max_sessions: Concurrent HTTP session ceiling
        trust_proxy: Honour X-Forwarded-* headers from a reverse proxy
        request_timeout_ms: Per-attempt upstream deadline
        max_retries: Retry budget for idempotent upstream requests
    """

    api_url: str = DEFAULT_API_URL
    api_key: str | None = None
    debug: bool = False
    transport: str = TRANSPORT_STDIO
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    oauth_client_id: str | None = None
    require_auth: bool = True
    max_sessions: int = DEFAULT_MAX_SESSIONS
    trust_proxy: bool = True
    request_timeout_ms: int = 30000
    max_retries: int = 3

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> Settings:
        """Build settings from the process environment (or the given mapping).

        Raises:
            ValueError: If an integer variable or TRANSPORT_MODE is invalid
        """
        env = os.environ if env is None else env

        transport = env.get("TRANSPORT_MODE", TRANSPORT_STDIO).strip().lower() or TRANSPORT_STDIO
        if transport not in (TRANSPORT_STDIO, TRANSPORT_HTTP):
            raise ValueError(f"TRANSPORT_MODE must be 'stdio' or 'http', got {transport!r}")

        max_retries = _int(env, "MAX_RETRIES", 3)
        if max_retries < 0:
            raise ValueError(f"MAX_RETRIES must be >= 0, got {max_retries}")

        return cls(
            api_url=(env.get("SEQUENTUM_API_URL") or DEFAULT_API_URL).rstrip("/"),
            api_key=env.get("SEQUENTUM_API_KEY") or None,
            debug=_flag(env, "DEBUG", "false"),
            transport=transport,
            host=env.get("HOST") or DEFAULT_HOST,
            port=_int(env, "PORT", DEFAULT_PORT),
            oauth_client_id=env.get("SEQUENTUM_OAUTH_CLIENT_ID") or None,
            # Only an explicit "false" disables these
            require_auth=env.get("REQUIRE_AUTH", "true").lower() != "false",
            max_sessions=_int(env, "MAX_SESSIONS", DEFAULT_MAX_SESSIONS),
            trust_proxy=env.get("TRUST_PROXY", "true").lower() != "false",
            request_timeout_ms=_int(env, "REQUEST_TIMEOUT_MS", 30000),
            max_retries=max_retries,
        )
