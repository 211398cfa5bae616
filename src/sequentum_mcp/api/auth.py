"""Credential holder and Authorization header resolution."""

from __future__ import annotations

from sequentum_mcp.api.errors import AuthenticationError


class Credentials:
    """Credential state of one API client.

    The bearer token slot is mutable so an HTTP session can refresh it in place
    without rebuilding the client. The header is resolved per attempt, so a
    token swapped in between two attempts is used by the next one.
    """

    def __init__(self, api_key: str | None = None, access_token: str | None = None) -> None:
        self.api_key = api_key or None
        self.access_token = access_token or None

    def set_access_token(self, token: str | None) -> None:
        self.access_token = token or None

    def resolve_authorization(self) -> str:
        """Return the Authorization header value, preferring the bearer token.

        Raises:
            AuthenticationError: If neither a token nor an API key is configured
        """
        if self.access_token:
            return f"Bearer {self.access_token}"
        if self.api_key:
            return f"ApiKey {self.api_key}"
        raise AuthenticationError()

    def __repr__(self) -> str:
        # Never render secrets
        return (
            f"Credentials(api_key={'set' if self.api_key else None}, "
            f"access_token={'set' if self.access_token else None})"
        )
