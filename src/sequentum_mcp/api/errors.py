"""Typed errors raised by the Sequentum API client."""

from __future__ import annotations


class SequentumError(Exception):
    """Base class for all Sequentum client errors."""


class AuthenticationError(SequentumError):
    """Raised when no credential is configured for a request."""

    def __init__(
        self,
        message: str = "No authentication configured. Set either an API key or OAuth2 access token.",
    ) -> None:
        super().__init__(message)
        self.message = message


class ApiRequestError(SequentumError):
    """Raised when the Sequentum API answers with a non-success status.

    The API returns errors in two body formats, both of which are reduced to
    ``message`` by the classifier:

    - BadRequestError / InternalServerError: ``{statusCode, statusDescription, message, severity}``
    - ProblemDetails (RFC 7807): ``{type, title, status, detail, instance}``
    """

    def __init__(self, status_code: int, status_text: str, message: str, endpoint: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.status_text = status_text
        self.message = message
        self.endpoint = endpoint

    @property
    def is_unauthorized(self) -> bool:
        return self.status_code == 401

    @property
    def is_forbidden(self) -> bool:
        return self.status_code == 403

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404

    @property
    def is_rate_limited(self) -> bool:
        return self.status_code == 429

    @property
    def is_server_error(self) -> bool:
        return 500 <= self.status_code < 600

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(status_code={self.status_code}, "
            f"endpoint={self.endpoint!r}, message={self.message!r})"
        )


class RateLimitError(ApiRequestError):
    """429 Too Many Requests, carrying the server's Retry-After hint if any."""

    def __init__(self, message: str, endpoint: str, retry_after_seconds: int | None = None) -> None:
        super().__init__(429, "Too Many Requests", message, endpoint)
        self.retry_after_seconds = retry_after_seconds


class RequestTimeoutError(SequentumError):
    """Raised when a request did not complete before its deadline."""

    def __init__(self, timeout_ms: int, endpoint: str) -> None:
        super().__init__(f"Request timeout after {timeout_ms}ms: {endpoint}")
        self.timeout_ms = timeout_ms
        self.endpoint = endpoint
