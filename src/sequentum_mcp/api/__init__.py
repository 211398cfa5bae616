"""Sequentum API client and request-execution pipeline.

- auth.py: credential holder and Authorization header resolution
- classifier.py: failed response -> typed error
- retry.py: attempt budget, backoff delay and retry decisions
- executor.py: authenticated, deadline-bounded attempts with retry
- client.py: one typed method per API endpoint
"""

from sequentum_mcp.api.auth import Credentials
from sequentum_mcp.api.client import SequentumApiClient
from sequentum_mcp.api.errors import (
    ApiRequestError,
    AuthenticationError,
    RateLimitError,
    RequestTimeoutError,
    SequentumError,
)
from sequentum_mcp.api.executor import RequestExecutor
from sequentum_mcp.api.retry import RetryPolicy

__all__ = [
    "Credentials",
    "SequentumApiClient",
    "RequestExecutor",
    "RetryPolicy",
    # Errors
    "SequentumError",
    "AuthenticationError",
    "ApiRequestError",
    "RateLimitError",
    "RequestTimeoutError",
]
