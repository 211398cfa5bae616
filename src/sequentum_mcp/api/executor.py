"""Request execution with authentication, deadlines and retry/backoff."""

from __future__ import annotations

import asyncio
import functools
import logging
import random
import time
from collections.abc import Awaitable, Callable
from typing import Any

import requests

from sequentum_mcp.api.auth import Credentials
from sequentum_mcp.api.classifier import classify_response, failure_kind
from sequentum_mcp.api.errors import RequestTimeoutError
from sequentum_mcp.api.retry import Decision, RetryPolicy, retry_after_hint
from sequentum_mcp.metrics import ApiMetrics, get_metrics

# Configure logging
logger = logging.getLogger(__name__)

DEFAULT_REQUEST_TIMEOUT_MS = 30000
CONNECT_TIMEOUT_SECONDS = 10.0


class RequestExecutor:
    """Turns one logical API call into one or more HTTP attempts.

    Every attempt resolves the Authorization header afresh, runs the blocking
    ``requests`` call in the default thread pool and bounds it with
    ``asyncio.wait_for``. Failures are classified and either retried after a
    backoff sleep or raised. Only idempotent methods are retried.
    """

    def __init__(
        self,
        base_url: str,
        credentials: Credentials,
        *,
        timeout_ms: int = DEFAULT_REQUEST_TIMEOUT_MS,
        policy: RetryPolicy | None = None,
        session: requests.Session | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        rng: Callable[[], float] = random.random,
        metrics: ApiMetrics | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            base_url: API base URL; a trailing slash is removed
            credentials: Credential slot consulted on every attempt
            timeout_ms: Deadline for a single attempt in milliseconds (default: 30000)
            policy: Retry budget and backoff shape (default: RetryPolicy())
            session: requests session to dispatch with (default: new session)
            sleep: Coroutine used for backoff sleeps, in seconds
            rng: Source of uniform [0, 1) values for backoff jitter
            metrics: Metrics sink (default: the process-wide metrics)
        """
        self.base_url = base_url.rstrip("/")
        self.credentials = credentials
        self.timeout_ms = timeout_ms
        self.policy = policy or RetryPolicy()
        self.session = session or requests.Session()
        self._sleep = sleep
        self._rng = rng
        self._metrics = metrics

    @property
    def metrics(self) -> ApiMetrics:
        return self._metrics or get_metrics()

    def _build_headers(self) -> dict[str, str]:
        return {
            "Authorization": self.credentials.resolve_authorization(),
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def _dispatch(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        params: dict[str, Any] | None,
        json_body: Any,
        allow_redirects: bool,
    ) -> requests.Response:
        timeout_s = self.timeout_ms / 1000
        connect_timeout_s = min(CONNECT_TIMEOUT_SECONDS, timeout_s)
        loop = asyncio.get_running_loop()
        call = functools.partial(
            self.session.request,
            method,
            url,
            headers=headers,
            params=params,
            json=json_body,
            timeout=(connect_timeout_s, timeout_s),
            allow_redirects=allow_redirects,
        )
        # wait_for bounds the attempt, but the worker thread is not interrupted:
        # it stays busy until requests' own timeouts fire. The read timeout
        # applies per socket read, so a body that keeps trickling in can hold
        # the thread past the deadline.
        return await asyncio.wait_for(loop.run_in_executor(None, call), timeout=timeout_s)

    async def _backoff(self, endpoint: str, attempt: int, max_attempts: int, retry_after: int | None) -> None:
        if retry_after is not None:
            self.metrics.observe_retry_after(retry_after)
        delay_ms = self.policy.backoff_delay_ms(attempt, retry_after, rng=self._rng)
        logger.debug(
            f"Retry attempt {attempt + 1}/{max_attempts - 1} for {endpoint} "
            f"after {delay_ms / 1000:.2f}s delay"
        )
        await self._sleep(delay_ms / 1000)

    async def execute(
        self,
        method: str,
        endpoint: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
        allow_redirects: bool = True,
    ) -> requests.Response:
        """Execute a request until it succeeds or fails terminally.

        Args:
            method: HTTP method
            endpoint: API path, e.g. "/api/v1/agent/all"
            params: Query parameters (None values are dropped by requests)
            json_body: JSON-serialisable request body
            allow_redirects: Follow redirects (disable to read a Location header)

        Returns:
            The successful response (status < 400)

        Raises:
            AuthenticationError: If no credential is configured
            ApiRequestError: On a terminal HTTP failure (RateLimitError for 429)
            RequestTimeoutError: If the last attempt hit its deadline
            requests.RequestException: On a connection failure after all attempts
        """
        method = method.upper()
        url = f"{self.base_url}{endpoint}"
        max_attempts = self.policy.max_attempts(method)
        started = time.monotonic()

        for attempt in range(max_attempts):
            headers = self._build_headers()
            failure: Exception

            try:
                response = await self._dispatch(method, url, headers, params, json_body, allow_redirects)
            except (asyncio.TimeoutError, requests.Timeout):
                failure = RequestTimeoutError(self.timeout_ms, endpoint)
            except requests.ConnectionError as e:
                failure = e
            else:
                if response.ok:
                    self._record(endpoint, started, attempt + 1, status_code=response.status_code)
                    return response

                error = classify_response(
                    response.status_code,
                    response.reason or "",
                    response.text or "",
                    response.headers,
                    endpoint,
                )
                if self.policy.decide_for_response(error, attempt, max_attempts) is Decision.FAIL:
                    self._record(endpoint, started, attempt + 1, status_code=error.status_code, error=error)
                    raise error

                logger.debug(f"{method} {endpoint} returned {error.status_code}, retrying")
                await self._backoff(endpoint, attempt, max_attempts, retry_after_hint(error))
                continue

            if self.policy.decide_for_transport_failure(attempt, max_attempts) is Decision.FAIL:
                self._record(endpoint, started, attempt + 1, error=failure)
                raise failure

            logger.debug(f"{method} {endpoint} failed with {type(failure).__name__}, retrying")
            await self._backoff(endpoint, attempt, max_attempts, None)

        # max_attempts is always >= 1, so the loop returns or raises
        raise RuntimeError(f"Request failed after {max_attempts} attempts: {endpoint}")

    def _record(
        self,
        endpoint: str,
        started: float,
        attempts: int,
        status_code: int | None = None,
        error: Exception | None = None,
    ) -> None:
        hint = retry_after_hint(error) if error is not None else None
        if hint is not None:
            self.metrics.observe_retry_after(hint)
        self.metrics.record_request(
            endpoint,
            attempts=attempts,
            elapsed_ms=(time.monotonic() - started) * 1000,
            status_code=status_code,
            failure_kind=failure_kind(error) if error is not None else None,
            error=f"{type(error).__name__}: {error}" if error is not None else None,
        )

    def close(self) -> None:
        self.session.close()
