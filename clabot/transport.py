"""
Async HTTP transport for the GitHub REST API.

Handles authentication headers, bounded concurrency, optional retry with
backoff, and error parsing into typed exceptions using httpx async client.
"""

import asyncio
import random
import time
from collections.abc import Callable, Coroutine
from dataclasses import dataclass, field
from typing import Any

import httpx

from clabot.exceptions import NotFoundError, UpstreamError
from clabot.logging import log_http_request, log_http_response
from clabot.types.installations import AccessToken

DEFAULT_API_URL = "https://api.github.com"
API_VERSION = "2022-11-28"

Credential = AccessToken | str


@dataclass
class RetryConfig:
    """Configuration for automatic retry behavior.

    Retries are off unless ``max_retries`` is raised; callers are expected
    to re-run a whole operation instead.
    """

    max_retries: int = 0
    backoff_factor: float = 2.0
    retry_on: list[int] = field(default_factory=lambda: [429, 502, 503, 504])
    respect_retry_after: bool = True
    max_backoff: float = 60.0  # Maximum backoff time in seconds
    jitter: float = 0.1  # Jitter factor (0.1 = ±10%)


def authorization_header(credential: Credential) -> str:
    """Render a credential as an ``Authorization`` header value.

    Plain strings are treated as installation (or personal) tokens.
    """
    if isinstance(credential, AccessToken):
        return credential.authorization
    return f"token {credential}"


class GitHubTransport:
    """
    Async HTTP transport for GitHub.

    Handles:
    - ``Authorization`` header per call (``token`` or ``Bearer`` scheme)
    - A cap on total in-flight requests
    - Timeouts on every request, surfaced as UpstreamError
    - Optional exponential backoff with jitter and Retry-After support
    - Error response parsing into typed exceptions
    """

    def __init__(
        self,
        base_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        max_concurrency: int = 8,
        retry_config: RetryConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the transport.

        Args:
            base_url: Base URL for API requests (default: https://api.github.com)
            timeout: Request timeout in seconds
            max_concurrency: Maximum number of requests in flight at once
            retry_config: Configuration for retry behavior
            transport: Custom httpx transport (e.g. httpx.MockTransport in tests)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.retry_config = retry_config or RetryConfig()
        self._limit = asyncio.Semaphore(max_concurrency)

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            follow_redirects=True,
            headers={
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": API_VERSION,
                "User-Agent": "clabot",
            },
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "GitHubTransport":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def request(
        self,
        method: str,
        path: str,
        credential: Credential,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """
        Make an authenticated request.

        Args:
            method: HTTP method
            path: API path (e.g., "/repos/octo/widgets/pulls/1")
            credential: Token to authenticate with
            params: Query parameters
            body: JSON request body

        Returns:
            The successful (2xx) response

        Raises:
            NotFoundError: On 404
            UpstreamError: On any other non-2xx response, timeout or connection error
        """
        headers = {"Authorization": authorization_header(credential)}

        async def make_request() -> httpx.Response:
            log_http_request(method, path, headers=headers, body=body)
            return await self._client.request(
                method, path, params=params, json=body, headers=headers
            )

        return await self._execute_with_retry(make_request)

    async def request_json(
        self,
        method: str,
        path: str,
        credential: Credential,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> Any:
        """Make an authenticated request and return the parsed JSON body.

        Empty bodies (e.g. 204 No Content) yield ``None``.
        """
        response = await self.request(method, path, credential, params=params, body=body)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(response.status_code, f"Invalid JSON: {e}") from e

    async def _execute_with_retry(
        self, request_fn: Callable[[], Coroutine[Any, Any, httpx.Response]]
    ) -> httpx.Response:
        """
        Execute a request, retrying on retryable errors when configured.

        Raises:
            UpstreamError: On non-retryable errors or after max retries
        """
        for attempt in range(self.retry_config.max_retries + 1):
            started = time.monotonic()
            try:
                async with self._limit:
                    response = await request_fn()
            except httpx.RequestError as e:
                # Timeouts and network errors carry no status
                if attempt >= self.retry_config.max_retries:
                    raise UpstreamError(None, f"{type(e).__name__}: {e}") from e
                await asyncio.sleep(self._get_backoff_time(attempt, None))
                continue

            log_http_response(
                response.status_code,
                str(response.request.url),
                elapsed_ms=(time.monotonic() - started) * 1000,
                request_id=response.headers.get("X-GitHub-Request-Id"),
            )

            if response.is_success:
                return response

            error = self._parse_error_response(response)

            if not self._should_retry(response.status_code, attempt):
                raise error

            retry_after = response.headers.get("Retry-After")
            await asyncio.sleep(self._get_backoff_time(attempt, retry_after))

        raise UpstreamError(None, "Request failed with no error details")

    def _should_retry(self, status_code: int, attempt: int) -> bool:
        """
        Determine if a request should be retried.

        Args:
            status_code: HTTP status code
            attempt: Current attempt number (0-indexed)
        """
        if attempt >= self.retry_config.max_retries:
            return False

        return status_code in self.retry_config.retry_on

    def _get_backoff_time(
        self, attempt: int, retry_after: str | None
    ) -> float:
        """
        Calculate backoff time for retry.

        Uses exponential backoff with jitter, respecting Retry-After header
        if present.

        Args:
            attempt: Current attempt number (0-indexed)
            retry_after: Value of Retry-After header (if present)

        Returns:
            Time to wait in seconds
        """
        if retry_after and self.retry_config.respect_retry_after:
            try:
                return float(retry_after)
            except ValueError:
                pass  # Fall through to exponential backoff

        base_wait = self.retry_config.backoff_factor ** attempt

        jitter_range = base_wait * self.retry_config.jitter
        jitter = random.uniform(-jitter_range, jitter_range)
        wait_time = base_wait + jitter

        return min(wait_time, self.retry_config.max_backoff)

    def _parse_error_response(self, response: httpx.Response) -> UpstreamError:
        """Parse an error response into a typed exception."""
        request_id = response.headers.get("X-GitHub-Request-Id")
        body = response.text

        if response.status_code == 404:
            return NotFoundError(404, body, request_id)
        return UpstreamError(response.status_code, body, request_id)
