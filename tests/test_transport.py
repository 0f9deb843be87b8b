"""
Property-based tests for the GitHub transport.

Feature: clabot
"""

import asyncio
from datetime import datetime, timedelta, timezone

import httpx
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from clabot.exceptions import NotFoundError, UpstreamError
from clabot.transport import API_VERSION, GitHubTransport, RetryConfig, authorization_header
from clabot.types.installations import AccessToken, TokenScope

# Test strategies
backoff_factor_strategy = st.floats(min_value=1.1, max_value=5.0)
attempt_strategy = st.integers(min_value=0, max_value=5)
retry_after_strategy = st.integers(min_value=1, max_value=120)

EXPIRES = datetime(2030, 1, 1, tzinfo=timezone.utc)


def _run(handler, coro_fn, retry_config: RetryConfig | None = None):
    async def main():
        async with GitHubTransport(
            base_url="https://api.github.com",
            retry_config=retry_config,
            transport=httpx.MockTransport(handler),
        ) as transport:
            return await coro_fn(transport)

    return asyncio.run(main())


@given(
    backoff_factor=backoff_factor_strategy,
    attempt=attempt_strategy,
)
@settings(max_examples=100)
def test_exponential_backoff_timing(backoff_factor: float, attempt: int) -> None:
    """
    Property: Exponential backoff timing

    For any retry configuration with backoff_factor B and attempt number N,
    the wait time before attempt N SHALL be approximately B^N seconds (with jitter).
    """
    config = RetryConfig(
        max_retries=5,
        backoff_factor=backoff_factor,
        jitter=0.1,  # ±10% jitter
        max_backoff=1000.0,  # High max to not interfere with test
    )
    transport = GitHubTransport(retry_config=config)

    expected_base = backoff_factor ** attempt
    actual = transport._get_backoff_time(attempt, None)

    min_expected = min(expected_base * 0.9, config.max_backoff)
    max_expected = min(expected_base * 1.1, config.max_backoff)
    assert min_expected <= actual <= max_expected, (
        f"Backoff time {actual} not in expected range [{min_expected}, {max_expected}] "
        f"for attempt {attempt} with factor {backoff_factor}"
    )


@given(retry_after=retry_after_strategy)
@settings(max_examples=100)
def test_retry_after_header_respected(retry_after: int) -> None:
    """
    Property: Retry-After header respected

    For any 429 response with a Retry-After header value of T seconds,
    the transport SHALL wait T seconds before retrying.
    """
    transport = GitHubTransport(retry_config=RetryConfig(max_retries=1, respect_retry_after=True))

    assert transport._get_backoff_time(0, str(retry_after)) == float(retry_after)


@given(
    status_code=st.sampled_from([400, 401, 403, 404, 422]),
    attempt=st.integers(min_value=0, max_value=2),
)
@settings(max_examples=100)
def test_no_retry_on_non_retryable_errors(status_code: int, attempt: int) -> None:
    """
    Property: No retry on non-retryable errors

    For any client error other than 429, the transport SHALL NOT retry.
    """
    transport = GitHubTransport(retry_config=RetryConfig(max_retries=3))

    assert not transport._should_retry(status_code, attempt)


@given(
    status_code=st.sampled_from([429, 502, 503, 504]),
    attempt=st.integers(min_value=0, max_value=2),
)
@settings(max_examples=100)
def test_retry_on_retryable_errors(status_code: int, attempt: int) -> None:
    """Retryable status codes trigger a retry while under max_retries."""
    transport = GitHubTransport(retry_config=RetryConfig(max_retries=3))

    assert transport._should_retry(status_code, attempt)


def test_retry_disabled_by_default() -> None:
    transport = GitHubTransport()

    assert transport.retry_config.max_retries == 0
    assert not transport._should_retry(503, 0)


def test_backoff_respects_max_backoff() -> None:
    """Test that backoff time is capped at max_backoff."""
    config = RetryConfig(backoff_factor=10.0, max_backoff=5.0, jitter=0.0)
    transport = GitHubTransport(retry_config=config)

    assert transport._get_backoff_time(3, None) == 5.0


def test_authorization_header_schemes() -> None:
    app = AccessToken(token="eyJ.jwt.sig", expires_at=EXPIRES, scope=TokenScope.APP)
    installation = AccessToken(token="ghs_abc", expires_at=EXPIRES, installation_id=1)

    assert authorization_header(app) == "Bearer eyJ.jwt.sig"
    assert authorization_header(installation) == "token ghs_abc"
    assert authorization_header("ghp_personal") == "token ghp_personal"


def test_request_sends_github_headers() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"ok": True})

    data = _run(handler, lambda t: t.request_json("GET", "/app", "ghs_abc"))

    assert data == {"ok": True}
    request = seen[0]
    assert request.url == "https://api.github.com/app"
    assert request.headers["Authorization"] == "token ghs_abc"
    assert request.headers["Accept"] == "application/vnd.github+json"
    assert request.headers["X-GitHub-Api-Version"] == API_VERSION


def test_request_json_returns_none_for_empty_body() -> None:
    data = _run(
        lambda request: httpx.Response(204),
        lambda t: t.request_json("DELETE", "/repos/o/r/issues/1/labels/x", "ghs_abc"),
    )

    assert data is None


def test_404_raises_not_found_with_request_id() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            404, json={"message": "Not Found"}, headers={"X-GitHub-Request-Id": "ABCD:1234"}
        )

    with pytest.raises(NotFoundError) as exc_info:
        _run(handler, lambda t: t.request("GET", "/repos/o/r/pulls/1", "ghs_abc"))

    error = exc_info.value
    assert error.status == 404
    assert error.code == "NOT_FOUND"
    assert error.request_id == "ABCD:1234"
    assert "Not Found" in error.body


@given(status_code=st.sampled_from([400, 401, 403, 409, 422, 500, 502, 503]))
@settings(max_examples=20)
def test_property_non_404_errors_raise_upstream_error(status_code: int) -> None:
    """
    Property: Error response parsing

    For any non-2xx response other than 404, the transport SHALL raise an
    UpstreamError carrying the status and body (never a NotFoundError).
    """
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, text="upstream says no")

    with pytest.raises(UpstreamError) as exc_info:
        _run(handler, lambda t: t.request("GET", "/app", "ghs_abc"))

    error = exc_info.value
    assert not isinstance(error, NotFoundError)
    assert error.status == status_code
    assert error.body == "upstream says no"


def test_timeout_raises_upstream_error_without_status() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(UpstreamError) as exc_info:
        _run(handler, lambda t: t.request("GET", "/app", "ghs_abc"))

    assert exc_info.value.status is None
    assert "ReadTimeout" in exc_info.value.message


def test_retries_retryable_status_then_succeeds() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) < 3:
            return httpx.Response(503, text="busy", headers={"Retry-After": "0"})
        return httpx.Response(200, json=[1, 2, 3])

    config = RetryConfig(max_retries=3)
    data = _run(handler, lambda t: t.request_json("GET", "/app/installations", "x"), config)

    assert data == [1, 2, 3]
    assert len(calls) == 3


def test_gives_up_after_max_retries() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(502, text="bad gateway", headers={"Retry-After": "0"})

    with pytest.raises(UpstreamError) as exc_info:
        _run(handler, lambda t: t.request("GET", "/app", "x"), RetryConfig(max_retries=2))

    assert exc_info.value.status == 502
    assert len(calls) == 3


def test_token_expiry_does_not_leak_into_repr() -> None:
    token = AccessToken(
        token="ghs_supersecretvalue1234",
        expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
        installation_id=7,
    )

    assert "ghs_supersecretvalue1234" not in repr(token)
