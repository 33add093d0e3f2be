"""Tests for RetryPolicy decisions and backoff delays."""

import pytest

from request_executor.config.value_objects import RetryConfig
from request_executor.exceptions import (
    InterceptorError,
    TransportError,
    ValidationRejectedError,
)
from request_executor.interceptors import RetryPolicy
from request_executor.ports.http import RequestDescriptor, ResponseMetadata

GET = RequestDescriptor("GET", "http://example.test/data")
POST = RequestDescriptor("POST", "http://example.test/data")


def rejected(status, **headers):
    metadata = ResponseMetadata(status_code=status, headers=headers, url=GET.url)
    return metadata, ValidationRejectedError("nope", "status_code", metadata)


@pytest.fixture
def policy():
    return RetryPolicy(
        RetryConfig(max_attempts=3, base_delay=1.0, max_delay=10.0, backoff_multiplier=2.0)
    )


class TestRetryDecision:
    @pytest.mark.asyncio
    async def test_transport_error_is_retried(self, policy):
        decision = await policy.retry(GET, None, TransportError("refused"), 1)

        assert decision.should_retry
        assert decision.delay == 1.0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [500, 502, 503, 504])
    async def test_server_errors_are_retried(self, policy, status):
        metadata, error = rejected(status)

        decision = await policy.retry(GET, metadata, error, 2)

        assert decision.should_retry
        assert decision.delay == 2.0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [400, 401, 404])
    async def test_client_errors_are_final(self, policy, status):
        metadata, error = rejected(status)

        assert not (await policy.retry(GET, metadata, error, 1)).should_retry

    @pytest.mark.asyncio
    async def test_rate_limit_honors_retry_after(self, policy):
        metadata, error = rejected(429, **{"Retry-After": "7"})

        decision = await policy.retry(GET, metadata, error, 1)

        assert decision.should_retry
        assert decision.delay == 7.0

    @pytest.mark.asyncio
    async def test_gives_up_at_max_attempts(self, policy):
        decision = await policy.retry(GET, None, TransportError("refused"), 3)

        assert not decision.should_retry

    @pytest.mark.asyncio
    async def test_non_idempotent_method_is_not_retried(self, policy):
        decision = await policy.retry(POST, None, TransportError("refused"), 1)

        assert not decision.should_retry

    @pytest.mark.asyncio
    async def test_other_errors_are_not_retried(self, policy):
        decision = await policy.retry(GET, None, InterceptorError("bad"), 1)

        assert not decision.should_retry

    @pytest.mark.asyncio
    async def test_adapt_is_passthrough(self, policy):
        assert await policy.adapt(GET) is GET


class TestRetryDelay:
    def test_exponential_backoff(self, policy):
        assert [policy.get_retry_delay(n) for n in (1, 2, 3, 4)] == [1.0, 2.0, 4.0, 8.0]

    def test_delay_is_capped(self, policy):
        assert policy.get_retry_delay(10) == 10.0

    def test_retry_after_is_capped(self, policy):
        assert policy.get_retry_delay(1, 429, "3600") == 10.0

    def test_unparseable_retry_after_falls_back_to_backoff(self, policy):
        assert policy.get_retry_delay(2, 429, "Wed, 21 Oct 2015 07:28:00 GMT") == 2.0

    def test_retry_after_only_applies_to_rate_limits(self, policy):
        assert policy.get_retry_delay(1, 503, "9") == 1.0

    def test_should_retry(self, policy):
        assert policy.should_retry(503)
        assert not policy.should_retry(404)
