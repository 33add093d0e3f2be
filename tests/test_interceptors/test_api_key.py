"""Tests for KeyRotator and ApiKeyInterceptor."""

import pytest

from request_executor.exceptions import (
    KeyRotationError,
    TransportError,
    ValidationRejectedError,
)
from request_executor.interceptors import ApiKeyInterceptor, KeyRotator
from request_executor.ports.http import RequestDescriptor, ResponseMetadata

REQUEST = RequestDescriptor("GET", "http://example.test/data", headers={"Accept": "*/*"})


def rejected(status):
    metadata = ResponseMetadata(status_code=status, headers={}, url=REQUEST.url)
    return metadata, ValidationRejectedError("nope", "status_code", metadata)


class TestKeyRotator:
    def test_requires_keys(self):
        with pytest.raises(KeyRotationError):
            KeyRotator([])

    @pytest.mark.asyncio
    async def test_round_robin(self):
        rotator = KeyRotator(["k1", "k2"])

        headers = [await rotator.get_headers() for _ in range(3)]

        assert headers == [
            {"Authorization": "Bearer k1"},
            {"Authorization": "Bearer k2"},
            {"Authorization": "Bearer k1"},
        ]

    @pytest.mark.asyncio
    async def test_custom_header_without_scheme(self):
        rotator = KeyRotator(["k1"], header="X-Api-Key", scheme=None)

        assert await rotator.get_headers() == {"X-Api-Key": "k1"}

    @pytest.mark.asyncio
    async def test_failed_key_is_evicted(self):
        rotator = KeyRotator(["k1", "k2", "k3"])

        await rotator.rotate_key_on_failure("Bearer k2")

        assert rotator.keys == ["k1", "k3"]

    @pytest.mark.asyncio
    async def test_unknown_key_is_ignored(self):
        rotator = KeyRotator(["k1", "k2"])

        await rotator.rotate_key_on_failure("gone")
        await rotator.rotate_key_on_failure(None)

        assert rotator.keys == ["k1", "k2"]

    @pytest.mark.asyncio
    async def test_last_key_cannot_be_evicted(self):
        rotator = KeyRotator(["only"])

        with pytest.raises(KeyRotationError):
            await rotator.rotate_key_on_failure("only")
        assert rotator.keys == ["only"]


class TestApiKeyInterceptor:
    @pytest.mark.asyncio
    async def test_adapt_merges_key_header(self):
        interceptor = ApiKeyInterceptor(KeyRotator(["k1"]))

        adapted = await interceptor.adapt(REQUEST)

        assert adapted.headers == {"Accept": "*/*", "Authorization": "Bearer k1"}
        assert REQUEST.headers == {"Accept": "*/*"}

    @pytest.mark.asyncio
    async def test_unauthorized_rotates_and_retries(self):
        rotator = KeyRotator(["k1", "k2"])
        interceptor = ApiKeyInterceptor(rotator)
        adapted = await interceptor.adapt(REQUEST)
        metadata, error = rejected(401)

        decision = await interceptor.retry(adapted, metadata, error, 1)

        assert decision.should_retry
        assert decision.delay == 0.0
        assert rotator.keys == ["k2"]

    @pytest.mark.asyncio
    async def test_rotation_budget_is_bounded(self):
        interceptor = ApiKeyInterceptor(KeyRotator(["k1", "k2", "k3"]), max_rotations=1)
        adapted = await interceptor.adapt(REQUEST)
        metadata, error = rejected(401)

        decision = await interceptor.retry(adapted, metadata, error, 2)

        assert not decision.should_retry

    @pytest.mark.asyncio
    async def test_other_failures_are_not_retried(self):
        interceptor = ApiKeyInterceptor(KeyRotator(["k1", "k2"]))
        metadata, error = rejected(500)

        assert not (await interceptor.retry(REQUEST, metadata, error, 1)).should_retry
        assert not (
            await interceptor.retry(REQUEST, None, TransportError("refused"), 1)
        ).should_retry
