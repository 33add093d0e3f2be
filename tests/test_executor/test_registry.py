"""Tests for the shared-executor registry lifecycle."""

import pytest

from request_executor.executor import Executor
from request_executor.registry import ExecutorRegistry


class ClosableTransport:
    def __init__(self):
        self.closed = False

    async def close(self):
        self.closed = True


@pytest.fixture
def registry():
    return ExecutorRegistry()


def test_get_before_init_raises(registry):
    with pytest.raises(RuntimeError):
        registry.get()
    assert not registry.is_initialized


def test_init_and_get(registry, fake_transport):
    executor = Executor(fake_transport)

    assert registry.init(executor) is executor
    assert registry.get() is executor
    assert registry.is_initialized


def test_double_init_requires_replace(registry, fake_transport):
    first, second = Executor(fake_transport), Executor(fake_transport)
    registry.init(first)

    with pytest.raises(RuntimeError):
        registry.init(second)
    registry.init(second, replace=True)

    assert registry.get() is second


@pytest.mark.asyncio
async def test_teardown_closes_transport(registry):
    transport = ClosableTransport()
    registry.init(Executor(transport))

    await registry.teardown()

    assert transport.closed
    assert not registry.is_initialized


@pytest.mark.asyncio
async def test_teardown_tolerates_unclosable_transport(registry, fake_transport):
    registry.init(Executor(fake_transport))

    await registry.teardown()
    await registry.teardown()

    assert not registry.is_initialized
