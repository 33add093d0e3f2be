"""
Process-wide executor registry.

Optional shared-instance access with an explicit lifecycle:

    init_executor(executor)      # at startup
    get_executor().execute(...)  # anywhere
    await teardown_executor()    # at shutdown, closes the transport
"""

import threading

from request_executor.executor import Executor
from request_executor.infrastructure.observability import get_infrastructure_logger

logger = get_infrastructure_logger("executor-registry")


class ExecutorRegistry:
    """Holds at most one shared Executor."""

    def __init__(self):
        self._executor: Executor | None = None
        self._lock = threading.Lock()

    def init(self, executor: Executor, replace: bool = False) -> Executor:
        """
        Register ``executor`` as the shared instance.

        Raises:
            RuntimeError: If an executor is already registered and ``replace`` is False
        """
        with self._lock:
            if self._executor is not None and not replace:
                raise RuntimeError("Executor registry already initialized")
            self._executor = executor
        logger.info("executor_registered", transport=type(executor.transport).__name__)
        return executor

    def get(self) -> Executor:
        """
        Raises:
            RuntimeError: If ``init`` was not called
        """
        executor = self._executor
        if executor is None:
            raise RuntimeError("Executor registry not initialized; call init_executor() first")
        return executor

    @property
    def is_initialized(self) -> bool:
        return self._executor is not None

    async def teardown(self) -> None:
        """Unregister the shared executor and close its transport if closable."""
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is None:
            return
        close = getattr(executor.transport, "close", None)
        if close is not None:
            await close()
        logger.info("executor_unregistered")


registry = ExecutorRegistry()


def init_executor(executor: Executor, replace: bool = False) -> Executor:
    return registry.init(executor, replace=replace)


def get_executor() -> Executor:
    return registry.get()


async def teardown_executor() -> None:
    await registry.teardown()
