"""Dependency injection container for the request executor.

Wires transports, interceptors and the Executor together from a
``ConfigState``. This is the single place where concrete implementations are
chosen.

Usage:
    container = ExecutorDependencyContainer(get_config())
    executor = container.create_executor()
"""

from request_executor.config.state import ConfigState
from request_executor.config.value_objects import ExecutorConfig
from request_executor.connectors.aiohttp_transport import AiohttpTransport
from request_executor.executor import Executor
from request_executor.interceptors import (
    ApiKeyInterceptor,
    CompositeInterceptor,
    KeyRotator,
    RetryPolicy,
)
from request_executor.ports.http import ITransport
from request_executor.ports.interceptor import IRequestInterceptor
from request_executor.ports.validators import ValidationRule
from request_executor.validation.rules import content_type_rule


class ExecutorDependencyContainer:
    """Dependency injection container for the Executor.

    Responsible for:
    1. Choosing concrete implementations for each protocol
    2. Converting settings into configuration value objects
    3. Wiring dependencies together

    Tests can subclass this and override ``create_transport`` to inject fakes.
    """

    def __init__(self, state: ConfigState | None = None):
        """Initialize container.

        Args:
            state: Loaded configuration (defaults when None)
        """
        self.state = state or ConfigState()
        self.http_config = self.state.to_http_config()
        self.retry_config = self.state.to_retry_config()

    def create_transport(self) -> ITransport:
        return AiohttpTransport(self.http_config)

    def create_interceptor(self) -> IRequestInterceptor | None:
        """Key rotation first (adapts headers), then retry policy.

        Returns None when neither is configured.
        """
        interceptors: list[IRequestInterceptor] = []

        auth = self.state.auth
        if auth.api_keys:
            rotator = KeyRotator(auth.api_keys, header=auth.header, scheme=auth.scheme)
            interceptors.append(ApiKeyInterceptor(rotator, header=auth.header))

        if self.state.retry.enabled:
            interceptors.append(RetryPolicy(self.retry_config))

        if not interceptors:
            return None
        if len(interceptors) == 1:
            return interceptors[0]
        return CompositeInterceptor(*interceptors)

    def create_validations(self) -> list[ValidationRule]:
        rules: list[ValidationRule] = []
        if self.state.validation.accepted_content_types:
            rules.append(content_type_rule(self.state.validation.accepted_content_types))
        return rules

    def create_executor_config(self) -> ExecutorConfig:
        return ExecutorConfig(
            interceptor=self.create_interceptor(),
            status_codes=self.state.accepted_status_codes(),
            validations=tuple(self.create_validations()),
        )

    def create_executor(self) -> Executor:
        return Executor(self.create_transport(), self.create_executor_config())
