"""Configuration value objects for dependency injection.

Instead of injecting the global settings object, inject specific configuration
dataclasses into each component. Enables:
- Easy testing with different configurations
- Clear constructor contracts
- Validation at composition root
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from request_executor.ports.interceptor import IRequestInterceptor
    from request_executor.ports.validators import ValidationRule


@dataclass(frozen=True)
class HttpClientConfig:
    """Configuration for the HTTP transport."""

    timeout: float = 30.0
    connect_timeout: float = 10.0
    verify_ssl: bool = True


@dataclass(frozen=True)
class RetryConfig:
    """Configuration for the retry policy interceptor."""

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 60.0
    backoff_multiplier: float = 2.0
    retryable_status_codes: tuple[int, ...] = (429, 500, 502, 503, 504)


@dataclass(frozen=True)
class ExecutorConfig:
    """Construction-time configuration for an Executor.

    ``status_codes`` is checked before any rule in ``validations``; None
    disables the built-in status check.
    """

    interceptor: IRequestInterceptor | None = None
    status_codes: range | None = None
    validations: Sequence[ValidationRule] = field(default_factory=tuple)
