"""
Structured logging for every layer of the executor: request lifecycle events,
validation rejections, retries and configuration loading.
"""

from .logging import (
    # Layer-specific logger factories
    get_executor_logger,
    get_infrastructure_logger,
    get_interceptor_logger,
    # Base logger factory
    get_logger,
    get_transport_logger,
    # Per-request context
    request_context,
    # Setup
    setup_logging,
)

__all__ = [
    # Setup
    "setup_logging",
    # Base
    "get_logger",
    # Layer-specific
    "get_executor_logger",
    "get_transport_logger",
    "get_interceptor_logger",
    "get_infrastructure_logger",
    # Per-request context
    "request_context",
]
