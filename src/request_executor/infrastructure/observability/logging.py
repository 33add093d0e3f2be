"""
Structured logging for request-executor, built on structlog's stdlib bridge.

Every entry carries the application name, the architectural layer and the
component that emitted it:

    {
        "app": "request-executor",
        "layer": "transport",
        "component": "aiohttp",
        "request_id": "5f0c...",       # bound per request via contextvars
        "event": "request_completed",
        "status_code": 200,
        ...
    }

Layers:
    - executor: dispatch, rule snapshots, cancelables
    - transport: HTTP engine adapters and response validation
    - interceptor: request adaptation, key rotation, retry policy
    - infrastructure: config loading, registry
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Literal

import structlog
from structlog.types import EventDict, Processor

Layer = Literal["executor", "transport", "interceptor", "infrastructure"]

APP_NAME = "request-executor"

_SEVERITY = {
    "debug": "DEBUG",
    "info": "INFO",
    "warning": "WARNING",
    "error": "ERROR",
    "critical": "CRITICAL",
}


def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict["app"] = APP_NAME
    return event_dict


def add_severity_level(
    logger: Any, method_name: str, event_dict: EventDict
) -> EventDict:
    """Mirror the stdlib level as an upper-case ``severity`` field."""
    level = event_dict.get("level")
    if level:
        event_dict["severity"] = _SEVERITY.get(level, "INFO")
    return event_dict


def _build_processors(json_logs: bool, include_timestamp: bool) -> list[Processor]:
    processors: list[Processor] = []
    if include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))
    processors += [
        structlog.contextvars.merge_contextvars,
        add_app_context,
        structlog.stdlib.add_log_level,
        add_severity_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    if json_logs:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=True, exception_formatter=structlog.dev.plain_traceback
            )
        )
    return processors


def setup_logging(
    level: str = "INFO",
    json_logs: bool = True,
    include_timestamp: bool = True,
) -> None:
    """
    Configure structlog and the stdlib root logger.

    Unknown level names fall back to INFO.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        json_logs: JSON lines when True, coloured console output otherwise
        include_timestamp: Prefix entries with an ISO timestamp

    Usage:
        >>> setup_logging(level="DEBUG", json_logs=False)
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)
    # basicConfig is a no-op once root has handlers
    logging.root.setLevel(log_level)
    structlog.configure(
        processors=_build_processors(json_logs, include_timestamp),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(
    name: str | None = None,
    layer: Layer | None = None,
    component: str | None = None,
    **initial_context: Any,
) -> structlog.stdlib.BoundLogger:
    """
    Get a logger with architectural context bound.

    Args:
        name: Logger name, also bound as ``module``
        layer: Architectural layer
        component: Component within the layer
        **initial_context: Extra key-value pairs to bind

    Usage:
        >>> log = get_logger(__name__, layer="transport", component="aiohttp")
        >>> log.info("request_sent", method="GET")
    """
    logger = structlog.get_logger(name)
    context = {
        key: value
        for key, value in (("layer", layer), ("component", component), ("module", name))
        if value
    }
    context.update(initial_context)
    return logger.bind(**context) if context else logger


@contextmanager
def request_context(**values: Any) -> Iterator[None]:
    """Bind ``values`` to every entry logged in the current task or thread."""
    with structlog.contextvars.bound_contextvars(**values):
        yield


# ---------- per-layer factories ----------


def get_executor_logger(
    component: str = "executor", **context: Any
) -> structlog.stdlib.BoundLogger:
    return get_logger("executor", layer="executor", component=component, **context)


def get_transport_logger(component: str, **context: Any) -> structlog.stdlib.BoundLogger:
    """Logger for HTTP engines and the validation chain."""
    return get_logger("transport", layer="transport", component=component, **context)


def get_interceptor_logger(
    component: str, **context: Any
) -> structlog.stdlib.BoundLogger:
    """Logger for auth headers, key rotation and retry policy."""
    return get_logger("interceptor", layer="interceptor", component=component, **context)


def get_infrastructure_logger(
    component: str, **context: Any
) -> structlog.stdlib.BoundLogger:
    return get_logger(
        "infrastructure", layer="infrastructure", component=component, **context
    )
