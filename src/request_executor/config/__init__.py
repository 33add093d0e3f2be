"""Configuration: pydantic state loaded from YAML and injected value objects."""

from .state import ConfigLoader, ConfigState, get_config
from .value_objects import ExecutorConfig, HttpClientConfig, RetryConfig

__all__ = [
    "ConfigLoader",
    "ConfigState",
    "get_config",
    "ExecutorConfig",
    "HttpClientConfig",
    "RetryConfig",
]
