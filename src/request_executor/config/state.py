"""
Unified configuration state for the request executor.

Single source of truth for transport, retry, validation and logging settings,
combining YAML files with environment overrides, type validation and
sensible defaults.
"""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from request_executor.config.value_objects import HttpClientConfig, RetryConfig
from request_executor.infrastructure.observability import get_infrastructure_logger

logger = get_infrastructure_logger("config-loader")


# =============================================================================
# PYDANTIC MODELS - Type-Safe Configuration
# =============================================================================


class HttpConfig(BaseModel):
    """HTTP transport settings."""

    timeout: float = Field(default=30.0, gt=0)
    connect_timeout: float = Field(default=10.0, gt=0)
    verify_ssl: bool = Field(default=True)

    class Config:
        extra = "allow"


class RetrySettings(BaseModel):
    """Retry policy settings. Disabled unless ``enabled`` is set."""

    enabled: bool = Field(default=False)
    max_attempts: int = Field(default=3, ge=1, le=50)
    base_delay: float = Field(default=1.0, ge=0)
    max_delay: float = Field(default=60.0, ge=0)
    backoff_multiplier: float = Field(default=2.0, ge=1)
    retryable_status_codes: list[int] = Field(
        default_factory=lambda: [429, 500, 502, 503, 504]
    )

    class Config:
        extra = "allow"


class ValidationSettings(BaseModel):
    """Accepted status-code range; ``[min, max)`` like ``range``."""

    status_code_min: int | None = Field(default=200, ge=100, le=599)
    status_code_max: int | None = Field(default=300, ge=101, le=600)
    accepted_content_types: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_bounds(self) -> "ValidationSettings":
        lo, hi = self.status_code_min, self.status_code_max
        if (lo is None) != (hi is None):
            raise ValueError("status_code_min and status_code_max must be set together")
        if lo is not None and hi is not None and lo >= hi:
            raise ValueError("status_code_min must be lower than status_code_max")
        return self

    class Config:
        extra = "allow"


class AuthSettings(BaseModel):
    """API key settings for the key-rotating interceptor."""

    api_keys: list[str] = Field(default_factory=list)
    header: str = Field(default="Authorization")
    scheme: str | None = Field(default="Bearer")

    class Config:
        extra = "allow"


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO")
    json_logs: bool = Field(default=True)

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    class Config:
        extra = "allow"


class ConfigState(BaseModel):
    """
    Root configuration state.

    Converted into injected value objects at the composition root
    (see ``ExecutorDependencyContainer``).
    """

    http: HttpConfig = Field(default_factory=HttpConfig)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    validation: ValidationSettings = Field(default_factory=ValidationSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    env: str = Field(default="dev")
    config_dir: str = Field(default="config")

    class Config:
        extra = "allow"

    def to_http_config(self) -> HttpClientConfig:
        return HttpClientConfig(
            timeout=self.http.timeout,
            connect_timeout=self.http.connect_timeout,
            verify_ssl=self.http.verify_ssl,
        )

    def to_retry_config(self) -> RetryConfig:
        return RetryConfig(
            max_attempts=self.retry.max_attempts,
            base_delay=self.retry.base_delay,
            max_delay=self.retry.max_delay,
            backoff_multiplier=self.retry.backoff_multiplier,
            retryable_status_codes=tuple(self.retry.retryable_status_codes),
        )

    def accepted_status_codes(self) -> range | None:
        if self.validation.status_code_min is None:
            return None
        return range(self.validation.status_code_min, self.validation.status_code_max)


# =============================================================================
# CONFIG LOADER
# =============================================================================


class ConfigLoader:
    """
    Load and validate configuration from YAML files.

    Merges:
      1. Defaults (pydantic models)
      2. ``executor.yaml`` from config_dir
      3. ``env/<env>.yaml`` from config_dir
      4. Environment variable overrides
    """

    def __init__(self, config_dir: str | Path = "config"):
        self.config_dir = Path(config_dir)
        self._yaml_cache: dict[Path, Any] = {}
        self.env = os.getenv("REQUEST_EXECUTOR_ENV", "dev")

    def _load_yaml(self, path: Path) -> dict[str, Any]:
        """Load YAML file with caching. Missing files yield an empty dict."""
        if path in self._yaml_cache:
            return self._yaml_cache[path]

        if not path.exists():
            logger.debug("config_file_missing", path=str(path))
            return {}

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Top level of {path} must be a mapping")

        self._yaml_cache[path] = data
        logger.debug("config_file_loaded", path=str(path))
        return data

    def _apply_env_overrides(self, config: dict[str, Any]) -> dict[str, Any]:
        """Apply environment variable overrides to config."""
        if timeout := os.getenv("REQUEST_EXECUTOR_TIMEOUT"):
            config.setdefault("http", {})["timeout"] = float(timeout)

        api_keys_str = os.getenv("REQUEST_EXECUTOR_API_KEYS")
        if api_keys_str:
            api_keys = [key.strip() for key in api_keys_str.split(",") if key.strip()]
            if api_keys:
                config.setdefault("auth", {})["api_keys"] = api_keys

        if log_level := os.getenv("LOG_LEVEL"):
            config.setdefault("logging", {})["level"] = log_level

        return config

    def _merge_dicts(self, base: dict, override: dict) -> dict:
        """Deep merge override into base dict."""
        result = base.copy()
        for key, value in override.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = self._merge_dicts(result[key], value)
            else:
                result[key] = value
        return result

    def load(self) -> ConfigState:
        """
        Load complete configuration state.

        Returns:
            ConfigState: Validated configuration object

        Raises:
            pydantic.ValidationError: If configuration is invalid
        """
        config: dict[str, Any] = {}
        config = self._merge_dicts(
            config, self._load_yaml(self.config_dir / "executor.yaml")
        )
        config = self._merge_dicts(
            config, self._load_yaml(self.config_dir / "env" / f"{self.env}.yaml")
        )
        config = self._apply_env_overrides(config)

        state = ConfigState(env=self.env, config_dir=str(self.config_dir), **config)
        logger.info(
            "config_loaded",
            env=state.env,
            timeout=state.http.timeout,
            retry_enabled=state.retry.enabled,
            api_keys=len(state.auth.api_keys),
        )
        return state


def get_config(config_dir: str | Path | None = None) -> ConfigState:
    """Load configuration from ``config_dir`` (or ``REQUEST_EXECUTOR_CONFIG_DIR``)."""
    directory = config_dir or os.getenv("REQUEST_EXECUTOR_CONFIG_DIR", "config")
    return ConfigLoader(directory).load()
