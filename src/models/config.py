"""Client and batch configuration models."""

from __future__ import annotations

from collections.abc import Callable

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.models.batch_result import OperationResult

MIN_CONCURRENCY = 1
MAX_CONCURRENCY = 100

ProgressCallback = Callable[[int, int, list[OperationResult]], None]


class BatchConfig(BaseModel):
    """Settings for one BatchExecutor. Immutable once constructed.

    The progress callback runs synchronously on the thread that called
    execute_batch, once per completed operation; a slow callback delays the
    whole batch.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_concurrency: int = 10
    timeout: float = 300.0
    retry_attempts: int = 3
    retry_delay: float = 1.0
    continue_on_error: bool = True
    progress_callback: ProgressCallback | None = None

    @field_validator("max_concurrency")
    @classmethod
    def clamp_max_concurrency(cls, value: int) -> int:
        """Clamp concurrency into [1, 100] whatever the caller asked for."""
        return max(MIN_CONCURRENCY, min(MAX_CONCURRENCY, value))

    @field_validator("retry_attempts")
    @classmethod
    def validate_retry_attempts(cls, value: int) -> int:
        """Retry attempts must not be negative."""
        if value < 0:
            msg = "retry_attempts must not be negative"
            raise ValueError(msg)
        return value

    @field_validator("retry_delay")
    @classmethod
    def validate_retry_delay(cls, value: float) -> float:
        """Retry delay must not be negative."""
        if value < 0:
            msg = "retry_delay must not be negative"
            raise ValueError(msg)
        return value


class Config(BaseSettings):
    """Client configuration loaded from CANVUS_* environment variables and .env."""

    model_config = SettingsConfigDict(
        env_prefix="CANVUS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    api_url: str
    api_key: str
    request_timeout: float = 30.0
    max_retries: int = 3
    user_agent: str = "canvus-batch-python/0.1.0"
    verify_tls: bool = True
    log_level: str = "INFO"

    batch_max_concurrency: int = 10
    batch_timeout: float = 300.0
    batch_retry_attempts: int = 3
    batch_retry_delay: float = 1.0
    batch_continue_on_error: bool = True

    @field_validator("api_url")
    @classmethod
    def validate_api_url(cls, value: str) -> str:
        """API URL must be http(s) and is normalised to end with a slash."""
        stripped = value.strip()
        if not stripped.startswith(("http://", "https://")):
            msg = "api_url must start with http:// or https://"
            raise ValueError(msg)
        return stripped.rstrip("/") + "/"

    @field_validator("api_key")
    @classmethod
    def validate_api_key(cls, value: str) -> str:
        """API key must be non-empty."""
        if not value.strip():
            msg = "api_key must not be empty"
            raise ValueError(msg)
        return value.strip()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Log level must be a valid Python logging level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_value = value.upper()
        if upper_value not in valid_levels:
            msg = f"log_level must be one of {', '.join(sorted(valid_levels))}"
            raise ValueError(msg)
        return upper_value

    @field_validator("max_retries")
    @classmethod
    def validate_max_retries(cls, value: int) -> int:
        """Transport retries must be between 0 and 10."""
        if value < 0 or value > 10:
            msg = "max_retries must be between 0 and 10"
            raise ValueError(msg)
        return value

    @field_validator("request_timeout")
    @classmethod
    def validate_request_timeout(cls, value: float) -> float:
        """Request timeout must be positive."""
        if value <= 0:
            msg = "request_timeout must be positive"
            raise ValueError(msg)
        return value

    def batch_config(self, progress_callback: ProgressCallback | None = None) -> BatchConfig:
        """Build a BatchConfig from the batch_* defaults."""
        return BatchConfig(
            max_concurrency=self.batch_max_concurrency,
            timeout=self.batch_timeout,
            retry_attempts=self.batch_retry_attempts,
            retry_delay=self.batch_retry_delay,
            continue_on_error=self.batch_continue_on_error,
            progress_callback=progress_callback,
        )
