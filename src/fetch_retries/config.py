"""Environment-driven defaults for retry behaviour."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from fetch_retries.options import (
    DEFAULT_FACTOR,
    DEFAULT_INITIAL_DELAY_MS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RATE_LIMIT_MAX_DELAY_MS,
    DEFAULT_RATE_LIMIT_MAX_RETRIES,
    RateLimitOptions,
    RetryOptions,
)


class RetrySettings(BaseSettings):
    """Retry/backoff policy used when a caller supplies no explicit options."""

    model_config = SettingsConfigDict(
        env_prefix="",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
    )

    max_retries: int = Field(
        default=DEFAULT_MAX_RETRIES,
        alias="FETCH_RETRIES_MAX_RETRIES",
        ge=0,
    )
    initial_delay_ms: float = Field(
        default=DEFAULT_INITIAL_DELAY_MS,
        alias="FETCH_RETRIES_INITIAL_DELAY_MS",
        ge=0,
    )
    factor: float = Field(
        default=DEFAULT_FACTOR,
        alias="FETCH_RETRIES_FACTOR",
        gt=1,
    )
    rate_limit_max_retries: int = Field(
        default=DEFAULT_RATE_LIMIT_MAX_RETRIES,
        alias="FETCH_RETRIES_RATE_LIMIT_MAX_RETRIES",
        ge=0,
    )
    rate_limit_max_delay_ms: float = Field(
        default=DEFAULT_RATE_LIMIT_MAX_DELAY_MS,
        alias="FETCH_RETRIES_RATE_LIMIT_MAX_DELAY_MS",
        ge=0,
    )

    @property
    def retry_options(self) -> RetryOptions:
        return RetryOptions(
            max_retries=self.max_retries,
            initial_delay_ms=self.initial_delay_ms,
            factor=self.factor,
            rate_limit=RateLimitOptions(
                max_retries=self.rate_limit_max_retries,
                max_delay_ms=self.rate_limit_max_delay_ms,
            ),
        )


__all__ = ["RetrySettings"]
