"""Retry options accepted by the engine.

Every field is optional; omitted fields (nested ``rate_limit`` included) fall
back to the defaults declared here.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

RateLimitValueType = Literal["wait-seconds", "reset-utc-epoch-seconds"]

DEFAULT_MAX_RETRIES = 3
DEFAULT_INITIAL_DELAY_MS = 1000.0
DEFAULT_FACTOR = 2.0
DEFAULT_RATE_LIMIT_MAX_RETRIES = 10
DEFAULT_RATE_LIMIT_MAX_DELAY_MS = 60_000.0


class CustomRateLimitHeader(BaseModel):
    """A user-declared response header carrying a rate-limit instruction."""

    model_config = ConfigDict(frozen=True)

    header: str = Field(min_length=1)
    value_type: RateLimitValueType


class RateLimitOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_retries: int = Field(default=DEFAULT_RATE_LIMIT_MAX_RETRIES, ge=0)
    max_delay_ms: float = Field(default=DEFAULT_RATE_LIMIT_MAX_DELAY_MS, ge=0)
    custom_headers: tuple[CustomRateLimitHeader, ...] = ()


class RetryOptions(BaseModel):
    """Budgets and backoff parameters for one engine."""

    model_config = ConfigDict(frozen=True)

    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=0)
    initial_delay_ms: float = Field(default=DEFAULT_INITIAL_DELAY_MS, ge=0)
    factor: float = Field(default=DEFAULT_FACTOR, gt=1)
    rate_limit: RateLimitOptions = Field(default_factory=RateLimitOptions)

    @property
    def max_total_retries(self) -> int:
        return self.max_retries + self.rate_limit.max_retries


__all__ = [
    "CustomRateLimitHeader",
    "RateLimitOptions",
    "RateLimitValueType",
    "RetryOptions",
]
