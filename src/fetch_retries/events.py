"""Retry notifications handed to ``on_retry`` callbacks."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

import httpx

from fetch_retries.classifier import error_code


@dataclass(frozen=True)
class RetryEvent:
    """Snapshot of one retry decision, emitted before the wait starts."""

    response: httpx.Response | None
    error: Exception | None
    attempt: int
    delay_ms: float
    rate_limit_retry: bool

    def log_data(self) -> dict[str, object]:
        return {
            "attempt": self.attempt,
            "delay_ms": round(self.delay_ms, 2),
            "rate_limit_retry": self.rate_limit_retry,
            "status_code": self.response.status_code if self.response is not None else None,
            "error_type": type(self.error).__name__ if self.error is not None else None,
            "error_code": error_code(self.error) if self.error is not None else None,
        }


OnRetry = Callable[[RetryEvent], None]


__all__ = ["OnRetry", "RetryEvent"]
