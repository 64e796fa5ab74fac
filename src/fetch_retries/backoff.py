"""Delay calculation for the two retry paths."""

from __future__ import annotations

import math


def error_backoff_ms(retries: int, *, initial_ms: float, factor: float) -> float:
    """Exponential backoff for transport errors and retryable statuses.

    ``retries`` is the error-retry count after incrementing, so the first retry
    waits ``initial_ms * factor``. The error path is not capped.
    """

    return initial_ms * math.pow(factor, retries)


def delay_from_wait_seconds(seconds: int, *, max_delay_ms: float) -> float:
    return min(seconds * 1000.0, max_delay_ms)


def delay_from_epoch_seconds(epoch_seconds: int, *, now_ms: float, max_delay_ms: float) -> float:
    """Milliseconds until ``epoch_seconds``; negative once the reset time has passed."""

    return min(epoch_seconds * 1000.0 - now_ms, max_delay_ms)


__all__ = ["delay_from_epoch_seconds", "delay_from_wait_seconds", "error_backoff_ms"]
