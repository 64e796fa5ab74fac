"""Exceptions raised by the retry engine."""

from __future__ import annotations


class FetchRetriesError(Exception):
    """Base class for retry-engine failures."""


class RequestCancelledError(FetchRetriesError):
    """Raised when a caller cancels a request without supplying its own reason."""


class RequestTimeoutError(RequestCancelledError, TimeoutError):
    """Raised when the overall request timeout elapses."""

    def __init__(self, timeout_ms: float) -> None:
        super().__init__(f"request timed out after {timeout_ms:g}ms")
        self.timeout_ms = timeout_ms


__all__ = [
    "FetchRetriesError",
    "RequestCancelledError",
    "RequestTimeoutError",
]
