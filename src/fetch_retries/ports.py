"""Transport abstraction consumed by the retry engine."""

from __future__ import annotations

from typing import Protocol

import httpx


class AttemptTransport(Protocol):
    """Performs exactly one network attempt for a prepared request."""

    async def __call__(self, request: httpx.Request) -> httpx.Response: ...


__all__ = ["AttemptTransport"]
