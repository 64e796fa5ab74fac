"""HTTP client adapter that retries requests on transient failures and rate limits."""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping
from types import TracebackType
from typing import Any

import httpx

from fetch_retries.cancellation import CancellationToken, compose_signal
from fetch_retries.config import RetrySettings
from fetch_retries.engine import RetryEngine
from fetch_retries.events import OnRetry
from fetch_retries.options import RetryOptions


class RetryingHttpClient:
    """Async HTTP client whose requests go through a :class:`RetryEngine`.

    One instance can serve concurrent requests; each call owns its retry
    counters. Non-2xx responses are returned as-is once they are no longer
    retryable, so callers decide what counts as an application error.
    """

    def __init__(
        self,
        *,
        retry_options: RetryOptions | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._owns_client = client is None
        self._client: httpx.AsyncClient = client or httpx.AsyncClient(timeout=timeout)
        self._engine = RetryEngine(
            self._client.send,
            retry_options or RetrySettings().retry_options,
            clock=clock,
        )

    @property
    def retry_options(self) -> RetryOptions:
        return self._engine.options

    async def request(
        self,
        method: str,
        url: httpx.URL | str,
        *,
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, Any] | None = None,
        content: str | bytes | None = None,
        json: Any = None,
        signal: CancellationToken | None = None,
        timeout_ms: float | None = None,
        on_retry: OnRetry | None = None,
    ) -> httpx.Response:
        """Send ``method url`` with retries.

        ``signal`` cancels the in-flight attempt or the pending backoff and
        raises its reason. ``timeout_ms`` bounds the whole call, retries and
        waits included, and raises ``RequestTimeoutError`` when it elapses.
        """

        request = self._client.build_request(
            method,
            url,
            headers=headers,
            params=params,
            content=content,
            json=json,
        )
        with compose_signal(signal, timeout_ms) as composed:
            return await self._engine.run(request, signal=composed, on_retry=on_retry)

    async def get(self, url: httpx.URL | str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: httpx.URL | str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", url, **kwargs)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> RetryingHttpClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()


async def fetch_with_retries(
    url: httpx.URL | str,
    *,
    method: str = "GET",
    headers: Mapping[str, str] | None = None,
    params: Mapping[str, Any] | None = None,
    content: str | bytes | None = None,
    json: Any = None,
    signal: CancellationToken | None = None,
    timeout_ms: float | None = None,
    retry_options: RetryOptions | None = None,
    on_retry: OnRetry | None = None,
    client: httpx.AsyncClient | None = None,
) -> httpx.Response:
    """One-shot request with retries; see :meth:`RetryingHttpClient.request`."""

    async with RetryingHttpClient(retry_options=retry_options, client=client) as retrying:
        return await retrying.request(
            method,
            url,
            headers=headers,
            params=params,
            content=content,
            json=json,
            signal=signal,
            timeout_ms=timeout_ms,
            on_retry=on_retry,
        )


__all__ = ["RetryingHttpClient", "fetch_with_retries"]
