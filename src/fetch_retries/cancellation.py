"""Cooperative cancellation: tokens, timeout composition and the cancellable wait."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from fetch_retries.errors import RequestCancelledError, RequestTimeoutError

CancelCallback = Callable[[BaseException], None]


class CancellationToken:
    """Caller-controlled cancellation signal.

    Callbacks run synchronously inside :meth:`cancel`, on the thread that calls
    it; cancel from the event loop thread (``loop.call_soon_threadsafe`` from
    elsewhere).
    """

    def __init__(self) -> None:
        self._reason: BaseException | None = None
        self._callbacks: list[CancelCallback] = []

    @property
    def cancelled(self) -> bool:
        return self._reason is not None

    @property
    def reason(self) -> BaseException | None:
        return self._reason

    def cancel(self, reason: BaseException | None = None) -> None:
        """Fire the token once; later calls are ignored."""

        if self._reason is not None:
            return
        self._reason = reason if reason is not None else RequestCancelledError("request cancelled")
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback(self._reason)

    def add_callback(self, callback: CancelCallback) -> None:
        self._callbacks.append(callback)

    def remove_callback(self, callback: CancelCallback) -> None:
        try:
            self._callbacks.remove(callback)
        except ValueError:
            pass

    def raise_if_cancelled(self) -> None:
        if self._reason is not None:
            # the reason is shared by every caller; drop frames from earlier raises
            raise self._reason.with_traceback(None)


@contextmanager
def compose_signal(
    signal: CancellationToken | None,
    timeout_ms: float | None,
) -> Iterator[CancellationToken | None]:
    """Yield a token that fires on the caller's signal or after ``timeout_ms``.

    Must be entered inside a running event loop when ``timeout_ms`` is set.
    """

    if timeout_ms is None:
        yield signal
        return
    if timeout_ms <= 0:
        raise ValueError("timeout_ms must be > 0")

    composed = CancellationToken()
    loop = asyncio.get_running_loop()
    timer = loop.call_later(timeout_ms / 1000, composed.cancel, RequestTimeoutError(timeout_ms))
    if signal is not None:
        if signal.cancelled:
            composed.cancel(signal.reason)
        else:
            signal.add_callback(composed.cancel)
    try:
        yield composed
    finally:
        timer.cancel()
        if signal is not None:
            signal.remove_callback(composed.cancel)


async def wait(delay_ms: float, signal: CancellationToken | None = None) -> None:
    """Sleep for ``delay_ms``, returning early (without raising) if ``signal`` fires."""

    loop = asyncio.get_running_loop()
    done: asyncio.Future[None] = loop.create_future()

    def _resolve(_reason: BaseException | None = None) -> None:
        if not done.done():
            done.set_result(None)

    timer = loop.call_later(max(delay_ms, 0.0) / 1000, _resolve)
    if signal is not None:
        if signal.cancelled:
            _resolve()
        else:
            signal.add_callback(_resolve)
    try:
        await done
    finally:
        timer.cancel()
        if signal is not None:
            signal.remove_callback(_resolve)


__all__ = ["CancelCallback", "CancellationToken", "compose_signal", "wait"]
