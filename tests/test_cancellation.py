from __future__ import annotations

import asyncio
import time

import pytest

from fetch_retries.cancellation import CancellationToken, compose_signal, wait
from fetch_retries.errors import RequestCancelledError, RequestTimeoutError

pytestmark = pytest.mark.anyio


def test_cancel_records_reason_and_fires_callbacks_once() -> None:
    token = CancellationToken()
    seen: list[BaseException] = []
    token.add_callback(seen.append)
    reason = RuntimeError("shutdown")

    token.cancel(reason)
    token.cancel(ValueError("ignored"))

    assert token.cancelled is True
    assert token.reason is reason
    assert seen == [reason]
    assert not token._callbacks


def test_default_reason_is_request_cancelled() -> None:
    token = CancellationToken()
    token.cancel()

    with pytest.raises(RequestCancelledError):
        token.raise_if_cancelled()


def _traceback_depth(exc: BaseException) -> int:
    depth, tb = 0, exc.__traceback__
    while tb is not None:
        depth, tb = depth + 1, tb.tb_next
    return depth


def test_repeated_raises_do_not_grow_the_shared_traceback() -> None:
    token = CancellationToken()
    token.cancel()
    depths: list[int] = []

    for _ in range(3):
        with pytest.raises(RequestCancelledError) as info:
            token.raise_if_cancelled()
        assert info.value is token.reason
        depths.append(_traceback_depth(info.value))

    assert depths[0] == depths[1] == depths[2]


def test_remove_unknown_callback_is_noop() -> None:
    token = CancellationToken()
    token.remove_callback(lambda _reason: None)

    assert not token._callbacks


async def test_wait_elapses_and_deregisters() -> None:
    token = CancellationToken()
    start = time.monotonic()

    await wait(30, token)

    assert time.monotonic() - start >= 0.025
    assert not token._callbacks


async def test_wait_without_signal() -> None:
    await wait(0)
    await wait(-50)


async def test_wait_returns_early_on_cancel_without_raising() -> None:
    token = CancellationToken()
    loop = asyncio.get_running_loop()
    loop.call_later(0.02, token.cancel)
    start = time.monotonic()

    await wait(5_000, token)

    assert time.monotonic() - start < 1.0
    assert token.cancelled is True
    assert not token._callbacks


async def test_wait_on_already_cancelled_token_returns_immediately() -> None:
    token = CancellationToken()
    token.cancel()
    start = time.monotonic()

    await wait(5_000, token)

    assert time.monotonic() - start < 1.0


async def test_wait_cleans_up_when_task_is_cancelled() -> None:
    token = CancellationToken()
    task = asyncio.ensure_future(wait(5_000, token))
    await asyncio.sleep(0.01)
    assert len(token._callbacks) == 1

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert not token._callbacks


async def test_compose_without_timeout_passes_signal_through() -> None:
    token = CancellationToken()
    with compose_signal(token, None) as composed:
        assert composed is token
    with compose_signal(None, None) as composed:
        assert composed is None


async def test_compose_fires_on_caller_signal_with_its_reason() -> None:
    token = CancellationToken()
    reason = RuntimeError("caller gave up")
    with compose_signal(token, 10_000) as composed:
        assert composed is not None
        assert len(token._callbacks) == 1
        token.cancel(reason)
        assert composed.reason is reason
    assert not token._callbacks


async def test_compose_fires_timeout_error_when_timer_elapses() -> None:
    token = CancellationToken()
    with compose_signal(token, 20) as composed:
        assert composed is not None
        await wait(5_000, composed)
        assert isinstance(composed.reason, RequestTimeoutError)
        assert isinstance(composed.reason, TimeoutError)
        assert composed.reason.timeout_ms == 20
    assert token.cancelled is False
    assert not token._callbacks


async def test_compose_with_already_cancelled_signal() -> None:
    token = CancellationToken()
    reason = RuntimeError("early")
    token.cancel(reason)
    with compose_signal(token, 1_000) as composed:
        assert composed is not None
        assert composed.reason is reason


async def test_compose_timeout_only() -> None:
    with compose_signal(None, 1_000) as composed:
        assert composed is not None
        assert composed.cancelled is False


async def test_compose_rejects_non_positive_timeout() -> None:
    with pytest.raises(ValueError, match="timeout_ms"):
        with compose_signal(None, 0):
            pass
