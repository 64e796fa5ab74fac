"""Decide whether an attempt outcome is worth another try."""

from __future__ import annotations

import errno
import socket

import httpx

from fetch_retries.retry_codes import RETRY_ERROR_CODES, RETRY_STATUS_CODES

_GAI_ERROR_CODES: dict[int, str] = {
    socket.EAI_NONAME: "ENOTFOUND",
    socket.EAI_AGAIN: "EAI_AGAIN",
}

_MAX_CHAIN_DEPTH = 16
_MAX_CHAIN_LINKS = 64


def _iter_chain(exc: BaseException) -> list[BaseException]:
    """Flatten the cause/context chain, descending into exception groups.

    anyio raises ``OSError("All connection attempts failed")`` from an
    ``ExceptionGroup`` holding one error per resolved address.
    """

    chain: list[BaseException] = []
    seen: set[int] = set()
    pending: list[tuple[BaseException, int]] = [(exc, 0)]
    while pending and len(chain) < _MAX_CHAIN_LINKS:
        current, depth = pending.pop()
        if id(current) in seen or depth >= _MAX_CHAIN_DEPTH:
            continue
        seen.add(id(current))
        chain.append(current)
        linked = current.__cause__ or current.__context__
        if linked is not None:
            pending.append((linked, depth + 1))
        if isinstance(current, BaseExceptionGroup):
            pending.extend((inner, depth + 1) for inner in reversed(current.exceptions))
    return chain


def _code_of(exc: BaseException) -> str | None:
    if isinstance(exc, socket.gaierror):
        return _GAI_ERROR_CODES.get(exc.errno) if exc.errno is not None else None
    if isinstance(exc, OSError) and exc.errno is not None:
        return errno.errorcode.get(exc.errno)
    code = getattr(exc, "code", None)
    return code if isinstance(code, str) else None


def error_code(exc: BaseException) -> str | None:
    """Return the first symbolic network error code found along the cause chain."""

    for link in _iter_chain(exc):
        code = _code_of(link)
        if code is not None:
            return code
    return None


def is_timeout_error(exc: BaseException) -> bool:
    return isinstance(exc, (httpx.TimeoutException, TimeoutError))


def is_retryable_error(exc: BaseException) -> bool:
    """True for transient network failures and timeouts."""

    if is_timeout_error(exc):
        return True
    return any(_code_of(link) in RETRY_ERROR_CODES for link in _iter_chain(exc))


def is_retryable_response(response: httpx.Response) -> bool:
    return not response.is_success and response.status_code in RETRY_STATUS_CODES


__all__ = [
    "error_code",
    "is_retryable_error",
    "is_retryable_response",
    "is_timeout_error",
]
