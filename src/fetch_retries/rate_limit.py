"""Resolve server-directed rate-limit delays from response headers."""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

import httpx

from fetch_retries.backoff import delay_from_epoch_seconds, delay_from_wait_seconds
from fetch_retries.options import CustomRateLimitHeader, RateLimitValueType
from fetch_retries.retry_codes import CUSTOM_RATE_LIMIT_STATUS_CODES, RATE_LIMIT_STATUS_CODES

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def parse_header_int(raw: str | None) -> int | None:
    """Parse the leading integer of a header value (``"12abc"`` -> 12, ``"abc"`` -> None).

    Values too large to represent as a float are treated as unparseable.
    """

    if raw is None:
        return None
    match = _LEADING_INT.match(raw)
    if match is None:
        return None
    try:
        value = int(match.group(1))
        float(value)
    except (OverflowError, ValueError):
        # ValueError: beyond sys.get_int_max_str_digits()
        return None
    return value


@dataclass(frozen=True)
class RateLimitHeader:
    """One header the resolver consults, with the statuses it applies to."""

    header: str
    value_type: RateLimitValueType
    status_codes: tuple[int, ...]

    def delay_ms(self, response: httpx.Response, *, now_ms: float, max_delay_ms: float) -> float | None:
        if response.status_code not in self.status_codes:
            return None
        value = parse_header_int(response.headers.get(self.header))
        if value is None:
            return None
        if self.value_type == "wait-seconds":
            return delay_from_wait_seconds(value, max_delay_ms=max_delay_ms)
        return delay_from_epoch_seconds(value, now_ms=now_ms, max_delay_ms=max_delay_ms)


# Retry-After: https://developer.mozilla.org/en-US/docs/Web/HTTP/Headers/Retry-After
BUILTIN_RATE_LIMIT_HEADERS: tuple[RateLimitHeader, ...] = (
    RateLimitHeader("Retry-After", "wait-seconds", RATE_LIMIT_STATUS_CODES),
    RateLimitHeader("X-RateLimit-Reset", "reset-utc-epoch-seconds", RATE_LIMIT_STATUS_CODES),
)


def build_rate_limit_headers(custom_headers: Iterable[CustomRateLimitHeader] = ()) -> tuple[RateLimitHeader, ...]:
    """Built-in headers first, then custom ones in declaration order."""

    custom = tuple(
        RateLimitHeader(spec.header, spec.value_type, CUSTOM_RATE_LIMIT_STATUS_CODES)
        for spec in custom_headers
    )
    return BUILTIN_RATE_LIMIT_HEADERS + custom


def resolve_rate_limit_delay(
    response: httpx.Response,
    headers: Sequence[RateLimitHeader],
    *,
    now_ms: float,
    max_delay_ms: float,
) -> float | None:
    """Return the delay from the first matching header, or None when the response is not rate limited."""

    for header in headers:
        delay = header.delay_ms(response, now_ms=now_ms, max_delay_ms=max_delay_ms)
        if delay is not None:
            return delay
    return None


__all__ = [
    "BUILTIN_RATE_LIMIT_HEADERS",
    "RateLimitHeader",
    "build_rate_limit_headers",
    "parse_header_int",
    "resolve_rate_limit_delay",
]
