from __future__ import annotations

import httpx
import pytest

from fetch_retries.options import CustomRateLimitHeader
from fetch_retries.rate_limit import (
    BUILTIN_RATE_LIMIT_HEADERS,
    build_rate_limit_headers,
    parse_header_int,
    resolve_rate_limit_delay,
)

NOW_MS = 1_700_000_000_000.0


def _resolve(response: httpx.Response, *custom: CustomRateLimitHeader, max_delay_ms: float = 60_000) -> float | None:
    return resolve_rate_limit_delay(
        response,
        build_rate_limit_headers(custom),
        now_ms=NOW_MS,
        max_delay_ms=max_delay_ms,
    )


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("5", 5), (" 12", 12), ("-3", -3), ("+7", 7), ("12abc", 12), ("1.5", 1), ("", None), ("soon", None), (None, None)],
)
def test_parse_header_int_uses_leading_integer(raw: str | None, expected: int | None) -> None:
    assert parse_header_int(raw) == expected


def test_http_date_retry_after_is_not_a_rate_limit_instruction() -> None:
    response = httpx.Response(429, headers={"Retry-After": "Wed, 21 Oct 2015 07:28:00 GMT"})

    assert _resolve(response) is None


@pytest.mark.parametrize("status", [429, 503])
def test_retry_after_seconds_converted_to_ms(status: int) -> None:
    response = httpx.Response(status, headers={"Retry-After": "3"})

    assert _resolve(response) == 3000


def test_retry_after_ignored_on_other_statuses() -> None:
    assert _resolve(httpx.Response(500, headers={"Retry-After": "3"})) is None
    assert _resolve(httpx.Response(200, headers={"Retry-After": "3"})) is None


def test_retry_after_clamped_to_max_delay() -> None:
    response = httpx.Response(429, headers={"Retry-After": "3600"})

    assert _resolve(response, max_delay_ms=60_000) == 60_000


def test_reset_epoch_is_relative_to_now() -> None:
    reset = int(NOW_MS / 1000) + 5
    response = httpx.Response(503, headers={"X-RateLimit-Reset": str(reset)})

    assert _resolve(response) == 5000


def test_reset_epoch_in_the_past_yields_negative_delay() -> None:
    reset = int(NOW_MS / 1000) - 2
    response = httpx.Response(429, headers={"X-RateLimit-Reset": str(reset)})

    assert _resolve(response) == -2000


def test_retry_after_wins_over_reset_header() -> None:
    reset = int(NOW_MS / 1000) + 30
    response = httpx.Response(
        429,
        headers={"Retry-After": "1", "X-RateLimit-Reset": str(reset)},
    )

    assert _resolve(response) == 1000


def test_unparseable_first_header_falls_through_to_next() -> None:
    reset = int(NOW_MS / 1000) + 4
    response = httpx.Response(
        429,
        headers={"Retry-After": "later", "X-RateLimit-Reset": str(reset)},
    )

    assert _resolve(response) == 4000


def test_custom_headers_follow_builtins_in_declared_order() -> None:
    headers = build_rate_limit_headers(
        [
            CustomRateLimitHeader(header="X-Wait", value_type="wait-seconds"),
            CustomRateLimitHeader(header="X-Reset", value_type="reset-utc-epoch-seconds"),
        ]
    )

    assert headers[: len(BUILTIN_RATE_LIMIT_HEADERS)] == BUILTIN_RATE_LIMIT_HEADERS
    assert [h.header for h in headers] == ["Retry-After", "X-RateLimit-Reset", "X-Wait", "X-Reset"]


def test_custom_header_applies_to_429_only() -> None:
    custom = CustomRateLimitHeader(header="X-Wait", value_type="wait-seconds")

    assert _resolve(httpx.Response(429, headers={"X-Wait": "2"}), custom) == 2000
    assert _resolve(httpx.Response(503, headers={"X-Wait": "2"}), custom) is None


def test_custom_reset_header() -> None:
    custom = CustomRateLimitHeader(header="RateLimit-Reset-At", value_type="reset-utc-epoch-seconds")
    reset = int(NOW_MS / 1000) + 10
    response = httpx.Response(429, headers={"RateLimit-Reset-At": str(reset)})

    assert _resolve(response, custom) == 10_000


@pytest.mark.parametrize("raw", ["9" * 400, "-" + "9" * 400, "1" * 5000])
def test_parse_header_int_rejects_values_beyond_float_range(raw: str) -> None:
    assert parse_header_int(raw) is None


def test_oversized_header_is_skipped_in_favour_of_the_next() -> None:
    reset = int(NOW_MS / 1000) + 3
    response = httpx.Response(429, headers={"Retry-After": "9" * 400, "X-RateLimit-Reset": str(reset)})

    assert _resolve(response) == 3000


def test_only_oversized_header_means_not_rate_limited() -> None:
    response = httpx.Response(429, headers={"Retry-After": "9" * 400})

    assert _resolve(response) is None
