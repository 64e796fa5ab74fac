"""Status and error codes that make a request worth retrying."""

from __future__ import annotations

# 408 Request Timeout, 425 Too Early, 429 Too Many Requests, 500 Internal Server Error,
# 502 Bad Gateway, 503 Service Unavailable, 504 Gateway Timeout
RETRY_STATUS_CODES: frozenset[int] = frozenset({408, 425, 429, 500, 502, 503, 504})

# Statuses on which the built-in rate-limit headers are honoured.
RATE_LIMIT_STATUS_CODES: tuple[int, ...] = (429, 503)

# Statuses on which user-declared rate-limit headers are honoured.
CUSTOM_RATE_LIMIT_STATUS_CODES: tuple[int, ...] = (429,)

RETRY_ERROR_CODES: frozenset[str] = frozenset(
    {
        "ENOTFOUND",  # no DNS record found
        "ECONNREFUSED",
        "ECONNRESET",
        "ETIMEDOUT",
        "EPIPE",
        "EAI_AGAIN",  # DNS lookup timed out
        "EHOSTDOWN",
        "EHOSTUNREACH",
        "ENETDOWN",
        "ENETRESET",
        "ENETUNREACH",
        "ECONNABORTED",
    }
)


__all__ = [
    "CUSTOM_RATE_LIMIT_STATUS_CODES",
    "RATE_LIMIT_STATUS_CODES",
    "RETRY_ERROR_CODES",
    "RETRY_STATUS_CODES",
]
