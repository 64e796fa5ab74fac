"""Retry loop: attempt, classify, back off, wait, repeat."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import cast

import httpx
from opentelemetry import trace
from opentelemetry.trace import Span, SpanKind
from opentelemetry.util.types import AttributeValue

from fetch_retries.backoff import error_backoff_ms
from fetch_retries.cancellation import CancellationToken, wait
from fetch_retries.classifier import is_retryable_error, is_retryable_response
from fetch_retries.events import OnRetry, RetryEvent
from fetch_retries.options import RetryOptions
from fetch_retries.ports import AttemptTransport
from fetch_retries.rate_limit import build_rate_limit_headers, resolve_rate_limit_delay

_LOGGER = logging.getLogger("fetch_retries.calls")


@dataclass
class RetryState:
    """Counters for one top-level call."""

    attempt: int = 0
    error_retries: int = 0
    rate_limit_retries: int = 0

    def as_data(self) -> dict[str, int]:
        return {
            "attempts": self.attempt,
            "error_retries": self.error_retries,
            "rate_limit_retries": self.rate_limit_retries,
        }


class RetryEngine:
    """Issue a request through ``transport`` until it succeeds, exhausts its budgets, or is cancelled."""

    def __init__(
        self,
        transport: AttemptTransport,
        options: RetryOptions,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._transport = transport
        self._options = options
        self._rate_limit_headers = build_rate_limit_headers(options.rate_limit.custom_headers)
        self._clock = clock

    @property
    def options(self) -> RetryOptions:
        return self._options

    async def run(
        self,
        request: httpx.Request,
        *,
        signal: CancellationToken | None = None,
        on_retry: OnRetry | None = None,
    ) -> httpx.Response:
        data: dict[str, object] = {"method": request.method, "url": str(request.url)}
        tracer = trace.get_tracer("fetch_retries")
        with tracer.start_as_current_span(
            "fetch_retries.request",
            kind=SpanKind.CLIENT,
            attributes={
                "http.request.method": request.method,
                "url.full": str(request.url),
                "fetch_retries.max_total_retries": self._options.max_total_retries,
            },
        ) as span:
            state = RetryState()
            start = time.perf_counter()
            try:
                response = await self._run_loop(request, state, signal, on_retry, span, data)
            except Exception as exc:
                elapsed = round((time.perf_counter() - start) * 1000, 2)
                span.set_attributes(_state_attributes(state))
                failure = data | state.as_data() | {"elapsed_ms": elapsed, "error_type": type(exc).__name__}
                if signal is not None and exc is signal.reason:
                    _LOGGER.info("fetch.request.cancelled", extra={"data": failure})
                else:
                    _LOGGER.warning("fetch.request.error", extra={"data": failure | {"error": str(exc)}})
                raise

            elapsed = round((time.perf_counter() - start) * 1000, 2)
            span.set_attributes(
                _state_attributes(state) | {"http.response.status_code": response.status_code}
            )
            _LOGGER.debug(
                "fetch.request.complete",
                extra={
                    "data": data
                    | state.as_data()
                    | {"status_code": response.status_code, "elapsed_ms": elapsed}
                },
            )
            return response

    async def _run_loop(
        self,
        request: httpx.Request,
        state: RetryState,
        signal: CancellationToken | None,
        on_retry: OnRetry | None,
        span: Span,
        data: dict[str, object],
    ) -> httpx.Response:
        options = self._options
        while True:
            if signal is not None:
                signal.raise_if_cancelled()
            state.attempt += 1
            response: httpx.Response | None = None
            error_to_retry: Exception | None = None

            try:
                response = await self._attempt(request, signal)
            except Exception as exc:
                if signal is not None:
                    signal.raise_if_cancelled()
                if not is_retryable_error(exc) or self._error_budget_spent(state):
                    raise
                error_to_retry = exc

            rate_limit_delay = self._rate_limit_delay(response) if response is not None else None
            rate_limit_retry = (
                rate_limit_delay is not None
                and state.rate_limit_retries < options.rate_limit.max_retries
            )
            retry = (
                error_to_retry is not None
                or (
                    response is not None
                    and is_retryable_response(response)
                    and not self._error_budget_spent(state)
                )
                or rate_limit_retry
            )
            if not retry:
                return cast(httpx.Response, response)

            if signal is not None:
                signal.raise_if_cancelled()

            if rate_limit_retry and rate_limit_delay is not None:
                state.rate_limit_retries += 1
                delay_ms = rate_limit_delay
            else:
                state.error_retries += 1
                delay_ms = error_backoff_ms(
                    state.error_retries,
                    initial_ms=options.initial_delay_ms,
                    factor=options.factor,
                )

            event = RetryEvent(
                response=response,
                error=error_to_retry,
                attempt=state.attempt,
                delay_ms=delay_ms,
                rate_limit_retry=rate_limit_retry,
            )
            self._emit(event, state, span, data, on_retry)
            await wait(delay_ms, signal)

    async def _attempt(self, request: httpx.Request, signal: CancellationToken | None) -> httpx.Response:
        if signal is None:
            return await self._transport(request)

        task = asyncio.ensure_future(self._transport(request))

        def _abort(_reason: BaseException) -> None:
            task.cancel()

        signal.add_callback(_abort)
        try:
            return await task
        except asyncio.CancelledError:
            reason = signal.reason
            if reason is not None and task.cancelled():
                raise reason.with_traceback(None) from None
            raise
        finally:
            signal.remove_callback(_abort)

    def _error_budget_spent(self, state: RetryState) -> bool:
        return state.error_retries >= self._options.max_retries

    def _rate_limit_delay(self, response: httpx.Response) -> float | None:
        return resolve_rate_limit_delay(
            response,
            self._rate_limit_headers,
            now_ms=self._clock() * 1000,
            max_delay_ms=self._options.rate_limit.max_delay_ms,
        )

    @staticmethod
    def _emit(
        event: RetryEvent,
        state: RetryState,
        span: Span,
        data: dict[str, object],
        on_retry: OnRetry | None,
    ) -> None:
        _LOGGER.info(
            "fetch.retry.scheduled",
            extra={
                "data": data
                | event.log_data()
                | {"error_retries": state.error_retries, "rate_limit_retries": state.rate_limit_retries}
            },
        )
        attributes: dict[str, AttributeValue] = {
            "fetch_retries.attempt": event.attempt,
            "fetch_retries.delay_ms": float(event.delay_ms),
            "fetch_retries.rate_limit_retry": event.rate_limit_retry,
        }
        if event.response is not None:
            attributes["http.response.status_code"] = event.response.status_code
        if event.error is not None:
            attributes["error.type"] = type(event.error).__name__
        span.add_event("fetch_retries.retry", attributes=attributes)
        if on_retry is not None:
            on_retry(event)


def _state_attributes(state: RetryState) -> dict[str, AttributeValue]:
    return {
        "fetch_retries.attempts": state.attempt,
        "fetch_retries.error_retries": state.error_retries,
        "fetch_retries.rate_limit_retries": state.rate_limit_retries,
    }


__all__ = ["RetryEngine", "RetryState"]
