"""
Bounded retry loop with two-tier backoff.

    attempt 1 ──► fail ──► classify ──► retryable and budget left?
                                          NO  → raise ProviderRequestError
                                          YES → sleep, attempt 2 ...

Backoff:
  Server sent Retry-After  → sleep exactly that many seconds
  Otherwise                → min(1 s × 2^(attempt-1), 30 s)   (1 s, 2 s, 4 s, ...)

Total tries are bounded by max_retries + 1.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, TypeVar

from knowledge_providers.core.errors import ClassifiedError, ProviderRequestError, classify_error

logger = logging.getLogger(__name__)

T = TypeVar("T")

BASE_DELAY_SECONDS = 1.0
MAX_DELAY_SECONDS  = 30.0


async def _sleep(seconds: float) -> None:
    await asyncio.sleep(seconds)


def compute_backoff(attempt: int, error: ClassifiedError) -> float:
    """
    Delay in seconds before the attempt that follows ``attempt`` (1-based).

    A server-provided retry-after hint always wins over the exponential
    schedule, including when it is longer than the cap.
    """
    if error.retry_after is not None:
        return error.retry_after
    return min(BASE_DELAY_SECONDS * (2 ** (attempt - 1)), MAX_DELAY_SECONDS)


async def run_with_retry(
    operation:      Callable[[], Awaitable[T]],
    *,
    max_retries:    int,
    service:        str,
    operation_name: str = "request",
    classify:       Callable[[BaseException], ClassifiedError] = classify_error,
) -> T:
    """
    Run ``operation`` until it succeeds, fails permanently, or the retry
    budget is spent.

    Args:
        operation:      zero-arg coroutine function; called once per attempt
        max_retries:    retries after the first attempt
        service:        prefix for the surfaced error, e.g. "Unstructured.io processing"
        operation_name: label for log lines (file name, batch index, ...)
        classify:       exception → ClassifiedError

    Raises:
        ProviderRequestError: chained to the last underlying exception.
    """
    max_attempts = max(max_retries, 0) + 1
    t0 = time.monotonic()
    attempt = 1

    while True:
        try:
            result = await operation()
        except Exception as exc:
            error = classify(exc)
            elapsed_ms = (time.monotonic() - t0) * 1000

            logger.error(
                "%s failed | operation=%s attempt=%d/%d elapsed_ms=%.0f "
                "error_type=%s code=%s retryable=%s message=%s",
                service, operation_name, attempt, max_attempts, elapsed_ms,
                error.type.value, error.code, error.retryable, error.message,
            )

            if not error.retryable or attempt >= max_attempts:
                raise ProviderRequestError(service, error, attempt) from exc

            delay = compute_backoff(attempt, error)
            logger.info(
                "Retrying | operation=%s next_attempt=%d delay=%.1fs retry_after=%s",
                operation_name, attempt + 1, delay, error.retry_after,
            )
            await _sleep(delay)
            attempt += 1
            continue

        if attempt > 1:
            logger.info(
                "%s succeeded after retry | operation=%s attempt=%d elapsed_ms=%.0f",
                service, operation_name, attempt, (time.monotonic() - t0) * 1000,
            )
        return result
