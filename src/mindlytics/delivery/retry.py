"""
Module: delivery/retry.py
Description: Retry policy for queued deliveries.

Classifies transport results as retryable or terminal and computes the
wait before the next attempt: the server's Retry-After when present,
otherwise exponential backoff from a configurable base. There is no
jitter. Thrown transport errors are never retried.
"""

import asyncio
import math
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Awaitable, Callable, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_result,
    stop_after_attempt,
)
from tenacity.wait import wait_base

from mindlytics.delivery.transport import TransportResult

RETRYABLE_STATUS_CODES = frozenset({408, 429, 502, 503, 504})

SleepFn = Callable[[float], Awaitable[Any]]


def is_retryable(result: TransportResult) -> bool:
    """True when a failed result carries a transient status code."""
    return not result.success and result.status in RETRYABLE_STATUS_CODES


def retry_after_seconds(headers: httpx.Headers) -> Optional[float]:
    """
    Read a Retry-After header.

    Accepts delta-seconds or an HTTP-date. Dates in the past give 0;
    infinite or NaN values count as unparsable.

    Args:
        headers: Response headers (case-insensitive)

    Returns:
        Seconds to wait, or None if the header is absent or unparsable
    """
    value = headers.get('retry-after')
    if value is None:
        return None

    value = value.strip()
    try:
        seconds = float(value)
    except ValueError:
        pass
    else:
        if not math.isfinite(seconds):
            return None
        return max(0.0, seconds)

    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())


class wait_retry_after_or_exponential(wait_base):
    """
    Wait for Retry-After if the server sent one, else base * 2 ** attempt.

    The attempt number is that of the attempt which just failed, starting
    at 1, so the first retry waits twice the base delay.
    """

    def __init__(self, base_delay_ms: int = 1000):
        self.base_delay_ms = base_delay_ms

    def __call__(self, retry_state: RetryCallState) -> float:
        result = retry_state.outcome.result()
        server_delay = retry_after_seconds(result.headers)
        if server_delay is not None:
            return server_delay
        return self.base_delay_ms * 2 ** retry_state.attempt_number / 1000


def _last_result(retry_state: RetryCallState) -> TransportResult:
    return retry_state.outcome.result()


def build_retrying(
    max_retries: int,
    base_delay_ms: int,
    sleep: SleepFn = asyncio.sleep,
    before_sleep: Optional[Callable[[RetryCallState], None]] = None
) -> AsyncRetrying:
    """
    Build the retry controller for one queue item.

    Stops after max_retries attempts and hands back the last result
    instead of raising RetryError, so the queue can record it.

    Args:
        max_retries: Total attempts allowed
        base_delay_ms: Seed for exponential backoff
        sleep: Async sleep used between attempts
        before_sleep: Hook called before each wait

    Returns:
        Configured AsyncRetrying instance
    """
    kwargs = {}
    if before_sleep is not None:
        kwargs['before_sleep'] = before_sleep

    return AsyncRetrying(
        stop=stop_after_attempt(max_retries),
        wait=wait_retry_after_or_exponential(base_delay_ms),
        retry=retry_if_result(is_retryable),
        retry_error_callback=_last_result,
        sleep=sleep,
        **kwargs
    )
