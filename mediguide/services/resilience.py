"""
Retry with exponential backoff for calls to throttled remote services.
Only rate-limit failures are retried; every other error propagates at once.
"""

import asyncio
from typing import Any, Awaitable, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from mediguide.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

RATE_LIMIT_STATUS = 429
RATE_LIMIT_MARKERS = ("429", "Too Many Requests")
RATE_LIMIT_REASON = "RATE_LIMIT_EXCEEDED"


def _detail_reason(detail: Any) -> Any:
    if isinstance(detail, dict):
        return detail.get("reason")
    return getattr(detail, "reason", None)


def is_rate_limited(error: BaseException) -> bool:
    """
    Tells whether an error means the remote service is throttling us.

    Recognises an HTTP 429 status (on the error or its response), the
    textual markers "429" / "Too Many Requests", and structured error
    details whose reason is RATE_LIMIT_EXCEEDED.
    """
    for attr in ("status", "status_code", "code"):
        if getattr(error, attr, None) == RATE_LIMIT_STATUS:
            return True

    response = getattr(error, "response", None)
    if getattr(response, "status_code", None) == RATE_LIMIT_STATUS:
        return True

    message = str(error)
    if any(marker in message for marker in RATE_LIMIT_MARKERS):
        return True

    details = getattr(error, "error_details", None) or getattr(error, "errorDetails", None)
    if isinstance(details, (list, tuple)):
        return any(_detail_reason(d) == RATE_LIMIT_REASON for d in details)

    return False


def _log_backoff(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "remote_call_rate_limited",
        attempt=retry_state.attempt_number,
        delay=retry_state.next_action.sleep if retry_state.next_action else None,
        error=str(error),
    )


async def call_with_retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    initial_delay: float = 2.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Awaits `operation` until it succeeds, backing off on rate limits.

    Attempts are strictly sequential. After the n-th rate-limited failure
    the wrapper sleeps initial_delay * 2**(n-1) seconds. There is no
    built-in cancellation: callers that need a deadline wrap the whole
    call in asyncio.wait_for.

    Args:
        operation: Zero-argument coroutine function performing the call
        max_attempts: Total number of attempts including the first
        initial_delay: First backoff delay in seconds
        sleep: Awaitable sleep, replaceable in tests

    Returns:
        The operation's result

    Raises:
        Exception: The last error raised by the operation
    """
    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=initial_delay, exp_base=2),
        retry=retry_if_exception(is_rate_limited),
        before_sleep=_log_backoff,
        sleep=sleep,
        reraise=True,
    ):
        with attempt:
            return await operation()
