#!/usr/bin/env python3
"""
Retry helpers with Tenacity for JSON-RPC reads

Provides exponential backoff for transient provider failures:
- Message-based transient error detection (rate limits, overloaded backends)
- Deterministic delays: base, 2*base, 4*base, ...
- Non-transient errors propagate on the first failure

Usage:
    from sentinel.utils.retry_decorator import call_with_retry

    block = await call_with_retry(lambda: rpc.get_block_number(), max_retries=3)
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from tenacity import (
    AsyncRetrying,
    after_log,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY_SECONDS = 1.0

# Lower-cased substrings that mark a failure as worth retrying
TRANSIENT_ERROR_MARKERS = (
    "429",
    "503",
    "rate limit",
    "rate-limit",
    "too many requests",
    "no backend",
    "currently healthy",
    "temporarily unavailable",
)


def is_transient_rpc_error(exc: BaseException) -> bool:
    """
    Decide whether a failed RPC call should be retried

    Providers report throttling in free-form text (HTTP status in the
    message, "no backend is currently healthy", ...), so the check is on
    the message rather than the exception type.

    Args:
        exc: Exception raised by the operation

    Returns:
        True if the message carries a transient marker
    """
    message = str(exc).lower()
    return any(marker in message for marker in TRANSIENT_ERROR_MARKERS)


async def call_with_retry(
    operation: Callable[[], Awaitable[Any]],
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_BASE_DELAY_SECONDS,
    sleep: Optional[Callable[[float], Awaitable[None]]] = None,
) -> Any:
    """
    Run a zero-argument coroutine factory with exponential backoff

    At most `max_retries` attempts are made. After attempt N fails with a
    transient error the helper waits `base_delay * 2**(N-1)` seconds.

    Args:
        operation: Callable returning a fresh awaitable per attempt
        max_retries: Maximum number of attempts (default: 3)
        base_delay: Delay before the second attempt, in seconds (default: 1.0)
        sleep: Async sleep used between attempts (default: asyncio.sleep)

    Returns:
        Result of the first successful attempt

    Raises:
        The operation's exception when it is not transient or attempts run out

    Example:
        logs = await call_with_retry(
            lambda: rpc.get_logs(token, 100, 200, [TRANSFER_TOPIC]),
            base_delay=0.5,
        )
    """
    if max_retries < 1:
        raise ValueError(f"max_retries must be at least 1, got {max_retries}")

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_retries),
        wait=wait_exponential(multiplier=base_delay, min=0),
        retry=retry_if_exception(is_transient_rpc_error),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        after=after_log(logger, logging.DEBUG),
        sleep=sleep or asyncio.sleep,
        reraise=True,
    )

    async for attempt in retrying:
        with attempt:
            return await operation()
