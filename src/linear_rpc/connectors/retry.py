"""Resilient execution of Linear API operations.

Every remote operation runs through ``execute_with_retry``, which retries
with jittered exponential backoff and honours Retry-After hints on rate
limits. Once the budget is spent it raises a single ``UpstreamError``.
"""

import asyncio
import logging
import random
import time
from typing import Awaitable, Callable, Optional, TypeVar

from ..observability import metrics
from .exceptions import (
    LinearAuthError,
    LinearRateLimitError,
    ResolutionError,
    UpstreamError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 3
DEFAULT_MIN_DELAY = 1.0
DEFAULT_MAX_DELAY = 10.0


async def execute_with_retry(
    operation: Callable[[], Awaitable[T]],
    operation_name: str,
    *,
    max_retries: int = DEFAULT_MAX_RETRIES,
    min_delay: float = DEFAULT_MIN_DELAY,
    max_delay: float = DEFAULT_MAX_DELAY,
) -> T:
    """Run ``operation`` with retry and backoff.

    The whole operation is retried on any failure except:
      - ResolutionError (InvalidParams / NotFound): re-raised unchanged.
      - LinearAuthError: not retried, converted to UpstreamError.

    Args:
        operation: Zero-argument callable returning an awaitable.
        operation_name: Label for logs and metrics.
        max_retries: Retries after the first attempt (default 3, so 4 attempts).
        min_delay: Backoff floor in seconds.
        max_delay: Backoff ceiling in seconds.

    Returns:
        The operation's result.

    Raises:
        ResolutionError: Propagated from the operation untouched.
        UpstreamError: Retry budget exhausted or non-retryable transport failure.
    """
    started = time.perf_counter()
    last_exception: Optional[BaseException] = None

    for attempt in range(max_retries + 1):
        try:
            result = await operation()
        except ResolutionError:
            metrics.record_operation(operation_name, "rejected")
            raise
        except Exception as exc:
            last_exception = exc
            retries_left = 0 if isinstance(exc, LinearAuthError) else max_retries - attempt
            _log_failed_attempt(operation_name, attempt + 1, retries_left, exc)
            if retries_left <= 0:
                break
            await before_next_attempt(
                exc, attempt, operation_name, min_delay=min_delay, max_delay=max_delay
            )
            continue

        metrics.record_operation(
            operation_name, "success", time.perf_counter() - started
        )
        return result

    message = _error_message(last_exception)
    logger.error(
        "Linear API operation %s failed: %s",
        operation_name,
        message,
        extra={"fields": {"operation": operation_name, "error": message}},
    )
    metrics.record_operation(operation_name, "error")
    raise UpstreamError(operation_name, message) from last_exception


async def before_next_attempt(
    exc: BaseException,
    attempt: int,
    operation_name: str,
    *,
    min_delay: float = DEFAULT_MIN_DELAY,
    max_delay: float = DEFAULT_MAX_DELAY,
) -> float:
    """Wait before the next attempt and return the delay used.

    A rate-limit failure carrying a Retry-After hint waits exactly the hint;
    everything else waits the computed backoff.
    """
    delay = compute_backoff_delay(attempt, min_delay, max_delay)

    if isinstance(exc, LinearRateLimitError):
        metrics.record_rate_limited()
        if exc.retry_after is not None:
            delay = exc.retry_after
            logger.warning(
                "Rate limited by Linear API, waiting %.1fs before retrying %s",
                delay,
                operation_name,
                extra={"fields": {"operation": operation_name, "wait_seconds": delay}},
            )

    await asyncio.sleep(delay)
    return delay


def compute_backoff_delay(
    attempt: int,
    min_delay: float = DEFAULT_MIN_DELAY,
    max_delay: float = DEFAULT_MAX_DELAY,
) -> float:
    """Exponential backoff with jitter, bounded to [min_delay, max_delay].

    delay = uniform(min_delay, min(max_delay, min_delay * 2^attempt))
    """
    ceiling = min(max_delay, min_delay * (2 ** attempt))
    return random.uniform(min_delay, max(ceiling, min_delay))


def _log_failed_attempt(
    operation_name: str, attempt: int, retries_left: int, exc: BaseException
) -> None:
    message = _error_message(exc)
    metrics.record_attempt_failure(operation_name)
    logger.warning(
        "Attempt %d of %s failed (%d retries left): %s",
        attempt,
        operation_name,
        retries_left,
        message,
        extra={
            "fields": {
                "attempt": attempt,
                "retries_left": retries_left,
                "operation": operation_name,
                "error": message,
            }
        },
    )


def _error_message(exc: Optional[BaseException]) -> str:
    if exc is None:
        return "unknown error"
    return str(exc) or type(exc).__name__
