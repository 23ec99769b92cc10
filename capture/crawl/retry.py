"""
Bounded-attempt retry for capture operations (viewport resize, screenshots, video).

No backoff: capture failures are usually transient page-state errors
("Execution context was destroyed", "Target closed") that clear immediately.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, TypeVar

from capture.constants import MAX_CAPTURE_ATTEMPTS
from shared.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


async def run_with_retries(
    operation: Callable[[], Awaitable[T]],
    *,
    operation_name: str,
    attempts: int = MAX_CAPTURE_ATTEMPTS,
    **log_context: Any,
) -> T:
    """
    Await operation() up to `attempts` times; re-raise the last error.

    Cancellation is never retried.
    """
    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except Exception as e:
            if attempt >= attempts:
                logger.warning(
                    "capture.failed",
                    operation=operation_name,
                    attempt=attempt,
                    error=str(e),
                    error_type=type(e).__name__,
                    **log_context,
                )
                raise
            logger.info(
                "capture.retry",
                operation=operation_name,
                attempt=attempt,
                error=str(e),
                error_type=type(e).__name__,
                **log_context,
            )
    raise ValueError("attempts must be >= 1")
