"""
Navigation retry helper: bounded attempts, deterministic backoff, failure classification.

All route navigations in worker sessions go through navigate_with_retry.
Max 3 attempts with backoff 1s / 2s / 4s plus 0-500 ms jitter. Exceptions
(timeouts, net::ERR_*, page crashes) and throttling statuses (403, 429, 503)
are retried; any other response, including 4xx/5xx, is captured as-is.
"""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass
from typing import Optional

from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from capture.constants import MAX_NAV_ATTEMPTS, NAV_TIMEOUT_MS
from shared.logging import get_logger

logger = get_logger(__name__)

BACKOFF_SECONDS = (1, 2, 4)
JITTER_MS = 500


@dataclass
class NavigateResult:
    """Result of navigate_with_retry."""

    success: bool
    error_summary: Optional[str] = None


def _backoff_seconds(attempt: int) -> float:
    """Exponential backoff for attempt 1-based index; add jitter 0–500 ms."""
    base = BACKOFF_SECONDS[min(attempt - 1, len(BACKOFF_SECONDS) - 1)]
    jitter = random.uniform(0, JITTER_MS / 1000.0)
    return base + jitter


def _classify_failure(exc: BaseException) -> str:
    """Reason label for logs: navigation_timeout, net_err, or navigation_error."""
    if isinstance(exc, PlaywrightTimeoutError):
        return "navigation_timeout"
    msg = (getattr(exc, "message", None) or str(exc)).lower()
    if "net::err_" in msg:
        return "net_err"
    return "navigation_error"


def _is_retryable_status(status: Optional[int]) -> bool:
    """Retry only on 403, 503, or 429 (rate-limit)."""
    return status in (403, 503, 429)


def _error_summary(reason: str, exc: BaseException) -> str:
    if reason == "navigation_timeout":
        return "Navigation timeout"
    return f"Navigation failed: {exc}"


async def navigate_with_retry(
    page: Page,
    url: str,
    *,
    nav_timeout_ms: int = NAV_TIMEOUT_MS,
    max_attempts: int = MAX_NAV_ATTEMPTS,
    wait_until: str = "networkidle",
) -> NavigateResult:
    """
    Navigate page to url with up to max_attempts attempts.

    Returns a NavigateResult instead of raising so the caller decides how a
    failed route is recorded.
    """
    for attempt in range(1, max_attempts + 1):
        logger.info("navigation.attempt", attempt=attempt, url=url)
        try:
            response = await page.goto(url, wait_until=wait_until, timeout=nav_timeout_ms)
        except Exception as e:
            reason = _classify_failure(e)
            if attempt < max_attempts:
                backoff = _backoff_seconds(attempt)
                logger.info(
                    "navigation.retry",
                    reason=reason,
                    attempt=attempt,
                    backoff_s=round(backoff, 2),
                    url=url,
                    error=str(e),
                )
                await asyncio.sleep(backoff)
                continue
            logger.error(
                "navigation.failed",
                reason=reason,
                attempt=attempt,
                url=url,
                error=str(e),
                error_type=type(e).__name__,
            )
            return NavigateResult(success=False, error_summary=_error_summary(reason, e))

        status = response.status if response is not None else None

        if _is_retryable_status(status):
            if attempt < max_attempts:
                backoff = _backoff_seconds(attempt)
                logger.info(
                    "navigation.retry",
                    reason=f"status_{status}",
                    attempt=attempt,
                    backoff_s=round(backoff, 2),
                    url=url,
                    status=status,
                )
                await asyncio.sleep(backoff)
                continue
            logger.error("navigation.failed", reason=f"status_{status}", attempt=attempt, url=url)
            summary = "Rate limited (429)" if status == 429 else f"Blocked ({status})"
            return NavigateResult(success=False, error_summary=summary)

        if status is not None and status >= 400:
            # Error pages are still routes worth capturing.
            logger.warning("navigation.error_status", attempt=attempt, url=url, status=status)

        logger.info("navigation.success", attempt=attempt, url=url, status=status)
        return NavigateResult(success=True)

    # Only reached when max_attempts < 1
    return NavigateResult(success=False, error_summary="Navigation failed")
