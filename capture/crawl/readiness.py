"""
Page readiness before capture: network idle (soft timeout) plus the configured wait.

A soft timeout is logged and capture continues; slow third-party requests
should not fail a route.
"""

from __future__ import annotations

import asyncio
import time

from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from capture.constants import NETWORK_IDLE_TIMEOUT_MS
from shared.logging import get_logger

logger = get_logger(__name__)


async def wait_for_page_ready(
    page: Page,
    wait_time_ms: int = 0,
    soft_timeout: int = NETWORK_IDLE_TIMEOUT_MS,
) -> None:
    """Wait for network idle, then wait_time_ms for delayed content."""
    started = time.monotonic()
    soft_timed_out = False
    try:
        await page.wait_for_load_state("networkidle", timeout=soft_timeout)
    except PlaywrightTimeoutError:
        logger.warning("page_ready_soft_timeout", timeout_ms=soft_timeout)
        soft_timed_out = True

    if wait_time_ms:
        await asyncio.sleep(wait_time_ms / 1000)

    logger.info(
        "readiness_complete",
        total_wait_ms=round((time.monotonic() - started) * 1000),
        soft_timeout=soft_timed_out,
    )
