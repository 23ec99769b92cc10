"""
Browser lifecycle: launch, per-worker sessions, short-lived video sessions.

Every session is an async context manager; its browser context is closed on
every exit path so recordings are flushed and no pages leak between routes.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from capture.constants import BROWSER_LAUNCH_ARGS
from capture.errors import BrowserError
from capture.models import ViewportConfig
from shared.logging import get_logger

logger = get_logger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)


async def launch_browser(playwright: Playwright, headless: bool = True) -> Browser:
    """Launch the shared Chromium process. Raises BrowserError on failure."""
    try:
        browser = await playwright.chromium.launch(
            headless=headless,
            args=list(BROWSER_LAUNCH_ARGS),
        )
    except Exception as e:
        logger.error("browser_launch_failed", error=str(e), error_type=type(e).__name__)
        raise BrowserError(f"Failed to initialize browser: {e}") from e
    logger.info("browser_initialized", headless=headless)
    return browser


@asynccontextmanager
async def browser_process(headless: bool = True) -> AsyncIterator[Browser]:
    """
    Start Playwright and one Chromium process for a run; both are closed on exit.

    Raises BrowserError when either cannot start.
    """
    try:
        manager = async_playwright()
        playwright = await manager.start()
    except Exception as e:
        logger.error("playwright_start_failed", error=str(e), error_type=type(e).__name__)
        raise BrowserError(f"Failed to start browser driver: {e}") from e
    try:
        browser = await launch_browser(playwright, headless=headless)
        try:
            yield browser
        finally:
            try:
                await browser.close()
            except Exception as e:
                logger.warning("browser_close_failed", error=str(e), error_type=type(e).__name__)
            logger.info("browser_cleanup_complete")
    finally:
        await playwright.stop()


async def _new_context(browser: Browser, **options) -> BrowserContext:
    """Browser context with a stable UA, locale and timezone."""
    return await browser.new_context(
        user_agent=USER_AGENT,
        timezone_id="America/New_York",
        locale="en-US",
        **options,
    )


async def _close_context(context: BrowserContext, **log_context) -> None:
    try:
        await context.close()
    except Exception as e:
        logger.warning(
            "context_close_failed",
            error=str(e),
            error_type=type(e).__name__,
            **log_context,
        )


@asynccontextmanager
async def worker_session(browser: Browser, worker_id: int) -> AsyncIterator[Page]:
    """
    One context + page owned by a single worker for the whole run.

    Raises BrowserError if the session cannot be created.
    """
    try:
        context = await _new_context(browser)
    except Exception as e:
        raise BrowserError(f"Worker {worker_id}: failed to create context: {e}") from e
    try:
        try:
            page = await context.new_page()
        except Exception as e:
            raise BrowserError(f"Worker {worker_id}: failed to create page: {e}") from e
        logger.info("worker_session_ready", worker=worker_id)
        yield page
    finally:
        await _close_context(context, worker=worker_id)


@asynccontextmanager
async def video_session(
    browser: Browser,
    viewport: ViewportConfig,
    record_dir: Path,
    scale: float = 1.0,
) -> AsyncIterator[Page]:
    """
    Short-lived recording context sized to viewport * scale.

    The recording is only complete once the context closes, which happens on
    exit from this block; read page.video after leaving it.
    """
    context = await _new_context(
        browser,
        viewport={"width": viewport.width, "height": viewport.height},
        record_video_dir=str(record_dir),
        record_video_size={
            "width": int(viewport.width * scale),
            "height": int(viewport.height * scale),
        },
    )
    try:
        page = await context.new_page()
        yield page
    finally:
        await _close_context(context, viewport=viewport.name)
