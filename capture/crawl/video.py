"""
Video capture for one viewport: a master recording plus transcoded lower tiers.

The master is recorded in a short-lived browser context, flushed by closing
that context, and moved to a deterministic path. Medium and low tiers are
transcoded from the master one after the other; a failed transcode only drops
that tier.
"""

from __future__ import annotations

import asyncio
import shutil
from pathlib import Path

from playwright.async_api import Browser, Page

from capture.constants import (
    MASTER_QUALITY,
    NAV_TIMEOUT_MS,
    SCROLL_RETURN_WAIT_MS,
    TRANSCODED_QUALITIES,
    VIDEO_SCROLL_STEPS,
)
from capture.crawl.browser import video_session
from capture.crawl.retry import run_with_retries
from capture.errors import CaptureError
from capture.models import VideoOptions, VideoQualityPaths, ViewportConfig
from capture.storage import build_video_path, move_file, video_dir
from capture.transcoder import FfmpegTranscoder
from shared.logging import get_logger

logger = get_logger(__name__)

SCROLL_STEP_SCRIPT = """
(step) => {
  window.scrollTo({ top: (document.body.scrollHeight / %d) * step, behavior: 'smooth' });
}
""" % VIDEO_SCROLL_STEPS

SCROLL_TOP_SCRIPT = "() => window.scrollTo({ top: 0, behavior: 'smooth' })"


async def scroll_sweep(page: Page, duration_ms: int, steps: int = VIDEO_SCROLL_STEPS) -> None:
    """
    Scroll down in equal steps spread over duration_ms, then back to top.

    Scroll errors are ignored; the recording continues regardless.
    """
    delay = duration_ms / (steps + 1) / 1000
    for step in range(1, steps + 1):
        try:
            await page.evaluate(SCROLL_STEP_SCRIPT, step)
        except Exception as e:
            logger.debug("video_scroll_failed", step=step, error=str(e))
        await asyncio.sleep(delay)

    try:
        await page.evaluate(SCROLL_TOP_SCRIPT)
    except Exception as e:
        logger.debug("video_scroll_failed", step="top", error=str(e))
    await asyncio.sleep(SCROLL_RETURN_WAIT_MS / 1000)


async def record_master(
    browser: Browser,
    url: str,
    viewport: ViewportConfig,
    route_dir: Path,
    timestamp: str,
    *,
    options: VideoOptions,
    wait_time_ms: int = 0,
    nav_timeout_ms: int = NAV_TIMEOUT_MS,
) -> Path:
    """Record one pass over url and move the flushed file to the high-quality path."""
    _, scale, quality_dir = MASTER_QUALITY
    record_dir = video_dir(route_dir, quality_dir) / f".recording-{viewport.label}-{timestamp}"
    target = build_video_path(route_dir, quality_dir, viewport, timestamp)

    try:
        async with video_session(browser, viewport, record_dir, scale=scale) as page:
            video = page.video
            await page.goto(url, wait_until="networkidle", timeout=nav_timeout_ms)
            if wait_time_ms:
                await asyncio.sleep(wait_time_ms / 1000)
            if options.interactions:
                await scroll_sweep(page, options.duration_ms)
            else:
                await asyncio.sleep(options.duration_ms / 1000)

        # Context is closed here, so the recording is complete on disk.
        if video is None:
            raise CaptureError(url, "Video recording unavailable")
        raw_path = await video.path()
        if not raw_path:
            raise CaptureError(url, "Video path is empty")
        return move_file(Path(raw_path), target)
    finally:
        shutil.rmtree(record_dir, ignore_errors=True)


async def capture_video(
    browser: Browser,
    url: str,
    viewport: ViewportConfig,
    route_dir: Path,
    timestamp: str,
    *,
    options: VideoOptions,
    transcoder: FfmpegTranscoder,
    wait_time_ms: int = 0,
    nav_timeout_ms: int = NAV_TIMEOUT_MS,
) -> VideoQualityPaths:
    """
    Record the master (2 attempts) and transcode the lower tiers.

    Raises CaptureError only when the master recording fails.
    """
    try:
        master = await run_with_retries(
            lambda: record_master(
                browser,
                url,
                viewport,
                route_dir,
                timestamp,
                options=options,
                wait_time_ms=wait_time_ms,
                nav_timeout_ms=nav_timeout_ms,
            ),
            operation_name="video_master",
            viewport=viewport.name,
        )
    except CaptureError:
        raise
    except Exception as e:
        raise CaptureError(url, f"Failed to record video for {viewport.name}", e) from e

    tiers: dict[str, str] = {}
    for tier, scale, quality_dir in TRANSCODED_QUALITIES:
        output = build_video_path(route_dir, quality_dir, viewport, timestamp)
        if await transcoder.transcode(master, output, scale):
            tiers[tier] = str(output)
        else:
            logger.warning("video_tier_omitted", tier=tier, viewport=viewport.name, url=url)

    logger.info(
        "videos_saved",
        viewport=viewport.name,
        label=viewport.label,
        tiers=["high", *tiers.keys()],
    )
    return VideoQualityPaths(high=str(master), **tiers)
