"""
Per-route capture: directory setup, readiness, then every viewport in order.

A viewport that fails (screenshots, master video or an artifact write) is
recorded in the result's error while the remaining viewports are still
captured. Route directory creation failures propagate as FileSystemError.
"""

from __future__ import annotations

import time

from playwright.async_api import Browser, Page

from capture.crawl.readiness import wait_for_page_ready
from capture.crawl.screenshots import capture_screenshots
from capture.crawl.video import capture_video
from capture.errors import CaptureError, FileSystemError
from capture.models import CaptureConfig, CaptureResult, ScreenshotPaths, VideoQualityPaths
from capture.routes import route_slug
from capture.storage import build_route_dir, capture_timestamp, create_route_directories
from capture.transcoder import FfmpegTranscoder
from shared.logging import bind_request_context, get_logger, unbind_request_context

logger = get_logger(__name__)


async def capture_page(
    page: Page,
    url: str,
    *,
    browser: Browser,
    config: CaptureConfig,
    transcoder: FfmpegTranscoder,
    route: str | None = None,
) -> CaptureResult:
    """
    Capture screenshots (and optional video) for every configured viewport of one route.

    route names the output directory; the worker pool passes a run-unique one.
    """
    route = route or route_slug(url)
    route_dir = build_route_dir(config.output_dir, route)
    create_route_directories(route_dir, config.capture_video)

    await wait_for_page_ready(page, wait_time_ms=config.wait_time_ms)
    timestamp = capture_timestamp()

    screenshots: dict[str, ScreenshotPaths] = {}
    videos: dict[str, VideoQualityPaths] = {}
    errors: list[str] = []

    try:
        for viewport in config.viewports:
            bind_request_context(viewport=viewport.name)
            logger.info(
                "viewport_capture_started",
                url=url,
                width=viewport.width,
                height=viewport.height,
            )
            try:
                screenshots[viewport.name] = await capture_screenshots(
                    page,
                    viewport,
                    route_dir,
                    timestamp,
                    url=url,
                    hide_selectors=config.hide_selectors,
                    settle_ms=config.viewport_settle_ms,
                )
            except (CaptureError, FileSystemError) as e:
                logger.error("viewport_capture_failed", url=url, error=str(e))
                errors.append(f"{viewport.name}: {e}")
                continue

            if not config.capture_video:
                continue
            try:
                videos[viewport.name] = await capture_video(
                    browser,
                    url,
                    viewport,
                    route_dir,
                    timestamp,
                    options=config.video_options,
                    transcoder=transcoder,
                    wait_time_ms=config.wait_time_ms,
                    nav_timeout_ms=config.nav_timeout_ms,
                )
            except (CaptureError, FileSystemError) as e:
                logger.error("viewport_video_failed", url=url, error=str(e))
                errors.append(f"{viewport.name} video: {e}")
    finally:
        unbind_request_context("viewport")

    return CaptureResult(
        url=url,
        route=route,
        screenshots=screenshots,
        videos=videos or None,
        error="; ".join(errors) or None,
        timestamp=int(time.time() * 1000),
    )
