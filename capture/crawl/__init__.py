"""
Playwright-facing helpers for route capture.

This package holds everything that drives the browser: sessions, navigation
with retry, link discovery, screenshots and video.

Public API: re-exports the symbols used by the pipeline, scheduler and tests so
that `from capture.crawl import ...` stays valid.
"""

from __future__ import annotations

from capture.crawl.browser import browser_process, launch_browser, video_session, worker_session
from capture.crawl.links import (
    DISCOVER_LINKS_SCRIPT,
    EXPAND_MENUS_SCRIPT,
    expand_menus,
    extract_links,
    filter_candidate_links,
)
from capture.crawl.navigation_retry import NavigateResult, navigate_with_retry
from capture.crawl.readiness import wait_for_page_ready
from capture.crawl.retry import run_with_retries
from capture.crawl.screenshots import (
    build_hide_css,
    capture_screenshots,
    hidden_selectors,
    reencode_image,
)
from capture.crawl.video import capture_video, record_master, scroll_sweep

__all__ = [
    # browser
    "browser_process",
    "launch_browser",
    "worker_session",
    "video_session",
    # navigation_retry
    "NavigateResult",
    "navigate_with_retry",
    # readiness
    "wait_for_page_ready",
    # retry
    "run_with_retries",
    # links
    "DISCOVER_LINKS_SCRIPT",
    "EXPAND_MENUS_SCRIPT",
    "expand_menus",
    "extract_links",
    "filter_candidate_links",
    # screenshots
    "build_hide_css",
    "capture_screenshots",
    "hidden_selectors",
    "reencode_image",
    # video
    "capture_video",
    "record_master",
    "scroll_sweep",
]
