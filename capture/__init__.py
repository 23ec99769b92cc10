"""
Site capture engine.

Crawls a website from a seed URL within a host scope and captures every
discovered route at several viewports (PNG, WebP and JPEG screenshots, plus
optional multi-quality video), then writes JSON and Markdown reports.

Public API:
    CaptureService(config).capture_website(url) -> dict[normalized_url, CaptureResult]
    run_capture(url, config) -> same, synchronous
"""

from __future__ import annotations

from capture.errors import BrowserError, CaptureError, FileSystemError
from capture.models import (
    CaptureConfig,
    CaptureReport,
    CaptureResult,
    ScreenshotPaths,
    VideoOptions,
    VideoQualityPaths,
    ViewportConfig,
)
from capture.service import CaptureService, run_capture

__all__ = [
    # service
    "CaptureService",
    "run_capture",
    # models
    "CaptureConfig",
    "CaptureReport",
    "CaptureResult",
    "ScreenshotPaths",
    "VideoOptions",
    "VideoQualityPaths",
    "ViewportConfig",
    # errors
    "BrowserError",
    "CaptureError",
    "FileSystemError",
]
