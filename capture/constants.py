"""
Capture constants: default viewports, retry budgets, timeouts, quality tiers, output names.
"""

from __future__ import annotations

# Default responsive breakpoints (name, width, height)
DEFAULT_VIEWPORTS = (
    ("desktop", 1920, 1080),
    ("tablet", 768, 1024),
    ("mobile", 375, 667),
)

DEFAULT_OUTPUT_DIR = "ui-captures"
DEFAULT_MAX_DEPTH = 2
DEFAULT_WAIT_TIME_MS = 2000
DEFAULT_ROUTE_CONCURRENCY = 2
DEFAULT_VIDEO_DURATION_MS = 10000
DEFAULT_TRANSCODER_PATH = "ffmpeg"

# Retry budgets (attempts, not retries)
MAX_NAV_ATTEMPTS = 3
MAX_CAPTURE_ATTEMPTS = 2

# Timeouts (in milliseconds)
NAV_TIMEOUT_MS = 30_000
NETWORK_IDLE_TIMEOUT_MS = 10_000
VIEWPORT_SETTLE_MS = 1000
SCROLL_RETURN_WAIT_MS = 1000

# Queue sizing: capacity never drops below the floor, grows with concurrency
QUEUE_CAPACITY_FLOOR = 32
QUEUE_CAPACITY_PER_WORKER = 8

# Screenshot encodings (directory name and file extension) and lossy qualities
PNG_FORMAT = "png"
WEBP_FORMAT = "webp"
JPG_FORMAT = "jpg"
SCREENSHOT_FORMATS = (PNG_FORMAT, WEBP_FORMAT, JPG_FORMAT)
WEBP_QUALITY = 90
JPEG_QUALITY = 85
HISTORY_DIR = "history"

# Video quality tiers: (tier, scale factor, directory)
MASTER_QUALITY = ("high", 1.0, "high-quality")
TRANSCODED_QUALITIES = (
    ("medium", 0.75, "medium-quality"),
    ("low", 0.5, "low-quality"),
)
VIDEO_QUALITIES = (MASTER_QUALITY, *TRANSCODED_QUALITIES)
VIDEO_SCROLL_STEPS = 5

# Report files at the output root
REPORT_JSON_NAME = "capture-report.json"
REPORT_MARKDOWN_NAME = "REPORT.md"

# Chromium flags for containerized runs
BROWSER_LAUNCH_ARGS = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
)
