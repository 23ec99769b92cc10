"""
Capture service: the single entry point for a capture run.

Validates the seed URL, hydrates the domain filter, prepares the output
directory, runs the worker pool inside one browser process, writes reports and
closes the browser. Only setup failures (invalid URL, output directory,
browser) abort the run; per-route failures land in the report.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional
from urllib.parse import urlsplit

from capture.crawl.browser import browser_process
from capture.domain_filter import DomainFilter, canonicalize_host
from capture.models import CaptureConfig, CaptureResult
from capture.report_generator import generate_reports
from capture.routes import validate_root_url
from capture.scheduler import WorkerPool
from capture.storage import ensure_dir
from capture.transcoder import FfmpegTranscoder
from shared.logging import bind_request_context, get_logger

logger = get_logger(__name__)


class CaptureService:
    def __init__(self, config: CaptureConfig, transcoder: Optional[FfmpegTranscoder] = None):
        self.config = config
        self.transcoder = transcoder or FfmpegTranscoder(config.transcoder_path)

    async def capture_website(self, root_url: str) -> dict[str, CaptureResult]:
        """
        Crawl and capture every in-scope route reachable from root_url.

        Returns results keyed by normalized URL. Raises ValueError for an
        invalid URL, FileSystemError when the output directory cannot be
        created, and BrowserError when the browser cannot start.
        """
        url = validate_root_url(root_url)
        host = urlsplit(url).hostname or ""
        domain_filter = DomainFilter.hydrate(
            host,
            self.config.allowed_hosts,
            self.config.include_subdomains,
        )
        bind_request_context(domain=canonicalize_host(host))

        ensure_dir(Path(self.config.output_dir))
        logger.info(
            "capture_started",
            url=url,
            max_depth=self.config.max_depth,
            route_concurrency=self.config.route_concurrency,
            viewports=[v.name for v in self.config.viewports],
            capture_video=self.config.capture_video,
        )

        async with browser_process(headless=self.config.headless) as browser:
            pool = WorkerPool(self.config, domain_filter, browser, self.transcoder)
            results = await pool.run(url)
            generate_reports(results, self.config)

        logger.info("capture_completed", routes=len(results), output_dir=self.config.output_dir)
        return results


def run_capture(root_url: str, config: CaptureConfig) -> dict[str, CaptureResult]:
    """Synchronous wrapper for scripts."""
    return asyncio.run(CaptureService(config).capture_website(root_url))
