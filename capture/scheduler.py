"""
Worker pool: bounded route queue, persistent workers, termination by reference counting.

Each worker owns one browser session for the whole run and loops:
dequeue -> navigate -> discover links -> capture -> record result -> schedule children.

Every scheduled task increments the pending counter; every finished task
(success or failure) decrements it in a finally block. When the counter hits
zero a single shutdown broadcast puts one ShutdownSignal per worker on the
queue.

Shared state (seen routes, pending counter, results) is only touched on the
event loop with no await between a check and its update.
"""

from __future__ import annotations

import asyncio
import time
from typing import AsyncContextManager, Callable, Optional

from playwright.async_api import Browser, Page

from capture.constants import QUEUE_CAPACITY_FLOOR, QUEUE_CAPACITY_PER_WORKER
from capture.crawl.browser import worker_session
from capture.crawl.links import extract_links
from capture.crawl.navigation_retry import navigate_with_retry
from capture.domain_filter import DomainFilter
from capture.errors import CaptureError
from capture.models import (
    SHUTDOWN,
    CaptureConfig,
    CaptureResult,
    QueueItem,
    RouteTask,
    ShutdownSignal,
)
from capture.pipeline import capture_page
from capture.routes import disambiguated_slug, normalize_url, route_slug
from capture.transcoder import FfmpegTranscoder
from shared.logging import bind_request_context, get_logger

logger = get_logger(__name__)

SessionFactory = Callable[[Browser, int], AsyncContextManager[Page]]


def queue_capacity(route_concurrency: int) -> int:
    return max(QUEUE_CAPACITY_FLOOR, route_concurrency * QUEUE_CAPACITY_PER_WORKER)


class WorkerPool:
    def __init__(
        self,
        config: CaptureConfig,
        domain_filter: DomainFilter,
        browser: Browser,
        transcoder: Optional[FfmpegTranscoder] = None,
        session_factory: SessionFactory = worker_session,
    ):
        self.config = config
        self.domain_filter = domain_filter
        self.browser = browser
        self.transcoder = transcoder or FfmpegTranscoder(config.transcoder_path)
        self._session_factory = session_factory

        self.results: dict[str, CaptureResult] = {}
        self.tasks_scheduled = 0
        self.shutdown_broadcasts = 0

        self._queue: asyncio.Queue[QueueItem] = asyncio.Queue(
            maxsize=queue_capacity(config.route_concurrency)
        )
        self._seen: set[str] = set()
        self._slug_owners: dict[str, str] = {}
        self._pending = 0
        self._shutdown_notified = False
        self._background_puts: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return self._pending

    def schedule(self, url: str, depth: int) -> bool:
        """
        Enqueue url at depth unless it is too deep, out of scope, or already seen.

        Returns True when a new RouteTask was enqueued.
        """
        if depth > self.config.max_depth or self._shutdown_notified:
            return False
        if not self.domain_filter.allows_url(url):
            return False

        normalized = normalize_url(url)
        if normalized in self._seen:
            return False
        self._seen.add(normalized)
        route = self._claim_slug(url, normalized)
        self._pending += 1
        self.tasks_scheduled += 1
        self._enqueue(RouteTask(url=url, depth=depth, normalized_url=normalized, route=route))
        return True

    def _claim_slug(self, url: str, normalized: str) -> str:
        """Output directory name for a newly seen route, unique within the run."""
        slug = route_slug(url)
        if self._slug_owners.setdefault(slug, normalized) != normalized:
            slug = disambiguated_slug(url, normalized)
            self._slug_owners[slug] = normalized
            logger.info("route_slug_disambiguated", url=url, route=slug)
        return slug

    def _enqueue(self, item: QueueItem) -> None:
        """
        Put without blocking the calling worker.

        When the queue is full the put is handed to a background task; workers
        keep draining the queue, so it always completes.
        """
        try:
            self._queue.put_nowait(item)
        except asyncio.QueueFull:
            put = asyncio.create_task(self._queue.put(item))
            self._background_puts.add(put)
            put.add_done_callback(self._background_puts.discard)

    def _signal_shutdown(self) -> None:
        if self._shutdown_notified:
            return
        self._shutdown_notified = True
        self.shutdown_broadcasts += 1
        logger.info("shutdown_broadcast", workers=self.config.route_concurrency)
        for _ in range(self.config.route_concurrency):
            self._enqueue(SHUTDOWN)

    def _mark_task_complete(self) -> None:
        self._pending = max(0, self._pending - 1)
        if self._pending == 0:
            self._signal_shutdown()

    def _record(self, task: RouteTask, result: CaptureResult) -> None:
        if task.normalized_url in self.results:
            logger.warning("duplicate_result_ignored", url=task.url)
            return
        self.results[task.normalized_url] = result

    async def _process_task(self, page: Page, task: RouteTask) -> None:
        nav = await navigate_with_retry(page, task.url, nav_timeout_ms=self.config.nav_timeout_ms)
        if not nav.success:
            raise CaptureError(task.url, nav.error_summary or "Navigation failed")

        links: list[str] = []
        if task.depth < self.config.max_depth:
            links = await extract_links(page, self.domain_filter, self.config.menu_selectors)
        logger.info("links_discovered", url=task.url, count=len(links))

        result = await capture_page(
            page,
            task.url,
            browser=self.browser,
            config=self.config,
            transcoder=self.transcoder,
            route=task.route,
        )
        self._record(task, result)
        logger.info("route_capture_complete", url=task.url, succeeded=result.succeeded)

        scheduled = sum(1 for link in links if self.schedule(link, task.depth + 1))
        if scheduled:
            logger.info("children_scheduled", url=task.url, count=scheduled, depth=task.depth + 1)

    async def _run_task(self, page: Page, task: RouteTask) -> None:
        bind_request_context(route=task.normalized_url, depth=task.depth)
        logger.info("route_capture_started", url=task.url)
        try:
            await self._process_task(page, task)
        except Exception as e:
            logger.error(
                "route_capture_failed",
                url=task.url,
                error=str(e),
                error_type=type(e).__name__,
            )
            self._record(
                task,
                CaptureResult(
                    url=task.url,
                    route=task.route,
                    error=str(e) or type(e).__name__,
                    timestamp=int(time.time() * 1000),
                ),
            )
        finally:
            self._mark_task_complete()

    async def _worker(self, worker_id: int) -> None:
        bind_request_context(worker=worker_id)
        async with self._session_factory(self.browser, worker_id) as page:
            while True:
                item = await self._queue.get()
                if isinstance(item, ShutdownSignal):
                    logger.info("worker_stopping")
                    return
                await self._run_task(page, item)

    async def run(self, root_url: str) -> dict[str, CaptureResult]:
        """
        Seed root_url at depth 0 and run workers until the queue drains.

        A worker that cannot open its session cancels the others and its
        BrowserError propagates.
        """
        self.schedule(root_url, 0)
        if self._pending == 0:
            self._signal_shutdown()

        workers = [
            asyncio.create_task(self._worker(worker_id))
            for worker_id in range(1, self.config.route_concurrency + 1)
        ]
        try:
            await asyncio.gather(*workers)
        except BaseException:
            for worker in workers:
                worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)
            raise
        finally:
            for put in list(self._background_puts):
                put.cancel()

        logger.info(
            "worker_pool_complete",
            routes=len(self.results),
            scheduled=self.tasks_scheduled,
        )
        return self.results
