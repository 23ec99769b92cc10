"""
Unit tests for the worker pool: dedup, depth bound, host filtering, termination
broadcast, failure accounting, output naming and session failures.

Uses fake browser objects; capture_page is patched except where output paths
are checked.
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from capture.crawl.links import DISCOVER_LINKS_SCRIPT
from capture.domain_filter import DomainFilter
from capture.errors import BrowserError
from capture.models import CaptureResult, ScreenshotPaths
from capture.routes import route_slug
from capture.scheduler import WorkerPool, queue_capacity
from fakes import FakeBrowser, FakeTranscoder

ROOT = "http://site.test/"
SITE = {
    "http://site.test": [
        "http://site.test/about",
        "http://site.test/contact",
        "https://external.test/",
    ],
    "http://site.test/about": [
        "http://site.test/",
        "http://site.test/contact/",
        "http://site.test/about/team",
    ],
}


async def _fake_capture(page, url, *, browser, config, transcoder, route=None):
    return CaptureResult(
        url=url,
        route=route or route_slug(url),
        screenshots={"desktop": ScreenshotPaths("a.png", "a.webp", "a.jpg")},
        timestamp=1,
    )


def _pool(config, browser) -> WorkerPool:
    return WorkerPool(config, DomainFilter.hydrate("site.test"), browser, FakeTranscoder())


def test_queue_capacity_floor_and_growth():
    assert queue_capacity(1) == 32
    assert queue_capacity(4) == 32
    assert queue_capacity(10) == 80


@pytest.mark.asyncio
async def test_schedule_dedups_on_normalized_url(fast_config):
    pool = _pool(fast_config, FakeBrowser())

    assert pool.schedule("http://site.test/about", 1) is True
    assert pool.schedule("http://site.test/about/", 1) is False
    assert pool.schedule("http://site.test/about?ref=nav#top", 0) is False
    assert pool.tasks_scheduled == 1
    assert pool.pending == 1


@pytest.mark.asyncio
async def test_schedule_rejects_too_deep_and_out_of_scope(fast_config):
    pool = _pool(fast_config, FakeBrowser())

    assert pool.schedule("http://site.test/deep", fast_config.max_depth + 1) is False
    assert pool.schedule("https://external.test/", 0) is False
    assert pool.schedule("mailto:hi@site.test", 0) is False
    assert pool.tasks_scheduled == 0
    # A rejected-for-depth URL stays schedulable at a legal depth
    assert pool.schedule("http://site.test/deep", fast_config.max_depth) is True


@pytest.mark.asyncio
async def test_run_crawls_in_scope_routes_once(fast_config):
    browser = FakeBrowser(site=SITE)
    pool = _pool(fast_config, browser)

    with patch("capture.scheduler.capture_page", new_callable=AsyncMock, side_effect=_fake_capture) as capture:
        results = await pool.run(ROOT)

    assert set(results) == {
        "http://site.test",
        "http://site.test/about",
        "http://site.test/contact",
    }
    assert capture.await_count == 3
    assert all(r.succeeded for r in results.values())
    # Depth-1 routes do not extract links, so /about/team is never reached
    assert "http://site.test/about/team" not in results
    assert pool.tasks_scheduled == 3
    assert pool.pending == 0
    assert pool.shutdown_broadcasts == 1
    # Every worker session was closed
    assert len(browser.contexts) == fast_config.route_concurrency
    assert all(context.closed for context in browser.contexts)


@pytest.mark.asyncio
async def test_child_tasks_are_one_level_deeper_than_parent(fast_config):
    site = {
        "http://site.test": ["http://site.test/docs"],
        "http://site.test/docs": ["http://site.test/docs/intro", "http://site.test/"],
        "http://site.test/docs/intro": ["http://site.test/docs/intro/setup"],
    }
    depths: dict[str, int] = {}

    class RecordingPool(WorkerPool):
        async def _process_task(self, page, task):
            depths[task.normalized_url] = task.depth
            await super()._process_task(page, task)

    config = replace(fast_config, max_depth=2)
    pool = RecordingPool(config, DomainFilter.hydrate("site.test"), FakeBrowser(site=site), FakeTranscoder())

    with patch("capture.scheduler.capture_page", new_callable=AsyncMock, side_effect=_fake_capture):
        await pool.run(ROOT)

    assert depths == {
        "http://site.test": 0,
        "http://site.test/docs": 1,
        "http://site.test/docs/intro": 2,
    }


@pytest.mark.asyncio
async def test_routes_sharing_a_slug_get_distinct_output_directories(fast_config):
    site = {
        "http://site.test": [
            "http://site.test/About",
            "http://www.site.test/about",
            "http://site.test/about",
        ],
    }
    pool = _pool(fast_config, FakeBrowser(site=site))

    results = await pool.run(ROOT)

    assert len(results) == 4
    assert all(r.succeeded for r in results.values())
    routes = [r.route for r in results.values()]
    assert len(set(routes)) == 4
    assert results["http://site.test/About"].route == "about"
    pngs = [r.screenshots["desktop"].png for r in results.values()]
    assert len(set(pngs)) == 4
    assert all(Path(p).exists() for p in pngs)


@pytest.mark.asyncio
async def test_schedule_claims_slug_once_per_normalized_url(fast_config):
    pool = _pool(fast_config, FakeBrowser())

    pool.schedule("http://site.test/a_b", 1)
    pool.schedule("http://site.test/a-b", 1)
    pool.schedule("http://site.test/a_b/", 1)

    first = pool._queue.get_nowait()
    second = pool._queue.get_nowait()
    assert first.route == "a-b"
    assert second.route.startswith("a-b-") and len(second.route) == len("a-b-") + 8
    assert pool._queue.empty()


@pytest.mark.asyncio
async def test_run_max_depth_zero_captures_only_root(fast_config):
    browser = FakeBrowser(site=SITE)
    pool = _pool(replace(fast_config, max_depth=0), browser)

    with patch("capture.scheduler.capture_page", new_callable=AsyncMock, side_effect=_fake_capture):
        results = await pool.run(ROOT)

    assert list(results) == ["http://site.test"]
    evaluated = [s for context in browser.contexts for page in context.pages for s in page.evaluated]
    assert DISCOVER_LINKS_SCRIPT not in evaluated


@pytest.mark.asyncio
async def test_navigation_failure_recorded_and_crawl_continues(fast_config):
    browser = FakeBrowser(site=SITE, goto_failures={"http://site.test/contact": 99})
    pool = _pool(fast_config, browser)

    with (
        patch("capture.crawl.navigation_retry.asyncio.sleep", new_callable=AsyncMock),
        patch("capture.scheduler.capture_page", new_callable=AsyncMock, side_effect=_fake_capture),
    ):
        results = await pool.run(ROOT)

    assert len(results) == 3
    failed = results["http://site.test/contact"]
    assert not failed.succeeded
    assert failed.route == "contact"
    assert "net::ERR_CONNECTION_RESET" in failed.error
    assert results["http://site.test/about"].succeeded
    assert pool.pending == 0
    assert pool.shutdown_broadcasts == 1


@pytest.mark.asyncio
async def test_capture_exception_recorded_as_failure(fast_config):
    async def capture(page, url, **kwargs):
        if url.endswith("/about"):
            raise RuntimeError("renderer crashed")
        return await _fake_capture(page, url, **kwargs)

    pool = _pool(fast_config, FakeBrowser(site=SITE))

    with patch("capture.scheduler.capture_page", new_callable=AsyncMock, side_effect=capture):
        results = await pool.run(ROOT)

    assert results["http://site.test/about"].error == "renderer crashed"
    assert sum(1 for r in results.values() if r.succeeded) == 2
    assert pool.shutdown_broadcasts == 1


@pytest.mark.asyncio
async def test_children_beyond_queue_capacity_do_not_deadlock(fast_config):
    links = [f"http://site.test/page-{i}" for i in range(queue_capacity(1) + 10)]
    pool = _pool(replace(fast_config, route_concurrency=1), FakeBrowser(site={"http://site.test": links}))

    with patch("capture.scheduler.capture_page", new_callable=AsyncMock, side_effect=_fake_capture):
        results = await pool.run(ROOT)

    assert len(results) == len(links) + 1
    assert pool.shutdown_broadcasts == 1


@pytest.mark.asyncio
async def test_session_failure_aborts_run(fast_config):
    browser = FakeBrowser(site=SITE, fail_new_page=True)
    pool = _pool(fast_config, browser)

    with pytest.raises(BrowserError):
        await pool.run(ROOT)

    assert all(context.closed for context in browser.contexts)


@pytest.mark.asyncio
async def test_out_of_scope_seed_terminates_immediately(fast_config):
    pool = _pool(fast_config, FakeBrowser())

    results = await pool.run("https://external.test/")

    assert results == {}
    assert pool.shutdown_broadcasts == 1
