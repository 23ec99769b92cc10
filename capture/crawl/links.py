"""
Link discovery: expand collapsed navigation, enumerate candidate URLs, filter to crawl scope.

Candidates come from anchors, common data attributes and framework route
tables (Next.js, Nuxt, Remix), resolved against the page location in the
browser. Extraction never fails the caller; any driver error yields [].
"""

from __future__ import annotations

import asyncio
from typing import Iterable, Sequence
from urllib.parse import urlsplit, urlunsplit

from playwright.async_api import Page

from capture.domain_filter import DomainFilter
from shared.logging import get_logger

logger = get_logger(__name__)

MENU_EXPAND_SETTLE_MS = 300

# Opens <details> and clicks collapsed toggles matching the configured selectors.
# Toggles that are or sit inside a navigating link are skipped.
EXPAND_MENUS_SCRIPT = """
(selectors) => {
  let expanded = 0;
  document.querySelectorAll('details:not([open])').forEach((el) => {
    el.setAttribute('open', '');
    expanded += 1;
  });
  for (const selector of selectors) {
    let nodes = [];
    try {
      nodes = Array.from(document.querySelectorAll(selector));
    } catch (e) {
      continue;
    }
    for (const el of nodes) {
      if (el.getAttribute('aria-expanded') === 'true') continue;
      const link = el.closest('a[href]');
      if (link) {
        const href = (link.getAttribute('href') || '').trim().toLowerCase();
        if (href && !href.startsWith('#') && !href.startsWith('javascript:')) continue;
      }
      try {
        el.click();
        expanded += 1;
      } catch (e) {}
    }
  }
  return expanded;
}
"""

# Returns absolute URL strings; relative values resolve against location.href.
DISCOVER_LINKS_SCRIPT = """
() => {
  const found = [];
  const push = (value) => {
    if (typeof value !== 'string' || !value.trim()) return;
    try {
      found.push(new URL(value.trim(), window.location.href).href);
    } catch (e) {}
  };
  document.querySelectorAll('a[href]').forEach((a) => push(a.getAttribute('href')));
  const attrs = ['data-href', 'data-url', 'data-link', 'data-route', 'routerlink'];
  for (const attr of attrs) {
    document.querySelectorAll('[' + attr + ']').forEach((el) => push(el.getAttribute(attr)));
  }
  try {
    const next = window.__NEXT_DATA__;
    if (next && typeof next.page === 'string' && !next.page.includes('[')) push(next.page);
  } catch (e) {}
  try {
    const nuxt = window.__NUXT__;
    const routes = (nuxt && nuxt.routePath) ? [nuxt.routePath] : [];
    routes.forEach(push);
  } catch (e) {}
  try {
    const manifest = window.__remixManifest;
    if (manifest && manifest.routes) {
      Object.values(manifest.routes).forEach((route) => {
        if (route && typeof route.path === 'string' && !route.path.includes(':')) {
          push('/' + route.path.replace(/^\\//, ''));
        }
      });
    }
  } catch (e) {}
  return found;
}
"""


def filter_candidate_links(candidates: Iterable[str], domain_filter: DomainFilter) -> list[str]:
    """
    Keep in-scope http(s) links with fragments stripped; dedupe preserving order.

    Pure function for unit tests.
    """
    seen: set[str] = set()
    result: list[str] = []
    for raw in candidates:
        link = (raw or "").strip()
        if not link or link == "#" or link.endswith("#"):
            continue
        try:
            parsed = urlsplit(link)
        except ValueError:
            continue
        if not domain_filter.allows_url(link):
            continue
        cleaned = urlunsplit((parsed.scheme, parsed.netloc, parsed.path, parsed.query, ""))
        if cleaned in seen:
            continue
        seen.add(cleaned)
        result.append(cleaned)
    return result


def _without_fragment(url: str) -> str:
    return urlsplit(url)._replace(fragment="").geturl()


async def expand_menus(page: Page, selectors: Sequence[str]) -> int:
    """
    Expand collapsed UI so hidden links reach the DOM. Returns the number of toggles.

    A toggle that still navigates the page away is undone by returning to the
    original URL, so discovery and capture see the route that was requested.
    """
    before = page.url
    try:
        expanded = await page.evaluate(EXPAND_MENUS_SCRIPT, list(selectors))
    except Exception as e:
        logger.warning("menu_expansion_failed", error=str(e), error_type=type(e).__name__)
        return 0
    expanded = int(expanded or 0)
    if expanded:
        await asyncio.sleep(MENU_EXPAND_SETTLE_MS / 1000)
    if _without_fragment(page.url) != _without_fragment(before):
        logger.warning("menu_expansion_navigated", url=before, landed=page.url)
        try:
            await page.goto(before, wait_until="networkidle")
        except Exception as e:
            logger.warning(
                "menu_expansion_restore_failed",
                url=before,
                error=str(e),
                error_type=type(e).__name__,
            )
    logger.info("menu_expansion_complete", expanded=expanded)
    return expanded


async def extract_links(
    page: Page,
    domain_filter: DomainFilter,
    menu_selectors: Sequence[str] = (),
) -> list[str]:
    """
    Discover same-site links on the rendered page.

    Menu expansion runs only when selectors are configured. Returns [] on any
    driver error.
    """
    if menu_selectors:
        await expand_menus(page, menu_selectors)
    try:
        candidates = await page.evaluate(DISCOVER_LINKS_SCRIPT)
    except Exception as e:
        logger.warning("link_extraction_failed", error=str(e), error_type=type(e).__name__)
        return []
    if not isinstance(candidates, list):
        return []
    links = filter_candidate_links((c for c in candidates if isinstance(c, str)), domain_filter)
    logger.info("link_extraction_complete", candidates=len(candidates), links=len(links))
    return links
