"""
Route keys and names.

normalize_url is the crawl's deduplication key; route_slug only names output
directories and is never used for dedup. Distinct routes can map to the same
slug; the worker pool resolves those collisions with disambiguated_slug.
"""

from __future__ import annotations

import hashlib
import re
from urllib.parse import urlsplit

_DEFAULT_PORTS = {"http": 80, "https": 443}
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]", re.IGNORECASE)
_DASH_RUN_RE = re.compile(r"-+")
_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.-]*://", re.IGNORECASE)


def _origin(scheme: str, hostname: str, port: int | None) -> str:
    host = f"[{hostname}]" if ":" in hostname else hostname
    if port is not None and _DEFAULT_PORTS.get(scheme) != port:
        host = f"{host}:{port}"
    return f"{scheme}://{host}"


def normalize_url(url: str) -> str:
    """
    Return origin + pathname with one trailing slash stripped; query and fragment dropped.

    https://a.com/x/?q=1#h -> https://a.com/x
    https://A.com:443/ -> https://a.com
    Unparseable input is returned unchanged.
    """
    try:
        parsed = urlsplit(url)
        hostname = parsed.hostname
        port = parsed.port
    except ValueError:
        return url
    if not parsed.scheme or not hostname:
        return url
    scheme = parsed.scheme.lower()
    normalized = _origin(scheme, hostname, port) + (parsed.path or "/")
    if normalized.endswith("/"):
        normalized = normalized[:-1]
    return normalized


def route_slug(url: str) -> str:
    """
    Filesystem-safe name for a route's output directory.

    /Docs/Getting_Started/ -> docs-getting-started; / -> root; parse failure -> invalid-url.
    """
    try:
        parsed = urlsplit(url)
        hostname = parsed.hostname
    except ValueError:
        return "invalid-url"
    if not parsed.scheme or not hostname:
        return "invalid-url"
    slug = parsed.path.strip("/")
    slug = _NON_ALNUM_RE.sub("-", slug)
    slug = _DASH_RUN_RE.sub("-", slug).lower()
    return slug or "root"


def validate_root_url(url: str) -> str:
    """
    Validate the seed URL; prefix https:// when no scheme is given.

    Raises ValueError for non-http(s) schemes or a missing host.
    """
    value = (url or "").strip()
    if not value:
        raise ValueError("URL is required")
    if not _SCHEME_RE.match(value):
        value = f"https://{value}"
    try:
        parsed = urlsplit(value)
        hostname = parsed.hostname
    except ValueError as e:
        raise ValueError(f"Invalid URL: {url}. {e}") from e
    if parsed.scheme.lower() not in ("http", "https"):
        raise ValueError(
            f"Unsupported protocol: {parsed.scheme}. Only http and https are allowed."
        )
    if not hostname:
        raise ValueError(f"Invalid URL: {url}. Missing host.")
    return value


def disambiguated_slug(url: str, normalized_url: str) -> str:
    """route_slug plus a short hash of the normalized URL, for slugs already claimed by another route."""
    digest = hashlib.sha1(normalized_url.encode("utf-8")).hexdigest()[:8]
    return f"{route_slug(url)}-{digest}"
