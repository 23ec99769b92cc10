"""
Domain filter: decides whether a discovered URL belongs to the crawl.

The root host plus any configured allowed hosts always qualify. With
include_subdomains, hosts under any of their suffixes qualify too
(app.example.com under example.com). Suffixes keep at least two labels so a
bare TLD such as "com" never admits unrelated sites.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable
from urllib.parse import urlsplit

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)


def canonicalize_host(host: str) -> str:
    """
    Lowercase host without protocol, path, port or leading www.

    Examples:
        https://www.Example.com/path -> example.com
        WWW.example.com:8080 -> example.com
        [::1]:8000 -> ::1 (bare IPv6 literals are kept whole)
    """
    value = _SCHEME_RE.sub("", (host or "").strip())
    value = value.split("/", 1)[0]
    value = value.rsplit("@", 1)[-1]
    if value.startswith("["):
        value = value[1:].split("]", 1)[0]
    elif value.count(":") == 1:
        value = value.split(":", 1)[0]
    value = value.lower()
    if value.startswith("www."):
        value = value[4:]
    return value


def host_suffixes(host: str) -> list[str]:
    """
    All suffixes of a canonical host with at least two labels, most specific first.

    app.internal.example.com -> [app.internal.example.com, internal.example.com, example.com]
    """
    labels = [label for label in canonicalize_host(host).split(".") if label]
    if len(labels) < 2:
        return [".".join(labels)] if labels else []
    return [".".join(labels[i:]) for i in range(len(labels) - 1)]


@dataclass(frozen=True)
class DomainFilter:
    allowed_hosts: frozenset[str]
    suffixes: frozenset[str]
    include_subdomains: bool

    @classmethod
    def hydrate(
        cls,
        root_host: str,
        allowed_hosts: Iterable[str] = (),
        include_subdomains: bool = False,
    ) -> "DomainFilter":
        """Build the filter once per run from the seed host and the configured allow-list."""
        hosts = {canonicalize_host(h) for h in (root_host, *allowed_hosts)}
        hosts.discard("")
        suffixes = {suffix for h in hosts for suffix in host_suffixes(h)}
        return cls(
            allowed_hosts=frozenset(hosts),
            suffixes=frozenset(suffixes),
            include_subdomains=include_subdomains,
        )

    def allows_host(self, hostname: str) -> bool:
        normalized = canonicalize_host(hostname)
        if not normalized:
            return False
        if normalized in self.allowed_hosts:
            return True
        if not self.include_subdomains:
            return False
        return any(
            normalized == suffix or normalized.endswith(f".{suffix}") for suffix in self.suffixes
        )

    def allows_url(self, url: str) -> bool:
        """True for http(s) URLs whose host passes allows_host; False for anything unparseable."""
        try:
            parsed = urlsplit(url)
            hostname = parsed.hostname
        except ValueError:
            return False
        if parsed.scheme not in ("http", "https") or not hostname:
            return False
        return self.allows_host(hostname)
