"""
Unit tests for route keys (dedup), directory slugs and seed URL validation.
"""

from __future__ import annotations

import pytest

from capture.routes import disambiguated_slug, normalize_url, route_slug, validate_root_url


def test_normalize_url_drops_query_fragment_and_trailing_slash():
    assert normalize_url("https://a.com/x/?q=1#h") == normalize_url("https://a.com/x")
    assert normalize_url("https://a.com/x/?q=1#h") == "https://a.com/x"


def test_normalize_url_root_and_default_ports():
    assert normalize_url("https://A.com:443/") == "https://a.com"
    assert normalize_url("http://a.com:80") == "http://a.com"
    assert normalize_url("http://a.com:8080/docs/") == "http://a.com:8080/docs"


def test_normalize_url_keeps_path_case():
    assert normalize_url("https://a.com/Docs") != normalize_url("https://a.com/docs")


def test_normalize_url_unparseable_returned_unchanged():
    assert normalize_url("not a url") == "not a url"
    assert normalize_url("http://[::1") == "http://[::1"


@pytest.mark.parametrize(
    "url,expected",
    [
        ("https://a.com/", "root"),
        ("https://a.com", "root"),
        ("https://a.com/about", "about"),
        ("https://a.com/Docs/Getting_Started/", "docs-getting-started"),
        ("https://a.com/a//b", "a-b"),
        ("https://a.com/pricing?plan=pro", "pricing"),
    ],
)
def test_route_slug(url, expected):
    assert route_slug(url) == expected


def test_route_slug_invalid_url():
    assert route_slug("::::") == "invalid-url"


def test_disambiguated_slug_is_stable_per_normalized_url():
    first = disambiguated_slug("http://www.site.test/about", "http://www.site.test/about")
    again = disambiguated_slug("http://www.site.test/about/", "http://www.site.test/about")
    other = disambiguated_slug("http://site.test/About", "http://site.test/About")

    assert first == again
    assert first.startswith("about-")
    assert first != other


def test_validate_root_url_adds_https():
    assert validate_root_url("example.com") == "https://example.com"
    assert validate_root_url("  http://site.test/  ") == "http://site.test/"


def test_validate_root_url_rejects_other_schemes():
    with pytest.raises(ValueError, match="Unsupported protocol"):
        validate_root_url("ftp://example.com")
    with pytest.raises(ValueError):
        validate_root_url("")
    with pytest.raises(ValueError, match="Missing host"):
        validate_root_url("https://")
