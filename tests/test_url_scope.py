import pytest

from common.config import CrawlConfig
from ingestion.url_scope import UrlScope, canonicalize_url, resolve_link

SCOPE = UrlScope.from_config(
    CrawlConfig(allowed_host="docs.example.com", allowed_prefix="/guide")
)


def test_canonicalize_strips_fragment_tracking_and_trailing_slash():
    url = "https://Docs.Example.com/guide/intro/?utm_source=x&page=2&fbclid=abc#top"
    assert SCOPE.canonicalize(url) == "https://docs.example.com/guide/intro?page=2"


def test_canonicalize_keeps_root_slash():
    assert canonicalize_url("https://docs.example.com") == "https://docs.example.com/"
    assert canonicalize_url("https://docs.example.com/") == "https://docs.example.com/"


@pytest.mark.parametrize("bad", ["", "not a url", "mailto:a@b.c", "ftp://docs.example.com/guide", "http://[::1"])
def test_malformed_or_non_http_urls_are_rejected(bad):
    assert canonicalize_url(bad) is None
    assert SCOPE.is_allowed(bad) is False


@pytest.mark.parametrize(
    "url,expected",
    [
        ("https://docs.example.com/guide", True),
        ("https://docs.example.com/guide/crafting", True),
        ("https://docs.example.com/blog/post", False),
        ("https://other.example.com/guide", False),
        ("https://docs.example.com.evil.io/guide", False),
    ],
)
def test_is_allowed_checks_host_and_prefix(url, expected):
    assert SCOPE.is_allowed(url) is expected


@pytest.mark.parametrize(
    "variant",
    [
        "https://docs.example.com/guide/crafting/",
        "https://docs.example.com/guide/crafting#potions",
        "https://docs.example.com/guide/crafting?utm_campaign=spring",
        "https://docs.example.com/guide/crafting/?utm_medium=mail#x",
        "https://docs.example.com:443/guide/crafting",
        "HTTPS://DOCS.EXAMPLE.COM:443/guide/crafting/",
    ],
)
def test_cosmetic_differences_do_not_change_scope(variant):
    base = "https://docs.example.com/guide/crafting"
    assert SCOPE.is_allowed(variant) == SCOPE.is_allowed(base)
    assert SCOPE.canonicalize(variant) == SCOPE.canonicalize(base)


def test_resolve_link_handles_relative_and_ignores_non_pages():
    base = "https://docs.example.com/guide/crafting"
    assert resolve_link("potions", base) == "https://docs.example.com/guide/potions"
    assert resolve_link("/guide/fishing", base) == "https://docs.example.com/guide/fishing"
    assert resolve_link("#section", base) is None
    assert resolve_link("mailto:team@example.com", base) is None
    assert resolve_link("tel:123", base) is None
    assert resolve_link("   ", base) is None


def test_default_port_dropped_other_ports_kept():
    assert canonicalize_url("http://docs.example.com:80/guide") == "http://docs.example.com/guide"
    assert canonicalize_url("https://docs.example.com:8443/guide") == "https://docs.example.com:8443/guide"
    assert SCOPE.is_allowed("https://docs.example.com:8443/guide/a") is True


def test_surviving_query_pairs_keep_original_text():
    url = "https://docs.example.com/guide/search?flag&q=ore%20veins&utm_term=x&tag=a+b&gclid=1"
    assert SCOPE.canonicalize(url) == "https://docs.example.com/guide/search?flag&q=ore%20veins&tag=a+b"
