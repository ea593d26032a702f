from unittest.mock import MagicMock

import pytest
import requests

from common.config import AppConfig, ChunkingConfig, CrawlConfig
from common.errors import FetchError
from ingestion.crawler import Crawler, CrawlState, HttpFetcher

BASE = "https://docs.example.com"
LONG = "This paragraph is comfortably longer than the minimum chunk size for the tests."


def page(title, links=(), body=LONG):
    anchors = "".join(f'<a href="{href}">{href}</a>' for href in links)
    return f"<html><body><nav>{anchors}</nav><main><h1>{title}</h1><p>{body}</p></main></body></html>"


class FakeSite:
    def __init__(self, pages, fail=()):
        self.pages = pages
        self.fail = set(fail)
        self.calls = []

    def __call__(self, url):
        self.calls.append(url)
        if url in self.fail or url not in self.pages:
            raise FetchError(url, "HTTP 404", status_code=404)
        return self.pages[url]


def make_crawler(site, max_pages=50, sleeps=None, **kw):
    cfg = CrawlConfig(
        start_url=f"{BASE}/guide",
        allowed_host="docs.example.com",
        allowed_prefix="/guide",
        max_pages=max_pages,
        request_delay=0.5,
    )
    recorder = sleeps if sleeps is not None else []
    return Crawler(crawl=cfg, chunking=ChunkingConfig(), fetcher=site, sleep=recorder.append, **kw)


def test_single_page_without_links_visits_once_and_empties_queue():
    site = FakeSite({f"{BASE}/guide": page("Home")})
    state = make_crawler(site).crawl()
    assert state.visited == {f"{BASE}/guide"}
    assert not state.queue
    assert site.calls == [f"{BASE}/guide"]
    assert len(state.chunks) == 1


def test_bfs_order_dedup_and_scope():
    site = FakeSite(
        {
            f"{BASE}/guide": page("Home", ["/guide/a", "/guide/b", "/blog/x", "https://other.com/guide/z"]),
            f"{BASE}/guide/a": page("A", ["/guide/c", "/guide/b/", "/guide#top"]),
            f"{BASE}/guide/b": page("B", ["/guide/a"]),
            f"{BASE}/guide/c": page("C"),
        }
    )
    state = make_crawler(site).crawl()
    assert site.calls == [f"{BASE}/guide", f"{BASE}/guide/a", f"{BASE}/guide/b", f"{BASE}/guide/c"]
    assert len(state.visited) == 4
    assert [p.title for p in state.pages] == ["Home", "A", "B", "C"]
    assert state.pages[0].discovered_links == (f"{BASE}/guide/a", f"{BASE}/guide/b")


def test_page_cap_halts_traversal():
    links = [f"/guide/p{i}" for i in range(10)]
    pages = {f"{BASE}/guide": page("Home", links)}
    pages.update({f"{BASE}/guide/p{i}": page(f"P{i}") for i in range(10)})
    site = FakeSite(pages)
    state = make_crawler(site, max_pages=3).crawl()
    assert len(state.visited) == 3
    assert len(site.calls) == 3


def test_politeness_delay_between_fetches_only():
    site = FakeSite(
        {
            f"{BASE}/guide": page("Home", ["/guide/a"]),
            f"{BASE}/guide/a": page("A"),
        }
    )
    sleeps = []
    make_crawler(site, sleeps=sleeps).crawl()
    assert sleeps == [0.5]


def test_fetch_failure_is_not_fatal():
    site = FakeSite(
        {
            f"{BASE}/guide": page("Home", ["/guide/broken", "/guide/ok"]),
            f"{BASE}/guide/ok": page("OK"),
        }
    )
    state = make_crawler(site).crawl()
    assert f"{BASE}/guide/broken" in state.visited
    assert state.fetch_failed == 1
    assert state.fetched_ok == 2
    assert {c.title for c in state.chunks} == {"Home", "OK"}


def test_extraction_failure_still_discovers_links(monkeypatch):
    import ingestion.crawler as crawler_mod
    from common.errors import ExtractionError

    real = crawler_mod.extract_page

    def flaky(html, url, *a, **k):
        if url.endswith("/guide"):
            raise ExtractionError("bad markup")
        return real(html, url, *a, **k)

    monkeypatch.setattr(crawler_mod, "extract_page", flaky)
    site = FakeSite(
        {
            f"{BASE}/guide": page("Home", ["/guide/a"]),
            f"{BASE}/guide/a": page("A"),
        }
    )
    state = make_crawler(site).crawl()
    assert state.extract_failed == 1
    assert [c.title for c in state.chunks] == ["A"]
    assert f"{BASE}/guide/a" in state.visited


def test_link_discovery_failure_adds_no_links(monkeypatch):
    import ingestion.crawler as crawler_mod

    def broken(*_a, **_k):
        raise RuntimeError("anchor walk failed")

    monkeypatch.setattr(crawler_mod, "extract_links", broken)
    site = FakeSite({f"{BASE}/guide": page("Home", ["/guide/a"]), f"{BASE}/guide/a": page("A")})
    state = make_crawler(site).crawl()
    assert state.visited == {f"{BASE}/guide"}
    assert len(state.chunks) == 1


def test_invalid_start_url_raises():
    with pytest.raises(ValueError):
        make_crawler(FakeSite({})).crawl("not a url")


def test_crawl_state_enqueue_skips_known_urls():
    state = CrawlState()
    state.enqueue("a")
    state.enqueue("a")
    state.visited.add("b")
    state.enqueue("b")
    assert list(state.queue) == ["a"]


def test_http_fetcher_sends_client_label_and_maps_errors():
    session = MagicMock(spec=requests.Session)
    session.headers = {}
    ok = MagicMock(ok=True, status_code=200, text="<html></html>")
    missing = MagicMock(ok=False, status_code=404, text="")
    session.get.side_effect = [ok, missing]

    fetcher = HttpFetcher(AppConfig(user_agent="TestBot/1.0", timeout=3), session=session)
    assert session.headers["User-Agent"] == "TestBot/1.0"
    assert session.headers["Accept"] == "text/html"

    assert fetcher(f"{BASE}/guide") == "<html></html>"
    session.get.assert_called_with(f"{BASE}/guide", timeout=3)

    with pytest.raises(FetchError) as exc:
        fetcher(f"{BASE}/guide/missing")
    assert exc.value.status_code == 404


def test_http_fetcher_maps_non_retried_request_errors():
    session = MagicMock(spec=requests.Session)
    session.headers = {}
    session.get.side_effect = requests.exceptions.InvalidURL("bad")
    with pytest.raises(FetchError):
        HttpFetcher(AppConfig(), session=session)(f"{BASE}/guide")
    assert session.get.call_count == 1
