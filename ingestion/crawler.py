from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, List, Optional, Sequence, Set

import requests
from tenacity import (
    RetryError,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tqdm import tqdm

from common.config import AppConfig, ChunkingConfig, CrawlConfig
from common.errors import ExtractionError, FetchError
from common.logger import get_logger
from ingestion.chunkers import chunk_blocks
from ingestion.document_models import Chunk, PageDescriptor
from ingestion.extractor import (
    DEFAULT_REGION_STRATEGIES,
    RegionStrategy,
    extract_links,
    extract_page,
)
from ingestion.url_scope import UrlScope

log = get_logger(__name__)

Fetcher = Callable[[str], str]


@retry(
    retry=retry_if_exception_type((requests.ConnectionError, requests.Timeout)),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=8),
)
def _get(session: requests.Session, url: str, timeout: int) -> requests.Response:
    """GET with retries on transport errors only; HTTP status is checked by the caller."""
    return session.get(url, timeout=timeout)


class HttpFetcher:
    """Fetches HTML with the crawler's client label. Any failure becomes a FetchError."""

    def __init__(self, app: AppConfig | None = None, session: requests.Session | None = None):
        app = app or AppConfig()
        self.timeout = app.timeout
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": app.user_agent, "Accept": "text/html"})

    def __call__(self, url: str) -> str:
        try:
            resp = _get(self.session, url, self.timeout)
        except RetryError as e:
            raise FetchError(url, str(e.last_attempt.exception())) from e
        except requests.RequestException as e:
            raise FetchError(url, str(e)) from e
        if not resp.ok:
            raise FetchError(url, f"HTTP {resp.status_code}", status_code=resp.status_code)
        return resp.text


@dataclass
class CrawlState:
    """Everything one crawl run owns. Never shared between runs."""

    queue: Deque[str] = field(default_factory=deque)
    queued: Set[str] = field(default_factory=set)
    visited: Set[str] = field(default_factory=set)
    pages: List[PageDescriptor] = field(default_factory=list)
    chunks: List[Chunk] = field(default_factory=list)
    fetched_ok: int = 0
    fetch_failed: int = 0
    extract_failed: int = 0

    def enqueue(self, url: str) -> None:
        if url in self.visited or url in self.queued:
            return
        self.queue.append(url)
        self.queued.add(url)


class Crawler:
    """
    Sequential BFS crawler: fetch -> extract -> chunk -> enqueue links.

    Halts when the visited set reaches ``max_pages`` or the queue is empty.
    Fetch and extraction failures are logged and only affect their own URL.
    """

    def __init__(
        self,
        crawl: CrawlConfig | None = None,
        chunking: ChunkingConfig | None = None,
        fetcher: Optional[Fetcher] = None,
        sleep: Callable[[float], None] = time.sleep,
        strategies: Sequence[RegionStrategy] = DEFAULT_REGION_STRATEGIES,
        show_progress: bool = False,
    ):
        self.cfg = crawl or CrawlConfig()
        self.chunking = chunking or ChunkingConfig()
        self.scope = UrlScope.from_config(self.cfg)
        self.fetcher = fetcher or HttpFetcher()
        self.sleep = sleep
        self.strategies = strategies
        self.show_progress = show_progress

    def crawl(self, start_url: str | None = None) -> CrawlState:
        start = self.scope.canonicalize(start_url or self.cfg.start_url)
        if start is None:
            raise ValueError(f"Invalid start URL: {start_url or self.cfg.start_url!r}")

        state = CrawlState()
        state.enqueue(start)
        log.info("Crawling: %s (max %d pages)", start, self.cfg.max_pages)

        progress = tqdm(total=self.cfg.max_pages, desc="Crawling", unit="page") if self.show_progress else None
        try:
            while state.queue and len(state.visited) < self.cfg.max_pages:
                url = state.queue.popleft()
                state.queued.discard(url)
                if url in state.visited:
                    continue
                if state.visited:
                    self.sleep(self.cfg.request_delay)
                state.visited.add(url)
                if progress is not None:
                    progress.update(1)
                self._process(url, state)
        finally:
            if progress is not None:
                progress.close()

        log.info(
            "Crawl finished: %d visited, %d fetched, %d fetch failures, %d parse failures, %d chunks",
            len(state.visited),
            state.fetched_ok,
            state.fetch_failed,
            state.extract_failed,
            len(state.chunks),
        )
        return state

    def _process(self, url: str, state: CrawlState) -> None:
        log.info("(%d) Fetch %s", len(state.visited), url)
        try:
            html = self.fetcher(url)
        except FetchError as e:
            state.fetch_failed += 1
            log.warning("  !! failed: %s", e)
            return
        state.fetched_ok += 1

        title = url
        try:
            page = extract_page(html, url, self.chunking, self.strategies)
            title = page.title
            chunks = chunk_blocks(url, page.title, page.blocks, self.chunking)
            state.chunks.extend(chunks)
            if chunks:
                log.info("  + chunks: %d", len(chunks))
            else:
                log.info("  - no chunks extracted")
        except ExtractionError as e:
            state.extract_failed += 1
            log.warning("  !! parse fail: %s", e)

        try:
            links = extract_links(html, url, self.scope)
        except Exception as e:
            log.warning("  !! link discovery failed for %s: %s", url, e)
            links = []

        for link in links:
            state.enqueue(link)
        state.pages.append(PageDescriptor(url=url, title=title, discovered_links=tuple(links)))
