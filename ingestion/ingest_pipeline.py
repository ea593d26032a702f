from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from common.config import GlobalYAMLConfig, yaml_config
from common.logger import get_logger
from ingestion.crawler import Crawler, Fetcher, HttpFetcher
from ingestion.index_builder import build_index, write_index

log = get_logger(__name__)


@dataclass(frozen=True)
class CrawlReport:
    pages_visited: int
    pages_succeeded: int
    fetch_failures: int
    extract_failures: int
    chunks_written: int
    output: Path


def ingest_site(
    start_url: str | None = None,
    out_path: Path | None = None,
    config: GlobalYAMLConfig | None = None,
    fetcher: Fetcher | None = None,
    show_progress: bool = True,
) -> CrawlReport:
    """
    Crawl the docs site and replace the chunk index.
    - Crawls in BFS order within scope
    - Extracts + chunks each page
    - Deduplicates by chunk id and sorts
    - Writes the JSON artifact
    """
    config = config or yaml_config
    out_path = Path(out_path or config.app.index_path)

    crawler = Crawler(
        crawl=config.crawl,
        chunking=config.chunking,
        fetcher=fetcher or HttpFetcher(config.app),
        show_progress=show_progress,
    )
    state = crawler.crawl(start_url)

    chunks = build_index(state.chunks)
    write_index(chunks, out_path)

    report = CrawlReport(
        pages_visited=len(state.visited),
        pages_succeeded=state.fetched_ok - state.extract_failed,
        fetch_failures=state.fetch_failed,
        extract_failures=state.extract_failed,
        chunks_written=len(chunks),
        output=out_path,
    )
    log.info(
        "DONE. Pages crawled: %d (%d ok). Chunks written: %d. Output: %s",
        report.pages_visited,
        report.pages_succeeded,
        report.chunks_written,
        report.output,
    )
    return report
