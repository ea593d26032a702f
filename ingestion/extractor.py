"""
Turn a documentation page's HTML into a title plus heading-delimited content blocks.

Site templates differ in where the actual article lives, so the content region
is found by an ordered list of strategies; supporting a new template means
adding a strategy rather than another branch.
"""

from __future__ import annotations

from typing import Callable, List, Optional, Sequence

from bs4 import BeautifulSoup, Tag

from common.config import ChunkingConfig
from common.errors import ExtractionError
from ingestion.cleaners import clamp_text, clean_text, flatten_whitespace, normalize_text
from ingestion.document_models import ContentBlock, ExtractedPage
from ingestion.url_scope import UrlScope, resolve_link

RegionStrategy = Callable[[BeautifulSoup], Optional[Tag]]

DEFAULT_TITLE = "Untitled"
ROOT_SECTION = "Intro"
FALLBACK_SECTION = "Page"

NOISE_SELECTORS = (
    "nav, aside, header, footer, script, style, noscript, template, svg, iframe, "
    "form, button, input, select, textarea, dialog, "
    "[role=navigation], [role=complementary], [role=dialog], [aria-hidden=true]"
)

HEADING_TAGS = ("h1", "h2", "h3", "h4")
WALK_TAGS = HEADING_TAGS + ("p", "li", "blockquote", "pre", "table")
# Text inside these is emitted by the container itself.
_CONTAINER_TAGS = {"li", "blockquote", "pre", "table"}


def css_region(selector: str) -> RegionStrategy:
    def _strategy(soup: BeautifulSoup) -> Optional[Tag]:
        return soup.select_one(selector)

    _strategy.__name__ = f"css_region({selector!r})"
    return _strategy


DEFAULT_REGION_STRATEGIES: List[RegionStrategy] = [
    css_region("main"),
    css_region("article"),
    css_region('[data-testid="page-content"]'),
    css_region('[role="main"]'),
    css_region("body"),
]


def find_content_region(
    soup: BeautifulSoup, strategies: Sequence[RegionStrategy] = DEFAULT_REGION_STRATEGIES
) -> Tag:
    for strategy in strategies:
        region = strategy(soup)
        if region is not None:
            return region
    return soup


def resolve_title(soup: BeautifulSoup, region: Tag) -> str:
    """First non-empty of: region h1, any h1, og:title, <title>, fallback label."""
    candidates = []
    h1 = region.find("h1")
    if h1 is not None:
        candidates.append(h1.get_text(" ", strip=True))
    h1 = soup.find("h1")
    if h1 is not None:
        candidates.append(h1.get_text(" ", strip=True))
    og = soup.find("meta", attrs={"property": "og:title"})
    if og is not None:
        candidates.append(og.get("content") or "")
    if soup.title is not None:
        candidates.append(soup.title.get_text(" ", strip=True))

    for c in candidates:
        c = flatten_whitespace(c)
        if c:
            return c
    return DEFAULT_TITLE


def _inside_container(el: Tag, region: Tag) -> bool:
    for parent in el.parents:
        if parent is region:
            return False
        if parent.name in _CONTAINER_TAGS:
            return True
    return False


def _table_lines(table: Tag) -> str:
    lines = []
    for row in table.find_all("tr"):
        cells = [flatten_whitespace(c.get_text(" ", strip=True)) for c in row.find_all(["th", "td"])]
        cells = [c for c in cells if c]
        if cells:
            lines.append("Table: " + " | ".join(cells))
    return "\n".join(lines)


def _segment_for(el: Tag) -> str:
    name = el.name
    if name == "table":
        return _table_lines(el)
    if name == "pre":
        code = normalize_text(el.get_text())
        return f"Code:\n{code}" if code else ""

    text = flatten_whitespace(el.get_text(" ", strip=True))
    if not text:
        return ""
    if name == "li":
        return f"- {text}"
    if name == "blockquote":
        return f"Quote: {text}"
    return text


def extract_page(
    html: str,
    page_url: str,
    chunking: ChunkingConfig | None = None,
    strategies: Sequence[RegionStrategy] = DEFAULT_REGION_STRATEGIES,
) -> ExtractedPage:
    """
    Parse HTML into an ExtractedPage. Blocks shorter than the minimum chunk size
    are dropped; if nothing survives, the whole region's text becomes one block.
    """
    chunking = chunking or ChunkingConfig()
    try:
        soup = BeautifulSoup(html, "html.parser")
        region = find_content_region(soup, strategies)
        title = resolve_title(soup, region)

        for noise in region.select(NOISE_SELECTORS):
            noise.decompose()

        blocks: List[ContentBlock] = []
        section = ROOT_SECTION
        buffer: List[str] = []

        def flush():
            text = clean_text("\n\n".join(buffer))
            buffer.clear()
            if text and len(text) >= chunking.min_chars:
                blocks.append(ContentBlock(section=section, text=text))

        for el in region.find_all(WALK_TAGS):
            if _inside_container(el, region):
                continue
            if el.name in HEADING_TAGS:
                heading = flatten_whitespace(el.get_text(" ", strip=True))
                if not heading:
                    continue
                flush()
                section = heading
                continue
            segment = _segment_for(el)
            if segment:
                buffer.append(segment)
        flush()

        if not blocks:
            text = flatten_whitespace(region.get_text(" ", strip=True))
            if text:
                blocks.append(
                    ContentBlock(
                        section=FALLBACK_SECTION,
                        text=clamp_text(text, chunking.fallback_max_chars),
                    )
                )
    except Exception as e:
        raise ExtractionError(f"Could not extract content from {page_url}: {e}") from e

    return ExtractedPage(title=title, blocks=blocks)


def extract_links(html: str, base_url: str, scope: UrlScope) -> List[str]:
    """In-scope canonical links in first-discovery order, nav and footer included."""
    soup = BeautifulSoup(html, "html.parser")
    links: List[str] = []
    seen = set()
    for a in soup.find_all("a", href=True):
        absolute = resolve_link(a.get("href"), base_url)
        if absolute is None:
            continue
        canonical = scope.canonicalize(absolute)
        if canonical is None or canonical in seen or not scope.is_allowed(canonical):
            continue
        seen.add(canonical)
        links.append(canonical)
    return links
