from __future__ import annotations

from pathlib import Path


class DocsKBError(Exception):
    """Base class for every error raised by this project."""


class FetchError(DocsKBError):
    """A single URL could not be fetched. Recoverable: the crawl moves on."""

    def __init__(self, url: str, reason: str, status_code: int | None = None):
        self.url = url
        self.status_code = status_code
        super().__init__(f"Fetch failed for {url}: {reason}")


class ExtractionError(DocsKBError):
    """Markup of a single page could not be turned into content blocks."""


class IndexArtifactError(DocsKBError):
    """The persisted chunk index is unusable. Fatal for the current run."""

    def __init__(self, path: Path | str, reason: str):
        self.path = Path(path)
        super().__init__(f"Docs index {self.path}: {reason}")


class IndexNotFoundError(IndexArtifactError):
    pass


class IndexWriteError(IndexArtifactError):
    pass
