from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional
from urllib.parse import unquote_plus, urljoin, urlsplit, urlunsplit

from common.config import CrawlConfig

_IGNORED_HREF_PREFIXES = ("#", "mailto:", "tel:", "javascript:", "data:")
_DEFAULT_PORTS = {"http": 80, "https": 443}


def _strip_tracking(query: str, tracking_params: Iterable[str]) -> str:
    """Drop tracking pairs from a raw query string; surviving pairs keep their original text."""
    drop = {p.lower() for p in tracking_params}
    kept = []
    for segment in query.split("&"):
        if not segment:
            continue
        key = unquote_plus(segment.split("=", 1)[0]).lower()
        if key in drop or key.startswith("utm_"):
            continue
        kept.append(segment)
    return "&".join(kept)


def canonicalize_url(url: str, tracking_params: Iterable[str] = ()) -> Optional[str]:
    """
    Canonical form used for dedup and scope checks: http(s) only, lower-cased
    host, default port dropped, no fragment, no tracking query params, no
    trailing slash except on the root path. Returns None for anything unparsable.
    """
    try:
        parts = urlsplit(url.strip())
        host = (parts.hostname or "").lower()
        port = parts.port
    except (ValueError, AttributeError):
        return None
    scheme = parts.scheme.lower()
    if scheme not in ("http", "https") or not host:
        return None

    if port == _DEFAULT_PORTS[scheme]:
        port = None
    if ":" in host:
        host = f"[{host}]"
    netloc = f"{host}:{port}" if port else host
    path = parts.path or "/"
    if len(path) > 1 and path.endswith("/"):
        path = path.rstrip("/") or "/"

    query = _strip_tracking(parts.query, tracking_params)
    return urlunsplit((scheme, netloc, path, query, ""))


def resolve_link(href: str, base_url: str) -> Optional[str]:
    """Resolve a raw href against the page it was found on, ignoring non-page links."""
    href = (href or "").strip()
    if not href or href.lower().startswith(_IGNORED_HREF_PREFIXES):
        return None
    try:
        return urljoin(base_url, href)
    except ValueError:
        return None


@dataclass(frozen=True)
class UrlScope:
    allowed_host: str
    allowed_prefix: str = "/"
    tracking_params: tuple = ()

    @classmethod
    def from_config(cls, cfg: CrawlConfig) -> "UrlScope":
        return cls(
            allowed_host=cfg.allowed_host,
            allowed_prefix=cfg.allowed_prefix,
            tracking_params=tuple(cfg.tracking_params),
        )

    def canonicalize(self, url: str) -> Optional[str]:
        return canonicalize_url(url, self.tracking_params)

    def is_allowed(self, url: str) -> bool:
        """Host equals the allowed host and path starts with the allowed prefix. Never raises."""
        canonical = self.canonicalize(url)
        if canonical is None:
            return False
        parts = urlsplit(canonical)
        if parts.hostname != self.allowed_host.lower():
            return False
        return parts.path.startswith(self.allowed_prefix)
