from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Optional, Sequence

from ingestion.document_models import Chunk
from ingestion.hash_utils import sha1_text

# Precedence is first non-empty field wins.
TITLE_FIELDS = ("title", "file", "source", "doc")
SECTION_FIELDS = ("section", "heading")
TEXT_FIELDS = ("text", "content", "body")
URL_FIELDS = ("url", "link", "href")
ID_FIELDS = ("id", "chunk_id")

DEFAULT_TITLE = "Untitled"


def _first(raw: Mapping[str, Any], fields: Sequence[str]) -> str:
    for name in fields:
        value = raw.get(name)
        if value is None:
            continue
        value = str(value).strip()
        if value:
            return value
    return ""


def coerce_chunk(raw: Any) -> Optional[Chunk]:
    """
    Adapt a chunk-like record (from the artifact or a client payload) to a Chunk.
    Returns None for non-mappings and for records with no title, section or text.
    """
    if isinstance(raw, Chunk):
        return raw
    if not isinstance(raw, Mapping):
        return None

    title = _first(raw, TITLE_FIELDS)
    section = _first(raw, SECTION_FIELDS)
    text = _first(raw, TEXT_FIELDS)
    if not (title or section or text):
        return None
    url = _first(raw, URL_FIELDS)
    title = title or DEFAULT_TITLE
    chunk_id = _first(raw, ID_FIELDS) or sha1_text(f"{title}::{section}::{text[:64]}")
    return Chunk(id=chunk_id, title=title, section=section, url=url, text=text)


def coerce_chunks(raws: Iterable[Any] | None) -> List[Chunk]:
    out: List[Chunk] = []
    for raw in raws or []:
        c = coerce_chunk(raw)
        if c is not None:
            out.append(c)
    return out
