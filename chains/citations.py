"""
Citation validation: the answer generator may only cite chunks it was actually shown.

A citation survives only if its (title, section) pair matches, case-insensitively,
one of the chunks exposed for this request. A grounded ("docs") reply whose
citations all fail validation is downgraded to advisory ("helper") and its answer
gets an explicit disclosure prefix.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field, ValidationError, field_validator

from common.logger import get_logger
from ingestion.document_models import Chunk

log = get_logger(__name__)

DISCLOSURE = "I don't see this explicitly in the docs I have loaded."
MAX_EVIDENCE_CHARS = 160


class ResponseMode(str, Enum):
    GROUNDED = "docs"
    ADVISORY = "helper"


class Citation(BaseModel):
    title: str
    section: str = ""
    source: Optional[str] = None  # URL of the cited chunk
    source_index: Optional[int] = Field(default=None, ge=1)
    evidence: Optional[str] = None

    @field_validator("title", "section", mode="before")
    @classmethod
    def _strip(cls, v: Any) -> str:
        return "" if v is None else str(v).strip()

    @field_validator("evidence", mode="before")
    @classmethod
    def _clip_evidence(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        v = " ".join(str(v).split())
        return v[:MAX_EVIDENCE_CHARS] or None

    def key(self) -> Tuple[str, str]:
        return (self.title.casefold(), self.section.casefold())


def _key(title: str, section: str) -> Tuple[str, str]:
    return (title.strip().casefold(), section.strip().casefold())


def _coerce(raw: Any) -> Optional[Citation]:
    if isinstance(raw, Citation):
        return raw
    if not isinstance(raw, dict):
        return None
    data: Dict[str, Any] = {
        "title": raw.get("title"),
        "section": raw.get("section"),
        "evidence": raw.get("evidence") or raw.get("quote"),
    }
    index = raw.get("source_index", raw.get("source"))
    if isinstance(index, (int, str)) and str(index).strip().isdigit():
        data["source_index"] = int(str(index).strip())
    try:
        return Citation(**data)
    except ValidationError:
        data.pop("source_index", None)
        try:
            return Citation(**data)
        except ValidationError:
            return None


def validate_citations(
    proposed: Iterable[Any] | None,
    exposed: Sequence[Chunk],
    max_citations: int = 3,
    max_evidence_chars: int = MAX_EVIDENCE_CHARS,
) -> List[Citation]:
    """
    Keep proposed citations that name an exposed chunk, deduplicated by
    (title, section) in proposal order and capped at ``max_citations``. Kept
    citations take the chunk's own title/section/url and its 1-based position.
    """
    by_key: Dict[Tuple[str, str], Tuple[int, Chunk]] = {}
    for i, c in enumerate(exposed, start=1):
        by_key.setdefault(_key(c.title, c.section), (i, c))

    out: List[Citation] = []
    seen = set()
    for raw in proposed or []:
        if len(out) >= max_citations:
            break
        cit = _coerce(raw)
        if cit is None or not cit.title:
            log.info("Dropping malformed citation: %r", raw)
            continue
        k = cit.key()
        if k not in by_key:
            log.info("Dropping unsupported citation: %s / %s", cit.title, cit.section)
            continue
        if k in seen:
            continue
        seen.add(k)
        index, chunk = by_key[k]
        evidence = cit.evidence[:max_evidence_chars] if cit.evidence else None
        out.append(
            Citation(
                title=chunk.title,
                section=chunk.section,
                source=chunk.url or None,
                source_index=index,
                evidence=evidence,
            )
        )
    return out


def with_disclosure(answer: str) -> str:
    answer = (answer or "").strip()
    if answer.startswith(DISCLOSURE):
        return answer
    return f"{DISCLOSURE}\n\n{answer}" if answer else DISCLOSURE


def enforce_grounding(
    mode: ResponseMode, answer: str, citations: List[Citation]
) -> Tuple[ResponseMode, str, List[Citation]]:
    """A grounded answer needs at least one valid citation; advisory answers carry none."""
    if mode is ResponseMode.GROUNDED and not citations:
        log.info("Grounded reply had no valid citations; downgrading to helper mode")
        return ResponseMode.ADVISORY, with_disclosure(answer), []
    if mode is ResponseMode.ADVISORY:
        return mode, answer, []
    return mode, answer, citations
