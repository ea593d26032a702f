from __future__ import annotations

import re
from collections import defaultdict
from typing import Dict, Iterable, List

from common.config import ChunkingConfig
from ingestion.cleaners import clean_text
from ingestion.document_models import Chunk, ContentBlock
from ingestion.hash_utils import make_chunk_id

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")


def split_to_size(
    text: str, max_chars: int, overlap: int = 0, min_chars: int = 0
) -> List[str]:
    """
    Split one section's text into pieces of at most ``max_chars`` characters.

    Paragraphs are packed greedily; with ``overlap`` the tail of each emitted
    piece seeds the next one. A paragraph longer than ``max_chars`` on its own
    is hard-sliced at fixed offsets. Pieces shorter than ``min_chars`` are dropped.
    """
    if overlap < 0 or overlap >= max_chars:
        raise ValueError("overlap must be in [0, max_chars)")

    text = clean_text(text)
    if not text:
        return []
    if len(text) <= max_chars:
        return [text] if len(text) >= min_chars else []

    paragraphs = [p.strip() for p in _PARAGRAPH_BREAK.split(text) if p.strip()]
    pieces: List[str] = []
    buf = ""

    for para in paragraphs:
        if len(para) > max_chars:
            if buf:
                pieces.append(buf)
                buf = ""
            pieces.extend(_hard_slice(para, max_chars, overlap))
            continue

        candidate = f"{buf}\n\n{para}" if buf else para
        if len(candidate) <= max_chars:
            buf = candidate
            continue

        pieces.append(buf)
        seed = _overlap_tail(buf, overlap)
        seeded = f"{seed}\n\n{para}" if seed else para
        buf = seeded if len(seeded) <= max_chars else para

    if buf:
        pieces.append(buf)

    out: List[str] = []
    for piece in pieces:
        piece = clean_text(piece)[:max_chars].strip()
        if len(piece) >= min_chars:
            out.append(piece)
    return out


def _hard_slice(text: str, max_chars: int, overlap: int) -> List[str]:
    step = max_chars - overlap
    out = []
    start = 0
    while True:
        out.append(text[start : start + max_chars])
        if start + max_chars >= len(text):
            break
        start += step
    return out


def _overlap_tail(buf: str, overlap: int) -> str:
    """Last ``overlap`` chars of ``buf``, widened to whole paragraphs or trimmed to a word start."""
    if overlap <= 0:
        return ""
    paragraphs = buf.split("\n\n")
    tail: List[str] = []
    size = 0
    for para in reversed(paragraphs):
        extra = len(para) + (2 if tail else 0)
        if size + extra > overlap:
            break
        tail.insert(0, para)
        size += extra
    if tail:
        return "\n\n".join(tail)

    raw = buf[-overlap:]
    space = raw.find(" ")
    if 0 <= space < len(raw) - 1:
        raw = raw[space + 1 :]
    return raw.strip()


def chunk_blocks(
    page_url: str,
    title: str,
    blocks: Iterable[ContentBlock],
    cfg: ChunkingConfig | None = None,
) -> List[Chunk]:
    """
    Chunk every block of a page. Sequence indices run per section label across
    the page, so a repeated heading continues numbering instead of reusing ids.
    """
    cfg = cfg or ChunkingConfig()
    counters: Dict[str, int] = defaultdict(int)
    out: List[Chunk] = []
    for block in blocks:
        for piece in split_to_size(block.text, cfg.max_chars, cfg.overlap, cfg.min_chars):
            idx = counters[block.section]
            counters[block.section] += 1
            out.append(
                Chunk(
                    id=make_chunk_id(page_url, block.section, idx),
                    title=title,
                    section=block.section,
                    url=page_url,
                    text=piece,
                )
            )
    return out
