from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Iterable, List, Optional, Sequence

from common.config import FallbackPolicy, RetrievalConfig
from common.logger import get_logger
from ingestion.document_models import Chunk
from ingestion.index_builder import load_index
from retrieval.records import coerce_chunks
from retrieval.scorer import RelevanceScorer, ScoredCandidate, term_frequency_score, tokenize

log = get_logger(__name__)

IndexLoader = Callable[[], Sequence[Any]]


class Reranker:
    """
    Pick the top-K chunks for a question.

    Selection keeps candidates with a strictly positive score, best first. When
    nothing scores positive the configured FallbackPolicy decides: STRICT
    returns nothing, PERMISSIVE returns the K best of the non-positive candidates.
    """

    def __init__(
        self,
        cfg: RetrievalConfig | None = None,
        scorer: RelevanceScorer | None = None,
        index_loader: Optional[IndexLoader] = None,
    ):
        self.cfg = cfg or RetrievalConfig()
        self.scorer = scorer or RelevanceScorer(
            synonyms=self.cfg.synonyms, short_text_threshold=self.cfg.short_text_threshold
        )
        self.index_loader = index_loader

    @classmethod
    def from_index_file(cls, path: Path, cfg: RetrievalConfig | None = None) -> "Reranker":
        return cls(cfg=cfg, index_loader=lambda: load_index(path))

    def _cap(self, chunks: List[Chunk]) -> List[Chunk]:
        if len(chunks) > self.cfg.max_candidates:
            log.info("Capping %d candidates to %d", len(chunks), self.cfg.max_candidates)
            return chunks[: self.cfg.max_candidates]
        return chunks

    def score(self, question: str, candidates: Iterable[Any]) -> List[ScoredCandidate]:
        chunks = self._cap(coerce_chunks(candidates))
        scored = self.scorer.score_all(question, chunks)
        # sorted() is stable: equal scores keep input order
        return sorted(scored, key=lambda c: c.score, reverse=True)

    def select(self, scored: Sequence[ScoredCandidate], k: int | None = None) -> List[ScoredCandidate]:
        k = k or self.cfg.k
        picked = [c for c in scored if c.score > 0][:k]
        if picked or self.cfg.fallback_policy is FallbackPolicy.STRICT:
            return picked
        return list(scored[:k])

    def rerank(self, question: str, candidates: Iterable[Any], k: int | None = None) -> List[ScoredCandidate]:
        return self.select(self.score(question, candidates), k)

    def retrieve(
        self, question: str, client_chunks: Iterable[Any] | None = None, k: int | None = None
    ) -> List[ScoredCandidate]:
        """
        Two-tier retrieval: rerank client-supplied chunks; if none of them scores
        above zero, rerank the full persisted index instead. Index load errors
        propagate so a missing artifact is never mistaken for "no matches".
        """
        first = self.score(question, client_chunks or [])
        if any(c.score > 0 for c in first):
            return self.select(first, k)

        if self.index_loader is None:
            log.info("No positive client candidates and no index configured")
            return self.select(first, k)

        log.info("Client candidates (%d) had no match; falling back to full index", len(first))
        records = self.index_loader()
        return self.select(self.score(question, records), k)


def prefilter(question: str, chunks: Iterable[Any], k: int = 4) -> List[Chunk]:
    """Cheap term-frequency pass a client runs to choose candidates to send with a question."""
    tokens = tokenize(question)
    ranked = []
    for c in coerce_chunks(chunks):
        s = term_frequency_score(tokens, c)
        if s > 0:
            ranked.append((s, c))
    ranked.sort(key=lambda x: x[0], reverse=True)
    return [c for _, c in ranked[:k]]
