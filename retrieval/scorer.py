"""
Lexical relevance scoring of documentation chunks against a free-text question.

Signals are additive: exact query match, phrase (bigram/trigram) overlap,
per-word hits weighted title > section > body, synonym expansion, an intent
bonus, and two penalties (tiny chunks, single-word coincidences). All
comparisons happen on normalized text, so case and punctuation never matter.
"""

from __future__ import annotations

import math
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

from ingestion.document_models import Chunk

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_WS = re.compile(r"\s+")

INTENT_WORDS = (
    "how",
    "where",
    "what",
    "drop",
    "craft",
    "get",
    "use",
    "fight",
    "best",
    "level",
    "upgrade",
)

STOPWORDS = frozenset(
    """
    a an and are as at be but by can do does for from get has have how i if in into is it
    its me my of on or so than that the their then there these this to was what when where
    which who why will with you your
    """.split()
)


def normalize(s) -> str:
    s = s if isinstance(s, str) else ""
    s = _NON_ALNUM.sub(" ", s.lower())
    return _WS.sub(" ", s).strip()


def _has_word(haystack: str, needle: str) -> bool:
    """Word-prefix match on normalized text: 'craft' hits 'crafting', 'use' misses 'because'."""
    return f" {needle}" in f" {haystack}"


@dataclass(frozen=True)
class ScoreWeights:
    exact_title: float = 30
    exact_section: float = 22
    exact_text: float = 16
    bigram_title: float = 8
    bigram_section: float = 5
    bigram_text: float = 3
    trigram_title: float = 12
    trigram_section: float = 8
    trigram_text: float = 5
    word_title: float = 6
    word_section: float = 4
    word_text: float = 1
    synonym_title: float = 3
    synonym_section: float = 2
    synonym_text: float = 0.5
    intent_bonus: float = 2
    short_text_penalty: float = 3
    coincidence_penalty: float = 4
    coincidence_min_words: int = 3


@dataclass(frozen=True)
class PreparedQuery:
    raw: str
    normalized: str
    words: Tuple[str, ...]
    significant: Tuple[str, ...]
    bigrams: Tuple[str, ...]
    trigrams: Tuple[str, ...]
    expansions: Tuple[str, ...]
    intents: Tuple[str, ...]


def _ngrams(words: Sequence[str], n: int) -> Tuple[str, ...]:
    out = []
    for i in range(len(words) - n + 1):
        gram = words[i : i + n]
        if all(w in STOPWORDS for w in gram):
            continue
        phrase = " ".join(gram)
        if phrase not in out:
            out.append(phrase)
    return tuple(out)


def prepare_query(question: str, synonyms: Mapping[str, Iterable[str]] | None = None) -> PreparedQuery:
    q = normalize(question)
    words = tuple(q.split()) if q else ()
    significant = []
    for w in words:
        if len(w) >= 3 and w not in STOPWORDS and w not in significant:
            significant.append(w)

    expansions: List[str] = []
    for w in significant:
        for syn in (synonyms or {}).get(w, ()):
            syn = normalize(syn)
            if syn and syn not in significant and syn not in expansions:
                expansions.append(syn)

    return PreparedQuery(
        raw=question,
        normalized=q,
        words=words,
        significant=tuple(significant),
        bigrams=_ngrams(words, 2),
        trigrams=_ngrams(words, 3),
        expansions=tuple(expansions),
        intents=tuple(w for w in INTENT_WORDS if w in words),
    )


@dataclass(frozen=True)
class ScoredCandidate:
    chunk: Chunk
    score: float


@dataclass
class RelevanceScorer:
    weights: ScoreWeights = field(default_factory=ScoreWeights)
    synonyms: Dict[str, List[str]] = field(default_factory=dict)
    short_text_threshold: int = 120

    def prepare(self, question: str) -> PreparedQuery:
        return prepare_query(question, self.synonyms)

    def score(self, query: PreparedQuery, chunk: Chunk) -> float:
        w = self.weights
        title = normalize(chunk.title)
        section = normalize(chunk.section)
        text = normalize(chunk.text)
        if not (title or section or text):
            return 0.0

        score = 0.0
        q = query.normalized

        if q:
            if q in title:
                score += w.exact_title
            if q in section:
                score += w.exact_section
            if q in text:
                score += w.exact_text

        for gram in query.bigrams:
            score += self._field_hits(gram, title, section, text, w.bigram_title, w.bigram_section, w.bigram_text)
        for gram in query.trigrams:
            score += self._field_hits(gram, title, section, text, w.trigram_title, w.trigram_section, w.trigram_text)

        matched = 0
        for word in query.significant:
            hit = self._field_hits(word, title, section, text, w.word_title, w.word_section, w.word_text)
            if hit:
                matched += 1
            score += hit
        for syn in query.expansions:
            score += self._field_hits(syn, title, section, text, w.synonym_title, w.synonym_section, w.synonym_text)

        for intent in query.intents:
            if _has_word(title, intent) or _has_word(section, intent):
                score += w.intent_bonus
                break

        length = len(chunk.text or "")
        if 0 < length < self.short_text_threshold:
            score -= w.short_text_penalty

        if len(query.significant) >= w.coincidence_min_words and matched <= 1:
            score -= w.coincidence_penalty

        return score

    @staticmethod
    def _field_hits(needle, title, section, text, in_title, in_section, in_text) -> float:
        s = 0.0
        if _has_word(title, needle):
            s += in_title
        if _has_word(section, needle):
            s += in_section
        if _has_word(text, needle):
            s += in_text
        return s

    def score_all(self, question: str, chunks: Iterable[Chunk]) -> List[ScoredCandidate]:
        query = self.prepare(question)
        return [ScoredCandidate(chunk=c, score=self.score(query, c)) for c in chunks]


def tokenize(s: str) -> List[str]:
    return normalize(s).split()


def term_frequency_score(query_tokens: Sequence[str], chunk: Chunk) -> float:
    """Sum of query-token frequencies over title+section+text, damped by sqrt(length)."""
    tokens = tokenize(f"{chunk.title} {chunk.section} {chunk.text}")
    if not tokens:
        return 0.0
    tf = Counter(tokens)
    return sum(tf.get(t, 0) for t in query_tokens) / math.sqrt(len(tokens))
