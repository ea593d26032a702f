from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

import orjson
from langchain_core.language_models import BaseLanguageModel
from pydantic import BaseModel, Field, ValidationError

from chains.citations import Citation, ResponseMode, enforce_grounding, validate_citations
from chains.prompts import build_answer_prompt
from common.config import GlobalYAMLConfig, yaml_config
from common.logger import get_logger
from ingestion.document_models import Chunk
from retrieval.reranker import Reranker

log = get_logger(__name__)

DEFAULT_ANSWER = "I can help. What are you trying to do?"


@dataclass(frozen=True)
class DocsAnswer:
    mode: ResponseMode
    answer: str
    followups: List[str]
    citations: List[Citation]
    sources: List[Chunk]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode.value,
            "answer": self.answer,
            "followups": self.followups,
            "citations": [c.model_dump(exclude_none=True) for c in self.citations],
        }


class ModelReply(BaseModel):
    """Loose schema for what the model returns; normalization happens afterwards."""

    mode: Any = None
    answer: Any = None
    followups: Any = Field(default_factory=list)
    citations: Any = Field(default_factory=list)


def unwrap_json_object(raw: str) -> Optional[str]:
    """
    Extract the outermost {...} span from a raw LLM response, or None.
    """
    match = re.search(r"\{.*\}", raw, re.DOTALL)
    return match.group(0) if match else None


def parse_model_output(raw: str) -> ModelReply:
    """Unparsable output becomes a helper reply carrying the raw text as its answer."""
    blob = unwrap_json_object(raw or "")
    if blob is not None:
        try:
            data = orjson.loads(blob)
            if isinstance(data, dict):
                return ModelReply(**data)
        except (orjson.JSONDecodeError, ValidationError) as e:
            log.warning("Could not parse model JSON: %s", e)
    return ModelReply(mode=ResponseMode.ADVISORY.value, answer=raw, followups=[], citations=[])


def normalize_reply(
    reply: ModelReply,
    exposed: List[Chunk],
    max_citations: int = 3,
    max_followups: int = 2,
    max_evidence_chars: int = 160,
) -> DocsAnswer:
    mode = ResponseMode.GROUNDED if reply.mode == ResponseMode.GROUNDED.value else ResponseMode.ADVISORY
    answer = reply.answer.strip() if isinstance(reply.answer, str) and reply.answer.strip() else DEFAULT_ANSWER

    followups: List[str] = []
    if isinstance(reply.followups, list):
        followups = [str(f).strip() for f in reply.followups if f is not None and str(f).strip()]
    followups = followups[:max_followups]

    proposed = reply.citations if isinstance(reply.citations, list) else []
    citations = (
        validate_citations(proposed, exposed, max_citations, max_evidence_chars)
        if mode is ResponseMode.GROUNDED
        else []
    )
    mode, answer, citations = enforce_grounding(mode, answer, citations)
    return DocsAnswer(mode=mode, answer=answer, followups=followups, citations=citations, sources=exposed)


class DocsAnswerer:
    """
    Docs-first QA:
      1) Two-tier retrieval (client chunks, then the full index)
      2) Prompt the LLM with the ranked sources
      3) Validate the citations it returns against those same sources
    """

    def __init__(
        self,
        llm: BaseLanguageModel,
        reranker: Reranker,
        config: GlobalYAMLConfig | None = None,
    ):
        self.llm = llm
        self.reranker = reranker
        self.config = config or yaml_config

    def ask(self, question: str, client_chunks: Iterable[Any] | None = None) -> DocsAnswer:
        question = (question or "").strip()
        if not question:
            raise ValueError("question must be a non-empty string")

        picked = self.reranker.retrieve(question, client_chunks, k=self.config.retrieval.k)
        sources = [c.chunk for c in picked]
        log.info("Retrieved %d sources for question", len(sources))

        prompt = build_answer_prompt(
            question,
            sources,
            assistant_name=self.config.assistant.name,
            community=self.config.assistant.community,
        )
        try:
            raw = self.llm.invoke(prompt)
        except Exception as e:
            log.error("QA LLM invocation failed: %s", e, exc_info=True)
            raise

        content = getattr(raw, "content", raw)
        reply = parse_model_output(str(content))
        cit = self.config.citations
        return normalize_reply(
            reply,
            sources,
            max_citations=cit.max_citations,
            max_followups=cit.max_followups,
            max_evidence_chars=cit.max_evidence_chars,
        )
