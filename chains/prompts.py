from typing import Sequence

from langchain_core.prompts import PromptTemplate

from ingestion.document_models import Chunk

SYSTEM_BASE = """You are {assistant_name}, the official AI assistant for {community}.

Style:
- Speak clearly and confidently.
- Be helpful and professional.
- Do not mention internal implementation details (no "chunks", no "docs index", no "RAG").
- No jokes, no roleplay, no sarcasm.

Behavior (docs-first):
1) If SOURCES contain the answer, answer from them and cite the relevant SOURCE titles/sections.
2) If SOURCES do not contain the answer, still help: give practical guidance and ask 1-2 targeted follow-up questions.
   In that case, be explicit: "I don't see this explicitly in the docs I have loaded."
3) Never invent product-specific mechanics that are not supported by SOURCES.

Output (JSON only):
{{
  "mode": "docs" | "helper",
  "answer": string,
  "followups": string[],
  "citations": [{{"title": string, "section": string, "source": number, "evidence": string}}]
}}"""

ANSWER_TEMPLATE = PromptTemplate(
    input_variables=["assistant_name", "community", "sources", "question"],
    template=(
        SYSTEM_BASE + "\n\n"
        "SOURCES:\n{sources}\n\n"
        "USER QUESTION:\n{question}\n\n"
        "Rules:\n"
        '- If SOURCES contain the answer, mode="docs" and include up to 3 citations '
        "(title + section exactly as given, source number, and a short evidence quote).\n"
        '- If SOURCES do NOT contain the answer, mode="helper", citations must be [].\n'
        "- Followups: include 0-2 short questions only if helpful.\n"
        "Return JSON only."
    ),
)

NO_SOURCES = "(no sources matched)"


def format_sources_context(chunks: Sequence[Chunk]) -> str:
    blocks = []
    for i, c in enumerate(chunks, start=1):
        lines = [f"SOURCE {i}", f"TITLE: {c.title.strip() or 'Untitled'}"]
        if c.section.strip():
            lines.append(f"SECTION: {c.section.strip()}")
        if c.url.strip():
            lines.append(f"URL: {c.url.strip()}")
        lines.append(f"CONTENT:\n{c.text.strip()}")
        blocks.append("\n".join(lines))
    return "\n\n---\n\n".join(blocks) or NO_SOURCES


def build_answer_prompt(
    question: str, chunks: Sequence[Chunk], assistant_name: str, community: str
) -> str:
    return ANSWER_TEMPLATE.format(
        assistant_name=assistant_name,
        community=community,
        sources=format_sources_context(chunks),
        question=question.strip(),
    )
