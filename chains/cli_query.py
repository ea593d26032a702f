from __future__ import annotations

import argparse
from pathlib import Path

from chains.answerer import DocsAnswerer
from common.config import load_yaml_config
from common.errors import IndexArtifactError
from common.logger import get_logger
from ingestion.index_builder import load_index
from models.llm import load_local_llm
from retrieval.reranker import Reranker, prefilter

log = get_logger(__name__)


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Answer a question from the crawled docs index."
    )
    parser.add_argument("question", type=str, help="Your question")
    parser.add_argument("--config", type=str, default=None, help="Path to config YAML")
    parser.add_argument("--index", type=str, default=None, help="Docs index JSON path")
    parser.add_argument("--k", type=int, default=None)
    parser.add_argument(
        "--prefilter",
        action="store_true",
        help="Send term-frequency preselected chunks as first-tier candidates",
    )
    parser.add_argument(
        "--no-llm", action="store_true", help="Only print the ranked sources"
    )
    args = parser.parse_args(argv)

    config = load_yaml_config(Path(args.config) if args.config else None)
    if args.k:
        config = config.model_copy(
            update={"retrieval": config.retrieval.model_copy(update={"k": args.k})}
        )
    index_path = Path(args.index) if args.index else config.app.index_path
    reranker = Reranker.from_index_file(index_path, cfg=config.retrieval)

    try:
        client_chunks = []
        if args.prefilter:
            client_chunks = prefilter(
                args.question, load_index(index_path), k=config.retrieval.prefilter_k
            )

        if args.no_llm:
            picked = reranker.retrieve(args.question, client_chunks)
            print("\n=== SOURCES ===\n")
            for c in picked:
                print(f"- [{c.score:.1f}] {c.chunk.title} / {c.chunk.section} ({c.chunk.url})")
            return

        answerer = DocsAnswerer(llm=load_local_llm(config.llm_qa), reranker=reranker, config=config)
        result = answerer.ask(args.question, client_chunks)
    except IndexArtifactError as e:
        log.error("%s", e)
        raise SystemExit(2)

    print(f"\n=== ANSWER ({result.mode.value}) ===\n")
    print(result.answer)

    if result.citations:
        print("\n=== CITATIONS ===\n")
        for cit in result.citations:
            print(f"- {cit.title} / {cit.section} (source {cit.source_index}) {cit.source or ''}")
            if cit.evidence:
                print(f'  "{cit.evidence}"')

    if result.followups:
        print("\n=== FOLLOW-UPS ===\n")
        for f in result.followups:
            print(f"- {f}")


if __name__ == "__main__":
    main()
