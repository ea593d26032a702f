from __future__ import annotations

import argparse
from pathlib import Path

from common.config import load_yaml_config
from common.errors import IndexWriteError
from common.logger import get_logger
from ingestion.ingest_pipeline import ingest_site

log = get_logger(__name__)


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Crawl a documentation site and (re)build the JSON chunk index."
    )
    parser.add_argument("--config", type=str, default=None, help="Path to config YAML")
    parser.add_argument("--start_url", type=str, default=None, help="Crawl seed URL")
    parser.add_argument("--allowed_host", type=str, default=None)
    parser.add_argument("--allowed_prefix", type=str, default=None)
    parser.add_argument("--max_pages", type=int, default=None)
    parser.add_argument("--delay", type=float, default=None, help="Seconds between fetches")
    parser.add_argument("--out", type=str, default=None, help="Output JSON path")
    parser.add_argument("--no-progress", action="store_true")
    args = parser.parse_args(argv)

    config = load_yaml_config(Path(args.config) if args.config else None)
    overrides = {
        "start_url": args.start_url,
        "allowed_host": args.allowed_host,
        "allowed_prefix": args.allowed_prefix,
        "max_pages": args.max_pages,
        "request_delay": args.delay,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}
    if overrides:
        crawl = config.crawl.model_copy(update=overrides)
        config = config.model_copy(update={"crawl": crawl})

    try:
        ingest_site(
            out_path=Path(args.out) if args.out else None,
            config=config,
            show_progress=not args.no_progress,
        )
    except IndexWriteError as e:
        log.error("%s", e)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
