from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable, List

import orjson

from common.errors import IndexArtifactError, IndexNotFoundError, IndexWriteError
from common.logger import get_logger
from ingestion.document_models import Chunk

log = get_logger(__name__)

ENVELOPE_KEYS = ("chunks", "docs", "items")


def sort_key(c: Chunk):
    return (c.title.casefold(), c.section.casefold())


def build_index(chunks: Iterable[Chunk]) -> List[Chunk]:
    """
    Deduplicate by chunk id (last seen wins) and sort by (title, section).
    The sort is stable, so ties keep crawl order and identical crawls give identical output.
    """
    uniq: Dict[str, Chunk] = {}
    for c in chunks:
        uniq.pop(c.id, None)
        uniq[c.id] = c
    return sorted(uniq.values(), key=sort_key)


def write_index(chunks: List[Chunk], path: Path) -> Path:
    """Replace the artifact wholesale: write a temp file beside it, then rename over it."""
    path = Path(path)
    payload = orjson.dumps([c.to_record() for c in chunks], option=orjson.OPT_INDENT_2)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(payload)
            os.replace(tmp, path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
    except OSError as e:
        raise IndexWriteError(path, f"write failed: {e}") from e
    log.info("Wrote %d chunks to %s", len(chunks), path)
    return path


def load_index(path: Path) -> List[Dict[str, Any]]:
    """
    Read the artifact as raw records. Accepts a bare array or an object holding
    the array under one of ENVELOPE_KEYS. Missing or malformed artifacts raise.
    """
    path = Path(path)
    if not path.exists():
        raise IndexNotFoundError(path, "not found (run the crawl first)")
    try:
        data = orjson.loads(path.read_bytes())
    except orjson.JSONDecodeError as e:
        raise IndexArtifactError(path, f"invalid JSON: {e}") from e
    except OSError as e:
        raise IndexArtifactError(path, f"read failed: {e}") from e

    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in ENVELOPE_KEYS:
            if isinstance(data.get(key), list):
                return data[key]
    raise IndexArtifactError(path, "no chunk array found")
