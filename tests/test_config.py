import pytest
from pydantic import ValidationError

from common.config import ChunkingConfig, FallbackPolicy, load_yaml_config


def test_missing_yaml_gives_defaults(tmp_path):
    cfg = load_yaml_config(tmp_path / "nope.yaml")
    assert cfg.crawl.max_pages == 250
    assert cfg.chunking.max_chars == 1400
    assert cfg.chunking.fallback_max_chars == 2800
    assert cfg.retrieval.fallback_policy is FallbackPolicy.STRICT


def test_yaml_overrides(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "chunking:\n  max_chars: 500\n  overlap: 50\n"
        "retrieval:\n  k: 3\n  fallback_policy: permissive\n"
    )
    cfg = load_yaml_config(path)
    assert cfg.chunking.max_chars == 500
    assert cfg.chunking.fallback_max_chars == 1000
    assert cfg.retrieval.k == 3
    assert cfg.retrieval.fallback_policy is FallbackPolicy.PERMISSIVE


def test_overlap_must_be_smaller_than_max():
    with pytest.raises(ValidationError):
        ChunkingConfig(max_chars=100, overlap=100)


def test_min_cannot_exceed_max():
    with pytest.raises(ValidationError):
        ChunkingConfig(max_chars=100, min_chars=200)
