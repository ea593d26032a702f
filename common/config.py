from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Dict, List, Tuple

import yaml
from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class FallbackPolicy(str, Enum):
    STRICT = "strict"  # nothing scores positive -> empty selection
    PERMISSIVE = "permissive"  # nothing scores positive -> K best anyway


class AppConfig(BaseModel):
    index_path: Path = Path("data/docs_index.json")
    timeout: int = 15
    user_agent: str = "DocsKnowledgeBot/1.0 (+https://github.com/docs-kb)"


class CrawlConfig(BaseModel):
    start_url: str = "https://glhfers.gitbook.io/gigaverse"
    allowed_host: str = "glhfers.gitbook.io"
    allowed_prefix: str = "/gigaverse"
    max_pages: int = Field(default=250, ge=1)
    request_delay: float = Field(default=0.25, ge=0)
    tracking_params: Tuple[str, ...] = (
        "utm_source",
        "utm_medium",
        "utm_campaign",
        "utm_term",
        "utm_content",
        "gclid",
        "fbclid",
        "ref",
    )


class ChunkingConfig(BaseModel):
    max_chars: int = Field(default=1400, gt=0)
    min_chars: int = Field(default=40, ge=0)
    overlap: int = Field(default=0, ge=0)
    fallback_max_chars: int | None = None  # defaults to 2 * max_chars

    @model_validator(mode="after")
    def _check_bounds(self) -> "ChunkingConfig":
        if self.overlap >= self.max_chars:
            raise ValueError("chunking.overlap must be smaller than chunking.max_chars")
        if self.min_chars > self.max_chars:
            raise ValueError("chunking.min_chars must not exceed chunking.max_chars")
        if self.fallback_max_chars is None:
            self.fallback_max_chars = self.max_chars * 2
        return self


DEFAULT_SYNONYMS: Dict[str, List[str]] = {
    "craft": ["crafting", "recipe", "forge"],
    "crafting": ["craft", "recipe"],
    "potion": ["potions", "elixir"],
    "drop": ["drops", "loot"],
    "loot": ["drops", "reward"],
    "earn": ["get", "farm", "reward"],
    "level": ["xp", "experience"],
    "upgrade": ["enhance", "improve"],
    "fight": ["combat", "battle"],
    "gear": ["equipment", "items"],
    "token": ["currency", "coin"],
}


class RetrievalConfig(BaseModel):
    k: int = Field(default=6, ge=1)
    max_candidates: int = Field(default=6000, ge=1)
    fallback_policy: FallbackPolicy = FallbackPolicy.STRICT
    short_text_threshold: int = 120
    prefilter_k: int = Field(default=4, ge=1)
    synonyms: Dict[str, List[str]] = Field(default_factory=lambda: dict(DEFAULT_SYNONYMS))


class CitationConfig(BaseModel):
    max_citations: int = Field(default=3, ge=0)
    max_followups: int = Field(default=2, ge=0)
    max_evidence_chars: int = 160


class LLMConfig(BaseModel):
    provider: str = "ollama"
    model_name: str = "llama3.1:8b"
    temperature: float = 0.2
    num_predict: int = 650


class AssistantConfig(BaseModel):
    name: str = "Docs Assistant"
    community: str = "the community"


class GlobalYAMLConfig(BaseModel):
    app: AppConfig = Field(default_factory=AppConfig)
    crawl: CrawlConfig = Field(default_factory=CrawlConfig)
    chunking: ChunkingConfig = Field(default_factory=ChunkingConfig)
    retrieval: RetrievalConfig = Field(default_factory=RetrievalConfig)
    citations: CitationConfig = Field(default_factory=CitationConfig)
    llm_qa: LLMConfig = Field(default_factory=LLMConfig)
    assistant: AssistantConfig = Field(default_factory=AssistantConfig)


class EnvSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="DOCS_KB_", env_file=".env", extra="ignore"
    )

    config: Path = Path("config/config.yaml")
    ollama_base_url: str = "http://localhost:11434"
    log_level: str = "INFO"


def load_yaml_config(path: Path | None = None) -> GlobalYAMLConfig:
    path = Path(path or env_settings.config)
    if not path.exists():
        return GlobalYAMLConfig()
    with open(path, "r") as f:
        raw = yaml.safe_load(f) or {}
    return GlobalYAMLConfig(**raw)


env_settings = EnvSettings()
yaml_config = load_yaml_config()
