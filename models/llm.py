from __future__ import annotations

from langchain_ollama import OllamaLLM

from common.config import LLMConfig, env_settings, yaml_config
from common.logger import get_logger

log = get_logger(__name__)


def load_local_llm(cfg: LLMConfig | None = None):
    """
    Build the answer-generation LLM from the llm_qa config section.
    """
    cfg = cfg or yaml_config.llm_qa

    if cfg.provider == "ollama":
        log.info("Using Ollama model %s at %s", cfg.model_name, env_settings.ollama_base_url)
        return OllamaLLM(
            model=cfg.model_name,
            temperature=cfg.temperature,
            num_predict=cfg.num_predict,
            base_url=env_settings.ollama_base_url,
            format="json",
        )
    else:
        raise ValueError(f"Unsupported provider: {cfg.provider}")
