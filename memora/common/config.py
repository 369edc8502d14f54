"""
Configuration Management for Memora

Loads configuration from ~/.memora/config.json and environment variables.
"""

import os
import json
import logging
from pathlib import Path
from dataclasses import dataclass, field

logger = logging.getLogger("memora.common.config")

# Default config paths
CONFIG_DIR = Path.home() / ".memora"
CONFIG_PATH = CONFIG_DIR / "config.json"
LOGS_DIR = CONFIG_DIR / "logs"
STORE_PATH = CONFIG_DIR / "records.json"


@dataclass
class LLMConfig:
    """LLM provider configuration shared by classifier, expander and synthesizer"""
    provider: str = "google"
    google_api_key: str = ""
    google_model: str = "gemini-2.0-flash"
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"

    def model_for_provider(self) -> str:
        return {
            "google": self.google_model,
            "anthropic": self.anthropic_model,
            "openai": self.openai_model,
        }.get(self.provider, "")


@dataclass
class EmbeddingConfig:
    """Embedding backend configuration"""
    mode: str = "google"  # "google" (Gemini API) or "femb" (fastembed, on-device)
    model: str = "models/text-embedding-004"
    max_chars: int = 1000


@dataclass
class RetrieverConfig:
    """Retrieval pipeline configuration"""
    debounce_ms: int = 500
    score_threshold: float = 0.08  # Exclusive; tunable
    topk: int = 6


@dataclass
class VaultConfig:
    """Local record store configuration"""
    store_path: str = str(STORE_PATH)


@dataclass
class MemoraConfig:
    """Main Memora configuration"""
    llm: LLMConfig = field(default_factory=LLMConfig)
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    retriever: RetrieverConfig = field(default_factory=RetrieverConfig)
    vault: VaultConfig = field(default_factory=VaultConfig)
    _env_sourced_keys: set = field(default_factory=set, repr=False)


def _parse_llm_config(data: dict) -> LLMConfig:
    """Parse llm section from config dict"""
    llm_data = data.get("llm", {})
    defaults = LLMConfig()
    return LLMConfig(
        provider=llm_data.get("provider", defaults.provider),
        google_api_key=llm_data.get("google_api_key", ""),
        google_model=llm_data.get("google_model", defaults.google_model),
        anthropic_api_key=llm_data.get("anthropic_api_key", ""),
        anthropic_model=llm_data.get("anthropic_model", defaults.anthropic_model),
        openai_api_key=llm_data.get("openai_api_key", ""),
        openai_model=llm_data.get("openai_model", defaults.openai_model),
    )


def _parse_embedding_config(data: dict) -> EmbeddingConfig:
    """Parse embedding section from config dict"""
    embedding_data = data.get("embedding", {})
    defaults = EmbeddingConfig()
    return EmbeddingConfig(
        mode=embedding_data.get("mode", defaults.mode),
        model=embedding_data.get("model", defaults.model),
        max_chars=embedding_data.get("max_chars", defaults.max_chars),
    )


def _parse_retriever_config(data: dict) -> RetrieverConfig:
    """Parse retriever section from config dict"""
    retriever_data = data.get("retriever", {})
    defaults = RetrieverConfig()
    return RetrieverConfig(
        debounce_ms=retriever_data.get("debounce_ms", defaults.debounce_ms),
        score_threshold=retriever_data.get("score_threshold", defaults.score_threshold),
        topk=retriever_data.get("topk", defaults.topk),
    )


def _parse_vault_config(data: dict) -> VaultConfig:
    """Parse vault section from config dict"""
    vault_data = data.get("vault", {})
    return VaultConfig(store_path=vault_data.get("store_path", str(STORE_PATH)))


def load_config() -> MemoraConfig:
    """
    Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables
    2. Config file (~/.memora/config.json)
    3. Default values
    """
    config = MemoraConfig()

    if CONFIG_PATH.exists():
        try:
            with open(CONFIG_PATH) as f:
                data = json.load(f)

            config.llm = _parse_llm_config(data)
            config.embedding = _parse_embedding_config(data)
            config.retriever = _parse_retriever_config(data)
            config.vault = _parse_vault_config(data)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning("Failed to load config file: %s", e)

    # LLM env var overrides (track env-sourced keys so they are never saved)
    _env_llm_map = {
        "API_KEY": "google_api_key",
        "GOOGLE_API_KEY": "google_api_key",
        "GEMINI_API_KEY": "google_api_key",
        "GOOGLE_MODEL": "google_model",
        "ANTHROPIC_API_KEY": "anthropic_api_key",
        "ANTHROPIC_MODEL": "anthropic_model",
        "OPENAI_API_KEY": "openai_api_key",
        "OPENAI_MODEL": "openai_model",
        "MEMORA_LLM_PROVIDER": "provider",
    }
    for env_var, attr in _env_llm_map.items():
        val = os.getenv(env_var)
        if val:
            setattr(config.llm, attr, val)
            config._env_sourced_keys.add(attr)

    if os.getenv("EMBEDDING_MODE"):
        config.embedding.mode = os.getenv("EMBEDDING_MODE")
    if os.getenv("EMBEDDING_MODEL"):
        config.embedding.model = os.getenv("EMBEDDING_MODEL")

    if os.getenv("MEMORA_DEBOUNCE_MS"):
        config.retriever.debounce_ms = int(os.getenv("MEMORA_DEBOUNCE_MS"))
    if os.getenv("MEMORA_SCORE_THRESHOLD"):
        config.retriever.score_threshold = float(os.getenv("MEMORA_SCORE_THRESHOLD"))
    if os.getenv("MEMORA_TOPK"):
        config.retriever.topk = int(os.getenv("MEMORA_TOPK"))

    if os.getenv("MEMORA_STORE_PATH"):
        config.vault.store_path = os.getenv("MEMORA_STORE_PATH")

    return config


def save_config(config: MemoraConfig) -> None:
    """Save configuration to file.

    API key fields that were sourced from environment variables are written
    as empty strings so that secrets are not persisted to disk.
    """
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)

    env_sourced = getattr(config, "_env_sourced_keys", set())

    llm_section = {
        "provider": config.llm.provider,
        "google_api_key": config.llm.google_api_key,
        "google_model": config.llm.google_model,
        "anthropic_api_key": config.llm.anthropic_api_key,
        "anthropic_model": config.llm.anthropic_model,
        "openai_api_key": config.llm.openai_api_key,
        "openai_model": config.llm.openai_model,
    }
    for key in ("google_api_key", "anthropic_api_key", "openai_api_key"):
        if key in env_sourced:
            llm_section[key] = ""

    data = {
        "llm": llm_section,
        "embedding": {
            "mode": config.embedding.mode,
            "model": config.embedding.model,
            "max_chars": config.embedding.max_chars,
        },
        "retriever": {
            "debounce_ms": config.retriever.debounce_ms,
            "score_threshold": config.retriever.score_threshold,
            "topk": config.retriever.topk,
        },
        "vault": {
            "store_path": config.vault.store_path,
        },
    }

    with open(CONFIG_PATH, "w") as f:
        json.dump(data, f, indent=2)

    # Set secure permissions
    CONFIG_PATH.chmod(0o600)


def ensure_directories() -> None:
    """Ensure required directories exist"""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    LOGS_DIR.mkdir(parents=True, exist_ok=True)
