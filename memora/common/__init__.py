"""
Memora Common Module

Shared infrastructure for the Scribe and Retriever sides.
"""

from .config import MemoraConfig, load_config
from .embedding_cache import EmbeddingCache
from .embedding_service import EmbeddingMode, EmbeddingService
from .llm_client import LLMClient
from .similarity import cosine_similarity

__all__ = [
    "MemoraConfig",
    "load_config",
    "EmbeddingCache",
    "EmbeddingMode",
    "EmbeddingService",
    "LLMClient",
    "cosine_similarity",
]
