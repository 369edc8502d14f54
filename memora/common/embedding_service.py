"""
Embedding Service

Turns text into vectors for similarity search. Two backends:
- "google": Gemini embedding API (task-typed query/document embeddings)
- "femb": on-device embedding generation using fastembed

Every backend has a primary and a fallback call. If both fail the service
returns an empty vector, which downstream scoring treats as "no vector
signal" rather than an error.
"""

import asyncio
import logging
from enum import Enum
from typing import List, Optional

import numpy as np

logger = logging.getLogger("memora.common.embedding_service")

DEFAULT_MAX_CHARS = 1000


class EmbeddingMode(str, Enum):
    """What the embedded text will be used for"""
    QUERY = "query"
    DOCUMENT = "document"


GOOGLE_TASK_TYPES = {
    EmbeddingMode.QUERY: "retrieval_query",
    EmbeddingMode.DOCUMENT: "retrieval_document",
}


def prepare_text(text: Optional[str], max_chars: int = DEFAULT_MAX_CHARS) -> str:
    """Trim and truncate text for submission; never returns an empty string"""
    safe = (text or " ").strip()[:max_chars]
    return safe or " "


def _to_vector(values) -> List[float]:
    if values is None:
        return []
    if isinstance(values, np.ndarray):
        return values.astype(float).tolist()
    return [float(v) for v in values]


class EmbeddingService:
    """
    Embedding provider for Memora.

    Uses the Gemini embedding API by default; "femb" keeps data on-device.
    """

    def __init__(
        self,
        mode: str = "google",
        model: str = "models/text-embedding-004",
        api_key: Optional[str] = None,
        max_chars: int = DEFAULT_MAX_CHARS,
    ):
        self._mode = mode
        self._model = model
        self._max_chars = max_chars
        self._backend = None
        self._init_backend(api_key)

    def _init_backend(self, api_key: Optional[str]) -> None:
        """Initialize the underlying embedding backend"""
        if self._mode == "google":
            if not api_key:
                logger.info("Google API key not provided, embeddings unavailable")
                return
            try:
                import google.generativeai as genai

                genai.configure(api_key=api_key)
                self._backend = genai
                logger.info("Initialized with mode=%s, model=%s", self._mode, self._model)
            except ImportError:
                logger.warning("google-generativeai package not installed")
            return

        if self._mode == "femb":
            try:
                from fastembed import TextEmbedding

                self._backend = TextEmbedding(model_name=self._model)
                logger.info("Initialized with mode=%s, model=%s", self._mode, self._model)
            except ImportError:
                logger.warning("fastembed package not installed")
            except Exception as e:
                logger.warning("Failed to load fastembed model %s: %s", self._model, e)
            return

        logger.warning("Unsupported embedding mode: %s", self._mode)

    @property
    def is_available(self) -> bool:
        """Check if embedding service is available"""
        return self._backend is not None

    @property
    def mode(self) -> str:
        return self._mode

    def embed(self, text: str, mode: EmbeddingMode = EmbeddingMode.QUERY) -> List[float]:
        """
        Generate an embedding for a single text.

        Args:
            text: String to embed (truncated, blank replaced by a space)
            mode: QUERY for search queries, DOCUMENT for stored records

        Returns:
            Embedding vector, or [] if every embedding path failed
        """
        if not self.is_available:
            return []

        safe_text = prepare_text(text, self._max_chars)

        try:
            return self._embed_primary(safe_text, mode)
        except Exception as e:
            logger.warning("Primary embedding failed, trying fallback: %s", e)

        try:
            return self._embed_fallback(safe_text, mode)
        except Exception as e:
            logger.error("All embedding paths failed: %s", e)
            return []

    async def aembed(self, text: str, mode: EmbeddingMode = EmbeddingMode.QUERY) -> List[float]:
        """Async variant of embed(); the blocking call runs in a worker thread"""
        return await asyncio.to_thread(self.embed, text, mode)

    def _embed_primary(self, text: str, mode: EmbeddingMode) -> List[float]:
        if self._mode == "google":
            # Batch form: content is a list, embedding is a list of vectors
            result = self._backend.embed_content(
                model=self._model,
                content=[text],
                task_type=GOOGLE_TASK_TYPES[mode],
            )
            embeddings = (result or {}).get("embedding") or []
            return _to_vector(embeddings[0]) if embeddings else []

        if mode == EmbeddingMode.QUERY:
            vectors = list(self._backend.query_embed(text))
        else:
            vectors = list(self._backend.passage_embed([text]))
        return _to_vector(vectors[0]) if vectors else []

    def _embed_fallback(self, text: str, mode: EmbeddingMode) -> List[float]:
        if self._mode == "google":
            result = self._backend.embed_content(
                model=self._model,
                content=text,
                task_type=GOOGLE_TASK_TYPES[mode],
            )
            return _to_vector((result or {}).get("embedding"))

        vectors = list(self._backend.embed([text]))
        return _to_vector(vectors[0]) if vectors else []

