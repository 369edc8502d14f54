"""
Searcher

Ranks stored memories against one query. Every record is scored
independently and concurrently:

    final = clamp(vector*0.3 + concept*0.5 + keyword*0.2 + title_boost, 0, 1)

Records at or below the threshold are dropped; the rest are sorted best
first (stable on ties) and trimmed to top-k.
"""

import asyncio
import logging
from typing import List, Optional, Sequence

from ..common.embedding_cache import EmbeddingCache
from ..common.embedding_service import EmbeddingMode
from ..common.schemas import ExpansionResult, MemoryRecord, ScoredRecord, render_document_text
from ..common.similarity import clamp, cosine_similarity
from .scorer import MAX_TITLE_BOOST, LexicalScores, score_record

logger = logging.getLogger("memora.retriever.searcher")

# Fusion weights
VECTOR_WEIGHT = 0.3
CONCEPT_WEIGHT = 0.5
KEYWORD_WEIGHT = 0.2

# Minimum fused score (exclusive); tunable, noisy on large vaults
SCORE_THRESHOLD = 0.08
TOP_K = 6


def fuse_scores(vector_score: float, lexical: LexicalScores) -> float:
    """Weighted combination of all signals, each clamped first, result clamped to [0,1]"""
    fused = (
        clamp(vector_score) * VECTOR_WEIGHT
        + clamp(lexical.concept_score) * CONCEPT_WEIGHT
        + clamp(lexical.keyword_score) * KEYWORD_WEIGHT
        + clamp(lexical.title_boost, 0.0, MAX_TITLE_BOOST)
    )
    return clamp(fused)


def filter_and_rank(
    scored: Sequence[ScoredRecord],
    threshold: float = SCORE_THRESHOLD,
    topk: int = TOP_K,
) -> List[ScoredRecord]:
    """Keep scores strictly above threshold, sort descending (stable), take top-k"""
    kept = [s for s in scored if s.score > threshold]
    kept.sort(key=lambda s: s.score, reverse=True)
    return kept[:topk]


class Searcher:
    """
    Scores and ranks memories for a query.

    Features:
    - Concurrent per-record scoring
    - Vector signal only when a query vector is available
    - Document vectors read through the EmbeddingCache (computed on demand)
    """

    def __init__(
        self,
        embedding_service=None,
        embedding_cache: Optional[EmbeddingCache] = None,
        score_threshold: float = SCORE_THRESHOLD,
        topk: int = TOP_K,
    ):
        """
        Initialize searcher.

        Args:
            embedding_service: Embedder with `aembed(text, mode)` for missing document vectors
            embedding_cache: Shared cache of document vectors
            score_threshold: Minimum fused score (exclusive)
            topk: Maximum number of results
        """
        self._embedding = embedding_service
        self._cache = embedding_cache if embedding_cache is not None else EmbeddingCache()
        self._threshold = score_threshold
        self._topk = topk

    @property
    def cache(self) -> EmbeddingCache:
        return self._cache

    async def rank(
        self,
        query: str,
        expansion: ExpansionResult,
        query_vector: Optional[List[float]],
        records: Sequence[MemoryRecord],
    ) -> List[ScoredRecord]:
        """
        Rank records against a query.

        Args:
            query: Raw user query (keyword terms come from this, not the expansion)
            expansion: Expanded query and bridging concepts
            query_vector: Embedded expanded query; empty disables vector scoring
            records: Candidate records in collection order

        Returns:
            ScoredRecords above the threshold, best first
        """
        scored = await self.score_all(query, expansion, query_vector, records)
        ranked = filter_and_rank(scored, self._threshold, self._topk)
        logger.debug("Ranked %d/%d records above %.2f", len(ranked), len(scored), self._threshold)
        return ranked

    async def score_all(
        self,
        query: str,
        expansion: ExpansionResult,
        query_vector: Optional[List[float]],
        records: Sequence[MemoryRecord],
    ) -> List[ScoredRecord]:
        """Score every record concurrently; output keeps collection order"""
        vector = query_vector or None
        tasks = [
            self._score_one(query, expansion.concepts, vector, record)
            for record in records
        ]
        return list(await asyncio.gather(*tasks))

    async def _score_one(
        self,
        query: str,
        concepts: List[str],
        query_vector: Optional[List[float]],
        record: MemoryRecord,
    ) -> ScoredRecord:
        vector_score = 0.0
        if query_vector:
            document_vector = await self._document_vector(record)
            vector_score = cosine_similarity(query_vector, document_vector)

        lexical = score_record(query, concepts, record)
        return ScoredRecord(record=record, score=fuse_scores(vector_score, lexical))

    async def _document_vector(self, record: MemoryRecord) -> List[float]:
        if self._embedding is None:
            return list(record.embedding or [])
        return await self._cache.get_or_compute(record, self._compute_document_vector)

    async def _compute_document_vector(self, record: MemoryRecord) -> List[float]:
        return await self._embedding.aembed(render_document_text(record), EmbeddingMode.DOCUMENT)
