"""
Embedding Cache

Holds document vectors keyed by record id so records stay immutable.
Read-through: a missing vector is computed once, stored, and reused by every
later ranking pass. Concurrent requests for the same record share one
in-flight computation.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Iterable, List, Optional

from .schemas.memory_record import MemoryRecord

logger = logging.getLogger("memora.common.embedding_cache")

ComputeFn = Callable[[MemoryRecord], Awaitable[List[float]]]


class EmbeddingCache:
    """
    Cache of record embeddings.

    Vectors are immutable once computed for a given text, so storing the same
    id twice is harmless (last write wins). Empty vectors are never cached:
    a failed embedding is retried on the next pass.
    """

    def __init__(self):
        self._vectors: Dict[str, List[float]] = {}
        self._pending: Dict[str, asyncio.Future] = {}

    def __len__(self) -> int:
        return len(self._vectors)

    def __contains__(self, record_id: str) -> bool:
        return record_id in self._vectors

    def get(self, record_id: str) -> Optional[List[float]]:
        """Cached vector for a record, if any"""
        return self._vectors.get(record_id)

    def put(self, record_id: str, vector: Optional[List[float]]) -> None:
        """Store a vector; empty vectors are ignored"""
        if vector:
            self._vectors[record_id] = list(vector)

    def invalidate(self, record_id: str) -> None:
        """Drop the cached vector of a record (e.g. after deletion)"""
        self._vectors.pop(record_id, None)

    def clear(self) -> None:
        self._vectors.clear()

    def seed(self, records: Iterable[MemoryRecord]) -> int:
        """
        Load precomputed vectors stored on records.

        Returns:
            Number of vectors loaded
        """
        loaded = 0
        for record in records:
            if record.embedding:
                self.put(record.id, record.embedding)
                loaded += 1
        return loaded

    async def get_or_compute(self, record: MemoryRecord, compute: ComputeFn) -> List[float]:
        """
        Return the record's vector, computing and caching it if missing.

        Args:
            record: Record whose vector is needed
            compute: Coroutine function producing the vector for a record

        Returns:
            The vector, or [] if it could not be computed
        """
        cached = self._vectors.get(record.id)
        if cached:
            return cached

        if record.embedding:
            self.put(record.id, record.embedding)
            return list(record.embedding)

        task = self._pending.get(record.id)
        if task is None:
            task = asyncio.ensure_future(compute(record))
            self._pending[record.id] = task
            task.add_done_callback(lambda t, rid=record.id: self._on_computed(rid, t))

        # Shared by concurrent cycles; cancelling one must not abort it
        vector = await asyncio.shield(task)
        self.put(record.id, vector)
        return list(vector) if vector else []

    def _on_computed(self, record_id: str, task: asyncio.Future) -> None:
        if self._pending.get(record_id) is task:
            del self._pending[record_id]
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning("Embedding computation for %s failed: %s", record_id, error)
            return
        self.put(record_id, task.result())
