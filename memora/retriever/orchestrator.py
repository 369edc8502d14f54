"""
Retrieval Orchestrator

Drives one retrieval cycle per (debounced) query:

    IDLE -> EXPANDING -> EMBEDDING -> SCORING -> SYNTHESIZING -> DONE
                                                (any stage) -> FAILED

Each cycle takes a generation number when it starts. Only the most recently
started cycle may publish its response; results of older cycles that finish
later are discarded.
"""

import logging
from enum import Enum
from typing import Callable, List, Optional, Sequence

from ..common.embedding_cache import EmbeddingCache
from ..common.embedding_service import EmbeddingMode
from ..common.schemas import MemoryRecord, QueryResponse
from .debounce import Debouncer
from .searcher import SCORE_THRESHOLD, TOP_K, Searcher

logger = logging.getLogger("memora.retriever.orchestrator")

DEBOUNCE_SECONDS = 0.5

NO_MATCH_ANSWER = (
    "I've analyzed your question against all stored concepts, "
    "but I couldn't find a memory that bridges to this intent."
)
FAILURE_ANSWER = "The memory retrieval pipeline encountered an error during reasoning."


class RetrievalState(str, Enum):
    """Stages of a retrieval cycle"""
    IDLE = "idle"
    EXPANDING = "expanding"
    EMBEDDING = "embedding"
    SCORING = "scoring"
    SYNTHESIZING = "synthesizing"
    DONE = "done"
    FAILED = "failed"


ACTIVE_STATES = frozenset({
    RetrievalState.EXPANDING,
    RetrievalState.EMBEDDING,
    RetrievalState.SCORING,
    RetrievalState.SYNTHESIZING,
})


class RetrievalOrchestrator:
    """
    Debounced retrieval pipeline over an in-memory record collection.

    Collaborators:
    - expander: `await expand(query) -> ExpansionResult`
    - embedding_service: `await aembed(text, mode) -> List[float]` (optional)
    - synthesizer: `await synthesize(query, sources) -> str`

    Usage:
        orchestrator.submit("when is the party")   # debounced
        response = await orchestrator.run_cycle("when is the party")  # immediate
    """

    def __init__(
        self,
        expander,
        embedding_service,
        synthesizer,
        records: Optional[Sequence[MemoryRecord]] = None,
        embedding_cache: Optional[EmbeddingCache] = None,
        searcher: Optional[Searcher] = None,
        debounce_seconds: float = DEBOUNCE_SECONDS,
        score_threshold: float = SCORE_THRESHOLD,
        topk: int = TOP_K,
        on_response: Optional[Callable[[QueryResponse], None]] = None,
    ):
        self._expander = expander
        self._embedding = embedding_service
        self._synthesizer = synthesizer
        self._records: List[MemoryRecord] = list(records or [])
        self._cache = embedding_cache if embedding_cache is not None else EmbeddingCache()
        self._searcher = searcher or Searcher(
            embedding_service=embedding_service,
            embedding_cache=self._cache,
            score_threshold=score_threshold,
            topk=topk,
        )
        self._debouncer: Debouncer[str] = Debouncer(debounce_seconds, self.run_cycle)
        self._on_response = on_response

        self._generation = 0
        self._state = RetrievalState.IDLE
        self._response = QueryResponse()

    @classmethod
    def from_config(
        cls,
        retriever_config,
        expander,
        embedding_service,
        synthesizer,
        records: Optional[Sequence[MemoryRecord]] = None,
        **kwargs,
    ) -> "RetrievalOrchestrator":
        """Build an orchestrator using RetrieverConfig tunables"""
        return cls(
            expander,
            embedding_service,
            synthesizer,
            records=records,
            debounce_seconds=retriever_config.debounce_ms / 1000,
            score_threshold=retriever_config.score_threshold,
            topk=retriever_config.topk,
            **kwargs,
        )

    @property
    def state(self) -> RetrievalState:
        return self._state

    @property
    def response(self) -> QueryResponse:
        """Latest published response"""
        return self._response

    @property
    def generation(self) -> int:
        """Number of the most recently started cycle"""
        return self._generation

    @property
    def records(self) -> List[MemoryRecord]:
        return list(self._records)

    @property
    def embedding_cache(self) -> EmbeddingCache:
        return self._cache

    def set_records(self, records: Sequence[MemoryRecord]) -> None:
        """Replace the record collection used by subsequent cycles"""
        self._records = list(records)

    def submit(self, query: str) -> None:
        """Schedule a cycle for `query` once input has been quiet for the debounce window"""
        self._debouncer.trigger(query)

    def cancel(self) -> None:
        """
        Drop any pending query and discard results of cycles still in flight.

        An in-flight cycle has already published its "thinking" placeholder;
        that placeholder is cleared and the state returns to IDLE.
        """
        self._debouncer.cancel()
        self._generation += 1
        if self._state in ACTIVE_STATES or self._response.is_thinking:
            self._state = RetrievalState.IDLE
            self._publish(self._generation, self._response.model_copy(update={"is_thinking": False}))

    async def wait_idle(self) -> None:
        """Wait until the pending debounced cycle (if any) has finished"""
        await self._debouncer.wait()

    async def run_cycle(self, query: str) -> QueryResponse:
        """
        Run one retrieval cycle immediately.

        Args:
            query: User query; blank queries return the whole collection

        Returns:
            This cycle's response (published only if no newer cycle started)
        """
        self._generation += 1
        generation = self._generation
        records = list(self._records)

        if not query or not query.strip():
            response = QueryResponse(answer="", sources=records, confidence=1.0, is_thinking=False)
            self._set_state(generation, RetrievalState.IDLE)
            self._publish(generation, response)
            return response

        self._publish(generation, self._response.model_copy(update={"is_thinking": True}))

        try:
            self._set_state(generation, RetrievalState.EXPANDING)
            expansion = await self._expander.expand(query)

            self._set_state(generation, RetrievalState.EMBEDDING)
            query_vector: List[float] = []
            if self._embedding is not None:
                query_vector = await self._embedding.aembed(expansion.expanded_query, EmbeddingMode.QUERY)
            if not query_vector:
                logger.info("No query vector; scoring without vector signal")

            self._set_state(generation, RetrievalState.SCORING)
            sources = await self._searcher.rank(query, expansion, query_vector, records)

            self._set_state(generation, RetrievalState.SYNTHESIZING)
            if sources:
                answer = await self._synthesizer.synthesize(query, sources)
            else:
                answer = NO_MATCH_ANSWER

            response = QueryResponse(
                answer=answer,
                sources=sources,
                confidence=sources[0].score if sources else 0.0,
                is_thinking=False,
            )
            self._set_state(generation, RetrievalState.DONE)
        except Exception as e:
            logger.error("Retrieval pipeline failed for query %r: %s", query, e, exc_info=True)
            response = QueryResponse(answer=FAILURE_ANSWER, sources=[], confidence=0.0, is_thinking=False)
            self._set_state(generation, RetrievalState.FAILED)

        if not self._publish(generation, response):
            logger.debug("Discarded stale response of cycle %d (latest: %d)", generation, self._generation)
        return response

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _set_state(self, generation: int, state: RetrievalState) -> None:
        if self._is_current(generation):
            self._state = state

    def _publish(self, generation: int, response: QueryResponse) -> bool:
        if not self._is_current(generation):
            return False
        self._response = response
        if self._on_response is not None:
            try:
                self._on_response(response)
            except Exception as e:
                logger.error("Response listener failed: %s", e, exc_info=True)
        return True
