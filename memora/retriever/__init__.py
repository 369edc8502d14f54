"""
Retriever - Concept-Bridging Recall

Answers conversational questions from stored memories.

Key Components:
- QueryExpander: Maps the query's intent to bridging concepts
- Searcher: Fuses vector, concept and keyword signals into one score
- Synthesizer: LLM answer grounded only in the ranked memories
- RetrievalOrchestrator: Debounced cycle driver with stale-result discard

Pipeline:
1. Expand the query (expanded query + concepts)
2. Embed the expanded query
3. Score every memory concurrently, filter and take the top results
4. Synthesize an answer (or report that nothing bridges to the intent)
"""

from .debounce import Debouncer
from .orchestrator import RetrievalOrchestrator, RetrievalState
from .query_expander import QueryExpander
from .scorer import LexicalScores, score_record
from .searcher import Searcher, filter_and_rank, fuse_scores
from .synthesizer import Synthesizer

__all__ = [
    "Debouncer",
    "RetrievalOrchestrator",
    "RetrievalState",
    "QueryExpander",
    "LexicalScores",
    "score_record",
    "Searcher",
    "filter_and_rank",
    "fuse_scores",
    "Synthesizer",
]
