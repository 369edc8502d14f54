"""
Memora

Private memory vault with concept-bridging recall.

Components:
- Scribe: masks PII, classifies and embeds submissions into MemoryRecords
- Retriever: expands conversational queries into concepts, ranks records with
  fused vector/concept/keyword scores and synthesizes a grounded answer

Usage:
    from memora.common import load_config, EmbeddingService, LLMClient
    from memora.common.schemas import MemoryRecord, QueryResponse
    from memora.scribe import RecordBuilder, MemoryClassifier, VaultStore
    from memora.retriever import RetrievalOrchestrator, QueryExpander, Synthesizer
"""

__version__ = "0.1.0"
