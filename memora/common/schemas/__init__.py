"""
Memora Memory Schemas

Pydantic models for stored memories and retrieval results.
"""

from .memory_record import (
    MemoryRecord,
    MemoryCategory,
    Entity,
    EntityType,
    ProcessingResult,
    ScoredRecord,
    ExpansionResult,
    QueryResponse,
    generate_memory_id,
)
from .templates import (
    render_document_text,
    render_search_haystack,
    render_context,
    render_display_text,
)

__all__ = [
    "MemoryRecord",
    "MemoryCategory",
    "Entity",
    "EntityType",
    "ProcessingResult",
    "ScoredRecord",
    "ExpansionResult",
    "QueryResponse",
    "generate_memory_id",
    "render_document_text",
    "render_search_haystack",
    "render_context",
    "render_display_text",
]
