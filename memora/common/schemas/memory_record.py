"""
Memory Record Schema

Core principle: a memory is stored once, already privacy-scrubbed, together with
the metadata the reasoning service derived from it. Retrieval never mutates a
record; vectors computed at query time live in the EmbeddingCache.
"""

import time
import uuid
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, Field, field_validator


# ============================================================================
# Enums
# ============================================================================

class MemoryCategory(str, Enum):
    """Memory categories assigned by the classifier"""
    BUSINESS = "Business"
    PERSONAL = "Personal"
    FINANCE = "Finance"
    HEALTH = "Health"
    TECHNICAL = "Technical"
    OTHER = "Other"

    @classmethod
    def parse(cls, value) -> "MemoryCategory":
        """Map a loosely-typed category string to an enum member (fallback: Other)"""
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        return cls.OTHER


class EntityType(str, Enum):
    """Kinds of entities extracted from a memory"""
    PERSON = "Person"
    ORG = "Org"
    LOCATION = "Location"
    DATE = "Date"
    PRODUCT = "Product"
    OTHER = "Other"


# ============================================================================
# Sub-models
# ============================================================================

class Entity(BaseModel):
    """Named entity mentioned in a memory"""
    name: str = ""
    type: EntityType = EntityType.OTHER

    @field_validator("name", mode="before")
    @classmethod
    def _coerce_name(cls, v):
        return "" if v is None else str(v)

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, v):
        text = str(v or "").strip().lower()
        for member in EntityType:
            if member.value.lower() == text:
                return member
        return EntityType.OTHER


# ============================================================================
# Main Schema
# ============================================================================

def generate_memory_id() -> str:
    """Generate an opaque unique ID for a memory"""
    return uuid.uuid4().hex


def now_ms() -> int:
    """Current time as epoch milliseconds"""
    return int(time.time() * 1000)


class MemoryRecord(BaseModel):
    """
    A single stored memory.

    `original_text` is the submitted text after PII redaction; the unmasked
    input is never stored. `embedding` is the vector computed at ingestion
    time (may be absent for legacy records).
    """
    id: str = Field(default_factory=generate_memory_id)
    original_text: str = ""  # Submitted text after PII redaction
    title: str = ""
    summary: str = ""
    importance: int = Field(default=5, ge=1, le=10)
    category: MemoryCategory = MemoryCategory.OTHER
    entities: List[Entity] = Field(default_factory=list)
    image_url: Optional[str] = None
    timestamp: int = Field(default_factory=now_ms, description="Creation time (epoch ms)")
    privacy_alerts: List[str] = Field(default_factory=list)
    redaction_notes: Optional[str] = None
    embedding: Optional[List[float]] = None

    @field_validator("original_text", "title", "summary", mode="before")
    @classmethod
    def _none_to_empty(cls, v):
        return "" if v is None else v

    @field_validator("category", mode="before")
    @classmethod
    def _coerce_category(cls, v):
        return MemoryCategory.parse(v)

    @property
    def has_embedding(self) -> bool:
        return bool(self.embedding)


class ProcessingResult(BaseModel):
    """
    Validated output of the classification service.

    Collaborator responses are untrusted: importance is clamped into 1-10,
    unknown categories become Other, malformed list items are dropped.
    """
    title: str = ""
    summary: str = ""
    importance: int = 5
    category: MemoryCategory = MemoryCategory.OTHER
    entities: List[Entity] = Field(default_factory=list)
    privacy_risks: List[str] = Field(default_factory=list)

    @field_validator("title", "summary", mode="before")
    @classmethod
    def _coerce_text(cls, v):
        return "" if v is None else str(v).strip()

    @field_validator("importance", mode="before")
    @classmethod
    def _clamp_importance(cls, v):
        try:
            value = int(round(float(v)))
        except (TypeError, ValueError):
            return 5
        return max(1, min(10, value))

    @field_validator("category", mode="before")
    @classmethod
    def _coerce_category(cls, v):
        return MemoryCategory.parse(v)

    @field_validator("entities", mode="before")
    @classmethod
    def _coerce_entities(cls, v):
        if not isinstance(v, list):
            return []
        return [e for e in v if isinstance(e, dict) and e.get("name")]

    @field_validator("privacy_risks", mode="before")
    @classmethod
    def _coerce_risks(cls, v):
        if not isinstance(v, list):
            return []
        return [str(r) for r in v if r]


class ScoredRecord(BaseModel):
    """A record plus its fused relevance score for one ranking pass"""
    record: MemoryRecord
    score: float = Field(ge=0.0, le=1.0)

    @property
    def id(self) -> str:
        return self.record.id

    @property
    def title(self) -> str:
        return self.record.title


class ExpansionResult(BaseModel):
    """Query rewritten into an expanded query plus bridging concepts"""
    expanded_query: str = ""
    concepts: List[str] = Field(default_factory=list)

    @field_validator("concepts", mode="before")
    @classmethod
    def _coerce_concepts(cls, v):
        if not isinstance(v, list):
            return []
        return [c for c in v if isinstance(c, str)]

    @classmethod
    def passthrough(cls, query: str) -> "ExpansionResult":
        """Neutral expansion: the original query and no concepts"""
        return cls(expanded_query=query or "", concepts=[])


class QueryResponse(BaseModel):
    """
    Result of one retrieval cycle.

    In ranked mode `sources` holds ScoredRecords (best first). In empty-query
    mode it holds the unscored MemoryRecords in collection order.
    """
    answer: str = ""
    sources: List[Union[ScoredRecord, MemoryRecord]] = Field(default_factory=list)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    is_thinking: bool = False

    @property
    def is_ranked(self) -> bool:
        return all(isinstance(s, ScoredRecord) for s in self.sources)
