"""
Scribe - Memory Capture

Turns a free-text (optionally image-bearing) submission into a MemoryRecord.

Rules:
1. PII is masked before any text leaves the process
2. The stored text is always the masked text
3. Classification must produce a title or a summary
4. Redactions are noted on the record
5. A missing embedding never blocks capture
"""

from .classifier import ClassificationError, MemoryClassifier
from .privacy_guard import mask_pii, redact_with_notes
from .record_builder import IngestionStep, RecordBuilder
from .vault_store import VaultStore

__all__ = [
    "ClassificationError",
    "MemoryClassifier",
    "mask_pii",
    "redact_with_notes",
    "IngestionStep",
    "RecordBuilder",
    "VaultStore",
]
