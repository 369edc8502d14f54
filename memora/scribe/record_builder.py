"""
Record Builder

Builds a MemoryRecord from raw user input.

Pipeline:
1. MASKING   - redact PII from the submitted text
2. ANALYSIS  - classify the masked text (and optional image)
3. EMBEDDING - embed "{title} {summary}" in DOCUMENT mode
"""

import logging
from enum import Enum
from typing import Callable, Optional

from ..common.embedding_service import EmbeddingMode, EmbeddingService
from ..common.schemas import MemoryRecord, render_document_text
from .classifier import MemoryClassifier
from .privacy_guard import redact_with_notes

logger = logging.getLogger("memora.scribe.record_builder")


class IngestionStep(str, Enum):
    """Progress of a memory through ingestion"""
    MASKING = "MASKING"
    ANALYSIS = "ANALYSIS"
    EMBEDDING = "EMBEDDING"
    IDLE = "IDLE"


class RecordBuilder:
    """
    Builds MemoryRecords from raw input.

    Rules enforced:
    - the unmasked text is never stored or sent to the classifier
    - classification failures propagate (nothing half-built is stored)
    - a failed embedding leaves `embedding` unset; retrieval computes it later
    """

    def __init__(
        self,
        classifier: MemoryClassifier,
        embedding_service: Optional[EmbeddingService] = None,
        on_step: Optional[Callable[[IngestionStep], None]] = None,
    ):
        """
        Initialize record builder.

        Args:
            classifier: Classifier for masked text
            embedding_service: Optional embedder for the document vector
            on_step: Optional callback notified as ingestion progresses
        """
        self._classifier = classifier
        self._embedding = embedding_service
        self._on_step = on_step

    def build(self, text: str, image_b64: Optional[str] = None) -> MemoryRecord:
        """
        Build a MemoryRecord from raw input.

        Args:
            text: Raw memory text as submitted by the user
            image_b64: Optional base64-encoded JPEG

        Returns:
            Complete MemoryRecord

        Raises:
            ValueError: Neither text nor image supplied
            ClassificationError: The classifier could not process the memory
        """
        if not (text or "").strip() and not image_b64:
            raise ValueError("Cannot store an empty memory")

        try:
            self._step(IngestionStep.MASKING)
            masked_text, redaction_notes = redact_with_notes(text)
            if redaction_notes:
                logger.info("PII redacted before analysis: %s", redaction_notes)

            self._step(IngestionStep.ANALYSIS)
            analysis = self._classifier.classify(masked_text, image_b64)

            record = MemoryRecord(
                original_text=masked_text,
                title=analysis.title,
                summary=analysis.summary,
                importance=analysis.importance,
                category=analysis.category,
                entities=analysis.entities,
                image_url=f"data:image/jpeg;base64,{image_b64}" if image_b64 else None,
                privacy_alerts=analysis.privacy_risks,
                redaction_notes=redaction_notes,
            )

            self._step(IngestionStep.EMBEDDING)
            if self._embedding is not None:
                vector = self._embedding.embed(render_document_text(record), EmbeddingMode.DOCUMENT)
                record.embedding = vector or None
                if not vector:
                    logger.warning("No embedding for %s; it will be computed at query time", record.id)

            return record
        finally:
            self._step(IngestionStep.IDLE)

    def _step(self, step: IngestionStep) -> None:
        if self._on_step is not None:
            self._on_step(step)
