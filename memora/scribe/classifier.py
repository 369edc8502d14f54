"""
Memory Classifier

Asks the reasoning service to turn a privacy-scrubbed memory (and optional
image) into structured metadata: title, summary, importance, category,
entities and residual privacy risks.

Unlike recall, ingestion fails loudly: a memory that cannot be classified is
not stored.
"""

import logging
from typing import Optional

from pydantic import ValidationError

from ..common.llm_client import LLMClient
from ..common.llm_utils import parse_llm_json
from ..common.schemas import ProcessingResult

logger = logging.getLogger("memora.scribe.classifier")


SYSTEM_INSTRUCTION = """You are an expert Data Archivist for a personal memory vault.
Analyze the input text and any visual context.
1. Extract key entities (People, Organizations, Locations, Dates, Products).
2. Summarize into a concise professional title and 1-2 sentence description.
3. Categorize accurately into: Business, Personal, Finance, Health, Technical, or Other.
4. Detect subtle context-based privacy leaks or high-risk info not caught by standard redaction.
5. Rate importance on a scale of 1-10.
Return strictly valid JSON."""


CLASSIFY_PROMPT = """Process this memory entry: "{text}"

Respond with a valid JSON object with these keys:
- "title": short title (string)
- "summary": 1-2 sentence description (string)
- "importance": number from 1 to 10
- "category": one of "Business", "Personal", "Finance", "Health", "Technical", "Other"
- "entities": list of {{"name": string, "type": one of "Person", "Org", "Location", "Date", "Product", "Other"}}
- "privacyRisks": list of strings (empty list if none)

JSON:"""


class ClassificationError(Exception):
    """Raised when a memory cannot be classified"""


class MemoryClassifier:
    """
    LLM-backed classifier for new memories.

    The response is parsed and validated into a ProcessingResult; fields the
    model got wrong are normalised (importance clamped, unknown category ->
    Other), but an unusable response raises ClassificationError.
    """

    def __init__(self, llm_client: LLMClient, max_tokens: int = 1024):
        self._llm = llm_client
        self._max_tokens = max_tokens

    @property
    def is_available(self) -> bool:
        return self._llm is not None and self._llm.is_available

    def classify(self, text: str, image_b64: Optional[str] = None) -> ProcessingResult:
        """
        Classify a memory.

        Args:
            text: PII-masked memory text
            image_b64: Optional base64-encoded JPEG

        Returns:
            Validated ProcessingResult

        Raises:
            ClassificationError: LLM unavailable, call failed, or response unusable
        """
        if not self.is_available:
            raise ClassificationError("LLM client is not available")

        prompt = CLASSIFY_PROMPT.format(text=text or "No text provided")

        try:
            raw = self._llm.generate(
                prompt,
                system=SYSTEM_INSTRUCTION,
                max_tokens=self._max_tokens,
                image_b64=image_b64,
                json_mode=True,
            )
        except Exception as e:
            logger.error("Classification call failed: %s", e)
            raise ClassificationError(f"Classification call failed: {e}") from e

        return self._parse_response(raw)

    def _parse_response(self, raw: str) -> ProcessingResult:
        data = parse_llm_json(raw)
        if not data:
            raise ClassificationError("No JSON object in classification response")

        # Providers answer in camelCase; accept both spellings
        if "privacy_risks" not in data and "privacyRisks" in data:
            data["privacy_risks"] = data.pop("privacyRisks")

        try:
            result = ProcessingResult.model_validate(data)
        except ValidationError as e:
            raise ClassificationError(f"Invalid classification response: {e}") from e

        if not result.title and not result.summary:
            raise ClassificationError("Classification response has neither title nor summary")

        return result
