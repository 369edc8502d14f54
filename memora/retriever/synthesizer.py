"""
Synthesizer

LLM-based answer synthesis over the top-ranked memories.

Key principle: answer ONLY from the retrieved context, linking the user's
conversational phrasing to the stored facts ("cut cake" is a birthday) and
computing time differences relative to today.
"""

import asyncio
import logging
from datetime import date
from typing import List, Optional, Sequence, Union

from ..common.llm_client import LLMClient
from ..common.schemas import MemoryRecord, ScoredRecord, render_context

logger = logging.getLogger("memora.retriever.synthesizer")

OFFLINE_ANSWER = "Synthesis engine offline."
EMPTY_ANSWER = "I found relevant records but couldn't synthesize a precise answer."


# Synthesis prompt template
SYNTHESIS_PROMPT = """Assistant Identity: Agentic Memory Vault
Today's Date: {today}
User Query: "{query}"

Retrieved Context:
{context}

Instructions:
1. Link conversational intent to facts (e.g. "cut cake" is "Birthday").
2. Calculate time differences based on Today's Date.
3. Be direct and warm. Use ONLY the provided context."""


FALLBACK_TEMPLATE = """## Memories related to: "{query}"

Found {count} relevant memor{plural}:

{formatted_results}

---
**Note**: This is a direct listing without LLM synthesis.
Configure GOOGLE_API_KEY for natural language answers."""


SourceLike = Union[MemoryRecord, ScoredRecord]


def _unwrap(source: SourceLike) -> MemoryRecord:
    return source.record if isinstance(source, ScoredRecord) else source


class Synthesizer:
    """
    Synthesizes answers from ranked memories using an LLM.

    Falls back to a plain listing if no LLM is configured.
    """

    def __init__(
        self,
        llm_client: Optional[LLMClient] = None,
        max_tokens: int = 1024,
        today: Optional[date] = None,
    ):
        """
        Initialize synthesizer.

        Args:
            llm_client: Text generation client (optional)
            max_tokens: Answer length budget
            today: Fixed "today" for prompts (defaults to the current date)
        """
        self._llm = llm_client
        self._max_tokens = max_tokens
        self._today = today

    @property
    def has_llm(self) -> bool:
        """Check if LLM is available"""
        return self._llm is not None and self._llm.is_available

    async def synthesize(self, query: str, sources: Sequence[SourceLike]) -> str:
        """
        Synthesize an answer from ranked memories.

        Args:
            query: Original user query
            sources: Ranked memories (best first)

        Returns:
            Answer text ("" when there is nothing to synthesize over)
        """
        if not sources:
            return ""

        if not self.has_llm:
            return self._synthesize_fallback(query, sources)

        prompt = self.build_prompt(query, [_unwrap(s) for s in sources])
        try:
            answer = await asyncio.to_thread(
                self._llm.generate, prompt, max_tokens=self._max_tokens,
            )
        except Exception as e:
            logger.error("Synthesis error: %s", e)
            return OFFLINE_ANSWER

        return answer or EMPTY_ANSWER

    def build_prompt(self, query: str, records: List[MemoryRecord]) -> str:
        """Render the synthesis prompt for a query and its context records"""
        today = self._today or date.today()
        return SYNTHESIS_PROMPT.format(
            today=today.strftime("%a %b %d %Y"),
            query=query or "",
            context=render_context(records),
        )

    def _synthesize_fallback(self, query: str, sources: Sequence[SourceLike]) -> str:
        """Fallback synthesis without LLM"""
        formatted_results = []
        for i, source in enumerate(sources, 1):
            record = _unwrap(source)
            score = f" | **Score**: {source.score:.2f}" if isinstance(source, ScoredRecord) else ""
            summary = record.summary or record.original_text[:300]
            formatted_results.append(
                f"### {i}. {record.title or 'Untitled'}\n"
                f"**Category**: {record.category.value}{score}\n\n{summary}"
            )

        return FALLBACK_TEMPLATE.format(
            query=query,
            count=len(sources),
            plural="y" if len(sources) == 1 else "ies",
            formatted_results="\n\n".join(formatted_results),
        )
