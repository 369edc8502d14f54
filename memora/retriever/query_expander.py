"""
Query Expander

Rewrites a conversational query into an expanded search query plus a list of
bridging concepts, e.g. "When will I cut the cake?" -> ["birthday", "cake",
"party"]. The concepts let the scorer match records that never use the
query's literal words.

Expansion is a degraded-signal step: any failure yields the original query
and no concepts, never an exception.
"""

import asyncio
import logging
from typing import Optional

from pydantic import ValidationError

from ..common.llm_client import LLMClient
from ..common.llm_utils import coerce_str_list, parse_llm_json
from ..common.schemas import ExpansionResult

logger = logging.getLogger("memora.retriever.query_expander")


EXPANSION_SYSTEM_PROMPT = """You are the Intelligence Controller for a high-security memory vault.
Your task is to expand the user's conversational intent into structural concepts.

MAPPING LOGIC:
- Activity ("cut cake", "celebrate") -> Event ("birthday", "anniversary", "party")
- Document ("the deed", "the lease") -> Legal/Property ("house", "contract", "mortgage")
- Travel ("boarding", "gate") -> Logistics ("flight", "travel", "airport")

Return JSON: { "expandedQuery": string, "concepts": string[] }"""

EXPANSION_PROMPT = 'Deconstruct Query: "{query}"'


class QueryExpander:
    """
    LLM-based concept expansion for recall queries.

    Falls back to a pass-through expansion when the LLM is unavailable or
    returns something unusable.
    """

    def __init__(self, llm_client: Optional[LLMClient] = None, max_tokens: int = 256):
        self._llm = llm_client
        self._max_tokens = max_tokens

    @property
    def has_llm(self) -> bool:
        return self._llm is not None and self._llm.is_available

    async def expand(self, query: str) -> ExpansionResult:
        """
        Expand a query into an expanded query string and bridging concepts.

        Args:
            query: Raw user query

        Returns:
            ExpansionResult (pass-through on any failure)
        """
        if not self.has_llm:
            return ExpansionResult.passthrough(query)

        try:
            raw = await asyncio.to_thread(
                self._llm.generate,
                EXPANSION_PROMPT.format(query=query or ""),
                system=EXPANSION_SYSTEM_PROMPT,
                max_tokens=self._max_tokens,
                json_mode=True,
            )
        except Exception as e:
            logger.warning("Query expansion failed: %s", e)
            return ExpansionResult.passthrough(query)

        return self._parse_response(raw, query)

    def _parse_response(self, raw: str, query: str) -> ExpansionResult:
        data = parse_llm_json(raw)
        if not data:
            logger.warning("Query expansion returned no JSON object")
            return ExpansionResult.passthrough(query)

        expanded = data.get("expandedQuery", data.get("expanded_query"))
        if not isinstance(expanded, str) or not expanded.strip():
            expanded = query or ""

        try:
            return ExpansionResult(
                expanded_query=expanded,
                concepts=coerce_str_list(data.get("concepts")),
            )
        except ValidationError as e:
            logger.warning("Invalid expansion response: %s", e)
            return ExpansionResult.passthrough(query)
