"""
Lexical / Conceptual Scorer

Scores one record against a query without any vector data:
- keyword_score: share of query terms found in the record text
- concept_score: share of expanded concepts found in the record text or
  matching one of its entities (bridges "cut the cake" to "birthday")
- title_boost: bonus for concepts and terms that hit the title (max 0.5)

All matching is case-insensitive substring matching.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..common.schemas import MemoryRecord, render_search_haystack

# Function words ignored when extracting query terms
STOP_WORDS = frozenset({"when", "will", "the", "and", "for", "with", "that"})

MIN_TERM_LENGTH = 3

CONCEPT_TITLE_BOOST = 0.2
TERM_TITLE_BOOST = 0.25
MAX_TITLE_BOOST = 0.5


@dataclass(frozen=True)
class LexicalScores:
    """Non-vector score components for one record"""
    keyword_score: float = 0.0
    concept_score: float = 0.0
    title_boost: float = 0.0


def extract_terms(query: Optional[str]) -> List[str]:
    """
    Split a query into raw terms.

    Whitespace tokens, lowercased, longer than two characters and not stop
    words. Punctuation stays attached ("cake?" is a term).
    """
    words = (query or "").lower().split()
    return [w for w in words if len(w) >= MIN_TERM_LENGTH and w not in STOP_WORDS]


def _entity_matches(record: MemoryRecord, concept: str) -> bool:
    for entity in record.entities or []:
        name = (entity.name or "").lower()
        if name and (concept in name or name in concept):
            return True
    return False


def score_record(
    query: str,
    concepts: Optional[Sequence[str]],
    record: MemoryRecord,
) -> LexicalScores:
    """
    Compute keyword, concept and title scores for a record.

    Args:
        query: Raw user query
        concepts: Bridging concepts from the query expander
        record: Record to score

    Returns:
        LexicalScores with keyword/concept scores in [0,1] and title boost in [0,0.5]
    """
    haystack = render_search_haystack(record)
    title = (record.title or "").lower()
    concepts = list(concepts or [])

    # 1. Keyword overlap
    terms = extract_terms(query)
    term_matches = sum(1 for t in terms if t in haystack)
    keyword_score = term_matches / len(terms) if terms else 0.0

    # 2. Conceptual matching
    concept_matches = 0
    for concept in concepts:
        if not concept:
            continue
        c = concept.lower()
        if c in haystack or _entity_matches(record, c):
            concept_matches += 1
    concept_score = concept_matches / len(concepts) if concepts else 0.0

    # 3. Title boost
    boost = 0.0
    for concept in concepts:
        if concept and concept.lower() in title:
            boost += CONCEPT_TITLE_BOOST
    for term in terms:
        if term in title:
            boost += TERM_TITLE_BOOST

    return LexicalScores(
        keyword_score=keyword_score,
        concept_score=concept_score,
        title_boost=min(boost, MAX_TITLE_BOOST),
    )
