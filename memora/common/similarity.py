"""
Vector Similarity

Cosine similarity between embedding vectors. Incomparable vectors (missing,
empty, different lengths, zero norm) have similarity 0 rather than raising.
"""

from typing import Optional, Sequence

import numpy as np


def cosine_similarity(
    vec1: Optional[Sequence[float]],
    vec2: Optional[Sequence[float]],
) -> float:
    """
    Compute cosine similarity between two vectors.

    Args:
        vec1: First embedding vector
        vec2: Second embedding vector

    Returns:
        dot(v1, v2) / (|v1| * |v2|), or 0.0 if the vectors cannot be compared
    """
    if vec1 is None or vec2 is None:
        return 0.0
    if len(vec1) == 0 or len(vec2) == 0 or len(vec1) != len(vec2):
        return 0.0

    v1 = np.asarray(vec1, dtype=float)
    v2 = np.asarray(vec2, dtype=float)

    norm1 = float(np.linalg.norm(v1))
    norm2 = float(np.linalg.norm(v2))
    if norm1 == 0.0 or norm2 == 0.0:
        return 0.0

    return float(np.dot(v1, v2)) / (norm1 * norm2)


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    """Clamp a score into [low, high]"""
    return max(low, min(high, value))
