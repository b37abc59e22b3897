"""
Similarity index over a user's content vectors.

LinearScanIndex is an exact cosine ranking over every candidate. Another
ISimilarityIndex (approximate or otherwise) can be swapped in without changing
how results are consumed.
"""

from abc import ABC, abstractmethod
from typing import List, Sequence

import numpy as np

from ..core.schema import ContentVector
from .types import ScoredVector


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """dot(a, b) / (|a| * |b|); 0.0 for zero-norm, empty or mismatched-length vectors."""
    if len(a) != len(b) or len(a) == 0:
        return 0.0

    vec_a = np.asarray(a, dtype=float)
    vec_b = np.asarray(b, dtype=float)
    norm_a = np.linalg.norm(vec_a)
    norm_b = np.linalg.norm(vec_b)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    return float(np.dot(vec_a, vec_b) / (norm_a * norm_b))


class ISimilarityIndex(ABC):
    """Abstract interface for ranking candidates against a query vector."""

    @abstractmethod
    def rank(self, query_vector: Sequence[float], candidates: List[ContentVector],
             threshold: float, top_k: int) -> List[ScoredVector]:
        """Return candidates scoring strictly above ``threshold``, best first, at most ``top_k``."""
        pass


class LinearScanIndex(ISimilarityIndex):
    """Exact cosine similarity computed against every candidate."""

    def rank(self, query_vector: Sequence[float], candidates: List[ContentVector],
             threshold: float, top_k: int) -> List[ScoredVector]:
        if not candidates or top_k < 1:
            return []

        scored = []
        for candidate in candidates:
            similarity = cosine_similarity(query_vector, candidate.embedding)
            if similarity > threshold:
                scored.append(ScoredVector(vector=candidate, similarity=similarity))

        # Sort by similarity (descending); stable, so ties keep storage order
        scored.sort(key=lambda item: item.similarity, reverse=True)
        return scored[:top_k]
