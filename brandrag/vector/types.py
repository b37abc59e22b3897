"""
Ranked retrieval results.
"""

from dataclasses import dataclass

from ..core.schema import ContentVector


@dataclass
class ScoredVector:
    """A stored content vector paired with its similarity to a query."""

    vector: ContentVector
    """The matching content vector"""

    similarity: float
    """Cosine similarity to the query vector"""
