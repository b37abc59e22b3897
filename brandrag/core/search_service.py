"""
Similarity search over a user's stored vectors.
"""

from datetime import datetime
from typing import Callable, List, Optional, Sequence

from .config import ConfigService
from .schema import ContentVector, RetrievalOptions
from ..vector.index import ISimilarityIndex, LinearScanIndex
from ..vector.types import ScoredVector

TIMEFRAME_MAX_AGE_DAYS = {
    "recent": 30,
    "30days": 30,
    "90days": 90,
}


def within_timeframe(vector: ContentVector, timeframe: str, now: datetime) -> bool:
    """True when the vector's creation date falls inside ``timeframe``."""
    max_age = TIMEFRAME_MAX_AGE_DAYS.get(timeframe)
    if max_age is None:
        return True

    created_at = vector.metadata.created_at
    if created_at is None:
        return True
    age_days = (now - created_at).total_seconds() / 86400
    return age_days <= max_age


class SimilaritySearch:
    """Ranks a user's vectors against a query vector.

    Order of operations: storage-level content type pre-filter, cosine
    ranking with the configured threshold, top ``limit``, then the remaining
    filters (content type, minimum performance, timeframe). Because the limit
    is applied before the post-filters, a query can return fewer than
    ``limit`` results even when more matching vectors exist.
    """

    def __init__(self, vector_store, config_service: ConfigService,
                 index: Optional[ISimilarityIndex] = None,
                 clock: Callable[[], datetime] = datetime.now):
        self.vector_store = vector_store
        self.config_service = config_service
        self.index = index or LinearScanIndex()
        self._clock = clock

    def search(self, query_vector: Sequence[float], options: RetrievalOptions) -> List[ScoredVector]:
        threshold = self.config_service.load().performance.similarity_threshold
        candidates = self.vector_store.query(options.user_id, options.content_type)

        ranked = self.index.rank(query_vector, candidates, threshold, options.limit or 10)

        now = self._clock()
        results = []
        for scored in ranked:
            vector = scored.vector
            if options.content_type is not None and vector.content_type != options.content_type:
                continue
            if options.min_performance is not None and vector.metadata.performance < options.min_performance:
                continue
            if not within_timeframe(vector, options.timeframe, now):
                continue
            results.append(scored)

        return results

    def search_industry_patterns(self, query_vector: Sequence[float], options: RetrievalOptions) -> List[ScoredVector]:
        """Anonymized cross-user patterns for ``options.industry``.

        Not backed by any data source yet; always returns an empty list.
        """
        return []
