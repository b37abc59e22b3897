"""
RAGEngine: the service object content flows call into.

Enrichment must never break content generation, so every operation here
absorbs its failures (logging them) and degrades to a no-op or an empty
context. The one exception is a rate-limit rejection on a direct vector
write, which propagates as RateLimitExceeded.
"""

from datetime import datetime
from typing import Any, Callable, Dict, Optional

from .config import ConfigService, get_embedding_provider
from .context_assembler import assemble
from .change_detector import should_re_vectorize
from .dao import VectorDAO
from .maintenance import CleanupReport, cleanup_all_users_report, cleanup_user
from .rate_limiter import RateLimiter
from .schema import (
    ContentType,
    ContentVector,
    ContextResult,
    Outcome,
    RAGContext,
    RetrievalOptions,
    VectorMetadata,
    WriteResult,
    clamp01,
)
from .search_service import SimilaritySearch
from ..util.logging import logger
from ..vector.embeddings import EmbeddingGenerator, IEmbeddingProvider
from ..vector.store import VectorStore


def combined_performance(metrics: Dict[str, Any]) -> float:
    """Blend raw feedback metrics into one score in [0, 1].

    performance + 0.3*engagement + 0.2*min(clicks/100, 1)
    + 0.3*min(shares/10, 1) + 0.2*min(likes/50, 1), clamped.
    """
    performance = metrics.get("performance") or 0
    engagement = metrics.get("engagement") or 0
    clicks = metrics.get("clicks") or 0
    shares = metrics.get("shares") or 0
    likes = metrics.get("likes") or 0

    score = (
        performance
        + engagement * 0.3
        + min(clicks / 100, 1) * 0.2
        + min(shares / 10, 1) * 0.3
        + min(likes / 50, 1) * 0.2
    )
    return clamp01(score)


class RAGEngine:

    def __init__(self, dao: VectorDAO, config_service: ConfigService, rate_limiter: RateLimiter,
                 embedder: EmbeddingGenerator, vector_store: VectorStore, search: SimilaritySearch,
                 clock: Callable[[], datetime] = datetime.now):
        self.dao = dao
        self.config_service = config_service
        self.rate_limiter = rate_limiter
        self.embedder = embedder
        self.vector_store = vector_store
        self.search = search
        self._clock = clock

    # Writes

    def store_content_vector_result(self, user_id: str, content_type, content_id: str, text_content: str,
                                    metadata_patch: Optional[Dict[str, Any]] = None,
                                    source_collection: str = "", source_doc_id: str = "") -> WriteResult:
        """Embed and store a new content vector.

        Raises:
            RateLimitExceeded: the user's embedding quota is used up.
        """
        vector = ContentVector(
            user_id=user_id,
            content_type=ContentType(content_type),
            content_id=content_id,
            text_content=text_content,
            metadata=VectorMetadata().merged(metadata_patch or {}),
            source_collection=source_collection,
            source_doc_id=source_doc_id,
        )
        return self.vector_store.put_result(vector)

    def store_content_vector(self, user_id: str, content_type, content_id: str, text_content: str,
                             metadata_patch: Optional[Dict[str, Any]] = None,
                             source_collection: str = "", source_doc_id: str = "") -> None:
        self.store_content_vector_result(user_id, content_type, content_id, text_content,
                                         metadata_patch, source_collection, source_doc_id)

    def update_content_vector_result(self, user_id: str, content_id: str, text_content: Optional[str],
                                     metadata_patch: Optional[Dict[str, Any]] = None) -> WriteResult:
        return self.vector_store.update_result(user_id, content_id, text_content, metadata_patch)

    def update_content_vector(self, user_id: str, content_id: str, text_content: Optional[str],
                              metadata_patch: Optional[Dict[str, Any]] = None) -> None:
        self.update_content_vector_result(user_id, content_id, text_content, metadata_patch)

    def update_content_performance_result(self, user_id: str, content_id: str,
                                          metrics: Dict[str, Any]) -> WriteResult:
        """Fold feedback metrics into the vector's performance score. Text and embedding are untouched."""
        try:
            score = combined_performance(metrics)
        except (TypeError, ValueError) as e:
            logger.log_vector_operation("performance", user_id, content_id, {"error": str(e)}, status="failed")
            return WriteResult(Outcome.ERROR_ABSORBED, str(e))

        patch = {
            "performance": score,
            "engagement": int(metrics.get("engagement") or 0),
        }
        result = self.update_content_vector_result(user_id, content_id, "", patch)
        if result.ok:
            logger.log_vector_operation("performance", user_id, content_id, {"performance": round(score, 4)})
        return result

    def update_content_performance(self, user_id: str, content_id: str, metrics: Dict[str, Any]) -> None:
        self.update_content_performance_result(user_id, content_id, metrics)

    # Reads

    def retrieve_relevant_context_result(self, query_text: str, options: RetrievalOptions) -> ContextResult:
        """Assemble context for ``query_text`` and report why it may be empty."""
        user_id = options.user_id
        try:
            decision = self.rate_limiter.check(user_id)
            if not decision.allowed:
                logger.log_retrieval(user_id, "rate_limited", reason=decision.reason)
                return ContextResult(RAGContext.empty(), Outcome.RATE_LIMITED, decision.reason)

            embedding = self.embedder.generate(query_text)
            if embedding.outcome != Outcome.OK:
                logger.log_retrieval(user_id, "failed", reason=embedding.reason)
                return ContextResult(RAGContext.empty(), Outcome.ERROR_ABSORBED, embedding.reason)

            config = self.config_service.load()
            user_matches = self.search.search(embedding.vector, options)

            industry_matches = []
            if options.include_industry_patterns and options.industry:
                industry_matches = self.search.search_industry_patterns(embedding.vector, options)

            context = assemble(
                [match.vector for match in user_matches],
                [match.vector for match in industry_matches],
                options,
                config.performance.max_context_length,
                now=self._clock(),
            )

            logger.log_retrieval(user_id, "success", len(user_matches), len(industry_matches))
            outcome = Outcome.OK if user_matches or industry_matches else Outcome.EMPTY
            return ContextResult(context, outcome)

        except Exception as e:
            logger.log_retrieval(user_id, "failed", reason=str(e))
            return ContextResult(RAGContext.empty(), Outcome.ERROR_ABSORBED, str(e))

    def retrieve_relevant_context(self, query_text: str, options: RetrievalOptions) -> RAGContext:
        """Never raises; an empty context stands in for every failure."""
        return self.retrieve_relevant_context_result(query_text, options).context

    def should_re_vectorize(self, old_text: str, new_text: str) -> bool:
        return should_re_vectorize(old_text, new_text)

    def get_user_vector_count(self, user_id: str) -> int:
        try:
            return self.vector_store.count(user_id)
        except Exception as e:
            logger.error(f"Failed to count vectors for user '{user_id}': {e}")
            return 0

    # Maintenance

    def cleanup_old_vectors(self, user_id: str, keep_days: Optional[int] = None) -> int:
        """Delete the user's stale vectors; returns the number deleted (0 on failure)."""
        try:
            return cleanup_user(self.dao, self.config_service, user_id, keep_days, now=self._clock())
        except Exception as e:
            logger.error(f"Vector cleanup failed for user '{user_id}': {e}")
            return 0

    def cleanup_all_users_report(self) -> CleanupReport:
        return cleanup_all_users_report(self.dao, self.config_service, now=self._clock())

    def cleanup_all_users_vectors(self) -> Dict[str, int]:
        """Returns ``{"total_cleaned": n, "users_processed": m}``."""
        return self.cleanup_all_users_report().summary()


def build_engine(db_path: str = None, provider: IEmbeddingProvider = None,
                 config_ttl_seconds: int = None,
                 clock: Callable[[], datetime] = datetime.now) -> RAGEngine:
    """Wire an engine over the sqlite database at ``db_path``."""
    dao = VectorDAO(db_path)
    config_service = ConfigService(dao, ttl_seconds=config_ttl_seconds)
    rate_limiter = RateLimiter(dao, config_service, clock=clock)
    embedder = EmbeddingGenerator(provider or get_embedding_provider(), config_service)
    vector_store = VectorStore(dao, embedder, rate_limiter, clock=clock)
    search = SimilaritySearch(vector_store, config_service, clock=clock)
    return RAGEngine(dao, config_service, rate_limiter, embedder, vector_store, search, clock=clock)
