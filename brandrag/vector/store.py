"""
User-scoped persistence of content vectors.

Writes are gated by the rate limiter. A rejected ``put`` raises
RateLimitExceeded to the caller; every other failure on the write path is
logged and absorbed so enrichment never breaks content generation.
"""

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from ..core.schema import (
    ContentType,
    ContentVector,
    Outcome,
    RateLimitExceeded,
    VectorNotFound,
    WriteResult,
)
from ..util.logging import logger
from .embeddings import EmbeddingGenerator

__all__ = ["VectorStore", "RateLimitExceeded"]


class VectorStore:

    def __init__(self, dao, embedder: EmbeddingGenerator, rate_limiter,
                 clock: Callable[[], datetime] = datetime.now):
        self.dao = dao
        self.embedder = embedder
        self.rate_limiter = rate_limiter
        self._clock = clock

    def put_result(self, vector: ContentVector) -> WriteResult:
        """Embed and persist a new vector.

        Raises:
            RateLimitExceeded: the user's hourly or daily quota is used up.
        """
        decision = self.rate_limiter.check(vector.user_id)
        if not decision.allowed:
            logger.log_vector_operation("put", vector.user_id, vector.content_id,
                                        {"reason": decision.reason}, status="rate_limited")
            raise RateLimitExceeded(decision.reason)

        try:
            embedding = self.embedder.embed(vector.text_content)
            now = self._clock()
            vector.embedding = embedding
            vector.metadata = vector.metadata.merged({
                "created_at": now,
                "updated_at": now,
                "version": 1,
            })

            self.dao.register_user(vector.user_id)
            vector.id = self.dao.insert_vector(vector)

            logger.log_vector_operation("put", vector.user_id, vector.content_id, {
                "content_type": ContentType(vector.content_type).value,
                "dimension": len(embedding),
            })
            return WriteResult(Outcome.OK)

        except Exception as e:
            logger.log_vector_operation("put", vector.user_id, vector.content_id,
                                        {"error": str(e)}, status="failed")
            return WriteResult(Outcome.ERROR_ABSORBED, str(e))

    def put(self, vector: ContentVector) -> None:
        self.put_result(vector)

    def update_result(self, user_id: str, content_id: str, text_content: Optional[str],
                      metadata_patch: Optional[Dict[str, Any]] = None) -> WriteResult:
        """Re-embed and merge metadata into the first vector stored for ``content_id``.

        An empty ``text_content`` keeps the stored text and embedding and only
        merges metadata.
        """
        try:
            existing = self.dao.find_by_content_id(user_id, content_id)
            if existing is None:
                raise VectorNotFound(content_id)

            if text_content:
                existing.embedding = self.embedder.embed(text_content)
                existing.text_content = text_content

            patch = dict(metadata_patch or {})
            patch.pop("created_at", None)
            patch["updated_at"] = self._clock()
            patch["version"] = existing.metadata.version + 1
            existing.metadata = existing.metadata.merged(patch)

            self.dao.update_vector(existing)
            logger.log_vector_operation("update", user_id, content_id, {
                "version": existing.metadata.version,
                "reembedded": bool(text_content),
            })
            return WriteResult(Outcome.OK)

        except VectorNotFound:
            logger.debug(f"No existing vector for '{content_id}' (user '{user_id}'), skipping update")
            return WriteResult(Outcome.SKIPPED, "vector not found")
        except Exception as e:
            logger.log_vector_operation("update", user_id, content_id, {"error": str(e)}, status="failed")
            return WriteResult(Outcome.ERROR_ABSORBED, str(e))

    def update_by_content_id(self, user_id: str, content_id: str, text_content: Optional[str],
                             metadata_patch: Optional[Dict[str, Any]] = None) -> None:
        self.update_result(user_id, content_id, text_content, metadata_patch)

    def query(self, user_id: str, content_type: Optional[ContentType] = None) -> List[ContentVector]:
        """All of a user's vectors, optionally restricted to one content type."""
        return self.dao.list_vectors(user_id, content_type)

    def find_by_content_id(self, user_id: str, content_id: str) -> Optional[ContentVector]:
        return self.dao.find_by_content_id(user_id, content_id)

    def count(self, user_id: str) -> int:
        return self.dao.count_vectors(user_id)
