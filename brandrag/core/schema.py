"""
Core records for the context engine: content vectors, retrieval options,
assembled context, and the result types used to explain empty outcomes.
"""

from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class ContentType(str, Enum):
    PROFILE = "profile"
    SOCIAL_POST = "social_post"
    ARTICLE = "article"
    CAMPAIGN = "campaign"
    SAVED_IMAGE = "saved_image"
    LOGO = "logo"


TIMEFRAMES = ("recent", "all", "30days", "90days")


def clamp01(value: float) -> float:
    """Clamp a score into [0, 1]."""
    return min(1.0, max(0.0, float(value)))


# Error taxonomy. Only RateLimitExceeded crosses the public write boundary.

class RAGError(Exception):
    """Base class for context engine errors."""
    pass


class RateLimitExceeded(RAGError):
    """Raised on the write path when a user has used up an embedding quota."""

    def __init__(self, reason: str):
        super().__init__(f"RAG rate limit exceeded: {reason}")
        self.reason = reason


class ConfigUnavailable(RAGError):
    pass


class EmbeddingProviderError(RAGError):
    pass


class VectorNotFound(RAGError):
    pass


class PersistenceError(RAGError):
    pass


class CleanupError(RAGError):
    pass


@dataclass
class VectorMetadata:
    """Metadata attached to every content vector."""

    industry: Optional[str] = None
    style: Optional[str] = None
    performance: float = 0.5
    engagement: int = 0
    platform: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    version: int = 1

    def __post_init__(self):
        self.performance = clamp01(self.performance if self.performance is not None else 0.0)
        self.engagement = max(0, int(self.engagement or 0))
        self.version = max(1, int(self.version or 1))
        if self.tags is None:
            self.tags = []

    def merged(self, patch: Dict[str, Any]) -> "VectorMetadata":
        """Return a copy with ``patch`` applied over the current values.

        Keys with a ``None`` value and unknown keys are ignored; the result is
        re-validated so performance stays clamped.
        """
        known = {f.name for f in fields(self)}
        changes = {k: v for k, v in (patch or {}).items() if k in known and v is not None}
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "industry": self.industry,
            "style": self.style,
            "performance": self.performance,
            "engagement": self.engagement,
            "platform": self.platform,
            "tags": list(self.tags),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VectorMetadata":
        data = dict(data or {})
        for key in ("created_at", "updated_at"):
            if isinstance(data.get(key), str):
                data[key] = datetime.fromisoformat(data[key])
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class ContentVector:
    """One embedded content item, scoped to a user."""

    user_id: str
    content_type: ContentType
    content_id: str
    text_content: str
    metadata: VectorMetadata = field(default_factory=VectorMetadata)
    embedding: List[float] = field(default_factory=list)
    source_collection: str = ""
    source_doc_id: str = ""
    id: Optional[int] = None


@dataclass
class RetrievalOptions:
    user_id: str
    content_type: Optional[ContentType] = None
    industry: Optional[str] = None
    min_performance: Optional[float] = None
    limit: int = 10
    include_industry_patterns: bool = False
    timeframe: str = "all"

    def __post_init__(self):
        if self.content_type is not None and not isinstance(self.content_type, ContentType):
            self.content_type = ContentType(self.content_type)
        if self.timeframe not in TIMEFRAMES:
            raise ValueError(f"timeframe must be one of: {list(TIMEFRAMES)}")
        if not self.limit or self.limit < 1:
            self.limit = 10


@dataclass
class RAGContext:
    """Context assembled for a generation request.

    The first five fields are always present. The optional ones are ``None``
    unless the requested content type makes them relevant.
    """

    brand_patterns: str = ""
    successful_styles: str = ""
    avoid_patterns: str = ""
    industry_insights: str = ""
    seasonal_trends: str = ""
    voice_patterns: Optional[str] = None
    effective_hashtags: Optional[str] = None
    seo_keywords: Optional[str] = None
    performance_insights: Optional[str] = None

    @classmethod
    def empty(cls) -> "RAGContext":
        return cls()

    def populated_fields(self) -> Dict[str, str]:
        """Fields present in this context, in declaration order."""
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}

    def to_dict(self) -> Dict[str, str]:
        return self.populated_fields()

    def total_length(self) -> int:
        return sum(len(value) for value in self.populated_fields().values())


@dataclass
class UserRateLimitOverride:
    """Per-user quota override. ``None`` limits fall back to the global user limits."""

    enabled: bool = False
    max_embeddings_per_hour: Optional[int] = None
    max_embeddings_per_day: Optional[int] = None


@dataclass
class RateLimitDecision:
    allowed: bool
    reason: Optional[str] = None


class Outcome(str, Enum):
    OK = "ok"
    EMPTY = "empty"
    SKIPPED = "skipped"
    RATE_LIMITED = "rate_limited"
    ERROR_ABSORBED = "error_absorbed"


@dataclass
class EmbeddingResult:
    vector: List[float]
    outcome: Outcome = Outcome.OK
    reason: Optional[str] = None


@dataclass
class WriteResult:
    outcome: Outcome
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome == Outcome.OK


@dataclass
class ContextResult:
    context: RAGContext
    outcome: Outcome = Outcome.OK
    reason: Optional[str] = None
