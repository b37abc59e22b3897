"""
Request and response models for the context engine HTTP API.
"""

from pydantic import BaseModel, field_validator
from typing import Optional, List, Dict, Any

from ..core.schema import TIMEFRAMES, ContentType


class HealthResponse(BaseModel):
    status: str
    version: str
    db_health: bool
    embed_provider: str


class ContextRequest(BaseModel):
    query: str
    user_id: str
    content_type: Optional[ContentType] = None
    industry: Optional[str] = None
    min_performance: Optional[float] = None
    limit: int = 10
    include_industry_patterns: bool = False
    timeframe: str = "all"

    @field_validator('user_id')
    @classmethod
    def user_id_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('user_id cannot be empty')
        return v

    @field_validator('timeframe')
    @classmethod
    def timeframe_must_be_valid(cls, v):
        if v not in TIMEFRAMES:
            raise ValueError(f'timeframe must be one of: {list(TIMEFRAMES)}')
        return v

    @field_validator('limit')
    @classmethod
    def limit_must_be_positive(cls, v):
        if v < 1:
            raise ValueError('limit must be >= 1')
        return v


class ContextResponse(BaseModel):
    context: Dict[str, str]
    outcome: str
    reason: Optional[str] = None


class StoreVectorRequest(BaseModel):
    user_id: str
    content_type: ContentType
    content_id: str
    text_content: str
    metadata: Dict[str, Any] = {}
    source_collection: str = ""
    source_doc_id: str = ""

    @field_validator('user_id', 'content_id')
    @classmethod
    def ids_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('identifier cannot be empty')
        return v


class UpdateVectorRequest(BaseModel):
    user_id: str
    text_content: Optional[str] = None
    metadata: Dict[str, Any] = {}


class PerformanceRequest(BaseModel):
    user_id: str
    performance: Optional[float] = None
    engagement: Optional[float] = None
    clicks: Optional[int] = None
    shares: Optional[int] = None
    likes: Optional[int] = None

    @field_validator('performance', 'engagement', 'clicks', 'shares', 'likes')
    @classmethod
    def metrics_must_not_be_negative(cls, v):
        if v is not None and v < 0:
            raise ValueError('metrics cannot be negative')
        return v


class WriteResponse(BaseModel):
    success: bool
    outcome: str
    reason: Optional[str] = None


class ReVectorizeRequest(BaseModel):
    old_text: str = ""
    new_text: str = ""


class ReVectorizeResponse(BaseModel):
    should_re_vectorize: bool


class UserCleanupRequest(BaseModel):
    keep_days: Optional[int] = None


class UserCleanupResponse(BaseModel):
    user_id: str
    deleted: int


class CleanupResponse(BaseModel):
    total_cleaned: int
    users_processed: int
    errors: List[str] = []


class RateLimitOverrideRequest(BaseModel):
    enabled: bool = True
    max_embeddings_per_hour: Optional[int] = None
    max_embeddings_per_day: Optional[int] = None


class VectorCountResponse(BaseModel):
    user_id: str
    count: int
