"""
HTTP API over the context engine.

No authentication is performed here; callers are expected to sit behind
their own auth layer.
"""

from fastapi import FastAPI, HTTPException, Depends, Body
from typing import Any, Dict, Optional

from pydantic import ValidationError

from .schemas import (
    HealthResponse,
    ContextRequest,
    ContextResponse,
    StoreVectorRequest,
    UpdateVectorRequest,
    PerformanceRequest,
    WriteResponse,
    ReVectorizeRequest,
    ReVectorizeResponse,
    UserCleanupRequest,
    UserCleanupResponse,
    CleanupResponse,
    RateLimitOverrideRequest,
    VectorCountResponse,
)
from ..core.config import VERSION, EMBED_PROVIDER, SystemConfig, debug_enabled
from ..core.db import health_check
from ..core.engine import RAGEngine, build_engine
from ..core.schema import PersistenceError, RateLimitExceeded, RetrievalOptions, UserRateLimitOverride
from ..util.logging import logger

app = FastAPI(
    title="Brand RAG Context API",
    version=VERSION,
    description="Retrieval-augmented context for brand content generation",
    docs_url="/docs" if debug_enabled() else None,
    redoc_url="/redoc" if debug_enabled() else None
)

_engine = None


def get_engine() -> RAGEngine:
    """Process-wide engine, built on first use."""
    global _engine
    if _engine is None:
        _engine = build_engine()
    return _engine


def _write_response(result) -> WriteResponse:
    return WriteResponse(success=result.ok, outcome=result.outcome.value, reason=result.reason)


@app.get("/health", response_model=HealthResponse)
def health_check_endpoint(engine: RAGEngine = Depends(get_engine)):
    """Check system health."""
    db_health = health_check(engine.dao.db_path)
    return HealthResponse(
        status="healthy" if db_health else "unhealthy",
        version=VERSION,
        db_health=db_health,
        embed_provider=EMBED_PROVIDER,
    )


@app.post("/context", response_model=ContextResponse)
def retrieve_context(req: ContextRequest, engine: RAGEngine = Depends(get_engine)):
    options = RetrievalOptions(
        user_id=req.user_id,
        content_type=req.content_type,
        industry=req.industry,
        min_performance=req.min_performance,
        limit=req.limit,
        include_industry_patterns=req.include_industry_patterns,
        timeframe=req.timeframe,
    )
    result = engine.retrieve_relevant_context_result(req.query, options)
    return ContextResponse(context=result.context.to_dict(), outcome=result.outcome.value, reason=result.reason)


@app.post("/vectors", response_model=WriteResponse)
def store_vector(req: StoreVectorRequest, engine: RAGEngine = Depends(get_engine)):
    try:
        result = engine.store_content_vector_result(
            req.user_id,
            req.content_type,
            req.content_id,
            req.text_content,
            req.metadata,
            req.source_collection,
            req.source_doc_id,
        )
    except RateLimitExceeded as e:
        raise HTTPException(status_code=429, detail=e.reason)
    return _write_response(result)


@app.post("/vectors/should-revectorize", response_model=ReVectorizeResponse)
def should_revectorize(req: ReVectorizeRequest, engine: RAGEngine = Depends(get_engine)):
    return ReVectorizeResponse(should_re_vectorize=engine.should_re_vectorize(req.old_text, req.new_text))


@app.put("/vectors/{content_id}", response_model=WriteResponse)
def update_vector(content_id: str, req: UpdateVectorRequest, engine: RAGEngine = Depends(get_engine)):
    result = engine.update_content_vector_result(req.user_id, content_id, req.text_content, req.metadata)
    return _write_response(result)


@app.post("/vectors/{content_id}/performance", response_model=WriteResponse)
def update_performance(content_id: str, req: PerformanceRequest, engine: RAGEngine = Depends(get_engine)):
    metrics = req.model_dump(exclude={"user_id"}, exclude_none=True)
    result = engine.update_content_performance_result(req.user_id, content_id, metrics)
    return _write_response(result)


@app.post("/cleanup/{user_id}", response_model=UserCleanupResponse)
def cleanup_user_vectors(user_id: str, req: Optional[UserCleanupRequest] = None,
                         engine: RAGEngine = Depends(get_engine)):
    keep_days = req.keep_days if req else None
    deleted = engine.cleanup_old_vectors(user_id, keep_days)
    return UserCleanupResponse(user_id=user_id, deleted=deleted)


@app.post("/cleanup", response_model=CleanupResponse)
def cleanup_all(engine: RAGEngine = Depends(get_engine)):
    report = engine.cleanup_all_users_report()
    return CleanupResponse(
        total_cleaned=report.total_cleaned,
        users_processed=report.users_processed,
        errors=report.errors,
    )


@app.get("/admin/config")
def get_config(engine: RAGEngine = Depends(get_engine)) -> Dict[str, Any]:
    return engine.config_service.load().to_document()


@app.put("/admin/config")
def put_config(document: Dict[str, Any] = Body(...), engine: RAGEngine = Depends(get_engine)) -> Dict[str, Any]:
    try:
        config = SystemConfig.model_validate(document)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False))

    try:
        engine.config_service.save(config)
    except PersistenceError as e:
        logger.error(f"Failed to save system config: {e}")
        raise HTTPException(status_code=500, detail="Failed to save system config")

    return config.to_document()


@app.put("/admin/users/{user_id}/rate-limit", response_model=RateLimitOverrideRequest)
def set_rate_limit(user_id: str, req: RateLimitOverrideRequest, engine: RAGEngine = Depends(get_engine)):
    override = UserRateLimitOverride(
        enabled=req.enabled,
        max_embeddings_per_hour=req.max_embeddings_per_hour,
        max_embeddings_per_day=req.max_embeddings_per_day,
    )
    try:
        engine.dao.set_rate_limit_override(user_id, override)
    except PersistenceError as e:
        logger.error(f"Failed to save rate limit override for '{user_id}': {e}")
        raise HTTPException(status_code=500, detail="Failed to save rate limit override")
    return req


@app.get("/admin/users/{user_id}/vectors/count", response_model=VectorCountResponse)
def vector_count(user_id: str, engine: RAGEngine = Depends(get_engine)):
    return VectorCountResponse(user_id=user_id, count=engine.get_user_vector_count(user_id))
