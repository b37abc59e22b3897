"""
Shared fixtures: a throwaway sqlite database per test, the deterministic
hash embedder and a controllable clock.
"""

import pytest
from datetime import datetime, timedelta

from brandrag.core.config import ConfigService, SystemConfig
from brandrag.core.dao import VectorDAO
from brandrag.core.engine import build_engine
from brandrag.core.rate_limiter import RateLimiter
from brandrag.core.schema import ContentType, ContentVector, VectorMetadata
from brandrag.vector.embeddings import DeterministicHashEmbedding, EmbeddingGenerator
from brandrag.vector.store import VectorStore

NOW = datetime(2025, 6, 15, 12, 0, 0)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = NOW):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


def make_vector(user_id="u1", content_id="c1", text="some content", embedding=None,
                content_type=ContentType.SOCIAL_POST, **metadata) -> ContentVector:
    return ContentVector(
        user_id=user_id,
        content_type=content_type,
        content_id=content_id,
        text_content=text,
        metadata=VectorMetadata(**metadata),
        embedding=embedding if embedding is not None else [1.0, 0.0, 0.0],
    )


def save_config(config_service: ConfigService, document: dict):
    """Store a camelCase config document through the admin path."""
    config_service.save(SystemConfig.model_validate(document))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "brandrag_test.db")


@pytest.fixture
def dao(db_path):
    return VectorDAO(db_path)


@pytest.fixture
def config_service(dao):
    # ttl 0: every load rereads, so tests see config changes immediately
    return ConfigService(dao, ttl_seconds=0)


@pytest.fixture
def provider():
    return DeterministicHashEmbedding(dimension=768)


@pytest.fixture
def embedder(provider, config_service):
    return EmbeddingGenerator(provider, config_service)


@pytest.fixture
def rate_limiter(dao, config_service, clock):
    return RateLimiter(dao, config_service, clock=clock)


@pytest.fixture
def vector_store(dao, embedder, rate_limiter, clock):
    return VectorStore(dao, embedder, rate_limiter, clock=clock)


@pytest.fixture
def engine(db_path, provider, clock):
    return build_engine(db_path, provider=provider, config_ttl_seconds=0, clock=clock)
