"""
Process settings and the engine-wide SystemConfig.

Process settings come from the environment (``.env`` is honoured). Engine
tunables (rate limits, cleanup policy, embedding model, similarity threshold,
context budget) live in a durable SystemConfig document that ConfigService
reloads at most once per TTL window.
"""

import os
import time
from pathlib import Path
from typing import Callable, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .schema import ConfigUnavailable
from ..util.logging import logger

load_dotenv()

# Database path configuration
DB_PATH = os.getenv("DB_PATH", "./data/brandrag.db")

DEBUG = os.getenv("DEBUG", "false").lower() == "true"

# Embedding provider: ollama|sentence_transformers|hash
EMBED_PROVIDER = os.getenv("EMBED_PROVIDER", "ollama")
EMBED_MODEL_NAME = os.getenv("EMBED_MODEL_NAME", "nomic-embed-text")
EMBED_DIM = int(os.getenv("EMBED_DIM", "768"))
OLLAMA_HOST = os.getenv("OLLAMA_HOST", "http://localhost:11434")

# SystemConfig cache window (seconds)
CONFIG_CACHE_TTL_SEC = int(os.getenv("CONFIG_CACHE_TTL_SEC", "300"))

# Cleanup schedule (weekly by default)
HEARTBEAT_ENABLED = os.getenv("HEARTBEAT_ENABLED", "false").lower() == "true"
CLEANUP_INTERVAL_SEC = int(os.getenv("CLEANUP_INTERVAL_SEC", str(7 * 24 * 3600)))

SYSTEM_CONFIG_KEY = "ragSystemConfig"

VERSION = "1.0.0"


def debug_enabled():
    """Check if debug mode is enabled."""
    return os.getenv("DEBUG", "false").lower() == "true"


def ensure_db_directory(db_path: str = None):
    """Ensure the database directory exists."""
    Path(db_path or DB_PATH).parent.mkdir(parents=True, exist_ok=True)


def get_embedding_provider():
    """Get the configured embedding provider implementation."""
    if EMBED_PROVIDER == "hash":
        from ..vector.embeddings import DeterministicHashEmbedding
        return DeterministicHashEmbedding(dimension=EMBED_DIM)
    elif EMBED_PROVIDER == "sentence_transformers":
        from ..vector.embeddings import SentenceTransformerEmbedding
        return SentenceTransformerEmbedding(model_name=EMBED_MODEL_NAME)
    elif EMBED_PROVIDER == "ollama":
        from ..vector.embeddings import OllamaEmbedding
        return OllamaEmbedding(host=OLLAMA_HOST, model_name=EMBED_MODEL_NAME, dimension=EMBED_DIM)
    else:
        raise ValueError(f"Invalid EMBED_PROVIDER: {EMBED_PROVIDER}")


def is_heartbeat_enabled():
    """Check if the scheduled cleanup loop is enabled."""
    return os.getenv("HEARTBEAT_ENABLED", "false").lower() == "true"


def validate_heartbeat_config():
    """Validate scheduler configuration and return any issues."""
    issues = []

    if CLEANUP_INTERVAL_SEC < 1:
        issues.append("CLEANUP_INTERVAL_SEC must be >= 1")

    if EMBED_PROVIDER not in ["ollama", "sentence_transformers", "hash"]:
        issues.append(f"Invalid EMBED_PROVIDER: {EMBED_PROVIDER}")

    return issues


class _ConfigSection(BaseModel):
    # Durable documents are written by an admin UI in camelCase
    model_config = ConfigDict(populate_by_name=True)


class RateLimitingConfig(_ConfigSection):
    enabled: bool = False
    global_max_per_hour: int = Field(1000, alias="globalMaxPerHour")
    global_max_per_day: int = Field(10000, alias="globalMaxPerDay")
    user_max_per_hour: Optional[int] = Field(50, alias="userMaxPerHour")
    user_max_per_day: Optional[int] = Field(500, alias="userMaxPerDay")


class VectorCleanupConfig(_ConfigSection):
    enabled: bool = True
    retention_days: Optional[int] = Field(90, alias="retentionDays")
    min_performance_threshold: Optional[float] = Field(0.3, alias="minPerformanceThreshold")


class EmbeddingConfig(_ConfigSection):
    model: str = Field(default_factory=lambda: EMBED_MODEL_NAME)
    dimensions: int = Field(default_factory=lambda: EMBED_DIM)
    cost_per_1k: float = Field(0.02, alias="costPer1K")


class PerformanceConfig(_ConfigSection):
    similarity_threshold: float = Field(0.7, alias="similarityThreshold")
    max_context_length: int = Field(8000, alias="maxContextLength")
    cache_enabled: bool = Field(True, alias="cacheEnabled")
    cache_ttl: int = Field(3600, alias="cacheTTL")


class SystemConfig(_ConfigSection):
    rate_limiting: RateLimitingConfig = Field(default_factory=RateLimitingConfig, alias="rateLimiting")
    vector_cleanup: VectorCleanupConfig = Field(default_factory=VectorCleanupConfig, alias="vectorCleanup")
    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    performance: PerformanceConfig = Field(default_factory=PerformanceConfig)

    def to_document(self) -> dict:
        """Serialize in the camelCase shape used by the durable copy."""
        return self.model_dump(by_alias=True)


def default_system_config() -> SystemConfig:
    """Configuration used when no durable copy exists."""
    return SystemConfig()


def fallback_system_config() -> SystemConfig:
    """Configuration used when the durable copy cannot be read and nothing is cached.

    Rate limiting and cleanup are both off: an unreadable policy never
    deletes data.
    """
    config = SystemConfig()
    config.rate_limiting.enabled = False
    config.vector_cleanup.enabled = False
    return config


class ConfigService:
    """TTL-cached loader for the durable SystemConfig.

    The cache is per instance. Separate processes may see different
    configuration for up to ``ttl_seconds`` after an admin change.
    """

    def __init__(self, dao, ttl_seconds: int = None, clock: Callable[[], float] = time.monotonic):
        self.dao = dao
        self.ttl_seconds = CONFIG_CACHE_TTL_SEC if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._cached: Optional[SystemConfig] = None
        self._loaded_at: Optional[float] = None

    def _is_fresh(self, now: float) -> bool:
        return self._cached is not None and self._loaded_at is not None and (now - self._loaded_at) < self.ttl_seconds

    def load(self) -> SystemConfig:
        """Return the current SystemConfig. Never raises."""
        now = self._clock()
        if self._is_fresh(now):
            return self._cached

        try:
            config = self._read_durable()
        except ConfigUnavailable as e:
            return self._recover(str(e))

        self._cached = config
        self._loaded_at = now
        return config

    def _read_durable(self) -> SystemConfig:
        """
        Read and validate the durable copy.

        Raises:
            ConfigUnavailable: storage could not be read or holds an invalid document
        """
        try:
            document = self.dao.get_system_config(SYSTEM_CONFIG_KEY)
        except Exception as e:
            raise ConfigUnavailable(f"could not read durable config: {e}") from e

        if document is None:
            logger.log_operation("config.load", "defaults", {"reason": "no durable config"})
            return default_system_config()

        try:
            config = SystemConfig.model_validate(document)
        except ValidationError as e:
            raise ConfigUnavailable(f"invalid durable config: {e}") from e

        logger.log_operation("config.load", "success")
        return config

    def _recover(self, error: str) -> SystemConfig:
        if self._cached is not None:
            logger.warning(f"Failed to load system config, keeping cached copy: {error}")
            return self._cached
        logger.error(f"Failed to load system config, using fallback defaults: {error}")
        return fallback_system_config()

    def invalidate(self) -> None:
        """Force the next load() to reread durable storage."""
        self._loaded_at = None

    def save(self, config: SystemConfig) -> None:
        """Persist a new durable copy (admin path) and drop the cache."""
        self.dao.save_system_config(SYSTEM_CONFIG_KEY, config.to_document())
        self.invalidate()
        logger.log_operation("config.save", "success")
