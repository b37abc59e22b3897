"""
Tests for the TTL-cached SystemConfig loader.
"""

import pytest
from unittest.mock import MagicMock

from brandrag.core.config import (
    SYSTEM_CONFIG_KEY,
    ConfigService,
    SystemConfig,
    default_system_config,
)
from brandrag.core.schema import ConfigUnavailable, PersistenceError


class TestDefaults:

    def test_missing_durable_copy_uses_defaults(self, dao):
        """No stored document means the built-in defaults."""
        config = ConfigService(dao).load()

        assert config.rate_limiting.enabled is False
        assert config.rate_limiting.user_max_per_hour == 50
        assert config.rate_limiting.user_max_per_day == 500
        assert config.vector_cleanup.enabled is True
        assert config.vector_cleanup.retention_days == 90
        assert config.vector_cleanup.min_performance_threshold == 0.3
        assert config.performance.similarity_threshold == 0.7
        assert config.performance.max_context_length == 8000
        assert config.embedding.cost_per_1k == 0.02

    def test_camel_case_partial_document(self, dao):
        """Admin documents are camelCase and may omit fields."""
        dao.save_system_config(SYSTEM_CONFIG_KEY, {
            "rateLimiting": {"enabled": True, "userMaxPerHour": 5},
            "performance": {"maxContextLength": 1200},
        })

        config = ConfigService(dao).load()

        assert config.rate_limiting.enabled is True
        assert config.rate_limiting.user_max_per_hour == 5
        assert config.rate_limiting.user_max_per_day == 500
        assert config.performance.max_context_length == 1200
        assert config.performance.similarity_threshold == 0.7
        assert config.vector_cleanup.retention_days == 90

    def test_to_document_uses_aliases(self):
        document = default_system_config().to_document()

        assert document["rateLimiting"]["userMaxPerHour"] == 50
        assert document["vectorCleanup"]["minPerformanceThreshold"] == 0.3
        assert document["embedding"]["costPer1K"] == 0.02
        assert document["performance"]["cacheTTL"] == 3600


class TestCaching:

    def test_cached_within_ttl(self, dao):
        """A durable change is invisible until the TTL expires."""
        now = [0.0]
        service = ConfigService(dao, ttl_seconds=300, clock=lambda: now[0])
        assert service.load().rate_limiting.enabled is False

        dao.save_system_config(SYSTEM_CONFIG_KEY, {"rateLimiting": {"enabled": True}})

        now[0] = 299.0
        assert service.load().rate_limiting.enabled is False

        now[0] = 300.0
        assert service.load().rate_limiting.enabled is True

    def test_invalidate_forces_reread(self, dao):
        service = ConfigService(dao, ttl_seconds=300, clock=lambda: 0.0)
        service.load()

        dao.save_system_config(SYSTEM_CONFIG_KEY, {"performance": {"similarityThreshold": 0.5}})
        service.invalidate()

        assert service.load().performance.similarity_threshold == 0.5

    def test_save_persists_and_invalidates(self, dao):
        service = ConfigService(dao, ttl_seconds=300, clock=lambda: 0.0)
        service.load()

        config = SystemConfig.model_validate({"vectorCleanup": {"retentionDays": 30}})
        service.save(config)

        assert service.load().vector_cleanup.retention_days == 30
        assert dao.get_system_config(SYSTEM_CONFIG_KEY)["vectorCleanup"]["retentionDays"] == 30

    def test_instances_do_not_share_cache(self, dao):
        """Each service keeps its own cached copy."""
        first = ConfigService(dao, ttl_seconds=300, clock=lambda: 0.0)
        second = ConfigService(dao, ttl_seconds=300, clock=lambda: 0.0)
        first.load()

        second.save(SystemConfig.model_validate({"rateLimiting": {"enabled": True}}))

        assert first.load().rate_limiting.enabled is False
        assert second.load().rate_limiting.enabled is True


class TestFailureRecovery:

    def test_read_failure_without_cache_uses_fallback(self):
        """Unreadable storage and nothing cached: rate limiting and cleanup are off."""
        dao = MagicMock()
        dao.get_system_config.side_effect = PersistenceError("database is locked")

        config = ConfigService(dao).load()

        assert config.rate_limiting.enabled is False
        assert config.vector_cleanup.enabled is False
        assert config.performance.similarity_threshold == 0.7
        assert config.performance.max_context_length == 8000

    def test_read_failure_keeps_last_good_copy(self):
        dao = MagicMock()
        dao.get_system_config.side_effect = [
            {"rateLimiting": {"enabled": True, "userMaxPerHour": 7}},
            PersistenceError("database is locked"),
        ]
        service = ConfigService(dao, ttl_seconds=0)

        assert service.load().rate_limiting.user_max_per_hour == 7
        recovered = service.load()

        assert recovered.rate_limiting.enabled is True
        assert recovered.rate_limiting.user_max_per_hour == 7

    def test_invalid_document_uses_fallback(self):
        dao = MagicMock()
        dao.get_system_config.return_value = {"performance": {"similarityThreshold": "very similar"}}

        config = ConfigService(dao).load()

        assert config.performance.similarity_threshold == 0.7
        assert config.vector_cleanup.enabled is False

    def test_load_never_raises(self):
        dao = MagicMock()
        dao.get_system_config.side_effect = RuntimeError("unexpected")

        assert isinstance(ConfigService(dao).load(), SystemConfig)

    def test_read_failure_reported_as_config_unavailable(self):
        dao = MagicMock()
        dao.get_system_config.side_effect = PersistenceError("database is locked")

        with pytest.raises(ConfigUnavailable, match="database is locked"):
            ConfigService(dao)._read_durable()

    def test_invalid_document_reported_as_config_unavailable(self):
        dao = MagicMock()
        dao.get_system_config.return_value = {"performance": {"maxContextLength": "lots"}}

        with pytest.raises(ConfigUnavailable, match="invalid durable config"):
            ConfigService(dao)._read_durable()
