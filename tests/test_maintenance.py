"""
Tests for stale vector cleanup.
"""

import pytest
from datetime import datetime, timedelta
from unittest.mock import patch

from brandrag.core.maintenance import (
    CleanupReport,
    cleanup_all_users,
    cleanup_all_users_report,
    cleanup_user,
)
from brandrag.core.schema import CleanupError, PersistenceError

from conftest import NOW, make_vector, save_config


def add_aged(dao, user_id, content_id, age_days, performance):
    dao.register_user(user_id)
    dao.insert_vector(make_vector(user_id=user_id, content_id=content_id,
                                  created_at=NOW - timedelta(days=age_days), performance=performance))


def content_ids(dao, user_id="u1"):
    return {v.content_id for v in dao.list_vectors(user_id)}


class TestCleanupUser:

    def test_both_conditions_required(self, dao, config_service):
        """retentionDays=90, threshold=0.3."""
        add_aged(dao, "u1", "old-good", 100, 0.5)
        add_aged(dao, "u1", "new-bad", 50, 0.1)
        add_aged(dao, "u1", "old-bad", 100, 0.1)

        deleted = cleanup_user(dao, config_service, "u1", now=NOW)

        assert deleted == 1
        assert content_ids(dao) == {"old-good", "new-bad"}

    def test_cutoff_is_strict(self, dao, config_service):
        add_aged(dao, "u1", "exactly-90", 90, 0.1)

        assert cleanup_user(dao, config_service, "u1", now=NOW) == 0

    def test_threshold_is_strict(self, dao, config_service):
        add_aged(dao, "u1", "at-threshold", 100, 0.3)

        assert cleanup_user(dao, config_service, "u1", now=NOW) == 0

    def test_retention_override(self, dao, config_service):
        add_aged(dao, "u1", "new-bad", 50, 0.1)

        assert cleanup_user(dao, config_service, "u1", retention_days_override=30, now=NOW) == 1
        assert content_ids(dao) == set()

    def test_configured_policy(self, dao, config_service):
        save_config(config_service, {"vectorCleanup": {"retentionDays": 10, "minPerformanceThreshold": 0.6}})
        add_aged(dao, "u1", "mid", 20, 0.5)

        assert cleanup_user(dao, config_service, "u1", now=NOW) == 1

    def test_disabled_is_noop(self, dao, config_service):
        save_config(config_service, {"vectorCleanup": {"enabled": False}})
        add_aged(dao, "u1", "old-bad", 100, 0.1)

        assert cleanup_user(dao, config_service, "u1", now=NOW) == 0
        assert content_ids(dao) == {"old-bad"}

    def test_other_users_untouched(self, dao, config_service):
        add_aged(dao, "u1", "old-bad", 100, 0.1)
        add_aged(dao, "u2", "old-bad", 100, 0.1)

        cleanup_user(dao, config_service, "u1", now=NOW)

        assert content_ids(dao, "u2") == {"old-bad"}

    def test_storage_failure_raises_cleanup_error(self, dao, config_service):
        with patch.object(dao, "delete_stale_vectors", side_effect=PersistenceError("database is locked")):
            with pytest.raises(CleanupError):
                cleanup_user(dao, config_service, "u1", now=NOW)


class TestCleanupAllUsers:

    def test_totals(self, dao, config_service):
        add_aged(dao, "u1", "a", 100, 0.1)
        add_aged(dao, "u1", "b", 100, 0.9)
        add_aged(dao, "u2", "c", 120, 0.0)
        add_aged(dao, "u2", "d", 150, 0.2)

        result = cleanup_all_users(dao, config_service, now=NOW)

        assert result == {"total_cleaned": 3, "users_processed": 2}

    def test_failure_isolated_per_user(self, dao, config_service):
        add_aged(dao, "u1", "a", 100, 0.1)
        add_aged(dao, "u2", "b", 100, 0.1)
        real_delete = dao.delete_stale_vectors

        def flaky(user_id, cutoff, min_performance):
            if user_id == "u1":
                raise PersistenceError("database is locked")
            return real_delete(user_id, cutoff, min_performance)

        with patch.object(dao, "delete_stale_vectors", side_effect=flaky):
            report = cleanup_all_users_report(dao, config_service, now=NOW)

        assert report.users_processed == 1
        assert report.total_cleaned == 1
        assert report.deleted_per_user == {"u2": 1}
        assert len(report.errors) == 1
        assert report.errors[0].startswith("u1:")
        assert content_ids(dao, "u1") == {"a"}

    def test_unexpected_error_isolated_per_user(self, dao, config_service):
        add_aged(dao, "u1", "a", 100, 0.1)
        add_aged(dao, "u2", "b", 100, 0.1)
        real_delete = dao.delete_stale_vectors

        def broken_for_u1(user_id, cutoff, min_performance):
            if user_id == "u1":
                raise RuntimeError("unexpected")
            return real_delete(user_id, cutoff, min_performance)

        with patch.object(dao, "delete_stale_vectors", side_effect=broken_for_u1):
            report = cleanup_all_users_report(dao, config_service, now=NOW)

        assert report.summary() == {"total_cleaned": 1, "users_processed": 1}
        assert report.errors == ["u1: unexpected error: unexpected"]
        assert content_ids(dao, "u2") == set()

    def test_disabled(self, dao, config_service):
        save_config(config_service, {"vectorCleanup": {"enabled": False}})
        add_aged(dao, "u1", "a", 100, 0.1)

        assert cleanup_all_users(dao, config_service, now=NOW) == {"total_cleaned": 0, "users_processed": 0}

    def test_no_users(self, dao, config_service):
        assert cleanup_all_users(dao, config_service, now=NOW) == {"total_cleaned": 0, "users_processed": 0}


class TestCleanupReport:

    def test_report_to_dict(self):
        report = CleanupReport(
            operation="vector_cleanup",
            started_at=datetime(2025, 1, 1, 12, 0, 0),
            completed_at=datetime(2025, 1, 1, 12, 1, 0),
            total_cleaned=4,
            users_processed=2,
        )

        data = report.to_dict()

        assert data["operation"] == "vector_cleanup"
        assert data["total_cleaned"] == 4
        assert data["completed_at"] == "2025-01-01T12:01:00"
        assert report.summary() == {"total_cleaned": 4, "users_processed": 2}
