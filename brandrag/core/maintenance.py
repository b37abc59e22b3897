"""
Vector lifecycle maintenance: removes old, low-performing vectors.

A vector is deleted only when it is older than the retention window AND its
performance is below the configured threshold. Each user's deletions run as
one transaction; users are processed one after another and a failing user
does not stop the run.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from .config import ConfigService
from .schema import CleanupError, PersistenceError
from ..util.logging import logger

DEFAULT_RETENTION_DAYS = 90
DEFAULT_MIN_PERFORMANCE = 0.3


@dataclass
class CleanupReport:
    """Outcome of a cleanup run across users."""
    operation: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    total_cleaned: int = 0
    users_processed: int = 0
    deleted_per_user: Dict[str, int] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)

    def summary(self) -> Dict[str, int]:
        return {"total_cleaned": self.total_cleaned, "users_processed": self.users_processed}

    def to_dict(self) -> Dict[str, Any]:
        """Convert report to dictionary for serialization."""
        data = {
            "operation": self.operation,
            "started_at": self.started_at.isoformat(),
            "total_cleaned": self.total_cleaned,
            "users_processed": self.users_processed,
            "deleted_per_user": self.deleted_per_user,
            "errors": self.errors,
        }
        if self.completed_at:
            data["completed_at"] = self.completed_at.isoformat()
        return data


def cleanup_user(dao, config_service: ConfigService, user_id: str,
                 retention_days_override: Optional[int] = None,
                 now: Optional[datetime] = None) -> int:
    """
    Delete a user's stale vectors.

    Args:
        dao: VectorDAO
        config_service: source of the vectorCleanup policy
        user_id: user whose vectors are cleaned
        retention_days_override: replaces the configured retention window
        now: reference time for the cutoff

    Returns:
        int: number of vectors deleted (0 when cleanup is disabled)

    Raises:
        CleanupError: the deletion could not be performed
    """
    policy = config_service.load().vector_cleanup
    if not policy.enabled:
        logger.debug(f"Vector cleanup disabled, skipping user '{user_id}'")
        return 0

    retention_days = retention_days_override
    if retention_days is None:
        retention_days = policy.retention_days or DEFAULT_RETENTION_DAYS
    min_performance = policy.min_performance_threshold
    if min_performance is None:
        min_performance = DEFAULT_MIN_PERFORMANCE

    cutoff = (now or datetime.now()) - timedelta(days=retention_days)

    try:
        deleted = dao.delete_stale_vectors(user_id, cutoff, min_performance)
    except PersistenceError as e:
        logger.log_cleanup(user_id, 0, {"error": str(e)}, status="failed")
        raise CleanupError(f"Cleanup failed for user '{user_id}': {e}") from e

    logger.log_cleanup(user_id, deleted, {
        "retention_days": retention_days,
        "min_performance": min_performance,
    })
    return deleted


def cleanup_all_users_report(dao, config_service: ConfigService,
                             now: Optional[datetime] = None) -> CleanupReport:
    """Clean every known user in turn and report per-user results."""
    report = CleanupReport(operation="vector_cleanup", started_at=datetime.now())

    if not config_service.load().vector_cleanup.enabled:
        logger.info("Vector cleanup disabled, nothing to do")
        report.completed_at = datetime.now()
        return report

    try:
        users = dao.list_users()
    except PersistenceError as e:
        report.errors.append(f"Could not list users: {e}")
        logger.error(f"Vector cleanup aborted, could not list users: {e}")
        report.completed_at = datetime.now()
        return report

    for user_id in users:
        try:
            before = dao.count_vectors(user_id)
            cleanup_user(dao, config_service, user_id, now=now)
            after = dao.count_vectors(user_id)
        except (CleanupError, PersistenceError) as e:
            report.errors.append(f"{user_id}: {e}")
            logger.warning(f"Skipping user '{user_id}' after cleanup failure: {e}")
            continue
        except Exception as e:
            report.errors.append(f"{user_id}: unexpected error: {e}")
            logger.error(f"Skipping user '{user_id}' after unexpected cleanup error: {e}")
            continue

        cleaned = max(before - after, 0)
        report.deleted_per_user[user_id] = cleaned
        report.total_cleaned += cleaned
        report.users_processed += 1

    report.completed_at = datetime.now()
    logger.log_operation("cleanup.all_users", "success" if not report.errors else "partial", {
        "total_cleaned": report.total_cleaned,
        "users_processed": report.users_processed,
        "errors": len(report.errors),
    })
    return report


def cleanup_all_users(dao, config_service: ConfigService, now: Optional[datetime] = None) -> Dict[str, int]:
    """Returns ``{"total_cleaned": n, "users_processed": m}``."""
    return cleanup_all_users_report(dao, config_service, now=now).summary()
