"""
Per-user embedding quotas.

Usage is derived from the vector store's own write history: the number of
vectors a user created in the trailing hour and trailing 24 hours. There is no
separate counter, so the check and the subsequent write are not atomic; two
concurrent writes for the same user can both pass the check.
"""

from datetime import datetime, timedelta
from typing import Callable, Tuple

from .config import ConfigService
from .schema import RateLimitDecision
from ..util.logging import logger

DEFAULT_MAX_PER_HOUR = 50
DEFAULT_MAX_PER_DAY = 500


class RateLimiter:

    def __init__(self, dao, config_service: ConfigService, clock: Callable[[], datetime] = datetime.now):
        self.dao = dao
        self.config_service = config_service
        self._clock = clock

    def resolve_limits(self, user_id: str) -> Tuple[int, int]:
        """Effective (max_per_hour, max_per_day) for a user."""
        limits = self.config_service.load().rate_limiting
        global_hour = limits.user_max_per_hour or DEFAULT_MAX_PER_HOUR
        global_day = limits.user_max_per_day or DEFAULT_MAX_PER_DAY

        override = self.dao.get_rate_limit_override(user_id)
        if override is not None and override.enabled:
            return (
                override.max_embeddings_per_hour or global_hour,
                override.max_embeddings_per_day or global_day,
            )
        return global_hour, global_day

    def check(self, user_id: str) -> RateLimitDecision:
        """Decide whether ``user_id`` may create another embedding. Fails open."""
        try:
            config = self.config_service.load()
            if not config.rate_limiting.enabled:
                return RateLimitDecision(allowed=True)

            max_per_hour, max_per_day = self.resolve_limits(user_id)
            now = self._clock()

            hourly = self.dao.count_vectors_since(user_id, now - timedelta(hours=1))
            if hourly >= max_per_hour:
                decision = RateLimitDecision(
                    allowed=False,
                    reason=f"Rate limit exceeded: {hourly}/{max_per_hour} embeddings used in the last hour",
                )
                logger.log_rate_limit(user_id, False, decision.reason)
                return decision

            daily = self.dao.count_vectors_since(user_id, now - timedelta(days=1))
            if daily >= max_per_day:
                decision = RateLimitDecision(
                    allowed=False,
                    reason=f"Daily rate limit exceeded: {daily}/{max_per_day} embeddings used in the last 24 hours",
                )
                logger.log_rate_limit(user_id, False, decision.reason)
                return decision

            logger.log_rate_limit(user_id, True)
            return RateLimitDecision(allowed=True)

        except Exception as e:
            logger.error(f"Error checking rate limit for user '{user_id}', allowing request: {e}")
            return RateLimitDecision(allowed=True)
