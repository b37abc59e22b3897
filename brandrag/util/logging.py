"""
Structured logging for the context engine.

Every engine operation is logged as ``Operation: <name>, Status: <status>``
with an optional details dict, so failures that the engine absorbs stay
visible in the logs.
"""

import logging
from typing import Any, Dict, Optional


def _shorten(value: Any, limit: int = 50) -> Any:
    if isinstance(value, str) and len(value) > limit:
        return value[:limit] + "..."
    return value


class StructuredLogger:
    """Structured logger for vector, rate-limit, retrieval and cleanup operations."""

    def __init__(self, name: str = "brandrag"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None, level: int = logging.INFO):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: { {k: _shorten(v) for k, v in details.items()} }"

        self.logger.log(level, message)

    def log_vector_operation(self, operation: str, user_id: str, content_id: str,
                             details: Dict[str, Any] = None, status: str = "success"):
        """Log a vector write/update/lookup."""
        log_details = {"user_id": user_id, "content_id": content_id}
        if details:
            log_details.update(details)

        level = logging.ERROR if status == "failed" else logging.INFO
        self.log_operation(f"vector.{operation}", status, log_details, level)

    def log_rate_limit(self, user_id: str, allowed: bool, reason: Optional[str] = None):
        """Log a rate-limit decision. Rejections are warnings."""
        details = {"user_id": user_id}
        if reason:
            details["reason"] = reason
        if allowed:
            self.log_operation("rate_limit.check", "allowed", details, logging.DEBUG)
        else:
            self.log_operation("rate_limit.check", "rejected", details, logging.WARNING)

    def log_embedding(self, status: str, model: str, dimension: int, details: Dict[str, Any] = None):
        """Log an embedding generation attempt."""
        log_details = {"model": model, "dimension": dimension}
        if details:
            log_details.update(details)

        if status == "success":
            level = logging.DEBUG
        elif status == "dimension_mismatch":
            level = logging.WARNING
        else:
            level = logging.ERROR
        self.log_operation("embedding.generate", status, log_details, level)

    def log_retrieval(self, user_id: str, status: str, user_vectors: int = 0,
                      industry_vectors: int = 0, reason: Optional[str] = None):
        """Log a context retrieval."""
        details = {
            "user_id": user_id,
            "user_vectors": user_vectors,
            "industry_vectors": industry_vectors,
        }
        if reason:
            details["reason"] = reason
        level = logging.ERROR if status == "failed" else logging.INFO
        self.log_operation("context.retrieve", status, details, level)

    def log_cleanup(self, user_id: str, deleted: int, details: Dict[str, Any] = None, status: str = "success"):
        """Log a per-user cleanup pass."""
        log_details = {"user_id": user_id, "deleted": deleted}
        if details:
            log_details.update(details)

        level = logging.ERROR if status == "failed" else logging.INFO
        self.log_operation("cleanup.user", status, log_details, level)

    def log_heartbeat_task(self, task_name: str, start_time: float, end_time: float,
                           status: str = "success", details: Dict[str, Any] = None):
        """Log heartbeat task execution."""
        duration_ms = round((end_time - start_time) * 1000, 2)
        log_details = {"duration_ms": duration_ms}
        if details:
            log_details.update(details)
        elif status == "success":
            log_details["message"] = f"Heartbeat task '{task_name}' completed in {duration_ms}ms"
        elif status == "failed":
            log_details["message"] = f"Heartbeat task '{task_name}' failed after {duration_ms}ms"

        level = logging.ERROR if status == "failed" else logging.INFO
        self.log_operation(f"heartbeat.{task_name}", status, log_details, level)

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        """Log an info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)


# Global logger instance
logger = StructuredLogger()
