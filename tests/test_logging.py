"""
Tests for structured operation logging.
"""

import logging
import pytest

from brandrag.util.logging import StructuredLogger


@pytest.fixture
def structured(caplog):
    caplog.set_level(logging.DEBUG, logger="brandrag.test")
    log = StructuredLogger("brandrag.test")
    log.logger.setLevel(logging.DEBUG)
    return log


def test_operation_format(structured, caplog):
    structured.log_operation("config.load", "success", {"source": "sqlite"})

    assert "Operation: config.load, Status: success, Details: {'source': 'sqlite'}" in caplog.text


def test_long_details_shortened(structured, caplog):
    structured.log_operation("vector.put", "failed", {"error": "x" * 80})

    assert "x" * 50 + "..." in caplog.text
    assert "x" * 51 not in caplog.text


def test_rate_limit_rejection_is_warning(structured, caplog):
    structured.log_rate_limit("u1", False, "Rate limit exceeded: 5/5 embeddings used in the last hour")

    record = caplog.records[-1]
    assert record.levelno == logging.WARNING
    assert "rate_limit.check" in record.getMessage()


def test_failed_vector_operation_is_error(structured, caplog):
    structured.log_vector_operation("put", "u1", "c1", {"error": "disk full"}, status="failed")

    record = caplog.records[-1]
    assert record.levelno == logging.ERROR
    assert "'user_id': 'u1'" in record.getMessage()


def test_embedding_mismatch_is_warning(structured, caplog):
    structured.log_embedding("dimension_mismatch", "nomic-embed-text", 768, {"actual": 384})

    assert caplog.records[-1].levelno == logging.WARNING


def test_cleanup_logged(structured, caplog):
    structured.log_cleanup("u1", 3)

    assert "Operation: cleanup.user, Status: success" in caplog.text
    assert "'deleted': 3" in caplog.text
