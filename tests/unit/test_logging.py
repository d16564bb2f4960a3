"""Unit tests for structured loan event logging"""

import io
import json
import logging
import pytest
from library_loans.infrastructure.observability.logging import log_loan_event, setup_logging


@pytest.fixture
def log_stream():
    """Route the root logger to an in-memory JSON stream, restoring it afterwards"""
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    stream = io.StringIO()
    setup_logging("INFO", stream=stream)
    try:
        yield stream
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)


def last_record(stream: io.StringIO) -> dict:
    return json.loads(stream.getvalue().splitlines()[-1])


def test_rejected_event_omits_missing_loan_id(log_stream):
    log_loan_event("req-1", "rejected", book_id=3, borrower_id=4, reason="book_unavailable")

    record = last_record(log_stream)
    assert record["message"] == "Loan rejected"
    assert record["event"] == "loan_rejected"
    assert record["reason"] == "book_unavailable"
    assert record["book_id"] == 3
    assert "loan_id" not in record


def test_records_carry_service_level_and_timestamp(log_stream):
    log_loan_event("req-2", "returned", loan_id=7, book_id=3, borrower_id=4, days_late=2)

    record = last_record(log_stream)
    assert record["service"] == "library-loans"
    assert record["level"] == "INFO"
    assert record["timestamp"].endswith("+00:00")
    assert record["days_late"] == 2
