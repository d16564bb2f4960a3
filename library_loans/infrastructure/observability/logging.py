"""Structured JSON logging for loan events"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO
from pythonjsonlogger import jsonlogger

from library_loans.config import settings

LOG_FORMAT = "%(timestamp)s %(level)s %(name)s %(message)s"


class LoanJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter stamping UTC time, level and service name.

    Ids passed as None (a rejected checkout has no loan id yet) are dropped
    instead of being emitted as nulls.
    """

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        for key in [k for k, v in log_record.items() if v is None]:
            del log_record[key]
        log_record["timestamp"] = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO", stream: Optional[TextIO] = None) -> None:
    """Send every logger through one JSON handler on stdout (or the given stream)"""
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(LoanJsonFormatter(LOG_FORMAT))
    root.addHandler(handler)


def log_loan_event(
    request_id: str,
    event: str,
    loan_id: Optional[int] = None,
    book_id: Optional[int] = None,
    borrower_id: Optional[int] = None,
    **fields: Any,
) -> None:
    """Log structured loan outcome (created, returned, rejected, deleted)"""
    logging.info(
        f"Loan {event}",
        extra={
            "request_id": request_id,
            "event": f"loan_{event}",
            "loan_id": loan_id,
            "book_id": book_id,
            "borrower_id": borrower_id,
            **fields,
        },
    )
