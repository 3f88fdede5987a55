"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, List
from pythonjsonlogger import jsonlogger
from meinha_ledger.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_payment(
    request_id: str,
    debt_id: str,
    amount_cents: int,
    outcome: str,
    new_debt_id: str | None = None,
) -> None:
    """Log a payment attempt; outcome is closed, split or a rejection reason"""
    logging.info(
        "Payment processed",
        extra={
            "request_id": request_id,
            "debt_id": debt_id,
            "step": "payment_applied",
            "payment_outcome": outcome,
            "amount_cents": amount_cents,
            "new_debt_id": new_debt_id,
        },
    )


def log_score(
    request_id: str,
    user_id: str,
    score: float,
    classification: str,
    skipped_debt_ids: List[str],
    duration_ms: float,
) -> None:
    """Log score outcome; skipped records are reported at warning level"""
    extra = {
        "request_id": request_id,
        "user_id": user_id,
        "step": "score_complete",
        "score": score,
        "classification": classification,
        "duration_ms": duration_ms,
    }
    if skipped_debt_ids:
        logging.warning(
            "Score computed with malformed debts skipped",
            extra={**extra, "skipped_debt_ids": skipped_debt_ids},
        )
    else:
        logging.info("Score computed", extra=extra)
