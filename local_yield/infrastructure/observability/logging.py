"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger

from local_yield.config import settings


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

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_order_created(
    request_id: Optional[str],
    order_id: str,
    buyer_id: str,
    producer_id: str,
    total_cents: int,
    applied_credit_cents: int,
    replayed: bool,
    duration_ms: float,
) -> None:
    """Log structured checkout outcome"""
    logging.info(
        "Order committed" if not replayed else "Order replayed from idempotency key",
        extra={
            "request_id": request_id,
            "step": "order_create",
            "order_id": order_id,
            "buyer_id": buyer_id,
            "producer_id": producer_id,
            "total_cents": total_cents,
            "applied_credit_cents": applied_credit_cents,
            "replayed": replayed,
            "duration_ms": duration_ms,
        },
    )


def log_booking_transition(
    request_id: Optional[str],
    booking_id: str,
    actor_id: str,
    from_status: str,
    to_status: str,
) -> None:
    logging.info(
        "Booking status changed",
        extra={
            "request_id": request_id,
            "step": "booking_transition",
            "booking_id": booking_id,
            "actor_id": actor_id,
            "from_status": from_status,
            "to_status": to_status,
        },
    )


def log_credit_issued(
    request_id: Optional[str],
    entry_id: str,
    user_id: str,
    producer_id: str,
    amount_cents: int,
    reason: str,
) -> None:
    logging.info(
        "Store credit issued",
        extra={
            "request_id": request_id,
            "step": "credit_issue",
            "entry_id": entry_id,
            "user_id": user_id,
            "producer_id": producer_id,
            "amount_cents": amount_cents,
            "reason": reason,
        },
    )
