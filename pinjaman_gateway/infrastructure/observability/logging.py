"""Structured JSON logging"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger
from pinjaman_gateway.config import settings


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


def log_action(
    action_type: str,
    applied: bool,
    error: Optional[Exception] = None,
    request_id: Optional[str] = None,
) -> None:
    """Log the outcome of a dispatched reducer action"""
    extra = {
        "request_id": request_id,
        "step": "action_applied",
        "action_type": action_type,
        "outcome": "applied" if applied else "ignored",
    }
    if error is not None:
        extra["error"] = str(error)
        logging.warning("Action ignored", extra=extra)
    else:
        logging.info("Action applied" if applied else "Action ignored", extra=extra)
