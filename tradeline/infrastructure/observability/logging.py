"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pythonjsonlogger.json import JsonFormatter

from tradeline.config import settings


class CustomJsonFormatter(JsonFormatter):
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


def log_interaction(
    interaction: str,
    actor_business_id: str,
    relationship_id: str,
    entity_id: str,
    request_id: Optional[str] = None,
) -> None:
    """Log structured outcome of a successful mutating interaction"""
    logging.getLogger("tradeline.interactions").info(
        "Interaction completed",
        extra={
            "request_id": request_id,
            "interaction": interaction,
            "actor_business_id": actor_business_id,
            "relationship_id": relationship_id,
            "entity_id": entity_id,
        },
    )
