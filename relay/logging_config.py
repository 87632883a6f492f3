"""JSON logging for the LINE relay.

One JSON object per line on stdout. Per-event records carry the LINE
``webhook_event_id`` as a top-level field so a delivery can be traced across
the dispatcher, the engine call and the reply.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Optional

SERVICE_NAME = "line-relay"

# Third-party loggers that are noisy at INFO (one line per HTTP request, token refreshes).
QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "google.auth", "urllib3")


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "service": SERVICE_NAME,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        event_id = getattr(record, "webhook_event_id", None)
        if event_id:
            log_data["webhook_event_id"] = event_id

        context = getattr(record, "context", None)
        if context:
            log_data["context"] = context

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO") -> None:
    """Route every logger through a single JSON stdout handler."""
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"relay.{name}")


class EventLoggerAdapter(logging.LoggerAdapter):
    """Tags records with one webhook event id; ``context=`` kwargs become structured fields."""

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        extra["webhook_event_id"] = self.extra.get("webhook_event_id")
        context = kwargs.pop("context", None)
        if context:
            extra["context"] = context
        kwargs["extra"] = extra
        return msg, kwargs


def bind_event(logger: logging.Logger, webhook_event_id: Optional[str]) -> EventLoggerAdapter:
    return EventLoggerAdapter(logger, {"webhook_event_id": webhook_event_id})
