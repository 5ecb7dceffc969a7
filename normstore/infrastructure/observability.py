"""Structured Logging — JSON formatter and setup for store observability.

Invariants:
    - All logs include timestamp, level, logger name, and message
    - Extra fields (entity, relation, record_count, error_code) surfaced when present
    - JSON format by default, human-readable text on request

Design Decisions:
    - JSONFormatter on stdlib logging: no extra dependency
    - configure_logging reads Settings so callers need a single call at startup
"""

import json
import logging
from datetime import datetime, timezone

from normstore.config import Settings, get_settings

_EXTRA_FIELDS = ("entity", "relation", "record_count", "error_code")


class JSONFormatter(logging.Formatter):
    """Format logs as JSON for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _EXTRA_FIELDS:
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = val
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", fmt: str = "json") -> logging.Handler:
    """Attach a stream handler to the normstore logger."""
    handler = logging.StreamHandler()
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s - %(message)s",
        ))
    logger = logging.getLogger("normstore")
    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    return handler


def configure_logging(settings: Settings | None = None) -> logging.Handler:
    settings = settings or get_settings()
    return setup_logging(settings.log_level, settings.log_format)
