# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Structured JSON logging: one JSON object per line on stdout.
Pass execution context with `extra={"execution_id": ...}`.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from rotation_engine.core.config import settings

CONTEXT_FIELDS: tuple[str, ...] = ("request_id", "execution_id", "schedule_id")


class JSONFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "service": settings.SERVICE_NAME,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(
            {field: getattr(record, field) for field in CONTEXT_FIELDS if hasattr(record, field)}
        )
        if record.exc_info and record.exc_info[1] is not None:
            exc = record.exc_info[1]
            payload["error"] = str(exc)
            payload["error_type"] = type(exc).__name__
            payload["traceback"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def _configured_level() -> int:
    level = logging.getLevelName(settings.LOG_LEVEL.upper())
    return level if isinstance(level, int) else logging.INFO


def get_logger(name: str | None = None) -> logging.Logger:
    """Logger writing JSON lines; handlers are attached once per name."""
    logger = logging.getLogger(name or settings.SERVICE_NAME)
    if logger.handlers:
        return logger
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    logger.addHandler(handler)
    logger.setLevel(_configured_level())
    logger.propagate = False
    return logger
