from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

from timecalc.settings import Settings, get_settings


_RESERVED_LOG_RECORD_FIELDS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
    "message",
}


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key in _RESERVED_LOG_RECORD_FIELDS or key.startswith("_"):
                continue
            payload[key] = value

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str, ensure_ascii=True)


def setup_json_logging(level: str | int = logging.INFO, *, logger_name: str = "timecalc") -> logging.Logger:
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())

    target_logger = logging.getLogger(logger_name)
    target_logger.handlers.clear()
    target_logger.addHandler(handler)
    target_logger.setLevel(level)
    target_logger.propagate = False
    return target_logger


def configure_logging(settings: Settings | None = None) -> logging.Logger:
    resolved = settings or get_settings()
    if resolved.log_json:
        return setup_json_logging(resolved.log_level)
    target_logger = logging.getLogger("timecalc")
    target_logger.setLevel(resolved.log_level)
    return target_logger
