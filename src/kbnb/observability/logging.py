"""Structured JSON logging with request context."""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

from .context import get_correlation_id

_ROOT_LOGGER = "kbnb"


class JsonFormatter(logging.Formatter):
    """One JSON object per line, with the correlation id when bound."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = get_correlation_id()
        if correlation_id:
            log_obj["correlationId"] = correlation_id

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        extra_fields = getattr(record, "extra_fields", None)
        if extra_fields:
            log_obj.update(extra_fields)

        return json.dumps(log_obj, default=str, ensure_ascii=False)


def configure_logging(level: str | None = None) -> logging.Logger:
    """Attach the JSON handler to the package root logger (idempotent).

    Level comes from the argument, then LOG_LEVEL, then INFO.
    """
    root = logging.getLogger(_ROOT_LOGGER)
    resolved = (level or os.environ.get("LOG_LEVEL") or "INFO").upper()
    root.setLevel(resolved)

    if not any(isinstance(h.formatter, JsonFormatter) for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JsonFormatter())
        root.addHandler(handler)
        root.propagate = False

    return root


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the package root, configuring output on first use."""
    configure_logging()
    if name != _ROOT_LOGGER and not name.startswith(_ROOT_LOGGER + "."):
        name = f"{_ROOT_LOGGER}.{name}"
    return logging.getLogger(name)
