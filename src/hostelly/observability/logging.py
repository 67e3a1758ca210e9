"""JSON log lines on stdout, one object per record.

Each line carries timestamp, level, logger and message, the active
correlation id, and whatever the caller passed as
extra={"extra_fields": {...}}.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

from .correlation import get_correlation_id


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        cid = get_correlation_id()
        if cid:
            entry["correlationId"] = cid
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        entry.update(getattr(record, "extra_fields", None) or {})
        return json.dumps(entry, default=str)


def get_logger(name: str) -> logging.Logger:
    """Return the named logger, attaching the JSON handler on first use.

    LOG_LEVEL (default INFO) is read when the handler is attached.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    stream = logging.StreamHandler(sys.stdout)
    stream.setFormatter(JsonFormatter())
    logger.addHandler(stream)
    logger.setLevel(os.environ.get("LOG_LEVEL", "INFO").upper())
    logger.propagate = False
    return logger
