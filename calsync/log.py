from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from typing import Mapping


LOG_LEVEL_ENV = "CALSYNC_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "INFO"
TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Third-party loggers that are chatty at INFO.
QUIET_LOGGERS = ("googleapiclient.discovery_cache", "urllib3.connectionpool")


class JsonFormatter(logging.Formatter):
    """One JSON object per record, with a UTC ISO-8601 timestamp."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def resolve_log_level(log_level: str | None = None, environ: Mapping[str, str] | None = None) -> int:
    environ = os.environ if environ is None else environ
    name = (log_level or environ.get(LOG_LEVEL_ENV) or DEFAULT_LOG_LEVEL).strip().upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def setup_logging(log_level: str | None = None, json_output: bool = False) -> None:
    """Route all records to a single stderr handler.

    An explicit level wins over ``CALSYNC_LOG_LEVEL``; unknown names fall back to INFO.
    """
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter() if json_output else logging.Formatter(TEXT_FORMAT))
    root_logger.addHandler(handler)
    root_logger.setLevel(resolve_log_level(log_level))
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
