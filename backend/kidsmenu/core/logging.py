from __future__ import annotations

import json
import logging
import sys
from logging.config import dictConfig
from typing import Any, MutableMapping

from .config import settings

_RESERVED_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", None, None).__dict__) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """JSON log formatter that keeps structured ``extra`` fields."""

    def format(self, record: logging.LogRecord) -> str:
        log_record: MutableMapping[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S%z"),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                log_record[key] = value
        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(log_record, ensure_ascii=False, default=str)


_configured = False


def configure_logging(level: str | None = None, json_output: bool | None = None) -> None:
    """Configure logging for the application.

    Calling it again with explicit arguments reconfigures the handlers, which the
    migration CLI relies on for ``--verbose``.
    """

    global _configured
    if _configured and level is None and json_output is None:
        return

    log_level = (level or settings.log_level).upper()
    use_json = settings.log_json if json_output is None else json_output

    handlers: dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": log_level,
            "stream": sys.stdout if settings.log_to_stdout else sys.stderr,
            "formatter": "json" if use_json else "standard",
        }
    }

    formatters: dict[str, Any] = {
        "standard": {
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        },
        "json": {
            "()": JsonFormatter,
        },
    }

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": formatters,
            "handlers": handlers,
            "root": {
                "level": log_level,
                "handlers": ["console"],
            },
            "loggers": {
                "sqlalchemy.engine": {"level": "WARNING"},
            },
        }
    )
    _configured = True


def get_logger(name: str) -> logging.Logger:
    configure_logging()
    return logging.getLogger(name)
