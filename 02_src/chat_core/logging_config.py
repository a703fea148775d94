"""Structured logging for the chat core.

Every record is emitted as one JSON object per line. Records logged through a
logger from ``get_logger(name, conversation_id=...)`` carry those ids under a
``context`` key so a single chat view can be traced across modules.
"""

import json
import logging
import logging.config
import logging.handlers
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .config import DEFAULT_LOG_PATH

# Chatty third-party loggers kept at WARNING unless LOG_LEVEL is DEBUG
QUIET_LOGGERS = ("aiosqlite", "uvicorn.access", "multipart")


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "where": f"{record.module}:{record.funcName}:{record.lineno}",
        }

        context = getattr(record, "context", None)
        if context:
            log_data["context"] = context

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class ContextAdapter(logging.LoggerAdapter):
    """Logger that stamps a fixed set of ids on every record.

    ``extra`` stays mutable so ids learned later (the viewer, once
    identity resolves) can be added in place.
    """

    def process(self, msg, kwargs):
        extra = kwargs.setdefault("extra", {})
        context = dict(self.extra)
        context.update(extra.get("context", {}))
        extra["context"] = {k: v for k, v in context.items() if v is not None}
        return msg, kwargs


def setup_logging(
    log_level: str | None = None,
    log_file: str | None = None,
    console: bool = True,
) -> None:
    """
    Configure root logging with the JSON formatter.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL.
                   Defaults to the LOG_LEVEL env var, then INFO.
        log_file: Rotating log file. Defaults to 04_logs/app.log.
        console: Also write to stdout.
    """
    level = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()
    log_file = log_file or str(DEFAULT_LOG_PATH)
    Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    handlers: dict[str, dict[str, Any]] = {
        "file": {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": log_file,
            "maxBytes": 10 * 1024 * 1024,  # 10 MB
            "backupCount": 5,
            "formatter": "json",
            "encoding": "utf-8",
        },
    }
    if console:
        handlers["console"] = {
            "class": "logging.StreamHandler",
            "formatter": "json",
            "stream": "ext://sys.stdout",
        }

    quiet_level = "DEBUG" if level == "DEBUG" else "WARNING"

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "json": {"()": "chat_core.logging_config.JSONFormatter"},
            },
            "handlers": handlers,
            "loggers": {name: {"level": quiet_level} for name in QUIET_LOGGERS},
            "root": {"level": level, "handlers": list(handlers)},
        }
    )


def get_logger(name: str, **context: Any) -> logging.Logger | ContextAdapter:
    """
    Get a logger, optionally bound to ids such as conversation_id.

    Args:
        name: Logger name (typically __name__ of the module)
        **context: Ids attached to every record under ``context``
    """
    logger = logging.getLogger(name)
    if context:
        return ContextAdapter(logger, context)
    return logger
