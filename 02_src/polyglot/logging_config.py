"""JSON logging for the chat service and its background pipeline."""

import json
import logging
import logging.config
import os
from datetime import datetime, timezone
from pathlib import Path

from .config import DEFAULT_LOG_PATH

# Identifiers the pipeline passes through `extra=`; lifted into every record.
CONTEXT_KEYS = ("chat_id", "message_id", "task_id", "task_type", "target_language")

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

# Libraries that are too chatty below WARNING.
QUIET_LOGGERS = ("aiosqlite", "anthropic", "httpx", "httpcore")


class JSONFormatter(logging.Formatter):
    """One JSON object per record, pipeline identifiers under "context"."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
        }

        context = record_context(record)
        if context:
            entry["context"] = context

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


def record_context(record: logging.LogRecord) -> dict:
    """Pipeline identifiers attached to a record, in CONTEXT_KEYS order."""
    return {
        key: getattr(record, key)
        for key in CONTEXT_KEYS
        if getattr(record, key, None) is not None
    }


def _handlers(log_file: str | None) -> dict:
    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "json",
            "stream": "ext://sys.stdout",
        },
    }
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": log_file,
            "maxBytes": LOG_FILE_MAX_BYTES,
            "backupCount": LOG_FILE_BACKUPS,
            "formatter": "json",
            "encoding": "utf-8",
        }
    return handlers


def setup_logging(
    log_level: str | None = None,
    log_file: str | None = None,
) -> None:
    """
    Route all logging through the JSON formatter.

    Args:
        log_level: Root level. Defaults to the LOG_LEVEL env var, then INFO.
        log_file: Rotating log file. Defaults to LOG_FILE, then 04_logs/app.log.
            An empty LOG_FILE logs to the console only.
    """
    level = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()
    if log_file is None:
        log_file = os.getenv("LOG_FILE", str(DEFAULT_LOG_PATH))

    handlers = _handlers(log_file)

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"json": {"()": JSONFormatter}},
            "handlers": handlers,
            "root": {"level": level, "handlers": list(handlers)},
            "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
        }
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
