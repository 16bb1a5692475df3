"""JSON logging for the messaging core.

Records carry the ids passed via ``extra=`` (conversation, message, call,
contact) as top-level fields, so one conversation can be followed through
``04_logs/chat.log`` with a plain ``grep``.
"""

import json
import logging
import logging.config
import os
from datetime import datetime, timezone
from pathlib import Path

from .config import DEFAULT_LOG_PATH

CONTEXT_KEYS = ("conversation_id", "message_id", "call_id", "contact_id")

# Chatty dependencies kept at WARNING unless LOG_LEVEL is DEBUG
QUIET_LOGGERS = ("aiosqlite", "httpx", "httpcore", "anthropic")


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "function": record.funcName,
            "line": record.lineno,
        }
        entry.update(
            (key, getattr(record, key))
            for key in CONTEXT_KEYS
            if getattr(record, key, None) is not None
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(log_level: str | None = None, log_file: str | None = None) -> None:
    """Log JSON to stdout and a rotating file.

    ``log_level`` and ``log_file`` fall back to ``LOG_LEVEL`` (INFO) and
    ``LOG_FILE`` (04_logs/chat.log).
    """
    level = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()
    log_file = log_file or os.getenv("LOG_FILE", str(DEFAULT_LOG_PATH))
    Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    dependency_level = "DEBUG" if level == "DEBUG" else "WARNING"
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"json": {"()": JSONFormatter}},
            "handlers": {
                "chat_file": {
                    "class": "logging.handlers.RotatingFileHandler",
                    "filename": log_file,
                    "maxBytes": 10 * 1024 * 1024,
                    "backupCount": 5,
                    "formatter": "json",
                    "encoding": "utf-8",
                },
                "stdout": {
                    "class": "logging.StreamHandler",
                    "formatter": "json",
                    "stream": "ext://sys.stdout",
                },
            },
            "loggers": {
                name: {"level": dependency_level} for name in QUIET_LOGGERS
            },
            "root": {"level": level, "handlers": ["chat_file", "stdout"]},
        }
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
