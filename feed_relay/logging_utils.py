"""
Logging setup for feed-relay.

Console output goes through rich; the optional file log writes one JSON
object per line. Structured fields travel as ``extra`` on the log record
(see log_event) and land as top-level keys in the JSON line.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from rich.logging import RichHandler

from .config import LoggingConfig


LOGGER_NAME = "feed_relay"

# Everything a bare LogRecord carries, plus what Formatter.format adds.
_RECORD_FIELDS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}

_TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def setup_logging(cfg: LoggingConfig, log_dir: Path | None = None) -> logging.Logger:
    """Configure the package logger from the logging config section.

    Calling it again replaces the handlers installed by a previous call.
    """
    level = getattr(logging, cfg.level.upper(), logging.INFO)
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    handlers: list[logging.Handler] = []
    if cfg.console:
        console = RichHandler(rich_tracebacks=True, show_path=False)
        console.setFormatter(logging.Formatter("%(message)s"))
        handlers.append(console)

    directory = log_dir if log_dir is not None else (Path(cfg.directory) if cfg.directory else None)
    if cfg.file and directory is not None:
        directory.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(directory / cfg.filename, encoding="utf-8")
        file_handler.setFormatter(JsonlFormatter() if cfg.format == "jsonl" else logging.Formatter(_TEXT_FORMAT))
        handlers.append(file_handler)

    for handler in handlers:
        handler.setLevel(level)
        logger.addHandler(handler)
    return logger


def log_event(
    logger: logging.Logger | None,
    message: str,
    level: int = logging.INFO,
    exc_info: bool = False,
    **fields: Any,
) -> None:
    """Log a message with structured fields; a None logger is a no-op."""
    if logger is None:
        return
    logger.log(level, message, exc_info=exc_info, extra=fields)


class JsonlFormatter(logging.Formatter):
    """One JSON object per record, extras included as top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(
            (key, value) for key, value in vars(record).items() if key not in _RECORD_FIELDS
        )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, default=str)
