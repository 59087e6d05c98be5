"""JSON logging: a shared aggregator log, an error log and one log file per source.

structlog renders through the stdlib handlers configured here, so every
event ends up as one JSON line. Log files live in ``<home>/logs``.
"""

from __future__ import annotations

import logging
import logging.config
from collections import deque
from pathlib import Path
from typing import Any

import structlog

from .config.loader import ConfigLocator

LOGGER_NAME = "prompt_aggregator"
_JSON_FIELDS = "%(asctime)s %(levelname)s %(name)s %(message)s"

_configured = False


def log_dir() -> Path:
    return ConfigLocator().logs_dir


def log_path(source_id: str | None = None) -> Path:
    """Path of the aggregator log, or of ``source_id``'s own log."""

    if source_id:
        return log_dir() / "sources" / f"{source_id}.log"
    return log_dir() / "aggregator.log"


def _dict_config(level: str) -> dict[str, Any]:
    handlers: dict[str, dict[str, Any]] = {
        "console": {"class": "logging.StreamHandler", "level": level, "formatter": "json"},
    }
    for name, path, file_level in (
        ("aggregator_file", log_path(), "INFO"),
        ("error_file", log_dir() / "error.log", "ERROR"),
    ):
        handlers[name] = {
            "class": "logging.FileHandler",
            "level": file_level,
            "filename": str(path),
            "encoding": "utf-8",
            "formatter": "json",
        }
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {"()": "pythonjsonlogger.jsonlogger.JsonFormatter", "fmt": _JSON_FIELDS}
        },
        "handlers": handlers,
        "loggers": {
            LOGGER_NAME: {"handlers": list(handlers), "level": level, "propagate": False},
        },
    }


def configure_logging(verbose: bool = False) -> structlog.BoundLogger:
    """Install handlers and structlog processors once per process; return the root app logger."""

    global _configured
    if not _configured:
        (log_dir() / "sources").mkdir(parents=True, exist_ok=True)
        logging.config.dictConfig(_dict_config("DEBUG" if verbose else "INFO"))
        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.stdlib.add_log_level,
                structlog.processors.format_exc_info,
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        _configured = True
    return structlog.get_logger(LOGGER_NAME)


def source_logger(source_id: str) -> structlog.BoundLogger:
    """Logger bound to ``source=<id>``; its events also land in the source's own file.

    Raises ``OSError`` when the source log cannot be opened.
    """

    configure_logging()
    path = log_path(source_id)
    name = f"{LOGGER_NAME}.source.{source_id}"
    stdlib_logger = logging.getLogger(name)
    if not any(
        getattr(handler, "baseFilename", None) == str(path) for handler in stdlib_logger.handlers
    ):
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path, encoding="utf-8")
        handler.setLevel(logging.INFO)
        shared = logging.getLogger(LOGGER_NAME).handlers
        if shared:
            handler.setFormatter(shared[0].formatter)
        stdlib_logger.addHandler(handler)
    return structlog.get_logger(name).bind(source=source_id)


def tail_log(path: Path, line_count: int = 100) -> list[str]:
    if not path.exists():
        return []
    with path.open("r", encoding="utf-8", errors="ignore") as stream:
        return list(deque(stream, maxlen=line_count))


def available_source_logs() -> list[Path]:
    sources_dir = log_dir() / "sources"
    if not sources_dir.is_dir():
        return []
    return sorted(sources_dir.glob("*.log"))


__all__ = [
    "LOGGER_NAME",
    "available_source_logs",
    "configure_logging",
    "log_dir",
    "log_path",
    "source_logger",
    "tail_log",
]
