"""Logging configuration built around structlog over stdlib handlers."""

from __future__ import annotations

import logging
import logging.config
from pathlib import Path
from typing import Any

import structlog

_LOGGING_INITIALISED = False

LOGGER_NAME = "cygnus"


def _handlers(level: str, log_file: Path | None) -> tuple[dict[str, Any], list[str]]:
    handlers: dict[str, Any] = {
        # stdout carries the report, so diagnostics always go to stderr
        "console": {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": "console",
            "stream": "ext://sys.stderr",
        },
    }
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.FileHandler",
            "level": "DEBUG",
            "filename": str(log_file),
            "encoding": "utf-8",
            "formatter": "json",
        }
    return handlers, list(handlers)


def configure_logging(verbose: bool = False, log_file: Path | None = None) -> structlog.BoundLogger:
    """Configure structlog + stdlib handlers and return the application logger.

    The console handler logs warnings and above unless ``verbose`` is set;
    the optional ``log_file`` receives every event as JSON lines.
    """

    global _LOGGING_INITIALISED
    if not _LOGGING_INITIALISED:
        level = "DEBUG" if verbose else "WARNING"
        handlers, handler_names = _handlers(level, log_file)
        logging.config.dictConfig(
            {
                "version": 1,
                "disable_existing_loggers": False,
                "formatters": {
                    "console": {
                        "()": structlog.stdlib.ProcessorFormatter,
                        "processor": structlog.dev.ConsoleRenderer(colors=False),
                    },
                    "json": {
                        "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
                        "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s",
                    },
                },
                "handlers": handlers,
                "loggers": {
                    LOGGER_NAME: {
                        "handlers": handler_names,
                        "level": "DEBUG",
                        "propagate": False,
                    },
                },
            }
        )

        # Forward structlog events to stdlib logging; rendering happens per handler
        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.stdlib.filter_by_level,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )
        _LOGGING_INITIALISED = True
    return structlog.get_logger(LOGGER_NAME)


__all__ = ["LOGGER_NAME", "configure_logging"]
