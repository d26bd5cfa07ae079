"""Structured logging configuration using structlog.

The engine itself never configures logging; the embedding service calls
``configure_logging(settings)`` (or ``setup_logging``) once at startup and
hands bound loggers to the components it builds.
"""

import logging
import os
from typing import TextIO

import structlog

from trader.config import AppSettings


def setup_logging(
    log_level: str = "INFO",
    log_format: str | None = None,
    stream: TextIO | None = None,
) -> None:
    """Route structlog events through the stdlib root logger.

    Uses structlog.contextvars so a caller can bind ``symbol`` or
    ``position_id`` once and have it show up on every engine event.

    Args:
        log_level: Root logger level name; unknown names fall back to INFO.
        log_format: "json" for machine-readable lines, "console" for
            development. Defaults to the LOG_FORMAT environment variable,
            then "console".
        stream: Destination for rendered lines; stderr when omitted.
    """
    if log_format is None:
        log_format = os.environ.get("LOG_FORMAT", "console")

    if log_format.lower() == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def configure_logging(settings: AppSettings, stream: TextIO | None = None) -> None:
    """Apply ``settings.log_level`` and ``settings.log_format``."""
    setup_logging(settings.log_level, settings.log_format, stream)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a bound structlog logger with the given name."""
    return structlog.get_logger(name)
