"""Structured logging setup.

Modules obtain a logger with ``get_logger()`` and log events with keyword
context, e.g. ``logger.info("loan.approved", loan_id=..., item_id=...)``.
"""

import logging
import sys
from typing import Optional

import structlog

from .config import get_config

_configured = False


def _stderr_logger(*args) -> structlog.PrintLogger:
    # Resolve sys.stderr per call so redirected streams are honoured
    return structlog.PrintLogger(file=sys.stderr)


def configure_logging(level: Optional[str] = None, json: Optional[bool] = None) -> None:
    """Configure structlog for the process.

    Args:
        level: Log level name. Defaults to the configured ``SCHOOLLOAN_LOG_LEVEL``.
        json: Render JSON lines instead of the console renderer.
    """
    global _configured

    config = get_config()
    level_name = (level or config.log_level).upper()
    use_json = config.log_json if json is None else json

    renderer = (
        structlog.processors.JSONRenderer()
        if use_json
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level_name, logging.INFO)
        ),
        logger_factory=_stderr_logger,
        cache_logger_on_first_use=False,
    )
    _configured = True


def get_logger(name: str = "schoolloan"):
    """Return a structlog logger, configuring logging on first use."""
    if not _configured:
        configure_logging()
    return structlog.get_logger(name)
