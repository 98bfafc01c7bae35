"""
Structured logging configuration for the narrated video pipeline.

Every record carries the id of the job it was emitted for when the emitting
code runs inside :func:`job_context`. The id travels through
``structlog.contextvars``, so the fetcher, narration providers, the engine
and the composer never pass it by hand.
"""

import sys
import logging
from typing import ContextManager

import structlog
from structlog.contextvars import bound_contextvars, merge_contextvars
from structlog.stdlib import LoggerFactory

from .config import settings


def setup_logging() -> None:
    """Configure structured logging for the application."""

    settings.logs_dir.mkdir(parents=True, exist_ok=True)

    structlog.configure(
        processors=[
            merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if settings.log_format == "json"
            else structlog.dev.ConsoleRenderer(),
        ],
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level.upper()),
    )

    # Job progress goes to pipeline.log, job failures also to errors.log
    file_handler = logging.FileHandler(settings.logs_dir / "pipeline.log", encoding="utf-8")
    file_handler.setLevel(logging.INFO)

    error_handler = logging.FileHandler(settings.logs_dir / "errors.log", encoding="utf-8")
    error_handler.setLevel(logging.ERROR)

    root_logger = logging.getLogger()
    root_logger.addHandler(file_handler)
    root_logger.addHandler(error_handler)


def job_context(job_id: str) -> ContextManager:
    """Bind ``job_id`` to every log record emitted inside the block."""
    return bound_contextvars(job_id=job_id)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


class LoggerMixin:
    """Mixin class to add logging capabilities to other classes."""

    @property
    def logger(self) -> structlog.stdlib.BoundLogger:
        """Get a logger instance for this class."""
        return get_logger(self.__class__.__name__)


setup_logging()
