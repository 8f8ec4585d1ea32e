"""
Structured logging setup for the sequence poller.

Events emitted while a sequence runs carry a ``polling_sequence`` key bound
through structlog contextvars, so logs written by fetch functions and
handlers are tagged with the sequence that called them.
"""

import logging

import structlog

from .config import Settings, get_settings


def setup_logging(settings: Settings | None = None) -> None:
    """Configure stdlib logging and structlog from poller settings."""
    settings = settings or get_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level), format="%(message)s"
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if settings.log_format == "json"
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
