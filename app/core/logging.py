"""Structured logging for the progress service.

Every event carries the service name, version and environment so that
entries from the diagnostic, practice and progress paths can be told
apart once they are shipped to a shared sink.
"""

import logging
import sys

import structlog
from structlog.processors import JSONRenderer, TimeStamper, add_log_level
from structlog.stdlib import add_logger_name

from app.core.config import settings

# Libraries that log every request or statement at INFO
QUIET_LOGGERS = ("sqlalchemy.engine", "httpx", "httpcore")


def add_service_context(logger, method_name, event_dict):
    """Stamp service identity on every event without overriding explicit keys."""
    event_dict.setdefault("service", settings.SERVICE_NAME)
    event_dict.setdefault("version", settings.APP_VERSION)
    event_dict.setdefault("environment", settings.ENVIRONMENT)
    return event_dict


def _renderer():
    if settings.LOG_FORMAT == "json":
        return JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=False)


def setup_logging():
    """Configure structlog on top of stdlib logging."""

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.contextvars.merge_contextvars,
            add_log_level,
            add_logger_name,
            add_service_context,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            TimeStamper(fmt="iso", utc=True),
            structlog.processors.dict_tracebacks,
            _renderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.LOG_LEVEL),
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
