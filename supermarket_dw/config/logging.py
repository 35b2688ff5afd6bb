"""
Logging Configuration for the Supermarket Sales Warehouse

structlog events rendered through the stdlib logging tree, so records from
SQLAlchemy, uvicorn and Prefect share one handler and one format.
"""

import logging
import sys
from typing import Optional

import structlog
from structlog.processors import JSONRenderer, TimeStamper
from structlog.stdlib import ProcessorFormatter, add_log_level

from supermarket_dw.config.settings import get_settings

# Third-party loggers that get the warehouse handler instead of their own
ROUTED_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")

SHARED_PROCESSORS = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    add_log_level,
    TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
]


def _renderer(log_format: str):
    if log_format == "json":
        return JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def configure_logging(log_level: Optional[str] = None, log_format: Optional[str] = None) -> logging.Handler:
    """
    Configure structured logging for the CLIs and the API.

    Args:
        log_level: Override LOG_LEVEL (DEBUG, INFO, WARNING, ERROR)
        log_format: Override the configured format ("json" or "console")

    Returns:
        The stdout handler installed on the root logger
    """
    settings = get_settings()
    level_name = (log_level or settings.monitoring.log_level).upper()
    level = getattr(logging, level_name, logging.INFO)
    log_format = log_format or settings.monitoring.log_format

    structlog.configure(
        processors=SHARED_PROCESSORS + [ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        ProcessorFormatter(processor=_renderer(log_format), foreign_pre_chain=SHARED_PROCESSORS)
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    for name in ROUTED_LOGGERS:
        routed = logging.getLogger(name)
        routed.handlers = [handler]
        routed.propagate = False
        routed.setLevel(level)

    # Statement logging only when echo is asked for
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.database.echo else logging.WARNING
    )

    structlog.get_logger(__name__).info("Logging configured", level=level_name, format=log_format)
    return handler
