"""Structured logging for the yarnlog API.

Events go through structlog and come out as JSON lines for log shipping or
as coloured console output while developing. Anything not passed to
``setup_logging`` is taken from the application settings.

Request-scoped fields (correlation id, method, path) are kept in structlog
contextvars by ``request_context`` so every event logged while serving a
request carries them.

Usage:
    from yarnlog.logging_config import get_logger, setup_logging

    setup_logging(log_format="json")
    logger = get_logger(__name__)
    logger.info("project_finished", project_id=7)
"""

from collections.abc import Iterator
from contextlib import contextmanager
import logging
import sys
from typing import Literal

import structlog

# Library loggers that are chatty at INFO and only interesting when debugging.
QUIET_LOGGERS = ("sqlalchemy.engine", "httpx", "httpcore")


def _processors() -> list:
    return [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.contextvars.merge_contextvars,
        structlog.processors.CallsiteParameterAdder(
            {
                structlog.processors.CallsiteParameter.FUNC_NAME,
                structlog.processors.CallsiteParameter.LINENO,
            }
        ),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def _renderer(log_format: str):
    if log_format == "json":
        return structlog.processors.JSONRenderer(sort_keys=False)
    return structlog.dev.ConsoleRenderer(
        colors=True,
        exception_formatter=structlog.dev.plain_traceback,
    )


def setup_logging(
    service_name: str | None = None,
    log_format: Literal["json", "console"] | None = None,
    log_level: str | None = None,
) -> None:
    """Configure structlog and the standard library root logger.

    Args:
        service_name: Bound to every event as ``service``.
        log_format: "json" or "console".
        log_level: DEBUG, INFO, WARNING or ERROR.

    Missing arguments fall back to ``Settings.service_name``,
    ``Settings.log_format`` and ``Settings.log_level``.
    """
    if service_name is None or log_format is None or log_level is None:
        from .config import get_settings

        settings = get_settings()
        service_name = service_name or settings.service_name
        log_format = log_format or settings.log_format
        log_level = log_level or settings.log_level

    numeric_level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level, force=True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    structlog.configure(
        processors=[*_processors(), _renderer(log_format)],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    structlog.contextvars.bind_contextvars(service=service_name)

    get_logger(__name__).info(
        "logging_initialized", service=service_name, log_format=log_format, log_level=log_level
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


@contextmanager
def request_context(correlation_id: str, method: str, path: str) -> Iterator[None]:
    """Bind request fields for the duration of one request.

    Fields bound before entering (such as ``service``) survive the exit.
    """
    with structlog.contextvars.bound_contextvars(
        correlation_id=correlation_id, method=method, path=path
    ):
        yield


def current_correlation_id() -> str | None:
    """Correlation id of the request being served, if any."""
    return structlog.contextvars.get_contextvars().get("correlation_id")
