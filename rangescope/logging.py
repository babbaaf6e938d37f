"""Structured logging for RangeScope.

Log events are snake_case names with key/value fields, e.g.
``logger.info("topology_saved", project_id="ex-1", version=3)``.
Production output is JSON; ``debug`` mode switches to the console renderer.
"""

import logging
import sys
from typing import Any, TextIO

import structlog


def configure_logging(
    json_format: bool = True,
    level: str = "INFO",
    add_timestamp: bool = True,
    stream: TextIO | None = None,
) -> None:
    """Configure structlog on top of the standard library logger.

    Args:
        json_format: Render JSON lines when True, coloured console output otherwise.
        level: Minimum level name (DEBUG, INFO, WARNING, ERROR).
        add_timestamp: Prefix every event with an ISO timestamp.
        stream: Where log lines go; stdout unless given.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=stream or sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
        force=True,
    )

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if add_timestamp:
        processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=True,
                exception_formatter=structlog.dev.plain_traceback,
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger, usually named after the calling module."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind request-scoped fields (request_id, principal_id, ...) to every later log line."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Drop all request-scoped fields."""
    structlog.contextvars.clear_contextvars()


def unbind_context(*keys: str) -> None:
    """Drop the named request-scoped fields."""
    structlog.contextvars.unbind_contextvars(*keys)
