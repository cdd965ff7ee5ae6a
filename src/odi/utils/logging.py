"""Structured logging for ODI using structlog.

Every event emitted while a derivative is planned, generated or purged can
carry two correlation ids: the host request (or other unit of work) and the
source image involved. Output is JSON in production and colored console
lines during development.
"""

import logging
import sys
from collections.abc import Iterator, MutableMapping
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, cast

import structlog
from structlog.types import Processor

from odi.config import settings

LOG_FORMATS = ("console", "json")

_request_id: ContextVar[str | None] = ContextVar("odi_request_id", default=None)
_source_id: ContextVar[int | None] = ContextVar("odi_source_id", default=None)


def set_correlation_context(
    request_id: str | None = None,
    source_id: int | None = None,
) -> None:
    """Set correlation ids for the current context; None leaves an id as is."""
    if request_id is not None:
        _request_id.set(request_id)
    if source_id is not None:
        _source_id.set(source_id)


def clear_correlation_context() -> None:
    """Clear all correlation ids."""
    _request_id.set(None)
    _source_id.set(None)


@contextmanager
def correlation_scope(
    request_id: str | None = None,
    source_id: int | None = None,
) -> Iterator[None]:
    """Set correlation ids for a block and restore the previous ones after it.

    Example:
        >>> with correlation_scope(source_id=42):
        ...     logger.info("Generated derivative")  # carries source_id=42
    """
    request_token = _request_id.set(request_id) if request_id is not None else None
    source_token = _source_id.set(source_id) if source_id is not None else None
    try:
        yield
    finally:
        if source_token is not None:
            _source_id.reset(source_token)
        if request_token is not None:
            _request_id.reset(request_token)


def _add_correlation_ids(
    logger: logging.Logger,
    method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Structlog processor adding the correlation ids of the current context.

    An explicit ``source_id`` passed to the log call wins over the context.
    """
    _ = logger, method_name  # Required by structlog processor signature
    request_id = _request_id.get()
    if request_id is not None:
        event_dict["request_id"] = request_id

    source_id = _source_id.get()
    if source_id is not None:
        event_dict.setdefault("source_id", source_id)

    return event_dict


def _processors(log_format: str) -> list[Processor]:
    if log_format not in LOG_FORMATS:
        raise ValueError(f"log_format must be one of {LOG_FORMATS}, got {log_format!r}")

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        _add_correlation_ids,
    ]
    if log_format == "json":
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))
    return processors


def configure_logging(
    level: str | None = None,
    log_format: str | None = None,
) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        level: Log level name. Defaults to settings.LOG_LEVEL.
        log_format: "console" or "json". Defaults to settings.LOG_FORMAT.

    Raises:
        ValueError: If the format or level is unknown.
    """
    level_name = (level or settings.LOG_LEVEL).upper()
    numeric_level = logging.getLevelName(level_name)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level {level_name!r}")

    structlog.configure(
        processors=_processors(log_format or settings.LOG_FORMAT),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a bound structlog logger, named after the caller's module by default."""
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))
