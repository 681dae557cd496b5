"""Structured logging configuration using structlog."""

import logging
import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from decimal import Decimal
from typing import Any

import orjson
import structlog
from structlog.types import Processor

from taxengine.core.config import settings

# Context variables for calculation correlation
calculation_id_ctx: ContextVar[str | None] = ContextVar("calculation_id", default=None)
state_code_ctx: ContextVar[str | None] = ContextVar("state_code", default=None)


@contextmanager
def calculation_context() -> Iterator[str]:
    """Bind a calculation id for the duration of one computation.

    A nested computation keeps the outer id, so a federal and state run
    started together log under one id.

    Yields:
        The calculation id in effect.
    """
    current = calculation_id_ctx.get()
    if current is not None:
        yield current
        return

    calculation_id = str(uuid.uuid4())
    token = calculation_id_ctx.set(calculation_id)
    try:
        yield calculation_id
    finally:
        calculation_id_ctx.reset(token)


def _add_context_vars(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Add context variables to log events.

    Args:
        logger: The logger instance (unused).
        method_name: The logging method name (unused).
        event_dict: The log event dictionary.

    Returns:
        Updated event dictionary with context variables.
    """
    if calculation_id := calculation_id_ctx.get():
        event_dict["calculation_id"] = calculation_id
    if state_code := state_code_ctx.get():
        event_dict["state_code"] = state_code
    return event_dict


def _orjson_default(obj: Any) -> Any:
    """Render values orjson does not know natively.

    Decimal amounts show up in almost every engine log event.
    """
    if isinstance(obj, Decimal):
        return str(obj)
    raise TypeError(f"Type is not JSON serializable: {type(obj).__name__}")


def _orjson_serializer(obj: Any, **kwargs: Any) -> str:
    """Serialize log event to JSON using orjson.

    Args:
        obj: Object to serialize.
        **kwargs: Additional keyword arguments (unused).

    Returns:
        JSON string representation.
    """
    return orjson.dumps(obj, default=_orjson_default).decode("utf-8")


def configure_logging() -> None:
    """Configure structlog for the engine.

    Development mode: ConsoleRenderer with colors for readability.
    Production mode: JSONRenderer with orjson for structured logging.
    """
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        _add_context_vars,
    ]

    log_format = settings.log_format.lower() if settings.log_format else None
    use_json = log_format == "json" or (
        log_format is None and settings.environment != "development"
    )

    if use_json:
        processors: list[Processor] = [
            *shared_processors,
            structlog.processors.EventRenamer("message"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(serializer=_orjson_serializer),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=logging.DEBUG if settings.debug else logging.INFO,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a configured structlog logger.

    Args:
        name: Optional logger name. Defaults to __name__ of caller.

    Returns:
        Configured structlog bound logger.
    """
    return structlog.get_logger(name)
