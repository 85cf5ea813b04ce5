"""Structured logging for the item usage engine.

Log lines are emitted through structlog. Every line written while an item
is being used carries the actor and item ids bound by ``usage_context``.

Example:
    >>> from dnd_items.core.logging import configure_logging, get_logger
    >>> configure_logging(get_settings())
    >>> get_logger(__name__).info("ammo_spent", item="Longbow", remaining=19)
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from enum import Enum
from typing import TYPE_CHECKING, Any

import structlog

from dnd_items.core.config import Settings, get_settings


if TYPE_CHECKING:
    from structlog.types import EventDict, Processor, WrappedLogger


_STDLIB_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


class EngineNameProcessor:
    """Tag each entry with the engine's configured name."""

    def __init__(self, app_name: str) -> None:
        self.app_name = app_name

    def __call__(
        self, logger: WrappedLogger, method_name: str, event_dict: EventDict
    ) -> EventDict:
        event_dict.setdefault("app", self.app_name)
        return event_dict


def plain_enum_values(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Render enum members such as usage outcomes by value."""
    for key, value in event_dict.items():
        if isinstance(value, Enum):
            event_dict[key] = value.value
    return event_dict


def configure_logging(
    settings: Settings | None = None,
    *,
    level: str | None = None,
    json_format: bool | None = None,
    log_file: str | None = None,
) -> None:
    """Configure structlog and the standard library root logger.

    Values not passed explicitly come from ``settings`` (or the cached
    settings when omitted).

    Args:
        settings: Settings supplying ``log_level``, ``json_logs`` and ``app_name``.
        level: Overrides the settings' log level.
        json_format: Overrides the settings' JSON flag.
        log_file: Also write standard library records to this file.
    """
    settings = settings or get_settings()

    numeric_level = logging.getLevelName((level or settings.log_level).upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO
    use_json = settings.json_logs if json_format is None else json_format

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        EngineNameProcessor(settings.app_name),
        plain_enum_values,
    ]
    if use_json:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=settings.debug))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(format=_STDLIB_FORMAT, level=numeric_level, handlers=handlers, force=True)


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Return a structlog logger, usually named after the calling module."""
    return structlog.get_logger(name)


@contextmanager
def usage_context(**ids: Any) -> Iterator[None]:
    """Bind ids (actor, item) to every log line emitted inside the block.

    Bindings made outside the block are restored on exit.

    Example:
        >>> with usage_context(actor_id="a1", item_id="longbow"):
        ...     logger.info("usage_started")
    """
    with structlog.contextvars.bound_contextvars(**ids):
        yield


__all__ = [
    "EngineNameProcessor",
    "configure_logging",
    "get_logger",
    "plain_enum_values",
    "usage_context",
]
