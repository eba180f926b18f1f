"""
Structured logging for the rule engine.

Provides:
- configure_logging(): one-time structlog setup driven by Settings
- get_logger(): module loggers bound to the rulebook service name
- ErrorAggregator: collapses repeated per-pass errors into one summary event
"""

from __future__ import annotations

import logging
import sys
from collections import defaultdict
from typing import Any

import structlog
from structlog.contextvars import merge_contextvars
from structlog.processors import (
    JSONRenderer,
    KeyValueRenderer,
    TimeStamper,
    add_log_level,
    format_exc_info,
)
from structlog.stdlib import BoundLogger, add_logger_name

from rulebook.core.config import get_settings


_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def get_logger(name: str) -> BoundLogger:
    """Get a structured logger bound to the rulebook service.

    Args:
        name: Logger name (usually the module's __name__)

    Returns:
        structlog bound logger
    """
    return structlog.get_logger(name, service="rulebook")


def configure_logging(level: str | None = None, json_logs: bool | None = None) -> None:
    """Configure structlog and the stdlib root handler.

    Args:
        level: Minimum log level name. Defaults to Settings.log_level.
        json_logs: Render JSON instead of key=value. Defaults to Settings.json_logs.
    """
    settings = get_settings()
    level_name = (level or settings.log_level).upper()
    use_json = settings.json_logs if json_logs is None else json_logs
    level_int = _LEVELS.get(level_name, logging.WARNING)

    processors: list[Any] = [
        merge_contextvars,
        TimeStamper(fmt="ISO", utc=True),
        add_log_level,
        add_logger_name,
        format_exc_info,
    ]
    if use_json:
        processors.append(JSONRenderer(sort_keys=True))
    else:
        processors.append(KeyValueRenderer(key_order=["timestamp", "level", "event", "logger"]))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level_int),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level_int)


class ErrorAggregator:
    """Collects errors by category during one evaluation pass.

    A rule list with a broken condition type can fail hundreds of times in a
    single pass; the engine records each failure here and emits one summary
    event per category when the pass ends.
    """

    def __init__(self, logger: BoundLogger | None = None):
        self._logger = logger or get_logger(__name__)
        self._errors: dict[str, list[str]] = defaultdict(list)

    def add(self, category: str, message: str) -> None:
        """Record an error message under a category."""
        self._errors[category].append(message)

    def count(self, category: str | None = None) -> int:
        """Number of recorded errors, optionally for a single category."""
        if category is not None:
            return len(self._errors.get(category, []))
        return sum(len(messages) for messages in self._errors.values())

    def flush(self) -> dict[str, int]:
        """Emit one summary event per category and reset.

        Returns:
            Mapping of category to number of errors flushed
        """
        summary = {}
        for category, messages in self._errors.items():
            unique = list(dict.fromkeys(messages))
            self._logger.error(
                "aggregated_errors",
                category=category,
                count=len(messages),
                messages=unique[:10],
            )
            summary[category] = len(messages)
        self._errors.clear()
        return summary
