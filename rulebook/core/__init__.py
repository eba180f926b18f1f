"""Core infrastructure - configuration, logging and errors."""

from .config import Settings, get_settings
from .errors import RulebookError, RuleValidationError
from .logging import ErrorAggregator, configure_logging, get_logger

__all__ = [
    "Settings",
    "get_settings",
    "RulebookError",
    "RuleValidationError",
    "ErrorAggregator",
    "configure_logging",
    "get_logger",
]
