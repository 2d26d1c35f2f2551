"""Logging setup for deriva-clonetax.

All clonetax loggers live under the ``deriva_clonetax`` namespace. The stores
talk to the catalog through deriva-py and to databases through SQLAlchemy, and
those libraries log under their own names. configure_logging() sets their level
in the same call, separately from the clonetax level.

Example:
    >>> import logging
    >>> from deriva_clonetax.core.logging_config import configure_logging, get_logger
    >>> configure_logging(level=logging.INFO, store_level=logging.WARNING)
    >>> get_logger("cli").info("Cloning category into topic")
"""

import logging
from typing import Any

LOGGER_NAME = "deriva_clonetax"

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Library loggers driven by the store backends
RELATED_LOGGERS = [
    "deriva",
    "sqlalchemy.engine",
]


def get_logger(name: str | None = None) -> logging.Logger:
    """Return the package logger, or the child logger ``deriva_clonetax.<name>``."""
    return logging.getLogger(LOGGER_NAME if name is None else f"{LOGGER_NAME}.{name}")


def configure_logging(
    level: int = logging.WARNING,
    store_level: int | None = None,
    format_string: str = DEFAULT_FORMAT,
    handler: logging.Handler | None = None,
) -> logging.Logger:
    """Set clonetax and store library log levels and attach a handler.

    A handler is only attached when the package logger has none yet, so calling
    this more than once does not duplicate output.

    Args:
        level: Level of the deriva_clonetax logger.
        store_level: Level of the deriva and sqlalchemy.engine loggers. Follows
            ``level`` when None.
        format_string: Format used when a StreamHandler is created here.
        handler: Handler to attach instead of a StreamHandler on stderr.

    Returns:
        The deriva_clonetax logger.
    """
    logger = get_logger()
    logger.setLevel(level)
    if not logger.handlers:
        if handler is None:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter(format_string))
        logger.addHandler(handler)

    apply_logger_overrides({name: level if store_level is None else store_level for name in RELATED_LOGGERS})
    return logger


def apply_logger_overrides(overrides: dict[str, Any]) -> None:
    """Set the level of each named logger, e.g. ``{"sqlalchemy.engine": logging.INFO}``."""
    for name, level in overrides.items():
        logging.getLogger(name).setLevel(level)


class LoggerMixin:
    """Gives a class a ``_logger`` named ``deriva_clonetax.<ClassName>``."""

    @property
    def _logger(self) -> logging.Logger:
        return get_logger(type(self).__name__)


__all__ = [
    "LOGGER_NAME",
    "get_logger",
    "configure_logging",
    "apply_logger_overrides",
    "LoggerMixin",
]
