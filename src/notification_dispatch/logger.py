"""Logging utilities for the notification dispatcher.

Library modules only fetch named loggers; handlers, level and format are
configured once by the entry point (``main.py``, ``server.py`` or the CLI)
through :func:`configure_logging`.

Example:
    Typical usage in a module::

        from notification_dispatch.logger import get_logger

        logger = get_logger("Resolver")
        logger.info("Template loaded")
"""

import logging

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_logger(name: str = "NotificationDispatch") -> logging.Logger:
    """Retrieve a logger instance bound to ``name``.

    Args:
        name: The logger name. Defaults to "NotificationDispatch".

    Returns:
        A ``logging.Logger`` instance. No handlers are attached here.
    """
    return logging.getLogger(name)


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger for an entry point.

    Unknown level names fall back to INFO. ``force=True`` replaces handlers
    installed by a previous call so reconfiguration never duplicates output.
    """
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        force=True,
    )
