"""Logging utilities for cnc-integrations."""

import logging
import sys
from typing import Any

# Client libraries that log every request or statement at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "aiosqlite")

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    level: str = "INFO",
    format_string: str | None = None,
    stream: Any = None,
    backend_level: str = "WARNING",
) -> logging.Logger:
    """Configure logging for the hub and its adapters.

    Adapter messages follow ``level``; the HTTP and database client
    libraries are held at ``backend_level`` unless ``level`` is DEBUG.

    Args:
        level: Level for cnc_integrations loggers
        format_string: Custom format string for log messages
        stream: Output stream (defaults to stderr, keeping stdout for CLI output)
        backend_level: Level for the client libraries in ``NOISY_LOGGERS``

    Returns:
        The ``cnc_integrations`` package logger
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")

    logging.basicConfig(
        level=numeric_level,
        format=format_string or DEFAULT_FORMAT,
        stream=stream or sys.stderr,
        force=True,
    )

    library_level = (
        numeric_level if numeric_level <= logging.DEBUG else backend_level.upper()
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

    logger = logging.getLogger("cnc_integrations")
    logger.setLevel(numeric_level)
    return logger
