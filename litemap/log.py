"""structlog setup for applications that do not configure it themselves.

litemap only emits events: ``debug`` for connections, statements and
transactions, ``warning`` for a failed close. Unconfigured structlog prints
every level, so hosts either call :func:`configure_logging` or install their
own ``structlog.configure``.
"""

import logging
import sys

import structlog


def configure_logging(level: str = "WARNING", json_format: bool = None) -> None:
    """Configure structlog to drop events below ``level``.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ERROR).
        json_format: True for JSON lines, False for console output,
            None to pick JSON when stdout is not a tty.
    """
    if json_format is None:
        json_format = not sys.stdout.isatty()

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level.upper())),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )
