"""
Structured logging for the gated_fsm package.

Loggers are structlog wrappers around stdlib loggers under ``gated_fsm``,
so stdlib levels and handlers decide what is emitted. Nothing is printed
until the embedding application configures logging or calls
``setup_logging``.
"""

import logging
import sys
from typing import IO, Optional

import structlog

from .config import settings


PACKAGE_LOGGER = "gated_fsm"

# Shared processors for structlog events and foreign stdlib records
_shared_processors: list[structlog.types.Processor] = [
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
]

_handler: Optional[logging.Handler] = None


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger backed by ``logging.getLogger(name)``."""
    return structlog.wrap_logger(
        logging.getLogger(name),
        processors=[
            structlog.stdlib.filter_by_level,
            *_shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
    )


def setup_logging(
    log_level: Optional[str] = None,
    stream: Optional[IO[str]] = None,
) -> logging.Handler:
    """Attach a structlog-rendering handler to the ``gated_fsm`` logger.

    Only the package logger is touched: root handlers, the root level and
    the global structlog configuration are left as the application set
    them. Calling it again replaces the handler installed previously.

    Args:
        log_level: Override log level (default: from settings.log_level)
        stream: Output stream (default: sys.stdout)

    Returns:
        The installed handler
    """
    global _handler

    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)

    if level == logging.DEBUG:
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(formatter)

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    if _handler is not None:
        package_logger.removeHandler(_handler)
    package_logger.addHandler(handler)
    package_logger.setLevel(level)
    # Our handler renders the events; don't print them twice via root
    package_logger.propagate = False

    _handler = handler
    return handler
