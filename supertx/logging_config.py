"""
Structured logging for the supertx client.

Only the ``supertx`` logger tree is configured so host applications keep
control of the root logger. JSON lines by default, colored console output
at DEBUG.
"""

import logging
import sys
from typing import IO, Optional

import structlog

from .config import settings

LOGGER_NAME = "supertx"


def setup_logging(log_level: Optional[str] = None, stream: Optional[IO[str]] = None) -> logging.Logger:
    """Route supertx log records through structlog.

    Args:
        log_level: Override log level (default: from settings.log_level)
        stream: Output stream (default: stdout)

    Returns:
        The configured package logger
    """
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if level == logging.DEBUG:
        renderer = structlog.dev.ConsoleRenderer()
    else:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(formatter)

    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False

    # request/response chatter from the HTTP client
    for name in ("httpcore", "httpx"):
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    return logger


def bind_supertransaction(hash: str) -> None:
    """Attach a supertransaction hash to every log line in the current context."""
    structlog.contextvars.bind_contextvars(supertransaction=hash)


def clear_supertransaction() -> None:
    structlog.contextvars.unbind_contextvars("supertransaction")
