"""Logging setup shared by the API server and the command-line tools."""

from __future__ import annotations

import logging
import sys

import structlog

_CONFIGURED = False


def _shared_processors() -> list:
    return [
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]


def configure_logging(level: str | int = "INFO") -> None:
    """
    Configure stdlib logging and structlog to write JSON lines to stdout.

    Module loggers created with ``logging.getLogger(__name__)`` are rendered
    through structlog's ProcessorFormatter, so every record carries the
    logger name, level and an ISO timestamp.  Safe to call more than once;
    only the first call installs the handler.

    Args:
        level: Logging level name or number
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(),
        foreign_pre_chain=_shared_processors(),
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    # Make uvicorn loggers flow through root so formatting is consistent.
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        log = logging.getLogger(name)
        log.handlers = []
        log.propagate = True

    structlog.configure(
        processors=[
            *_shared_processors(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _CONFIGURED = True
