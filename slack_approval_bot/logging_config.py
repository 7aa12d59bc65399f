"""Structlog configuration helpers for structured logging."""

from __future__ import annotations

import logging

import structlog

LOG_LEVEL = logging.INFO


def configure_logging(verbose: bool = False) -> None:
    """Configure structlog to emit JSON-formatted logs.

    ``verbose`` lowers the threshold to DEBUG so skipped events and the
    Socket Mode client's own diagnostics become visible.
    """

    level = logging.DEBUG if verbose else LOG_LEVEL
    timestamper = structlog.processors.TimeStamper(fmt="iso")

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            timestamper,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(level=level)
    logging.getLogger().setLevel(level)
