"""Structured logging setup."""

from __future__ import annotations

import logging

import structlog

from llm_balancer.config import get_settings


def configure_logging(
    *, log_level: str | None = None, json_logs: bool | None = None
) -> None:
    """Configure structlog for console (dev) or JSON (production) output.

    Arguments left as ``None`` are read from ``Settings`` (``LOG_LEVEL`` and
    ``LOG_JSON``).
    """
    if log_level is None or json_logs is None:
        settings = get_settings()
        if log_level is None:
            log_level = settings.log_level
        if json_logs is None:
            json_logs = settings.log_json

    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(level=level, format="%(message)s")

    # Keep HTTP client chatter out of balancer logs
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


__all__ = ["configure_logging"]
