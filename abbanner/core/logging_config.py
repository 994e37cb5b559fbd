"""Structured logging setup for the banner service.

Call :func:`configure_logging` once at application startup (``abbanner.main``
does this on import). Other modules call ``structlog.get_logger(__name__)``
directly and never reconfigure the library.
"""

from __future__ import annotations

import logging

import structlog

from .settings import config_settings

__all__ = ["configure_logging"]


def configure_logging(force: bool = False) -> None:
    """Setup structlog + stdlib bridging exactly once.

    Args:
        force: When True, reconfigure even if previously configured.
    """
    configured = getattr(structlog, "_is_configured", False)  # type: ignore[attr-defined]
    if configured and not force:
        return

    if config_settings.LOG_PRETTY:
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    # stdlib records (uvicorn, sqlalchemy) go through the same renderer
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[structlog.contextvars.merge_contextvars],
        processors=[
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
    )

    root_logger = logging.getLogger()
    for h in list(root_logger.handlers):
        root_logger.removeHandler(h)

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, config_settings.LOG_LEVEL, logging.INFO))

    structlog.configure(
        processors=shared_processors + [renderer],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    setattr(structlog, "_is_configured", True)  # type: ignore[attr-defined]
