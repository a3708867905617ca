"""Structured logging configuration using structlog.

Modules log through the standard library (``logging.getLogger(__name__)``);
this routes those records through structlog's processor chain so index
actions and rebuild progress come out as JSON (or console) lines.
"""

from __future__ import annotations

import logging
import sys

import structlog

from legindex.config.settings import ObservabilitySettings

# Chatty third-party loggers kept at WARNING unless debugging.
_NOISY_LOGGERS = ("opensearch", "httpx", "httpcore", "uvicorn.access")


def setup_logging(settings: ObservabilitySettings | None = None) -> None:
    """Install a single structlog-formatted handler on the root logger.

    Safe to call more than once; each call replaces the previous handler.
    """
    settings = settings or ObservabilitySettings()
    level = logging.getLevelName(settings.log_level.upper())

    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.ExtraAdder(),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if settings.log_format == "console":
        renderer: structlog.types.Processor = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=pre_chain,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level if settings.log_level == "debug" else logging.WARNING)
