from __future__ import annotations

import logging
import os
import sys

import structlog

_HANDLER_MARKER = "_webwhisper_handler"


def configure_logging(json_output: bool = True, log_level: str | None = None) -> None:
    """Route structlog through the stdlib root logger.

    ``log_level`` falls back to ``WEBWHISPER_LOG_LEVEL`` and then ``INFO``.
    Calling this again swaps the handler it installed earlier instead of
    stacking a second one.
    """
    level_name = (log_level or os.getenv("WEBWHISPER_LOG_LEVEL") or "INFO").upper()

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level_name, logging.INFO))

    for existing in list(root_logger.handlers):
        if getattr(existing, _HANDLER_MARKER, False):
            root_logger.removeHandler(existing)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(processor=renderer))
    setattr(handler, _HANDLER_MARKER, True)
    root_logger.addHandler(handler)
