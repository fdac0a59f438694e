"""Structured logging for graphprefill.

structlog and stdlib logging are routed through one ProcessorFormatter so
``logging.getLogger(__name__)`` and ``structlog.get_logger()`` produce the
same console or JSON output.
"""
from __future__ import annotations

import logging
import sys
from typing import Any, List, Optional

import structlog
from structlog.stdlib import ProcessorFormatter


def _remove_internal_fields(
    logger: Optional[logging.Logger],
    method_name: str,
    event_dict: dict,
) -> dict:
    # ProcessorFormatter always adds these two keys
    del event_dict["_record"]
    del event_dict["_from_structlog"]
    return event_dict


def configure_logging(*, json_output: bool = False, level: str = "INFO") -> None:
    """Configure structlog and stdlib logging.

    Args:
        json_output: emit JSON lines instead of the coloured console renderer.
        level: DEBUG, INFO, WARNING or ERROR.
    """
    log_level = getattr(logging, level.upper())

    shared_processors: List[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_output:
        final_processors: List[Any] = [
            _remove_internal_fields,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        final_processors = [
            _remove_internal_fields,
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ]

    structlog.configure(
        processors=[*shared_processors, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # tests reconfigure logging, cached loggers would go stale
        cache_logger_on_first_use=False,
    )

    # stderr keeps CLI tables on stdout clean
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        ProcessorFormatter(
            processors=final_processors,
            foreign_pre_chain=shared_processors,
        )
    )

    root = logging.getLogger()
    root.handlers = []
    root.addHandler(handler)
    root.setLevel(log_level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger
