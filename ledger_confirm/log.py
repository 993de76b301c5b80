"""
Structured logging for ledger_confirm.

structlog with ISO timestamps and log level. Modules call
``get_logger(__name__)`` and log an event name plus keyword fields:

    logger = get_logger(__name__)
    logger.info("tracking_finished", signature=sig, outcome="succeeded")

Nothing is configured at import; applications call ``configure_logging()``
once (or configure structlog themselves).
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from typing import Any

import structlog


def _add_timestamp(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    if "timestamp" not in event_dict:
        event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def configure_logging(level: str = "INFO", fmt: str = "json") -> None:
    """Configure structlog output.

    Args:
        level: Minimum level name ("DEBUG", "INFO", ...).
        fmt: "json" for one JSON object per line, anything else for the
            human-readable console renderer.
    """
    level_value = getattr(logging, level.upper(), logging.INFO)
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _add_timestamp,
    ]
    if fmt.strip().lower() == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level_value),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> Any:
    """Return a structured logger that tags events with ``logger_name``.

    The logger stays lazy: configuration is resolved on first use, so
    module-level loggers created at import pick up a later
    ``configure_logging()``.
    """
    return structlog.get_logger(logger_name=name)
