"""
Structured logging for the donation monitor.

All modules log through structlog: get_logger(__name__) and a snake_case
event name plus keyword context (block_number, tx_hash, value_display, ...).
Each record carries event_type, level, ISO timestamp, logger and service.

LOG_LEVEL (default INFO) and LOG_FORMAT (json | console, default json) are
read when this module is first imported. Nothing else from donation_monitor
is imported here so that any module can log without import cycles.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

import structlog

SERVICE_NAME = "donation_monitor"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "json"


def _resolve_level(raw: str | None) -> int:
    name = (raw or DEFAULT_LOG_LEVEL).strip().upper()
    return getattr(logging, name, logging.INFO)


def _add_timestamp(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    if "timestamp" not in event_dict:
        event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def _add_service(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def _normalize_event(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """structlog's 'event' key becomes event_type (the aggregation key)."""
    if "event" in event_dict and "event_type" not in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    return event_dict


def configure_structlog(level: str | None = None, fmt: str | None = None) -> None:
    """
    Configure structlog for the process.

    level: Log level name; LOG_LEVEL env when None.
    fmt: "json" for one JSON object per line, "console" for local reading;
         LOG_FORMAT env when None.
    """
    level_value = _resolve_level(level if level is not None else os.getenv("LOG_LEVEL"))
    output = (fmt or os.getenv("LOG_FORMAT") or DEFAULT_LOG_FORMAT).strip().lower()

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _add_timestamp,
        _add_service,
        _normalize_event,
    ]
    if output == "console":
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level_value),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Return a structured logger bound to the module name.

        logger = get_logger(__name__)
        logger.info("scan_cycle_done", start_block=90, end_block=100, new_donations=1)
    """
    return structlog.get_logger(name).bind(logger=name)


def bind_transaction(tx_hash: str, **context: Any) -> structlog.BoundLogger:
    """Logger with tx_hash (and any extra context) bound for per-donation events."""
    return get_logger(SERVICE_NAME).bind(tx_hash=tx_hash, **context)
