"""
Structured logging for the donation monitor.

JSON logs with timestamp, event_type, and per-event context (block_number,
tx_hash, value_display, ...). Use get_logger() in every module.
"""

from donation_monitor.monitor_logging.logger import bind_transaction, configure_structlog, get_logger

__all__ = ["bind_transaction", "configure_structlog", "get_logger"]
