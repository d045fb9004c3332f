"""
Periodic scan runner.

run_periodic_scanner(): runs one scan cycle immediately (optional) and then
every interval_sec until stop_event is set. Started by the FastAPI lifespan
in a background thread; never blocks the API. A failing tick is logged and
the loop continues.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Protocol

from donation_monitor.core.exceptions import LedgerInvariantError
from donation_monitor.ingestion.orchestrator import ScanResult, message_preview
from donation_monitor.monitor_logging import get_logger

logger = get_logger(__name__)

DEFAULT_SCAN_INTERVAL_SEC = 30.0
MIN_SCAN_INTERVAL_SEC = 1.0
SHUTDOWN_JOIN_TIMEOUT_SEC = 15.0


class ScanTrigger(Protocol):
    def run_scan_cycle(self) -> ScanResult: ...


@dataclass
class ScanRunnerConfig:
    """Config for the periodic background scanner."""

    interval_sec: float = DEFAULT_SCAN_INTERVAL_SEC
    scan_on_startup: bool = True


def _log_new_donations(result: ScanResult, tick: int) -> None:
    for donation in result.new_donations:
        logger.info(
            "periodic_donation_found",
            tick=tick,
            tx_hash=donation.id,
            value_display=donation.value_display,
            message_preview=message_preview(donation.message),
        )


def run_periodic_scanner(
    trigger: ScanTrigger,
    config: ScanRunnerConfig,
    stop_event: threading.Event,
) -> None:
    """
    Run scan cycles until stop_event is set.

    The same trigger is shared with on-demand callers; a tick that collides
    with an on-demand scan is reported as skipped, not queued.
    """
    interval = max(MIN_SCAN_INTERVAL_SEC, config.interval_sec)
    logger.info(
        "periodic_scanner_started",
        interval_sec=interval,
        scan_on_startup=config.scan_on_startup,
    )
    tick_count = 0
    next_tick = time.monotonic() if config.scan_on_startup else time.monotonic() + interval
    while not stop_event.is_set():
        # Sleep until next tick; wake periodically to check stop_event
        while not stop_event.is_set() and time.monotonic() < next_tick:
            stop_event.wait(timeout=min(1.0, max(0.0, next_tick - time.monotonic())))
        if stop_event.is_set():
            break
        tick_start = time.monotonic()
        tick_count += 1
        try:
            result = trigger.run_scan_cycle()
            if result.skipped:
                logger.debug("periodic_tick_skipped", tick=tick_count)
            elif result.new_donations:
                logger.info("periodic_tick_done", tick=tick_count, new_donations=result.count)
                _log_new_donations(result, tick_count)
            else:
                logger.debug("periodic_tick_done", tick=tick_count, new_donations=0)
        except LedgerInvariantError:
            logger.critical("periodic_scanner_invariant_violation", tick=tick_count, exc_info=True)
            raise
        except Exception as e:
            logger.exception("periodic_tick_failed", tick=tick_count, error=str(e))
        next_tick = tick_start + interval
    logger.info("periodic_scanner_stopped", tick_count=tick_count)


def start_scanner_thread(
    trigger: ScanTrigger,
    config: ScanRunnerConfig,
) -> tuple[threading.Thread, threading.Event]:
    """Start run_periodic_scanner in a daemon thread; returns (thread, stop_event)."""
    stop_event = threading.Event()
    thread = threading.Thread(
        target=run_periodic_scanner,
        args=(trigger, config, stop_event),
        name="donation-scanner",
        daemon=True,
    )
    thread.start()
    return thread, stop_event
