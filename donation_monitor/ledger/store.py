"""
Donation ledger: idempotent in-memory donation store and scan cursor.

The ledger is the only owner of recorded donations and of the cursor. It is
passed explicitly to the ingestion orchestrator and the API layer; there is
no module-level instance. All mutation happens under one re-entrant lock so
concurrent triggers cannot record the same transaction twice.
"""

from __future__ import annotations

import threading
from typing import Callable

from donation_monitor.core.exceptions import CursorRegressionError, LedgerInvariantError
from donation_monitor.ledger.models import Donation
from donation_monitor.monitor_logging import get_logger

logger = get_logger(__name__)


def normalize_hash(tx_hash: str) -> str:
    return tx_hash.strip().lower()


class DonationLedger:
    """Process-lifetime donation store keyed by transaction hash."""

    def __init__(self) -> None:
        self._donations: dict[str, Donation] = {}
        self._cursor: int | None = None
        self._lock = threading.RLock()

    @property
    def cursor(self) -> int | None:
        """Highest fully processed block height; None before the first scan."""
        with self._lock:
            return self._cursor

    def __len__(self) -> int:
        with self._lock:
            return len(self._donations)

    def __contains__(self, tx_hash: object) -> bool:
        if not isinstance(tx_hash, str):
            return False
        with self._lock:
            return normalize_hash(tx_hash) in self._donations

    def upsert_if_absent(self, tx_hash: str, builder: Callable[[], Donation]) -> Donation:
        """
        Return the donation recorded for tx_hash, creating it with builder() if absent.

        builder is only invoked when the hash is unknown, so re-scans and
        duplicate detections never rebuild or replace a stored record.
        """
        key = normalize_hash(tx_hash)
        with self._lock:
            existing = self._donations.get(key)
            if existing is not None:
                return existing
            donation = builder()
            if normalize_hash(donation.transaction_hash) != key:
                raise LedgerInvariantError(
                    f"Builder for {key} produced donation {donation.transaction_hash}"
                )
            self._donations[key] = donation
        logger.debug(
            "ledger_donation_stored",
            tx_hash=key,
            block_number=donation.block_number,
            ledger_size=len(self),
        )
        return donation

    def get(self, tx_hash: str) -> Donation | None:
        with self._lock:
            return self._donations.get(normalize_hash(tx_hash))

    def list_all(self) -> list[Donation]:
        """All donations, most recent first (ties: higher block first)."""
        with self._lock:
            donations = list(self._donations.values())
        return sorted(
            donations,
            key=lambda d: (d.timestamp, d.block_number if d.block_number is not None else -1),
            reverse=True,
        )

    def list_with_messages(self) -> list[Donation]:
        return [d for d in self.list_all() if d.has_message]

    def advance_cursor(self, height: int) -> None:
        """
        Set the scan cursor to height.

        Raises CursorRegressionError if height is below the current cursor;
        that can only happen through a bug in the caller.
        """
        with self._lock:
            if self._cursor is not None and height < self._cursor:
                raise CursorRegressionError(self._cursor, height)
            previous = self._cursor
            self._cursor = height
        logger.debug("ledger_cursor_advanced", previous=previous, cursor=height)
