"""
Donation ingestion: block range scan → filter → extract → score → ledger.

One scan cycle reads every block between the ledger cursor and the current
chain height, records each payment to the monitored address exactly once,
and then advances the cursor to the height it started from. Block fetch
failures are logged and skipped; a skipped block is not revisited once the
cursor has moved past it (forward progress over completeness).

At most one cycle runs at a time: the periodic runner and on-demand API
triggers share run_scan_cycle(), which returns immediately (skipped=True)
when a cycle is already in progress.
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterable, Iterator

from donation_monitor.chain_reader.client import ChainReader
from donation_monitor.chain_reader.models import Block, ChainTransaction
from donation_monitor.core.exceptions import (
    ChainReaderError,
    ProtocolError,
    TransientFetchError,
)
from donation_monitor.extraction import MessageExtractor
from donation_monitor.ledger import Donation, DonationLedger
from donation_monitor.monitor_logging import bind_transaction, get_logger
from donation_monitor.scoring import compute_message_weight
from donation_monitor.utils.units import format_ether
from donation_monitor.utils.wallet_utils import addresses_equal

logger = get_logger(__name__)

# Bootstrap window when no cursor exists yet; no full-history backfill
LOOKBACK_BLOCKS = 10
MESSAGE_PREVIEW_CHARS = 50

_BlockOutcome = tuple[int, Block | None, ChainReaderError | None]


class ScanState(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"


@dataclass
class ScanResult:
    """Outcome of one scan cycle."""

    new_donations: list[Donation] = field(default_factory=list)
    start_block: int | None = None
    end_block: int | None = None
    failed_blocks: list[int] = field(default_factory=list)
    skipped: bool = False
    """True when another cycle was already running."""

    @property
    def count(self) -> int:
        return len(self.new_donations)

    def to_dict(self) -> dict[str, Any]:
        return {
            "donations": [d.to_dict() for d in self.new_donations],
            "count": self.count,
            "skipped": self.skipped,
            "start_block": self.start_block,
            "end_block": self.end_block,
            "failed_blocks": list(self.failed_blocks),
        }


def _now_ms() -> int:
    return int(time.time() * 1000)


def message_preview(message: str | None) -> str | None:
    if not message:
        return None
    if len(message) <= MESSAGE_PREVIEW_CHARS:
        return message
    return message[:MESSAGE_PREVIEW_CHARS] + "..."


class IngestionOrchestrator:
    """
    Drives incremental scans for one monitored address.

    Owns no donation state itself: everything is committed to the ledger
    passed in, which also holds the scan cursor.
    """

    def __init__(
        self,
        reader: ChainReader,
        ledger: DonationLedger,
        monitored_address: str,
        *,
        extractor: MessageExtractor | None = None,
        lookback_blocks: int = LOOKBACK_BLOCKS,
        fetch_concurrency: int = 1,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        """
        Args:
            reader: Chain reader (JSON-RPC client or a test double).
            ledger: Ledger receiving donations and the cursor.
            monitored_address: Address whose incoming payments are recorded.
            extractor: Message extractor; default protocol tags when None.
            lookback_blocks: Blocks below the current height scanned on the first cycle.
            fetch_concurrency: Parallel block fetches per cycle (1 = sequential).
            clock: Returns ingestion time in epoch milliseconds.
        """
        if not monitored_address.strip():
            raise ValueError("monitored_address must be non-empty")
        if lookback_blocks < 0:
            raise ValueError("lookback_blocks must be >= 0")
        if fetch_concurrency < 1:
            raise ValueError("fetch_concurrency must be >= 1")
        self._reader = reader
        self._ledger = ledger
        self._monitored = monitored_address.strip()
        self._extractor = extractor or MessageExtractor()
        self._lookback = lookback_blocks
        self._concurrency = fetch_concurrency
        self._clock = clock
        self._scan_lock = threading.Lock()
        self._state = ScanState.IDLE

    @property
    def state(self) -> ScanState:
        return self._state

    @property
    def monitored_address(self) -> str:
        return self._monitored

    def run_scan_cycle(self) -> ScanResult:
        """Scan new blocks once; skipped immediately if a scan is already running."""
        if not self._scan_lock.acquire(blocking=False):
            logger.debug("scan_skipped_already_running")
            return ScanResult(skipped=True)
        self._state = ScanState.SCANNING
        try:
            return self._scan()
        finally:
            self._state = ScanState.IDLE
            self._scan_lock.release()

    def process_transaction(self, tx_hash: str) -> Donation | None:
        """
        Record a single transaction on demand.

        Returns the stored donation (existing or new), or None when the
        transaction is not a payment to the monitored address or the node
        could not provide it.
        """
        existing = self._ledger.get(tx_hash)
        if existing is not None:
            return existing
        try:
            tx = self._reader.get_transaction(tx_hash)
            if not self._qualifies(tx):
                logger.debug("process_transaction_not_donation", tx_hash=tx_hash)
                return None
            receipt = self._reader.get_receipt(tx_hash)
        except ChainReaderError as e:
            logger.warning(
                "process_transaction_failed",
                tx_hash=tx_hash,
                error=str(e),
                error_kind=type(e).__name__,
            )
            return None
        donation, _ = self._record(tx, receipt.block_number)
        return donation

    def _scan(self) -> ScanResult:
        try:
            end = self._reader.current_height()
        except ChainReaderError as e:
            logger.error(
                "scan_height_fetch_failed",
                error=str(e),
                error_kind=type(e).__name__,
            )
            return ScanResult()

        cursor = self._ledger.cursor
        start = cursor + 1 if cursor is not None else max(end - self._lookback, 0)
        result = ScanResult(start_block=start, end_block=end)
        if start > end:
            logger.debug("scan_up_to_date", cursor=cursor, height=end)
            return result

        logger.debug("scan_range", start_block=start, end_block=end, cursor=cursor)
        for height, block, error in self._fetch_blocks(range(start, end + 1)):
            if error is not None:
                result.failed_blocks.append(height)
                self._log_block_failure(height, error)
                continue
            result.new_donations.extend(self._process_block(block))

        self._ledger.advance_cursor(end)
        log = logger.info if result.new_donations or result.failed_blocks else logger.debug
        log(
            "scan_cycle_done",
            start_block=start,
            end_block=end,
            new_donations=result.count,
            failed_blocks=len(result.failed_blocks),
        )
        return result

    def _fetch_block_safe(self, height: int) -> _BlockOutcome:
        try:
            return height, self._reader.get_block_with_transactions(height), None
        except ChainReaderError as e:
            return height, None, e

    def _fetch_blocks(self, heights: Iterable[int]) -> Iterator[_BlockOutcome]:
        """Yield (height, block, error) in ascending height order."""
        if self._concurrency == 1:
            for height in heights:
                yield self._fetch_block_safe(height)
            return
        # map() preserves input order, so integration stays block-ascending
        with ThreadPoolExecutor(max_workers=self._concurrency) as executor:
            yield from executor.map(self._fetch_block_safe, heights)

    def _log_block_failure(self, height: int, error: ChainReaderError) -> None:
        if isinstance(error, TransientFetchError):
            logger.warning("scan_block_fetch_failed", block_number=height, error=str(error))
        else:
            logger.error(
                "scan_block_invalid",
                block_number=height,
                error=str(error),
                error_kind=type(error).__name__,
                protocol_error=isinstance(error, ProtocolError),
            )

    def _process_block(self, block: Block) -> list[Donation]:
        created: list[Donation] = []
        for tx in block.transactions:
            if not self._qualifies(tx):
                continue
            try:
                donation, is_new = self._record(tx, block.number)
            except ValueError as e:
                logger.error(
                    "scan_transaction_failed",
                    block_number=block.number,
                    tx_hash=tx.hash,
                    error=str(e),
                )
                continue
            if is_new:
                created.append(donation)
        return created

    def _qualifies(self, tx: ChainTransaction) -> bool:
        return addresses_equal(tx.to_address, self._monitored) and tx.value_wei > 0

    def _record(self, tx: ChainTransaction, block_number: int | None) -> tuple[Donation, bool]:
        """Upsert the donation for tx; the bool is True when it was created now."""
        built = False

        def build() -> Donation:
            nonlocal built
            built = True
            return self._build_donation(tx, block_number)

        donation = self._ledger.upsert_if_absent(tx.hash, build)
        if built:
            bind_transaction(donation.id).info(
                "donation_recorded",
                from_address=donation.from_address,
                value_display=donation.value_display,
                block_number=donation.block_number,
                message_weight=round(donation.message_weight, 4),
                message_source=donation.message_source,
                message_preview=message_preview(donation.message),
            )
        return donation, built

    def _build_donation(self, tx: ChainTransaction, block_number: int | None) -> Donation:
        extracted = self._extractor.extract(tx.input)
        message = extracted.text if extracted is not None else None
        value_display = format_ether(tx.value_wei)
        tx_hash = tx.hash.strip().lower()
        return Donation(
            id=tx_hash,
            transaction_hash=tx_hash,
            from_address=tx.from_address,
            to_address=tx.to_address or "",
            value_wei=tx.value_wei,
            value_display=value_display,
            message=message,
            message_source=extracted.source_kind.value if extracted is not None else None,
            message_weight=compute_message_weight(value_display, message),
            block_number=block_number if block_number is not None else tx.block_number,
            timestamp=self._clock(),
            raw_data="0x" + tx.input.hex() if tx.input else None,
        )
