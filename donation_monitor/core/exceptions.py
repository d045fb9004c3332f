"""
Application-level exceptions.

Chain reader failures split into retryable (TransientFetchError) and
non-retryable (ProtocolError, NotFound) outcomes; the ingestion loop skips
the affected block and keeps going. Ledger invariant violations indicate a
bug and are never caught by the ingestion loop.
"""

from __future__ import annotations


class DonationMonitorError(Exception):
    """Base class for all donation monitor errors."""


class ConfigError(DonationMonitorError):
    """Invalid or missing configuration value."""


class ChainReaderError(DonationMonitorError):
    """Failure while reading from the chain node."""


class TransientFetchError(ChainReaderError):
    """Network error, timeout, or throttling; the caller may retry."""


class ProtocolError(ChainReaderError):
    """Malformed or unexpected node response; retrying will not help."""


class BlockNotFoundError(ChainReaderError):
    """The node has no block at the requested height."""

    def __init__(self, height: int) -> None:
        super().__init__(f"Block {height} not found")
        self.height = height


class TransactionNotFoundError(ChainReaderError):
    """The node does not know the transaction (or its receipt)."""

    def __init__(self, tx_hash: str) -> None:
        super().__init__(f"Transaction {tx_hash} not found")
        self.tx_hash = tx_hash


class LedgerInvariantError(DonationMonitorError):
    """Programming error: a ledger invariant was violated."""


class CursorRegressionError(LedgerInvariantError):
    """Attempt to move the scan cursor backwards."""

    def __init__(self, current: int, requested: int) -> None:
        super().__init__(
            f"Scan cursor cannot move backwards (current={current}, requested={requested})"
        )
        self.current = current
        self.requested = requested
