"""
Domain model for recorded donations.

A Donation is created once, when a qualifying payment is first observed,
and never mutated afterwards (frozen dataclass).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Donation:
    """One detected payment to the monitored address."""

    id: str
    """Ledger key; same value as transaction_hash (lowercase)."""
    transaction_hash: str
    from_address: str
    to_address: str
    value_wei: int
    """Exact amount in wei."""
    value_display: str
    """Amount in ether as a plain decimal string (e.g. "0.001")."""
    message_weight: float
    """Importance weight (>= 1.0) from amount and message."""
    timestamp: int
    """Ingestion time, Unix epoch milliseconds (not block time)."""
    message: str | None = None
    """Extracted message: NUL-free, trimmed, under 1000 characters."""
    message_source: str | None = None
    """protocol | heuristic; None when there is no message."""
    block_number: int | None = None
    raw_data: str | None = None
    """Original payload as 0x-hex for audit; None when the payload was empty."""

    @property
    def has_message(self) -> bool:
        return bool(self.message and self.message.strip())

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable dict; value_wei is a string to keep precision."""
        return {
            "id": self.id,
            "transaction_hash": self.transaction_hash,
            "from_address": self.from_address,
            "to_address": self.to_address,
            "value_wei": str(self.value_wei),
            "value_display": self.value_display,
            "message": self.message,
            "message_source": self.message_source,
            "message_weight": self.message_weight,
            "block_number": self.block_number,
            "timestamp": self.timestamp,
            "raw_data": self.raw_data,
        }
