"""
Donation ledger package.

In-memory, process-lifetime store of recorded donations keyed by
transaction hash, plus the scan cursor used for incremental block scans.
"""

from donation_monitor.ledger.models import Donation
from donation_monitor.ledger.store import DonationLedger

__all__ = ["Donation", "DonationLedger"]
