"""
Wallet provider: the address donations are sent to.

Key management lives outside this service; the monitor only needs the
public address, resolved once at startup.
"""

from __future__ import annotations

from typing import Protocol

from donation_monitor.core.exceptions import ConfigError
from donation_monitor.utils.wallet_utils import is_valid_address


class WalletProvider(Protocol):
    def monitored_address(self) -> str: ...


class StaticWalletProvider:
    """Wallet provider backed by a configured address (MONITORED_ADDRESS)."""

    def __init__(self, address: str) -> None:
        address = (address or "").strip()
        if not address:
            raise ConfigError("MONITORED_ADDRESS must be set")
        if not is_valid_address(address):
            raise ConfigError(f"Invalid monitored address: {address!r}")
        self._address = address

    def monitored_address(self) -> str:
        return self._address
