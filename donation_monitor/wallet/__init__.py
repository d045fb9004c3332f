# Wallet provider: supplies the monitored (donation-receiving) address.

from donation_monitor.wallet.provider import StaticWalletProvider, WalletProvider

__all__ = ["StaticWalletProvider", "WalletProvider"]
