"""
Donation service — wiring of wallet, chain reader, ledger and orchestrator.

Exposes the two outward interfaces consumed by the API layer and the
periodic runner:
- trigger: run_scan_cycle(), process_transaction(tx_hash)
- query: list_all(), list_with_messages(), get_by_hash(tx_hash)
"""

from __future__ import annotations

from donation_monitor.chain_reader import ChainReader, JsonRpcChainReader
from donation_monitor.config import Settings, get_settings
from donation_monitor.config.env import mask_rpc_url
from donation_monitor.extraction import MessageExtractor
from donation_monitor.ingestion import IngestionOrchestrator, ScanResult, ScanState
from donation_monitor.ledger import Donation, DonationLedger
from donation_monitor.monitor_logging import get_logger
from donation_monitor.wallet import StaticWalletProvider, WalletProvider

logger = get_logger(__name__)


class DonationService:
    def __init__(
        self,
        wallet: WalletProvider,
        reader: ChainReader,
        ledger: DonationLedger,
        orchestrator: IngestionOrchestrator,
    ) -> None:
        self._wallet = wallet
        self._reader = reader
        self._ledger = ledger
        self._orchestrator = orchestrator

    @property
    def ledger(self) -> DonationLedger:
        return self._ledger

    @property
    def orchestrator(self) -> IngestionOrchestrator:
        return self._orchestrator

    @property
    def scan_state(self) -> ScanState:
        return self._orchestrator.state

    @property
    def cursor(self) -> int | None:
        return self._ledger.cursor

    def monitored_address(self) -> str:
        return self._wallet.monitored_address()

    def run_scan_cycle(self) -> ScanResult:
        return self._orchestrator.run_scan_cycle()

    def process_transaction(self, tx_hash: str) -> Donation | None:
        return self._orchestrator.process_transaction(tx_hash)

    def list_all(self) -> list[Donation]:
        return self._ledger.list_all()

    def list_with_messages(self) -> list[Donation]:
        return self._ledger.list_with_messages()

    def get_by_hash(self, tx_hash: str) -> Donation | None:
        return self._ledger.get(tx_hash)

    def close(self) -> None:
        close = getattr(self._reader, "close", None)
        if callable(close):
            close()


def build_service(
    settings: Settings | None = None,
    *,
    reader: ChainReader | None = None,
    wallet: WalletProvider | None = None,
) -> DonationService:
    """Build a DonationService from settings (environment when None)."""
    settings = settings or get_settings()
    wallet = wallet or StaticWalletProvider(settings.monitored_address)
    if reader is None:
        reader = JsonRpcChainReader(
            settings.rpc_url,
            request_timeout_sec=settings.rpc_timeout_sec,
            max_retries=settings.rpc_max_retries,
        )
    ledger = DonationLedger()
    orchestrator = IngestionOrchestrator(
        reader,
        ledger,
        wallet.monitored_address(),
        extractor=MessageExtractor(settings.protocol_tags),
        lookback_blocks=settings.lookback_blocks,
        fetch_concurrency=settings.fetch_concurrency,
    )
    logger.info(
        "donation_service_ready",
        monitored_address=wallet.monitored_address(),
        rpc_url=mask_rpc_url(settings.rpc_url),
        lookback_blocks=settings.lookback_blocks,
        fetch_concurrency=settings.fetch_concurrency,
    )
    return DonationService(wallet, reader, ledger, orchestrator)
