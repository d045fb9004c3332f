# Donation ingestion: scan orchestration and the periodic background runner.

from donation_monitor.ingestion.orchestrator import (
    LOOKBACK_BLOCKS,
    IngestionOrchestrator,
    ScanResult,
    ScanState,
)
from donation_monitor.ingestion.runner import (
    ScanRunnerConfig,
    run_periodic_scanner,
    start_scanner_thread,
)

__all__ = [
    "LOOKBACK_BLOCKS",
    "IngestionOrchestrator",
    "ScanResult",
    "ScanRunnerConfig",
    "ScanState",
    "run_periodic_scanner",
    "start_scanner_thread",
]
