"""
API route definitions — donation and wallet endpoints.

Routes validate path params and delegate to the DonationService stored on
app.state; they never touch the chain reader or ledger directly.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from donation_monitor.ledger import Donation
from donation_monitor.monitor_logging import get_logger
from donation_monitor.service import DonationService

logger = get_logger(__name__)

donations_router = APIRouter(prefix="/donations", tags=["Donations"])
wallet_router = APIRouter(prefix="/wallet", tags=["Wallet"])


def get_service(request: Request) -> DonationService:
    """Dependency: the app-scoped DonationService."""
    service = getattr(request.app.state, "service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Donation service not initialized")
    return service


# -----------------------------------------------------------------------------
# Response models
# -----------------------------------------------------------------------------


class DonationResponse(BaseModel):
    """One recorded donation."""

    id: str = Field(..., description="Transaction hash (lowercase)")
    transaction_hash: str
    from_address: str
    to_address: str
    value_wei: str = Field(..., description="Amount in wei (decimal string, exact)")
    value_display: str = Field(..., description="Amount in ether")
    message: str | None = Field(None, description="Extracted message, if any")
    message_source: str | None = Field(None, description="protocol | heuristic")
    message_weight: float = Field(..., ge=1.0, description="Importance weight")
    block_number: int | None = None
    timestamp: int = Field(..., description="Ingestion time (Unix ms)")
    raw_data: str | None = Field(None, description="Original payload (0x hex)")

    @classmethod
    def from_donation(cls, donation: Donation) -> "DonationResponse":
        return cls(**donation.to_dict())


class MonitorResponse(BaseModel):
    """POST /donations/monitor response."""

    donations: list[DonationResponse] = Field(default_factory=list)
    count: int = Field(..., description="Number of new donations found this cycle")
    skipped: bool = Field(False, description="True if a scan was already running")
    start_block: int | None = None
    end_block: int | None = None
    failed_blocks: list[int] = Field(default_factory=list)


class WalletAddressResponse(BaseModel):
    address: str = Field(..., description="Monitored (donation-receiving) address")


# -----------------------------------------------------------------------------
# Donations
# -----------------------------------------------------------------------------


@donations_router.get("", response_model=list[DonationResponse])
def list_donations(service: DonationService = Depends(get_service)) -> list[DonationResponse]:
    """All donations, most recent first."""
    return [DonationResponse.from_donation(d) for d in service.list_all()]


@donations_router.get("/with-messages", response_model=list[DonationResponse])
def list_donations_with_messages(
    service: DonationService = Depends(get_service),
) -> list[DonationResponse]:
    """Donations that carry a non-blank message, most recent first."""
    return [DonationResponse.from_donation(d) for d in service.list_with_messages()]


@donations_router.post("/monitor", response_model=MonitorResponse)
def monitor_donations(service: DonationService = Depends(get_service)) -> MonitorResponse:
    """Run one scan cycle now and return the donations it found."""
    result = service.run_scan_cycle()
    logger.info(
        "api_monitor_triggered",
        count=result.count,
        skipped=result.skipped,
        end_block=result.end_block,
    )
    payload: dict[str, Any] = result.to_dict()
    payload["donations"] = [DonationResponse.from_donation(d) for d in result.new_donations]
    return MonitorResponse(**payload)


@donations_router.get("/{tx_hash}", response_model=DonationResponse)
def get_donation(tx_hash: str, service: DonationService = Depends(get_service)) -> DonationResponse:
    """Return one donation by transaction hash; 404 if unknown."""
    tx_hash = tx_hash.strip()
    if not tx_hash:
        raise HTTPException(status_code=400, detail="tx_hash must be non-empty")
    donation = service.get_by_hash(tx_hash)
    if donation is None:
        raise HTTPException(status_code=404, detail=f"No donation found for {tx_hash[:18]}...")
    return DonationResponse.from_donation(donation)


@donations_router.post("/{tx_hash}/process", response_model=DonationResponse)
def process_donation(
    tx_hash: str,
    service: DonationService = Depends(get_service),
) -> DonationResponse:
    """
    Record one transaction on demand (e.g. right after a donor submits it).
    404 when the transaction is unknown or is not a payment to the monitored address.
    """
    tx_hash = tx_hash.strip()
    if not tx_hash:
        raise HTTPException(status_code=400, detail="tx_hash must be non-empty")
    donation = service.process_transaction(tx_hash)
    if donation is None:
        raise HTTPException(
            status_code=404,
            detail=f"Transaction {tx_hash[:18]}... is not a donation to the monitored address",
        )
    return DonationResponse.from_donation(donation)


# -----------------------------------------------------------------------------
# Wallet
# -----------------------------------------------------------------------------


@wallet_router.get("/address", response_model=WalletAddressResponse)
def get_wallet_address(service: DonationService = Depends(get_service)) -> WalletAddressResponse:
    return WalletAddressResponse(address=service.monitored_address())
