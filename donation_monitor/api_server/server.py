"""
FastAPI server — donation queries and scan triggers.

The lifespan builds the DonationService (unless one was injected), starts
the periodic scanner in a background thread and stops it on shutdown.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from donation_monitor import __version__
from donation_monitor.api_server.routes import donations_router, wallet_router
from donation_monitor.config import Settings, get_settings
from donation_monitor.ingestion import ScanRunnerConfig, start_scanner_thread
from donation_monitor.ingestion.runner import SHUTDOWN_JOIN_TIMEOUT_SEC
from donation_monitor.monitor_logging import get_logger
from donation_monitor.service import DonationService, build_service

logger = get_logger(__name__)


class HealthResponse(BaseModel):
    """GET /health response."""

    status: str = Field("ok", description="Liveness")
    scan_state: str | None = Field(None, description="idle | scanning")
    cursor: int | None = Field(None, description="Highest fully scanned block")
    donation_count: int = Field(0, description="Donations recorded since startup")


def create_app(
    service: DonationService | None = None,
    *,
    settings: Settings | None = None,
    start_scanner: bool | None = None,
) -> FastAPI:
    """
    Build the FastAPI app.

    service: Pre-built service (tests); built from settings in the lifespan when None.
    settings: Settings override; get_settings() when None.
    start_scanner: Force the periodic scanner on/off; settings.scanner_enabled when None.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        cfg = settings or get_settings()
        owns_service = app.state.service is None
        if owns_service:
            app.state.service = build_service(cfg)
        enabled = cfg.scanner_enabled if start_scanner is None else start_scanner

        thread = stop_event = None
        if enabled:
            thread, stop_event = start_scanner_thread(
                app.state.service,
                ScanRunnerConfig(
                    interval_sec=cfg.scan_interval_sec,
                    scan_on_startup=cfg.scan_on_startup,
                ),
            )
            logger.info("api_scanner_started", interval_sec=cfg.scan_interval_sec)

        yield

        if thread is not None and stop_event is not None:
            stop_event.set()
            thread.join(timeout=SHUTDOWN_JOIN_TIMEOUT_SEC)
            if thread.is_alive():
                logger.warning("api_scanner_shutdown_timeout", timeout_sec=SHUTDOWN_JOIN_TIMEOUT_SEC)
            else:
                logger.info("api_scanner_stopped")
        if owns_service:
            app.state.service.close()
            app.state.service = None

    app = FastAPI(
        title="Donation Monitor API",
        description="Incoming donations to the monitored address, with extracted messages and weights.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.service = service
    app.include_router(donations_router)
    app.include_router(wallet_router)

    @app.get("/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        """Liveness probe plus scan progress."""
        svc: DonationService | None = app.state.service
        if svc is None:
            return HealthResponse(status="starting")
        return HealthResponse(
            status="ok",
            scan_state=svc.scan_state.value,
            cursor=svc.cursor,
            donation_count=len(svc.ledger),
        )

    @app.exception_handler(HTTPException)
    def http_exception_handler(request: Any, exc: HTTPException) -> JSONResponse:
        """Consistent JSON error response for HTTPException."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
        )

    return app
