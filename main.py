"""
Main entrypoint: FastAPI server with the periodic donation scanner.

The scanner runs in a daemon thread started by the API lifespan; the API
runs in the main thread and stays responsive. On SIGINT/SIGTERM uvicorn
shuts down, the lifespan stops the scanner and the process exits.

Env: MONITORED_ADDRESS (required), RPC_URL, SCAN_INTERVAL_SEC, API_HOST, API_PORT, etc.
"""

import os
import sys

# Configure structured JSON logging before other imports that may log
from donation_monitor.monitor_logging import get_logger

logger = get_logger("main")


def main() -> None:
    """Validate configuration, then run the FastAPI server in the main thread."""
    from donation_monitor.config import get_settings
    from donation_monitor.config.env import mask_rpc_url
    from donation_monitor.core.exceptions import ConfigError

    try:
        settings = get_settings()
    except ConfigError as e:
        logger.error("main_config_error", error=str(e))
        sys.exit(1)
    if not settings.monitored_address:
        logger.error(
            "main_config_error",
            message="No address to monitor: set MONITORED_ADDRESS (or CDP_WALLET_ID)",
        )
        sys.exit(1)

    logger.info(
        "main_config_loaded",
        monitored_address=settings.monitored_address,
        rpc_url=mask_rpc_url(settings.rpc_url),
        scan_interval_sec=settings.scan_interval_sec,
    )

    from donation_monitor.api_server.app import app
    import uvicorn

    logger.info("main_server_starting", host=settings.api_host, port=settings.api_port)
    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )


if __name__ == "__main__":
    main()
