"""
Application settings.

Typed, validated view over the environment (see config.env). One Settings
instance per process; tests call get_settings.cache_clear() after changing
the environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from donation_monitor.config.env import (
    env_bool,
    env_float,
    env_int,
    get_monitored_address,
    get_protocol_tags,
    get_rpc_url,
    load_monitor_env,
)
from donation_monitor.core.exceptions import ConfigError

DEFAULT_SCAN_INTERVAL_SEC = 30.0
DEFAULT_LOOKBACK_BLOCKS = 10
DEFAULT_RPC_TIMEOUT_SEC = 15.0
DEFAULT_RPC_MAX_RETRIES = 2
DEFAULT_FETCH_CONCURRENCY = 1
DEFAULT_API_PORT = 3000


@dataclass(frozen=True)
class Settings:
    """Service configuration resolved from the environment."""

    rpc_url: str
    monitored_address: str
    scan_interval_sec: float = DEFAULT_SCAN_INTERVAL_SEC
    lookback_blocks: int = DEFAULT_LOOKBACK_BLOCKS
    rpc_timeout_sec: float = DEFAULT_RPC_TIMEOUT_SEC
    rpc_max_retries: int = DEFAULT_RPC_MAX_RETRIES
    fetch_concurrency: int = DEFAULT_FETCH_CONCURRENCY
    protocol_tags: tuple[str, ...] | None = None
    scan_on_startup: bool = True
    scanner_enabled: bool = True
    api_host: str = "0.0.0.0"
    api_port: int = DEFAULT_API_PORT

    def __post_init__(self) -> None:
        if self.scan_interval_sec <= 0:
            raise ConfigError("SCAN_INTERVAL_SEC must be positive")
        if self.lookback_blocks < 0:
            raise ConfigError("SCAN_LOOKBACK_BLOCKS must be >= 0")
        if self.rpc_timeout_sec <= 0:
            raise ConfigError("RPC_TIMEOUT_SEC must be positive")
        if self.rpc_max_retries < 0:
            raise ConfigError("RPC_MAX_RETRIES must be >= 0")
        if self.fetch_concurrency < 1:
            raise ConfigError("FETCH_CONCURRENCY must be >= 1")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the current application settings (cached)."""
    load_monitor_env()
    return Settings(
        rpc_url=get_rpc_url(),
        monitored_address=get_monitored_address(),
        scan_interval_sec=env_float("SCAN_INTERVAL_SEC", DEFAULT_SCAN_INTERVAL_SEC),
        lookback_blocks=env_int("SCAN_LOOKBACK_BLOCKS", DEFAULT_LOOKBACK_BLOCKS),
        rpc_timeout_sec=env_float("RPC_TIMEOUT_SEC", DEFAULT_RPC_TIMEOUT_SEC),
        rpc_max_retries=env_int("RPC_MAX_RETRIES", DEFAULT_RPC_MAX_RETRIES),
        fetch_concurrency=env_int("FETCH_CONCURRENCY", DEFAULT_FETCH_CONCURRENCY),
        protocol_tags=get_protocol_tags(),
        scan_on_startup=env_bool("SCAN_ON_STARTUP", True),
        scanner_enabled=env_bool("SCANNER_ENABLED", True),
        api_host=(os.getenv("API_HOST") or "0.0.0.0").strip(),
        api_port=env_int("API_PORT", DEFAULT_API_PORT),
    )
