"""
Environment variable loading and validation.

- RPC_URL: JSON-RPC endpoint (legacy RPC_URL_BASE accepted)
- CHAIN_NETWORK: base-sepolia | base (selects the default RPC URL)
- MONITORED_ADDRESS: address receiving donations (legacy CDP_WALLET_ID accepted)
- PROTOCOL_TAGS: comma-separated 4-byte tags for protocol message decoding
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

from donation_monitor.core.exceptions import ConfigError

# Project root: config is donation_monitor/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_PACKAGE_DIR = _CONFIG_DIR.parent
_ROOT = _PACKAGE_DIR.parent
_ENV_PATH = _ROOT / ".env"
_ENV_LOCAL_PATH = _ROOT / ".env.local"

BASE_SEPOLIA_RPC_URL = "https://sepolia.base.org"
BASE_MAINNET_RPC_URL = "https://mainnet.base.org"

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


def load_monitor_env() -> None:
    """Load .env then .env.local from project root. Safe to call multiple times."""
    load_dotenv(_ENV_PATH)
    load_dotenv(_ENV_LOCAL_PATH)


def get_chain_network() -> str:
    """Return CHAIN_NETWORK from env: base-sepolia | base. Default: base-sepolia."""
    load_monitor_env()
    raw = (os.getenv("CHAIN_NETWORK") or "base-sepolia").strip().lower()
    if raw in ("base", "base-mainnet", "mainnet"):
        return "base"
    # Legacy: CHAIN_ID_BASE=8453 selects Base mainnet
    if (os.getenv("CHAIN_ID_BASE") or "").strip() == "8453":
        return "base"
    return "base-sepolia"


def get_rpc_url() -> str:
    """
    Resolve the JSON-RPC URL from env.
    Order: RPC_URL > RPC_URL_BASE > network default.
    """
    load_monitor_env()
    url = (os.getenv("RPC_URL") or os.getenv("RPC_URL_BASE") or "").strip()
    if url:
        return url
    return BASE_MAINNET_RPC_URL if get_chain_network() == "base" else BASE_SEPOLIA_RPC_URL


def get_monitored_address() -> str:
    """Return MONITORED_ADDRESS (or legacy CDP_WALLET_ID); empty string if unset."""
    load_monitor_env()
    return (os.getenv("MONITORED_ADDRESS") or os.getenv("CDP_WALLET_ID") or "").strip()


def get_protocol_tags() -> tuple[str, ...] | None:
    """Return PROTOCOL_TAGS as a tuple of hex strings; None when unset (use defaults)."""
    load_monitor_env()
    raw = (os.getenv("PROTOCOL_TAGS") or "").strip()
    if not raw:
        return None
    return tuple(t.strip() for t in raw.split(",") if t.strip())


def env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from e


def env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from e


def env_bool(name: str, default: bool) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return default
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")


def mask_rpc_url(url: str) -> str:
    """Hide API keys embedded in RPC URLs before logging them."""
    if "api-key=" in url:
        return url.split("api-key=")[0] + "api-key=***"
    return url
