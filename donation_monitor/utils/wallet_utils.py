"""Address validation and comparison utilities."""

from __future__ import annotations

from eth_utils import is_hex_address


def is_valid_address(address: str) -> bool:
    """Return True if address is a 0x-prefixed 20-byte hex address (any casing)."""
    candidate = address.strip()
    return candidate.lower().startswith("0x") and is_hex_address(candidate)


def addresses_equal(a: str | None, b: str | None) -> bool:
    """Case-insensitive address equality; None never matches."""
    if a is None or b is None:
        return False
    return a.strip().lower() == b.strip().lower()
