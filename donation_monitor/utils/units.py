"""Unit conversion between wei and ether display strings."""

from __future__ import annotations

from decimal import Decimal

from eth_utils import from_wei


def format_ether(value_wei: int) -> str:
    """
    Render a wei amount as a plain decimal ether string.

    Exact (no float rounding) and never in exponent form:
    10**15 -> "0.001", 10**18 -> "1", 0 -> "0".
    """
    if value_wei < 0:
        raise ValueError("value_wei must be >= 0")
    value = Decimal(from_wei(value_wei, "ether"))
    return format(value.normalize(), "f")
