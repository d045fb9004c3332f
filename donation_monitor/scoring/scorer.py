"""
Donation weight computation.

Responsibilities:
- Map a donation amount (ether display string) and optional message to a
  single importance weight used to rank donations downstream.
- Pure and deterministic: same inputs, same output.
"""

from __future__ import annotations

import math

# Guards log10(0) for zero-value donations that only carry a message
AMOUNT_EPSILON = 1e-6
AMOUNT_SCALE = 10.0
MESSAGE_CHARS_PER_POINT = 100.0
MAX_MESSAGE_BONUS = 5.0
MIN_WEIGHT = 1.0


def compute_message_weight(
    value_display: str,
    message: str | None = None,
    *,
    epsilon: float = AMOUNT_EPSILON,
    max_message_bonus: float = MAX_MESSAGE_BONUS,
    min_weight: float = MIN_WEIGHT,
) -> float:
    """
    Compute a donation weight (>= min_weight) from amount and message.

    Base is log10(amount + epsilon) * 10, so every 10x in amount adds 10
    points. A non-blank message adds len(message) / 100, capped at
    max_message_bonus so very long messages cannot dominate the amount.

    Args:
        value_display: Amount in ether as a decimal string (e.g. "0.001").
        message: Extracted message, if any.
        epsilon: Added to the amount before taking the logarithm.
        max_message_bonus: Cap for the message bonus.
        min_weight: Floor for the returned weight.

    Returns:
        Weight in [min_weight, +inf).
    """
    amount = float(value_display)
    if amount < 0 or math.isnan(amount):
        raise ValueError(f"amount must be a non-negative number, got {value_display!r}")
    weight = math.log10(amount + epsilon) * AMOUNT_SCALE
    if message is not None:
        trimmed = message.strip()
        if trimmed:
            weight += min(len(trimmed) / MESSAGE_CHARS_PER_POINT, max_message_bonus)
    return max(weight, min_weight)
