# Donation weight scoring: amount (log scale) plus a capped message bonus.

from donation_monitor.scoring.scorer import (
    AMOUNT_EPSILON,
    MIN_WEIGHT,
    compute_message_weight,
)

__all__ = [
    "AMOUNT_EPSILON",
    "MIN_WEIGHT",
    "compute_message_weight",
]
