"""
Chain reader package.

Read-only JSON-RPC access to an EVM node: current height, blocks with full
transactions, single transactions and receipts. Raw responses are normalized
into frozen dataclasses before they reach the ingestion layer.
"""

from donation_monitor.chain_reader.client import ChainReader, JsonRpcChainReader
from donation_monitor.chain_reader.models import (
    Block,
    ChainTransaction,
    Receipt,
    hex_to_bytes,
)

__all__ = [
    "Block",
    "ChainReader",
    "ChainTransaction",
    "JsonRpcChainReader",
    "Receipt",
    "hex_to_bytes",
]
