"""
Data models for chain reader output.

Mirrors the JSON-RPC shapes of eth_getBlockByNumber, eth_getTransactionByHash
and eth_getTransactionReceipt; hex quantities become int and hex payloads
become bytes. Any missing field or malformed hex raises ProtocolError, except
for a single malformed transaction inside a block, which is logged and dropped.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from donation_monitor.core.exceptions import ProtocolError
from donation_monitor.monitor_logging import get_logger

logger = get_logger(__name__)


def hex_to_int(value: Any, name: str) -> int:
    """Decode a JSON-RPC hex quantity ("0x1a") into int."""
    if not isinstance(value, str) or not value.startswith(("0x", "0X")):
        raise ProtocolError(f"{name}: expected hex quantity, got {value!r}")
    try:
        return int(value, 16)
    except ValueError as e:
        raise ProtocolError(f"{name}: invalid hex quantity {value!r}") from e


def hex_to_bytes(value: Any, name: str = "data") -> bytes:
    """Decode a JSON-RPC hex data string ("0x", "0xdeadbeef") into bytes."""
    if value is None:
        return b""
    if not isinstance(value, str):
        raise ProtocolError(f"{name}: expected hex string, got {type(value).__name__}")
    clean = value[2:] if value.startswith(("0x", "0X")) else value
    try:
        return bytes.fromhex(clean)
    except ValueError as e:
        raise ProtocolError(f"{name}: invalid hex data") from e


def _optional_address(value: Any) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ProtocolError(f"address: expected string, got {type(value).__name__}")
    return value


@dataclass(frozen=True)
class ChainTransaction:
    """
    One transaction as returned by the node.

    to_address is None for contract creations.
    """

    hash: str
    from_address: str
    to_address: str | None
    value_wei: int
    input: bytes
    block_number: int | None  # None while pending

    @classmethod
    def from_rpc(cls, item: Any) -> "ChainTransaction":
        """Build from a transaction object (getBlockByNumber(.., true) or getTransactionByHash)."""
        if not isinstance(item, dict):
            raise ProtocolError(
                f"transaction: expected object, got {type(item).__name__}"
            )
        try:
            tx_hash = item["hash"]
            sender = item["from"]
            value = item["value"]
        except KeyError as e:
            raise ProtocolError(f"transaction: missing field {e.args[0]!r}") from e
        if not isinstance(tx_hash, str) or not isinstance(sender, str):
            raise ProtocolError("transaction: hash and from must be strings")
        block_number = item.get("blockNumber")
        return cls(
            hash=tx_hash,
            from_address=sender,
            to_address=_optional_address(item.get("to")),
            value_wei=hex_to_int(value, "value"),
            input=hex_to_bytes(item.get("input"), "input"),
            block_number=hex_to_int(block_number, "blockNumber") if block_number is not None else None,
        )


@dataclass(frozen=True)
class Block:
    """A block with its full transaction objects."""

    number: int
    hash: str | None
    timestamp: int | None  # block time, Unix seconds
    transactions: tuple[ChainTransaction, ...] = field(default_factory=tuple)

    @classmethod
    def from_rpc(cls, item: Any) -> "Block":
        if not isinstance(item, dict):
            raise ProtocolError(f"block: expected object, got {type(item).__name__}")
        if "number" not in item:
            raise ProtocolError("block: missing field 'number'")
        raw_txs = item.get("transactions") or []
        if not isinstance(raw_txs, list):
            raise ProtocolError("block: transactions must be a list")
        number = hex_to_int(item["number"], "number")
        txs = []
        for index, raw in enumerate(raw_txs):
            if isinstance(raw, str):
                # Hash-only list: the node ignored the full-transactions flag
                raise ProtocolError("block: expected full transaction objects, got hashes")
            try:
                txs.append(ChainTransaction.from_rpc(raw))
            except ProtocolError as e:
                # One bad entry must not hide the rest of the block
                logger.warning(
                    "block_transaction_malformed",
                    block_number=number,
                    index=index,
                    tx_hash=raw.get("hash") if isinstance(raw, dict) else None,
                    error=str(e),
                )
        timestamp = item.get("timestamp")
        return cls(
            number=number,
            hash=item.get("hash"),
            timestamp=hex_to_int(timestamp, "timestamp") if timestamp is not None else None,
            transactions=tuple(txs),
        )


@dataclass(frozen=True)
class Receipt:
    """Transaction receipt; status is 1 on success, 0 on revert, None pre-Byzantium."""

    transaction_hash: str
    block_number: int
    status: int | None

    @classmethod
    def from_rpc(cls, item: Any) -> "Receipt":
        if not isinstance(item, dict):
            raise ProtocolError(f"receipt: expected object, got {type(item).__name__}")
        try:
            tx_hash = item["transactionHash"]
            block_number = item["blockNumber"]
        except KeyError as e:
            raise ProtocolError(f"receipt: missing field {e.args[0]!r}") from e
        status = item.get("status")
        return cls(
            transaction_hash=tx_hash,
            block_number=hex_to_int(block_number, "blockNumber"),
            status=hex_to_int(status, "status") if status is not None else None,
        )
