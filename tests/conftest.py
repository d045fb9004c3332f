"""
Pytest fixtures for donation monitor tests.

FakeChainReader serves blocks / transactions / receipts from dicts so the
orchestrator and API can be exercised without a node.
"""

from __future__ import annotations

from typing import Callable

import pytest

from donation_monitor.chain_reader.models import Block, ChainTransaction, Receipt
from donation_monitor.core.exceptions import BlockNotFoundError, TransactionNotFoundError
from donation_monitor.ingestion import IngestionOrchestrator
from donation_monitor.ledger import DonationLedger

MONITORED = "0xABCDEF0123456789ABCDEF0123456789ABCDEF01"
DONOR = "0x" + "11" * 20
OTHER = "0x" + "22" * 20
ONE_ETHER = 10**18


def tx_hash(n: int) -> str:
    return "0x" + format(n, "064x")


def make_tx(
    n: int,
    *,
    to: str | None = MONITORED,
    value: int = ONE_ETHER,
    data: bytes = b"",
    sender: str = DONOR,
    block_number: int | None = None,
) -> ChainTransaction:
    return ChainTransaction(
        hash=tx_hash(n),
        from_address=sender,
        to_address=to,
        value_wei=value,
        input=data,
        block_number=block_number,
    )


def make_block(number: int, *txs: ChainTransaction) -> Block:
    return Block(number=number, hash=tx_hash(10_000 + number), timestamp=1_700_000_000 + number, transactions=tuple(txs))


class FakeChainReader:
    """In-memory ChainReader; unknown heights return empty blocks."""

    def __init__(self, height: int = 100) -> None:
        self.height = height
        self.blocks: dict[int, Block] = {}
        self.block_errors: dict[int, Exception] = {}
        self.height_error: Exception | None = None
        self.transactions: dict[str, ChainTransaction] = {}
        self.receipts: dict[str, Receipt] = {}
        self.fetched: list[int] = []
        self.on_fetch: Callable[[int], None] | None = None
        self.tx_calls = 0

    def add_block(self, block: Block) -> None:
        self.blocks[block.number] = block
        for tx in block.transactions:
            self.transactions[tx.hash] = tx
            self.receipts[tx.hash] = Receipt(transaction_hash=tx.hash, block_number=block.number, status=1)

    def current_height(self) -> int:
        if self.height_error is not None:
            raise self.height_error
        return self.height

    def get_block_with_transactions(self, height: int) -> Block:
        self.fetched.append(height)
        if self.on_fetch is not None:
            self.on_fetch(height)
        if height in self.block_errors:
            raise self.block_errors[height]
        if height > self.height:
            raise BlockNotFoundError(height)
        return self.blocks.get(height, make_block(height))

    def get_transaction(self, tx_hash: str) -> ChainTransaction:
        self.tx_calls += 1
        if tx_hash not in self.transactions:
            raise TransactionNotFoundError(tx_hash)
        return self.transactions[tx_hash]

    def get_receipt(self, tx_hash: str) -> Receipt:
        if tx_hash not in self.receipts:
            raise TransactionNotFoundError(tx_hash)
        return self.receipts[tx_hash]


class FakeClock:
    """Millisecond clock that ticks forward on every call."""

    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        self.now += 1
        return self.now


@pytest.fixture
def reader() -> FakeChainReader:
    return FakeChainReader(height=100)


@pytest.fixture
def ledger() -> DonationLedger:
    return DonationLedger()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def orchestrator(reader, ledger, clock) -> IngestionOrchestrator:
    return IngestionOrchestrator(reader, ledger, MONITORED, clock=clock)
