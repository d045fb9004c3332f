"""
Tests for IngestionOrchestrator: scan ranges, filtering, dedup, failure handling,
re-entrancy and on-demand processing.
"""

from __future__ import annotations

import json

import httpx
import pytest
from eth_abi import encode

from conftest import (
    MONITORED,
    ONE_ETHER,
    OTHER,
    FakeChainReader,
    FakeClock,
    make_block,
    make_tx,
    tx_hash,
)
from donation_monitor.chain_reader import JsonRpcChainReader
from donation_monitor.chain_reader.models import ChainTransaction
from donation_monitor.core.exceptions import ProtocolError, TransientFetchError
from donation_monitor.extraction import MessageExtractor
from donation_monitor.ingestion import IngestionOrchestrator, ScanState
from donation_monitor.ingestion.orchestrator import message_preview
from donation_monitor.ledger import DonationLedger

TAG = bytes.fromhex("9d96e2df")


def test_first_cycle_scans_lookback_window(orchestrator, reader, ledger):
    result = orchestrator.run_scan_cycle()
    assert reader.fetched == list(range(90, 101))
    assert (result.start_block, result.end_block) == (90, 100)
    assert ledger.cursor == 100
    assert result.count == 0
    assert not result.skipped


def test_lookback_is_clamped_at_genesis(ledger, clock):
    reader = FakeChainReader(height=3)
    orch = IngestionOrchestrator(reader, ledger, MONITORED, clock=clock)
    orch.run_scan_cycle()
    assert reader.fetched == [0, 1, 2, 3]


def test_next_cycle_continues_from_cursor(orchestrator, reader, ledger):
    orchestrator.run_scan_cycle()
    reader.fetched.clear()
    reader.height = 103
    result = orchestrator.run_scan_cycle()
    assert reader.fetched == [101, 102, 103]
    assert (result.start_block, result.end_block) == (101, 103)
    assert ledger.cursor == 103


def test_up_to_date_cycle_fetches_nothing(orchestrator, reader, ledger):
    orchestrator.run_scan_cycle()
    reader.fetched.clear()
    result = orchestrator.run_scan_cycle()
    assert reader.fetched == []
    assert result.count == 0
    assert ledger.cursor == 100


def test_height_below_cursor_does_not_regress(orchestrator, reader, ledger):
    orchestrator.run_scan_cycle()
    reader.height = 95
    result = orchestrator.run_scan_cycle()
    assert result.count == 0
    assert ledger.cursor == 100


def test_payment_to_monitored_address_is_recorded(orchestrator, reader, ledger, clock):
    reader.add_block(make_block(95, make_tx(1, value=10**15, data=b"Hello there")))
    result = orchestrator.run_scan_cycle()

    assert result.count == 1
    donation = result.new_donations[0]
    assert donation.id == tx_hash(1)
    assert donation.transaction_hash == tx_hash(1)
    assert donation.to_address == MONITORED
    assert donation.value_wei == 10**15
    assert donation.value_display == "0.001"
    assert donation.message == "Hello there"
    assert donation.message_source == "heuristic"
    assert donation.message_weight == 1.0
    assert donation.block_number == 95
    assert donation.timestamp == clock.now
    assert donation.raw_data == "0x" + b"Hello there".hex()
    assert ledger.get(tx_hash(1)) is donation


def test_recipient_match_is_case_insensitive(orchestrator, reader, ledger):
    reader.add_block(make_block(91, make_tx(1, to=MONITORED.lower())))
    reader.add_block(make_block(92, make_tx(2, to="0x" + MONITORED[2:].upper())))
    result = orchestrator.run_scan_cycle()
    assert result.count == 2


def test_non_qualifying_transactions_are_ignored(orchestrator, reader, ledger):
    reader.add_block(
        make_block(
            93,
            make_tx(1, value=0, data=b"zero value note"),
            make_tx(2, to=OTHER),
            make_tx(3, to=None),
        )
    )
    result = orchestrator.run_scan_cycle()
    assert result.count == 0
    assert len(ledger) == 0


def test_empty_payload_has_no_message(orchestrator, reader):
    reader.add_block(make_block(94, make_tx(1)))
    donation = orchestrator.run_scan_cycle().new_donations[0]
    assert donation.message is None
    assert donation.message_source is None
    assert donation.raw_data is None
    assert donation.value_display == "1"


def test_hash_is_stored_lowercase(orchestrator, reader, ledger):
    upper = "0x" + "AB" * 32
    tx = ChainTransaction(
        hash=upper,
        from_address="0x" + "11" * 20,
        to_address=MONITORED,
        value_wei=ONE_ETHER,
        input=b"",
        block_number=96,
    )
    reader.add_block(make_block(96, tx))
    donation = orchestrator.run_scan_cycle().new_donations[0]
    assert donation.id == upper.lower()
    assert ledger.get(upper) is donation


def test_duplicate_sightings_record_once(orchestrator, reader, ledger):
    """The same transaction seen in two blocks (e.g. around a reorg) is stored once."""
    tx = make_tx(1)
    reader.add_block(make_block(97, tx))
    reader.add_block(make_block(98, tx))
    result = orchestrator.run_scan_cycle()
    assert result.count == 1
    assert ledger.get(tx.hash).block_number == 97
    assert len(ledger) == 1


def test_processed_transaction_is_not_reported_again_by_scan(orchestrator, reader, ledger):
    reader.add_block(make_block(99, make_tx(1)))
    first = orchestrator.process_transaction(tx_hash(1))
    assert first is not None
    result = orchestrator.run_scan_cycle()
    assert result.count == 0
    assert ledger.get(tx_hash(1)) is first


def test_rescan_over_recorded_block_does_not_duplicate(reader, ledger, clock):
    """A bootstrap scan whose range covers an already-recorded transaction keeps the stored record."""
    reader.add_block(make_block(100, make_tx(1, data=b"first sighting")))
    stored = IngestionOrchestrator(reader, DonationLedger(), MONITORED, clock=clock)._build_donation(
        reader.transactions[tx_hash(1)], 100
    )
    ledger.upsert_if_absent(tx_hash(1), lambda: stored)
    assert ledger.cursor is None

    result = IngestionOrchestrator(reader, ledger, MONITORED, clock=clock).run_scan_cycle()

    assert 100 in reader.fetched
    assert result.count == 0
    assert len(ledger) == 1
    assert ledger.get(tx_hash(1)) is stored


@pytest.mark.parametrize("error", [TransientFetchError("timeout"), ProtocolError("bad block")])
def test_failed_block_is_skipped_and_cursor_advances(orchestrator, reader, ledger, error):
    reader.block_errors[95] = error
    reader.add_block(make_block(96, make_tx(1)))
    result = orchestrator.run_scan_cycle()
    assert result.failed_blocks == [95]
    assert result.count == 1
    assert ledger.cursor == 100

    # Skipped blocks are not revisited
    reader.fetched.clear()
    reader.height = 101
    orchestrator.run_scan_cycle()
    assert reader.fetched == [101]


def test_height_failure_leaves_cursor_untouched(orchestrator, reader, ledger):
    reader.height_error = TransientFetchError("node down")
    result = orchestrator.run_scan_cycle()
    assert result.count == 0
    assert result.start_block is None
    assert reader.fetched == []
    assert ledger.cursor is None
    assert orchestrator.state is ScanState.IDLE


def test_concurrent_trigger_is_skipped(orchestrator, reader):
    inner_results = []
    states = []

    def on_fetch(height: int) -> None:
        if height == 95:
            states.append(orchestrator.state)
            inner_results.append(orchestrator.run_scan_cycle())

    reader.on_fetch = on_fetch
    reader.add_block(make_block(96, make_tx(1)))
    outer = orchestrator.run_scan_cycle()

    assert states == [ScanState.SCANNING]
    assert len(inner_results) == 1
    assert inner_results[0].skipped
    assert inner_results[0].count == 0
    assert outer.count == 1
    assert orchestrator.state is ScanState.IDLE


def test_state_returns_to_idle_after_unexpected_error(orchestrator, reader):
    def boom(height: int) -> None:
        raise RuntimeError("unexpected")

    reader.on_fetch = boom
    with pytest.raises(RuntimeError):
        orchestrator.run_scan_cycle()
    assert orchestrator.state is ScanState.IDLE
    reader.on_fetch = None
    assert not orchestrator.run_scan_cycle().skipped


def test_parallel_fetch_keeps_block_order(reader, ledger, clock):
    for n, height in enumerate((99, 92, 95), start=1):
        reader.add_block(make_block(height, make_tx(n)))
    orch = IngestionOrchestrator(reader, ledger, MONITORED, fetch_concurrency=4, clock=clock)
    result = orch.run_scan_cycle()
    assert [d.block_number for d in result.new_donations] == [92, 95, 99]
    assert sorted(reader.fetched) == list(range(90, 101))
    assert ledger.cursor == 100


def test_custom_extractor_tags(reader, ledger, clock):
    tag = bytes.fromhex("cafebabe")
    reader.add_block(make_block(95, make_tx(1, data=tag + encode(["string"], ["custom"]))))
    orch = IngestionOrchestrator(
        reader, ledger, MONITORED, extractor=MessageExtractor([tag]), clock=clock
    )
    donation = orch.run_scan_cycle().new_donations[0]
    assert donation.message == "custom"
    assert donation.message_source == "protocol"


def test_process_transaction_records_with_receipt_block(orchestrator, reader, ledger):
    reader.add_block(make_block(42, make_tx(5, data=b"on demand!")))
    donation = orchestrator.process_transaction(tx_hash(5))
    assert donation is not None
    assert donation.block_number == 42
    assert donation.message == "on demand!"
    assert ledger.cursor is None


def test_process_transaction_returns_existing_without_fetching(orchestrator, reader):
    reader.add_block(make_block(42, make_tx(5)))
    first = orchestrator.process_transaction(tx_hash(5))
    calls = reader.tx_calls
    assert orchestrator.process_transaction(tx_hash(5)) is first
    assert reader.tx_calls == calls


def test_process_transaction_rejects_non_donations(orchestrator, reader, ledger):
    reader.add_block(make_block(42, make_tx(1, to=OTHER), make_tx(2, value=0)))
    assert orchestrator.process_transaction(tx_hash(1)) is None
    assert orchestrator.process_transaction(tx_hash(2)) is None
    assert len(ledger) == 0


def test_process_transaction_unknown_hash(orchestrator):
    assert orchestrator.process_transaction(tx_hash(404)) is None


def test_constructor_validation(reader, ledger):
    with pytest.raises(ValueError):
        IngestionOrchestrator(reader, ledger, "  ")
    with pytest.raises(ValueError):
        IngestionOrchestrator(reader, ledger, MONITORED, lookback_blocks=-1)
    with pytest.raises(ValueError):
        IngestionOrchestrator(reader, ledger, MONITORED, fetch_concurrency=0)


def test_message_preview():
    assert message_preview(None) is None
    assert message_preview("short") == "short"
    assert message_preview("x" * 60) == "x" * 50 + "..."


def test_small_protocol_donation_end_to_end():
    """0.001 ETH with a protocol-tagged "Hello" yields weight 1.0 and the message."""
    reader = FakeChainReader(height=500)
    ledger = DonationLedger()
    clock = FakeClock()
    payload = TAG + encode(["string"], ["Hello"])
    reader.add_block(make_block(495, make_tx(9, value=10**15, data=payload)))

    result = IngestionOrchestrator(reader, ledger, MONITORED, clock=clock).run_scan_cycle()

    assert result.count == 1
    donation = result.new_donations[0]
    assert donation.value_display == "0.001"
    assert donation.message == "Hello"
    assert donation.message_source == "protocol"
    assert donation.message_weight == 1.0
    assert [d.id for d in ledger.list_with_messages()] == [tx_hash(9)]
    assert ledger.cursor == 500


def test_plain_text_donation_to_lowercase_recipient():
    """Lowercase `to` against a checksum-cased monitored address, plain "thanks!" payload."""
    reader = FakeChainReader(height=20)
    ledger = DonationLedger()
    reader.add_block(make_block(15, make_tx(3, to=MONITORED.lower(), value=10**15, data=b"thanks!")))

    result = IngestionOrchestrator(reader, ledger, MONITORED, clock=FakeClock()).run_scan_cycle()

    donation = result.new_donations[0]
    assert donation.value_display == "0.001"
    assert donation.message == "thanks!"
    assert donation.message_source == "heuristic"
    assert donation.message_weight == 1.0


def test_undecodable_block_response_is_skipped_by_scan(ledger, clock):
    """A block whose HTTP body cannot be decoded lands in failed_blocks; the cycle still completes."""
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if body["method"] == "eth_blockNumber":
            result = "0x64"
        elif body["params"][0] == hex(95):
            return httpx.Response(200, headers={"Content-Encoding": "gzip"}, stream=httpx.ByteStream(b"garbage"))
        else:
            result = {"number": body["params"][0], "transactions": []}
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})

    reader = JsonRpcChainReader(
        "http://node.test/rpc",
        client=httpx.Client(transport=httpx.MockTransport(handler)),
        sleep=lambda _: None,
    )
    result = IngestionOrchestrator(reader, ledger, MONITORED, clock=clock).run_scan_cycle()

    assert result.failed_blocks == [95]
    assert result.end_block == 100
    assert ledger.cursor == 100
