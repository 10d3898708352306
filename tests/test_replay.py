"""Replay determinism and file / chain ingestion through the indexer."""

import json
import time

import requests
from conftest import ALICE, BOB, FARM, PRESALE_FACTORY, STAKING_POOL, TOKEN_FACTORY, raw_event
from structlog.testing import capture_logs

from poolgraph.chain.reader import NullContractReader, StaticContractReader
from poolgraph.ingestion.manager import IndexerManager
from poolgraph.ingestion.source import Web3EventSource, block_windows, event_order
from poolgraph.models.entities import (
    ENTITY_TYPES,
    LaunchpadStats,
    Participant,
    Presale,
    StakingPool,
    participant_id,
)
from poolgraph.models.events import ContractKind
from poolgraph.replay.engine import replay_into, stream_raw_events
from poolgraph.storage.cursors import get_cursor
from poolgraph.storage.entities import DuckDBEntityStore, InMemoryEntityStore
from poolgraph.storage.event_log import append_raw_event
from poolgraph.sync.context import HandlerContext
from poolgraph.sync.dispatch import Dispatcher

EVENTS = [
    raw_event("Staked", "staking", STAKING_POOL, block=1, ts=10, user=ALICE, amount=100),
    raw_event("Staked", "staking", STAKING_POOL, block=2, ts=20, user=BOB, amount=30),
    raw_event("Withdrawn", "staking", STAKING_POOL, block=3, ts=30, user=ALICE, amount=40),
    raw_event("Staked", "staking", STAKING_POOL, block=4, ts=40, user=ALICE),  # malformed
    raw_event("Staked", "farming", FARM, block=5, ts=50, user=ALICE, amount=9),
    raw_event(
        "TokenCreated",
        "standard_token_factory",
        TOKEN_FACTORY,
        block=6,
        ts=86_400,
        token_address="0x" + "99" * 20,
        creator=ALICE,
        name="N",
        symbol="S",
        total_supply=1,
    ),
]


def snapshot(store):
    return {name: store.list(model) for name, model in ENTITY_TYPES.items()}


def fresh_dispatcher(conn):
    return Dispatcher(HandlerContext(store=DuckDBEntityStore(conn), reader=NullContractReader()))


def test_replay_determinism(temp_db):
    """Same log + same reader -> identical entities."""
    for i, payload in enumerate(EVENTS):
        append_raw_event(temp_db, payload, ingest_ts=i)

    store1, store2 = InMemoryEntityStore(), InMemoryEntityStore()
    stats1 = replay_into(temp_db, store1, NullContractReader())
    stats2 = replay_into(temp_db, store2, NullContractReader())

    assert stats1 == stats2 == {"processed": 5, "malformed": 1, "unrouted": 0}
    assert snapshot(store1) == snapshot(store2)
    assert store1.load(StakingPool, STAKING_POOL).total_staked == 90
    assert store1.load(LaunchpadStats, "1").total_tokens_created == 1


def test_stream_filters_by_block(temp_db):
    for i, payload in enumerate(EVENTS):
        append_raw_event(temp_db, payload, ingest_ts=i)
    blocks = [e["block_number"] for e in stream_raw_events(temp_db, start_block=2, end_block=4)]
    assert blocks == [2, 3, 4]
    assert len(list(stream_raw_events(temp_db, address=FARM))) == 1


def test_file_ingest_matches_replay(temp_db, tmp_path):
    path = tmp_path / "events.jsonl"
    path.write_text("\n".join(json.dumps(e) for e in EVENTS) + "\n\nnot json\n")

    manager = IndexerManager(temp_db, fresh_dispatcher(temp_db), event_batch_size=2)
    assert manager.ingest_file(path) == len(EVENTS)
    manager.close()

    live = DuckDBEntityStore(temp_db)
    replayed = InMemoryEntityStore()
    replay_into(temp_db, replayed, NullContractReader())
    assert replayed.load(Participant, participant_id(ALICE, STAKING_POOL)) == live.load(
        Participant, participant_id(ALICE, STAKING_POOL)
    )
    assert snapshot(replayed) == snapshot(live)


def test_event_order_puts_calls_last_in_block():
    raws = [
        {"block_number": 2, "log_index": 0},
        {"block_number": 1, "log_index": None},
        {"block_number": 1, "log_index": 3},
    ]
    assert [(r["block_number"], r["log_index"]) for r in sorted(raws, key=event_order)] == [
        (1, 3),
        (1, None),
        (2, 0),
    ]


def test_block_windows():
    assert list(block_windows(1, 5, 2)) == [(1, 2), (3, 4), (5, 5)]
    assert list(block_windows(6, 5, 2)) == []


SELECTOR = "0x12345678"


class FakeEth:
    """Chain of blocks 0..head; block 3 holds the factory calls."""

    def __init__(self, head):
        self.block_number = head
        self.receipts = {"0x01": 1, "0x02": 0, "0x03": 1}

    def get_block(self, number, full_transactions=False):
        txs = []
        if number == 3:
            txs = [
                {"hash": "0x01", "to": PRESALE_FACTORY, "from": BOB, "input": SELECTOR + "00" * 32, "blockNumber": 3},
                {"hash": "0x02", "to": PRESALE_FACTORY, "from": BOB, "input": SELECTOR, "blockNumber": 3},
                {"hash": "0x03", "to": PRESALE_FACTORY, "from": BOB, "input": "0xdeadbeef", "blockNumber": 3},
                {"hash": "0x04", "to": None, "from": BOB, "input": SELECTOR, "blockNumber": 3},
            ]
        return {"timestamp": 1_000 + number, "transactions": txs}

    def get_transaction_receipt(self, tx_hash):
        return {"status": self.receipts[tx_hash]}

    def get_logs(self, params):
        return []


class FakeWeb3:
    def __init__(self, head):
        self.eth = FakeEth(head)

    def to_checksum_address(self, address):
        return address


def test_sync_once_indexes_factory_calls_and_advances_cursors(temp_db):
    source = Web3EventSource(
        FakeWeb3(head=5),
        {PRESALE_FACTORY: ContractKind.PRESALE_FACTORY},
        call_selectors={ContractKind.PRESALE_FACTORY: SELECTOR},
        blocks_per_call=2,
    )
    dispatcher = fresh_dispatcher(temp_db)
    manager = IndexerManager(temp_db, dispatcher, source=source, start_block=1)

    assert manager.sync_once() == 1
    assert get_cursor(temp_db, PRESALE_FACTORY) == 5
    (presale,) = DuckDBEntityStore(temp_db).list(Presale)
    assert presale.id == "0x01-3"
    assert presale.creator == BOB
    assert presale.created_at == 1_003

    # nothing new until the head moves
    assert manager.sync_once() == 0
    assert manager.get_status()["processed"] == 1


def test_sync_once_respects_confirmations(temp_db):
    source = Web3EventSource(
        FakeWeb3(head=3),
        {PRESALE_FACTORY: ContractKind.PRESALE_FACTORY},
        call_selectors={ContractKind.PRESALE_FACTORY: SELECTOR},
    )
    manager = IndexerManager(temp_db, fresh_dispatcher(temp_db), source=source, start_block=1, confirmations=1)

    assert manager.sync_once() == 0
    assert get_cursor(temp_db, PRESALE_FACTORY) == 2


def test_static_reader_records_calls():
    reader = StaticContractReader({(STAKING_POOL, "totalSupply"): 5})
    assert reader.call(STAKING_POOL.upper().replace("0X", "0x"), "totalSupply").value == 5
    assert reader.call(STAKING_POOL, "rewardRate").reverted
    assert len(reader.calls) == 2


class FlakyEth(FakeEth):
    """get_logs drops the connection once, then answers."""

    def __init__(self, head):
        super().__init__(head)
        self.log_calls = 0

    def get_logs(self, params):
        self.log_calls += 1
        if self.log_calls == 1:
            raise requests.exceptions.ConnectionError("connection reset")
        return []


def test_get_logs_retried_after_transport_error(monkeypatch):
    monkeypatch.setattr(time, "sleep", lambda seconds: None)
    w3 = FakeWeb3(head=5)
    w3.eth = FlakyEth(head=5)
    source = Web3EventSource(w3, {STAKING_POOL: ContractKind.STAKING})

    assert source.fetch_window(1, 5) == []
    assert w3.eth.log_calls == 2


def test_block_timestamps_do_not_outlive_their_window():
    source = Web3EventSource(
        FakeWeb3(head=5),
        {PRESALE_FACTORY: ContractKind.PRESALE_FACTORY},
        call_selectors={ContractKind.PRESALE_FACTORY: SELECTOR},
    )
    for start, end in block_windows(1, 5, 2):
        source.fetch_window(start, end)
        assert source._timestamps == {}


def test_window_log_counts_each_window(temp_db):
    source = Web3EventSource(
        FakeWeb3(head=5),
        {PRESALE_FACTORY: ContractKind.PRESALE_FACTORY},
        call_selectors={ContractKind.PRESALE_FACTORY: SELECTOR},
        blocks_per_call=2,
    )
    manager = IndexerManager(temp_db, fresh_dispatcher(temp_db), source=source, start_block=1)

    with capture_logs() as logs:
        assert manager.sync_once() == 1

    windows = [entry for entry in logs if entry["event"] == "window_indexed"]
    assert [(w["from_block"], w["events"], w["total_events"]) for w in windows] == [
        (1, 0, 0),
        (3, 1, 1),
        (5, 0, 1),
    ]
