"""Shared fixtures: in-memory store, static reader, temp DuckDB, raw event builder."""

import tempfile
from pathlib import Path

import pytest

from poolgraph.chain.reader import StaticContractReader
from poolgraph.storage.db import get_connection, init_schema
from poolgraph.storage.entities import InMemoryEntityStore
from poolgraph.sync.context import HandlerContext
from poolgraph.sync.dispatch import Dispatcher

STAKING_POOL = "0x" + "a1" * 20
STAKING_POOL_2 = "0x" + "a2" * 20
FARM = "0x" + "b1" * 20
LP_MANAGER = "0x" + "c1" * 20
TOKEN_FACTORY = "0x" + "d1" * 20
LG_FACTORY = "0x" + "d2" * 20
FACTORY_MANAGER = "0x" + "d3" * 20
PRESALE_FACTORY = "0x" + "e1" * 20
FAIRLAUNCH_FACTORY = "0x" + "e2" * 20
ALICE = "0x" + "11" * 20
BOB = "0x" + "22" * 20


def tx(n: int) -> str:
    return "0x" + f"{n:064x}"


def raw_event(
    event_type: str,
    kind: str,
    address: str,
    *,
    block: int = 100,
    ts: int = 1_700_000_000,
    tx_hash: str | None = None,
    log_index: int | None = 0,
    **payload,
) -> dict:
    return {
        "event_type": event_type,
        "contract_kind": kind,
        "address": address,
        "block_number": block,
        "block_timestamp": ts,
        "tx_hash": tx_hash or tx(block),
        "log_index": log_index,
        **payload,
    }


@pytest.fixture
def store():
    return InMemoryEntityStore()


@pytest.fixture
def reader():
    return StaticContractReader()


@pytest.fixture
def ctx(store, reader):
    return HandlerContext(store=store, reader=reader)


@pytest.fixture
def dispatcher(ctx):
    return Dispatcher(ctx)


@pytest.fixture
def temp_db():
    tmp = tempfile.mkdtemp()
    path = Path(tmp) / "test.duckdb"
    conn = get_connection(path)
    init_schema(conn)
    yield conn
    conn.close()
    path.unlink(missing_ok=True)
    Path(tmp).rmdir()
