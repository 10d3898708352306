"""Deterministic replay from the raw event log into an entity store."""

from __future__ import annotations

import json
from collections.abc import Iterator
from typing import Any

import structlog

from poolgraph.chain.reader import ContractReader
from poolgraph.storage.entities import EntityStore
from poolgraph.sync.context import HandlerContext
from poolgraph.sync.dispatch import Dispatcher

log = structlog.get_logger(__name__)


def stream_raw_events(
    conn: Any,
    address: str | None = None,
    start_block: int | None = None,
    end_block: int | None = None,
) -> Iterator[dict[str, Any]]:
    """Yield raw event payloads in log order, optionally filtered by contract and block range."""
    conditions = []
    params: list[Any] = []
    if address:
        conditions.append("address = ?")
        params.append(address.lower())
    if start_block is not None:
        conditions.append("block_number >= ?")
        params.append(start_block)
    if end_block is not None:
        conditions.append("block_number <= ?")
        params.append(end_block)
    where = " AND ".join(conditions) if conditions else "1=1"
    sql = f"SELECT payload FROM raw_events WHERE {where} ORDER BY id ASC"
    for (payload_json,) in conn.execute(sql, params).fetchall():
        try:
            payload = json.loads(payload_json) if isinstance(payload_json, str) else payload_json
        except (TypeError, json.JSONDecodeError):
            log.warning("raw_event_unreadable", payload=str(payload_json)[:80])
            continue
        yield payload


def replay_events(
    conn: Any,
    dispatcher: Dispatcher,
    address: str | None = None,
    start_block: int | None = None,
    end_block: int | None = None,
) -> dict[str, int]:
    """Re-dispatch logged events in order. Same log + same reader -> same entities."""
    dispatcher.process_many(stream_raw_events(conn, address=address, start_block=start_block, end_block=end_block))
    stats = dispatcher.stats()
    log.info("replay_finished", **stats)
    return stats


def replay_into(
    conn: Any,
    store: EntityStore,
    reader: ContractReader,
    whitelisted_pools: list[str] | None = None,
    on_malformed: str = "skip",
) -> dict[str, int]:
    """Rebuild all entities of the log into store."""
    ctx = HandlerContext(store=store, reader=reader, whitelisted_pools=list(whitelisted_pools or []))
    return replay_events(conn, Dispatcher(ctx, on_malformed=on_malformed))
