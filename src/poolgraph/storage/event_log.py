"""Raw chain event append and query - event sourcing log."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

RawEventRow = tuple[str, str, str, int, int | None, str, int, int, str]

_INSERT_SQL = """
    INSERT INTO raw_events (contract_kind, event_type, address, block_number, log_index, tx_hash, block_timestamp, ingest_ts, payload)
    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
"""


def prepare_raw_row(payload: dict[str, Any], ingest_ts: int) -> RawEventRow:
    """Build a raw_events row from a raw event dict (as produced by the decoder or a JSONL file)."""
    log_index = payload.get("log_index")
    return (
        str(payload.get("contract_kind", "unknown")),
        str(payload.get("event_type", "unknown")),
        str(payload.get("address") or ""),
        int(payload.get("block_number") or 0),
        int(log_index) if log_index is not None else None,
        str(payload.get("tx_hash") or ""),
        int(payload.get("block_timestamp") or 0),
        ingest_ts,
        json.dumps(payload),
    )


def append_raw_event(conn: DuckDBPyConnection, payload: dict[str, Any], ingest_ts: int) -> None:
    """Append a single raw event. Prefer append_raw_events_batch for throughput."""
    conn.execute(_INSERT_SQL, list(prepare_raw_row(payload, ingest_ts)))


def append_raw_events_batch(conn: DuckDBPyConnection, rows: list[RawEventRow]) -> None:
    """Append multiple prepared raw_events rows."""
    if not rows:
        return
    conn.executemany(_INSERT_SQL, rows)


def log_stats(conn: DuckDBPyConnection) -> dict[str, Any]:
    """Return event log statistics: total count, block range, count by event type and contract."""
    total = conn.execute("SELECT COUNT(*) FROM raw_events").fetchone()[0]
    range_row = conn.execute(
        "SELECT MIN(block_number), MAX(block_number) FROM raw_events"
    ).fetchone()
    min_block, max_block = range_row[0], range_row[1]
    by_type = conn.execute(
        "SELECT event_type, COUNT(*) AS cnt FROM raw_events GROUP BY event_type ORDER BY cnt DESC"
    ).fetchall()
    by_address = conn.execute(
        "SELECT address, contract_kind, COUNT(*) AS cnt FROM raw_events GROUP BY address, contract_kind ORDER BY cnt DESC LIMIT 20"
    ).fetchall()
    return {
        "total_events": total,
        "min_block": min_block,
        "max_block": max_block,
        "by_event_type": [{"event_type": r[0], "count": r[1]} for r in by_type],
        "by_address": [{"address": r[0], "contract_kind": r[1], "count": r[2]} for r in by_address],
    }
