"""DuckDB connection and schema init."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import duckdb

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

SCHEMA_SQL = """
-- Sequences for auto-increment IDs
CREATE SEQUENCE IF NOT EXISTS event_seq START 1;

-- Raw chain event log (append-only, event sourcing)
CREATE TABLE IF NOT EXISTS raw_events (
    id              BIGINT PRIMARY KEY DEFAULT nextval('event_seq'),
    contract_kind   VARCHAR NOT NULL,
    event_type      VARCHAR NOT NULL,
    address         VARCHAR NOT NULL,
    block_number    BIGINT NOT NULL,
    log_index       INTEGER,
    tx_hash         VARCHAR NOT NULL,
    block_timestamp BIGINT NOT NULL,
    ingest_ts       BIGINT NOT NULL,
    payload         VARCHAR NOT NULL
);

-- Derived entities, one row per (entity_type, id), data is the model JSON
CREATE TABLE IF NOT EXISTS entities (
    entity_type     VARCHAR NOT NULL,
    id              VARCHAR NOT NULL,
    data            VARCHAR NOT NULL,
    updated_at      BIGINT NOT NULL,
    PRIMARY KEY (entity_type, id)
);

-- Last fully indexed block per contract address
CREATE TABLE IF NOT EXISTS cursors (
    address         VARCHAR PRIMARY KEY,
    contract_kind   VARCHAR NOT NULL,
    last_block      BIGINT NOT NULL,
    updated_at      BIGINT NOT NULL
);
"""


def get_connection(db_path: str | Path, read_only: bool = False) -> DuckDBPyConnection:
    """Return a DuckDB connection. Caller must close or use as context manager.
    Use read_only=True when another process may be writing (e.g. poolgraph index run)
    so inspection commands can read while the indexer holds the write lock."""
    path = Path(db_path)
    if not read_only:
        path.parent.mkdir(parents=True, exist_ok=True)
    return duckdb.connect(str(path), read_only=read_only)


def init_schema(conn: DuckDBPyConnection) -> None:
    """Create tables and sequences if they do not exist."""
    for stmt in SCHEMA_SQL.split(";"):
        stmt = stmt.strip()
        if stmt:
            try:
                conn.execute(stmt)
            except duckdb.Error as e:
                if "already exists" not in str(e).lower():
                    raise
