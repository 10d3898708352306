"""Per-contract indexing cursors (last fully processed block)."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection


def get_cursor(conn: DuckDBPyConnection, address: str) -> int | None:
    row = conn.execute("SELECT last_block FROM cursors WHERE address = ?", [address]).fetchone()
    return int(row[0]) if row else None


def set_cursor(conn: DuckDBPyConnection, address: str, contract_kind: str, last_block: int) -> None:
    conn.execute(
        """
        INSERT INTO cursors (address, contract_kind, last_block, updated_at)
        VALUES (?, ?, ?, ?)
        ON CONFLICT (address) DO UPDATE SET
            contract_kind = excluded.contract_kind,
            last_block = excluded.last_block,
            updated_at = excluded.updated_at
        """,
        [address, contract_kind, last_block, int(time.time() * 1000)],
    )


def list_cursors(conn: DuckDBPyConnection) -> list[dict]:
    rows = conn.execute(
        "SELECT address, contract_kind, last_block, updated_at FROM cursors ORDER BY address"
    ).fetchall()
    columns = ["address", "contract_kind", "last_block", "updated_at"]
    return [dict(zip(columns, r)) for r in rows]
