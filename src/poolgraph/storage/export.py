"""Export raw events and entities to Parquet."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection


def _out_path(output_path: str | Path) -> str:
    path = Path(output_path).resolve()
    path.parent.mkdir(parents=True, exist_ok=True)
    return str(path).replace("\\", "\\\\").replace("'", "''")


def export_events_to_parquet(
    conn: DuckDBPyConnection,
    output_path: str | Path,
    address: str | None = None,
) -> int:
    """Export raw_events to a Parquet file. Optional filter by contract address. Returns row count."""
    path_str = _out_path(output_path)
    if address:
        conn.execute(
            f"COPY (SELECT * FROM raw_events WHERE address = ? ORDER BY id) TO '{path_str}' (FORMAT PARQUET)",
            [address],
        )
        count = conn.execute("SELECT COUNT(*) FROM raw_events WHERE address = ?", [address]).fetchone()[0]
    else:
        conn.execute(
            f"COPY (SELECT * FROM raw_events ORDER BY id) TO '{path_str}' (FORMAT PARQUET)",
        )
        count = conn.execute("SELECT COUNT(*) FROM raw_events").fetchone()[0]
    return count


def export_entities_to_parquet(
    conn: DuckDBPyConnection,
    output_path: str | Path,
    entity_type: str,
) -> int:
    """Export one entity type (id + JSON data) to Parquet. Returns row count."""
    path_str = _out_path(output_path)
    conn.execute(
        f"COPY (SELECT id, data, updated_at FROM entities WHERE entity_type = ? ORDER BY id) TO '{path_str}' (FORMAT PARQUET)",
        [entity_type],
    )
    return conn.execute("SELECT COUNT(*) FROM entities WHERE entity_type = ?", [entity_type]).fetchone()[0]
