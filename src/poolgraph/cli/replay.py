"""Replay subcommand: run."""

from __future__ import annotations

import typer

from poolgraph.chain.reader import ContractReader, NullContractReader
from poolgraph.cli.index import web3_reader
from poolgraph.replay.engine import replay_into
from poolgraph.storage.db import get_connection, init_schema
from poolgraph.storage.entities import DuckDBEntityStore, InMemoryEntityStore

app = typer.Typer(help="Deterministic replay of the raw event log")


@app.command("run")
def run_replay(
    ctx: typer.Context,
    offline: bool = typer.Option(False, "--offline", help="Do not read contract state (every read reverts)"),
    persist: bool = typer.Option(
        False, "--persist", help="Write rebuilt entities back to the database (default: in memory only)"
    ),
) -> None:
    """Rebuild entities from the raw event log and print entity counts."""
    settings = ctx.obj["settings"]
    reader: ContractReader = NullContractReader() if offline else web3_reader(settings)
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        if persist:
            conn.execute("DELETE FROM entities")
            store = DuckDBEntityStore(conn)
        else:
            store = InMemoryEntityStore()
        stats = replay_into(
            conn,
            store,
            reader,
            whitelisted_pools=settings.whitelisted_pools,
            on_malformed=settings.on_malformed,
        )
        typer.echo(
            f"Replayed {stats['processed']} events "
            f"({stats['malformed']} malformed, {stats['unrouted']} unrouted)"
        )
        for entity_type, n in store.count_by_type().items():
            typer.echo(f"  {entity_type:<28} {n}")
    finally:
        conn.close()
