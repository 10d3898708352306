"""Index subcommand: run (follow the chain), file (ingest a JSONL event dump), status."""

from __future__ import annotations

import signal
import threading
from pathlib import Path

import typer

from poolgraph.chain.client import get_web3_client
from poolgraph.chain.reader import ContractReader, NullContractReader, Web3ContractReader
from poolgraph.config.settings import Settings
from poolgraph.errors import PoolgraphError
from poolgraph.ingestion.manager import IndexerManager
from poolgraph.ingestion.source import Web3EventSource
from poolgraph.storage.cursors import list_cursors
from poolgraph.storage.db import get_connection, init_schema
from poolgraph.storage.entities import DuckDBEntityStore
from poolgraph.sync.context import HandlerContext
from poolgraph.sync.dispatch import Dispatcher

app = typer.Typer(help="Index chain events into derived entities")


def build_dispatcher(settings: Settings, conn, reader: ContractReader) -> Dispatcher:
    ctx = HandlerContext(
        store=DuckDBEntityStore(conn),
        reader=reader,
        whitelisted_pools=settings.whitelisted_pools,
    )
    return Dispatcher(ctx, on_malformed=settings.on_malformed)


def web3_reader(settings: Settings) -> Web3ContractReader:
    w3 = get_web3_client(settings.rpc_url, settings.rpc_timeout_sec)
    return Web3ContractReader(w3, settings.contract_kinds)


@app.command("run")
def run(ctx: typer.Context) -> None:
    """Follow the chain from the stored cursors (Ctrl+C to stop)."""
    settings = ctx.obj["settings"]
    contracts = settings.contract_kinds
    if not contracts:
        typer.echo("No contracts configured. Add addresses under [contracts].")
        raise typer.Exit(1)
    w3 = get_web3_client(settings.rpc_url, settings.rpc_timeout_sec)
    conn = get_connection(settings.db_path)
    init_schema(conn)
    source = Web3EventSource(
        w3,
        contracts,
        call_selectors=settings.call_selectors,
        blocks_per_call=settings.blocks_per_call,
    )
    manager = IndexerManager(
        conn,
        build_dispatcher(settings, conn, Web3ContractReader(w3, contracts)),
        source=source,
        event_batch_size=settings.event_batch_size,
        start_block=settings.start_block,
        confirmations=settings.confirmations,
        poll_interval_sec=settings.poll_interval_sec,
    )
    stop_event = threading.Event()

    def shutdown(signum, frame) -> None:
        stop_event.set()

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)
    try:
        typer.echo(f"Indexing {len(contracts)} contract(s) (Ctrl+C to stop)...")
        manager.run(stop_event=stop_event)
    except PoolgraphError as e:
        typer.echo(f"Indexing stopped: {e}", err=True)
        raise typer.Exit(1) from e
    finally:
        manager.close()
        conn.close()
    typer.echo("Stopped.")


@app.command("file")
def ingest_file(
    ctx: typer.Context,
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON-lines file of raw events"),
    offline: bool = typer.Option(False, "--offline", help="Do not read contract state (every read reverts)"),
) -> None:
    """Persist and dispatch raw events from a JSONL file, in file order."""
    settings = ctx.obj["settings"]
    reader: ContractReader = NullContractReader() if offline else web3_reader(settings)
    conn = get_connection(settings.db_path)
    init_schema(conn)
    manager = IndexerManager(conn, build_dispatcher(settings, conn, reader), event_batch_size=settings.event_batch_size)
    try:
        n = manager.ingest_file(path)
        summary = manager.get_status()
    except PoolgraphError as e:
        typer.echo(f"Ingestion stopped: {e}", err=True)
        raise typer.Exit(1) from e
    finally:
        manager.close()
        conn.close()
    typer.echo(
        f"Ingested {n} events: {summary['processed']} handled, "
        f"{summary['malformed']} malformed, {summary['unrouted']} unrouted"
    )


@app.command("status")
def status(ctx: typer.Context) -> None:
    """Show per-contract cursors."""
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        rows = list_cursors(conn)
        if not rows:
            typer.echo("No cursors yet.")
        for row in rows:
            typer.echo(f"  {row['address']}  {row['contract_kind']:<24} block {row['last_block']}")
    finally:
        conn.close()
