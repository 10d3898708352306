"""Log subcommand: export, stats."""

from __future__ import annotations

import typer

from poolgraph.storage.db import get_connection, init_schema
from poolgraph.storage.event_log import log_stats
from poolgraph.storage.export import export_events_to_parquet

app = typer.Typer(help="Raw event log export and statistics")


@app.command("export")
def export(
    ctx: typer.Context,
    address: str | None = typer.Option(None, "--address", "-a", help="Filter by contract address"),
    output: str = typer.Option("events.parquet", "--output", "-o", help="Output path"),
) -> None:
    """Export raw events to Parquet."""
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        count = export_events_to_parquet(conn, output, address=address.lower() if address else None)
        typer.echo(f"Exported {count} events to {output}")
    finally:
        conn.close()


@app.command("stats")
def stats(ctx: typer.Context) -> None:
    """Show event log statistics (counts, block range, by event type and contract)."""
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        s = log_stats(conn)
        typer.echo(f"Total events: {s['total_events']}")
        typer.echo(f"Min block: {s.get('min_block')}")
        typer.echo(f"Max block: {s.get('max_block')}")
        if s.get("by_event_type"):
            typer.echo("By event type:")
            for row in s["by_event_type"]:
                typer.echo(f"  {row['event_type']:<32} {row['count']}")
        if s.get("by_address"):
            typer.echo("By contract (top 20):")
            for row in s["by_address"]:
                typer.echo(f"  {row['address']}  {row['contract_kind']:<24} {row['count']}")
    finally:
        conn.close()
