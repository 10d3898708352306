"""Entities subcommand: show, list, stats, export."""

from __future__ import annotations

import json

import typer

from poolgraph.models.entities import ENTITY_TYPES, Entity
from poolgraph.storage.db import get_connection, init_schema
from poolgraph.storage.entities import DuckDBEntityStore
from poolgraph.storage.export import export_entities_to_parquet

app = typer.Typer(help="Inspect derived entities")


def _model(entity_type: str) -> type[Entity]:
    model = ENTITY_TYPES.get(entity_type)
    if model is None:
        typer.echo(f"Unknown entity type {entity_type!r}. Known: {', '.join(sorted(ENTITY_TYPES))}", err=True)
        raise typer.Exit(1)
    return model


@app.command("show")
def show(
    ctx: typer.Context,
    entity_type: str = typer.Argument(..., help="Entity type, e.g. StakingPool"),
    entity_id: str = typer.Argument(..., help="Entity id"),
) -> None:
    """Print one entity as JSON."""
    model = _model(entity_type)
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        entity = DuckDBEntityStore(conn).load(model, entity_id)
        if entity is None:
            typer.echo(f"{entity_type} {entity_id} not found")
            raise typer.Exit(1)
        typer.echo(json.dumps(entity.model_dump(mode="json"), indent=2))
    finally:
        conn.close()


@app.command("list")
def list_entities(
    ctx: typer.Context,
    entity_type: str = typer.Argument(..., help="Entity type, e.g. Participant"),
    limit: int = typer.Option(50, "--limit", "-n", help="Max rows"),
) -> None:
    """List entity ids of one type."""
    model = _model(entity_type)
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        rows = DuckDBEntityStore(conn).list(model)
        for entity in rows[:limit]:
            typer.echo(entity.id)
        if len(rows) > limit:
            typer.echo(f"... and {len(rows) - limit} more")
    finally:
        conn.close()


@app.command("stats")
def stats(ctx: typer.Context) -> None:
    """Entity counts by type."""
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        counts = DuckDBEntityStore(conn).count_by_type()
        if not counts:
            typer.echo("No entities yet.")
        for entity_type, n in counts.items():
            typer.echo(f"  {entity_type:<28} {n}")
    finally:
        conn.close()


@app.command("export")
def export(
    ctx: typer.Context,
    entity_type: str = typer.Argument(..., help="Entity type"),
    output: str = typer.Option("entities.parquet", "--output", "-o", help="Output path"),
) -> None:
    """Export one entity type to Parquet."""
    _model(entity_type)
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        count = export_entities_to_parquet(conn, output, entity_type)
        typer.echo(f"Exported {count} {entity_type} rows to {output}")
    finally:
        conn.close()
