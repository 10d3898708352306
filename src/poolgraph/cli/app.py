"""Root CLI app - entry point and command registration."""

from pathlib import Path

import typer

from poolgraph.config import get_settings
from poolgraph.config.settings import configure_logging

app = typer.Typer(
    name="poolgraph",
    help="poolgraph - Staking, farming and launchpad state derived from chain events.",
    no_args_is_help=True,
)


@app.callback()
def main(
    ctx: typer.Context,
    config_dir: Path | None = typer.Option(
        None, "--config-dir", "-C", help="Config directory (default: ./config or package config)"
    ),
    profile: str | None = typer.Option(
        None, "--profile", "-p", help="Config profile (e.g. dev) to overlay on default.toml"
    ),
) -> None:
    """Configure logging and store options in context."""
    settings = get_settings(profile, config_dir)
    configure_logging(settings)
    ctx.obj = {"settings": settings, "config_dir": config_dir, "profile": profile}


# Subcommands registered from other modules
from poolgraph.cli import entities, index, log, replay  # noqa: E402

app.add_typer(index.app, name="index")
app.add_typer(replay.app, name="replay")
app.add_typer(log.app, name="log")
app.add_typer(entities.app, name="entities")


def run() -> None:
    app()


if __name__ == "__main__":
    run()
