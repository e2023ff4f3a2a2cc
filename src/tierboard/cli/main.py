"""Tierboard CLI entry point."""

from __future__ import annotations

import importlib.metadata
import logging
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler

from tierboard.cli.init import init_cmd
from tierboard.cli.items import (
    add_cmd,
    delete_cmd,
    export_cmd,
    link_cmd,
    move_cmd,
    note_cmd,
    open_cmd,
)
from tierboard.cli.show import show_cmd
from tierboard.cli.tiers import tier_app


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"tierboard {_version()}")
        raise typer.Exit()


def _version() -> str:
    try:
        return importlib.metadata.version("tierboard")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def configure_logging(verbose: bool) -> None:
    """Route library logging through rich on stderr."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[
            RichHandler(
                console=Console(stderr=True),
                rich_tracebacks=True,
                show_path=False,
            )
        ],
        force=True,
    )


app = typer.Typer(
    name="tierboard",
    help=(
        "Tierboard: rank images into tiers.\n\n"
        "  tierboard add IMG...        Drop images into the holding area.\n"
        "  tierboard move ID --to S    Drag an item into a tier."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log debug details to stderr."),
    ] = False,
) -> None:
    """Tierboard: rank images into tiers."""
    configure_logging(verbose)


app.command("init")(init_cmd)
app.command("show")(show_cmd)
app.command("add")(add_cmd)
app.command("move")(move_cmd)
app.command("link")(link_cmd)
app.command("note")(note_cmd)
app.command("delete")(delete_cmd)
app.command("open")(open_cmd)
app.command("export")(export_cmd)
app.add_typer(tier_app, name="tier")


@app.command("version")
def version_cmd() -> None:
    """Show the installed Tierboard version."""
    typer.echo(f"tierboard {_version()}")


if __name__ == "__main__":
    app()
