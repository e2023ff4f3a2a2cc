"""tierboard init: create a board database with the default tiers."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape

from tierboard.cli.session import open_board

console = Console()

_CONFIG_TEMPLATE = """\
# Tierboard project configuration.
storage:
  path: {db}
  capacity_bytes: 5242880   # null = unlimited

codec:
  base_font_size: 16        # px; output height = base_font_size * height_rem
  height_rem: 5
  format: JPEG              # JPEG | WEBP
  quality: 1.0
  timeout_seconds: 10

board:
  open_links_in_new_tab: true
"""


def init_cmd(
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Board database path (default: storage.path from config)."),
    ] = None,
    write_config: Annotated[
        bool,
        typer.Option("--write-config", help="Also write a tierboard.yaml template."),
    ] = False,
) -> None:
    """Create the board database and seed the default tiers."""
    with open_board(db, create=True) as board:
        created = board.seed_tiers()
        if created:
            names = ", ".join(escape(slot.name) for slot in created)
            console.print(f"[green]✓[/] Board ready with tiers: {names}")
        else:
            console.print(f"[dim]Board already has {len(board.tiers)} tiers, nothing to seed.[/]")

    if write_config:
        target = Path("tierboard.yaml")
        if target.exists():
            console.print("[yellow]tierboard.yaml already exists, left unchanged.[/]")
        else:
            target.write_text(
                _CONFIG_TEMPLATE.format(db=db or ".tierboard.db"), encoding="utf-8"
            )
            console.print("[green]✓[/] Wrote tierboard.yaml")
