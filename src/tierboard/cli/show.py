"""tierboard show: render the board as rich tables."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from tierboard.board.codec import image_dimensions
from tierboard.board.container import ContainerModel
from tierboard.board.context import BoardContext, require_context
from tierboard.cli.session import open_board

console = Console()

_HEX_RE = re.compile(r"#[0-9a-fA-F]{6}")


def show_cmd(
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Board database path."),
    ] = None,
    details: Annotated[
        bool,
        typer.Option("--details", "-d", help="List every item with size, link and notes."),
    ] = False,
) -> None:
    """Show tiers and the holding area."""
    with open_board(db) as board:
        console.print(board_table(board))
        if details:
            console.print(items_table(board))
        usage = board.store.usage()
        capacity = board.store.capacity_bytes
        limit = f"{capacity:,}" if capacity is not None else "unlimited"
        console.print(f"\n  [dim]Storage: {usage:,} / {limit} bytes[/]")


def board_table(board: BoardContext | None) -> Table:
    """One row per tier, holding area last."""
    board = require_context(board, "board_table")
    table = Table(title="Tier Board", show_header=True, header_style="bold", show_lines=True)
    table.add_column("Tier", min_width=8, justify="center")
    table.add_column("Items")

    for slot in board.tiers:
        label = f"[black on {slot.color}] {escape(slot.name)} [/]" if _is_hex(slot.color) else escape(slot.name)
        table.add_row(label, _slot_text(slot.container))
    table.add_row("[bold]Holding[/]", _slot_text(board.holding_area))
    return table


def items_table(board: BoardContext | None) -> Table:
    board = require_context(board, "items_table")
    table = Table(title="Items", show_header=True, header_style="bold")
    table.add_column("ID", style="bold")
    table.add_column("Container")
    table.add_column("Pos", justify="right")
    table.add_column("Size")
    table.add_column("Link")
    table.add_column("Notes")

    for container in board.containers():
        for pos, item in enumerate(container.list()):
            dims = image_dimensions(item.image_data)
            size = f"{dims[0]}x{dims[1]}" if dims else "?"
            table.add_row(
                str(item.id),
                escape(container.key),
                str(pos),
                size,
                escape(item.link_url or ""),
                escape(item.notes or ""),
            )
    return table


def _slot_text(container: ContainerModel) -> str:
    parts: list[str] = []
    for slot in container.slots():
        if slot.item is None:
            parts.append(f"[dim]{escape(slot.text)}[/]")
            continue
        marks = ("🔗" if slot.item.has_link else "") + ("📝" if slot.item.has_notes else "")
        parts.append(f"{slot.item.id}{marks}")
    return "  ".join(parts)


def _is_hex(color: str) -> bool:
    return _HEX_RE.fullmatch(color) is not None
