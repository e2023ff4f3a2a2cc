"""tierboard tier CLI commands.

Commands:
  tierboard tier list                  show tiers with their storage keys
  tierboard tier add <name> --color    append a tier
  tierboard tier rename <tier> <name>  rename (stored items follow)
  tierboard tier recolor <tier> <color>
  tierboard tier move <tier> <position>
  tierboard tier remove <tier>         delete a tier and its items
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, NoReturn

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from tierboard.board.context import BoardContext, TierSlot
from tierboard.cli.errors import err_tier_exists, err_tier_not_found
from tierboard.cli.session import notify_console, open_board
from tierboard.config import PRESET_COLORS
from tierboard.errors import ContainerNotFound, DuplicateTierError, StorageError

console = Console()

tier_app = typer.Typer(
    name="tier",
    help="Manage tiers (list, add, rename, recolor, move, remove).",
    add_completion=False,
)

_DbOption = Annotated[Path | None, typer.Option("--db", help="Board database path.")]


@tier_app.command("list")
def tier_list_cmd(db: _DbOption = None) -> None:
    """List tiers top to bottom."""
    with open_board(db) as board:
        if not board.tiers:
            console.print(
                "[yellow]No tiers yet.[/]\n"
                "  Add one:  tierboard tier add <NAME> --color <COLOR>"
            )
            raise typer.Exit(0)

        table = Table(title="Tiers", show_header=True, header_style="bold")
        table.add_column("#", justify="right")
        table.add_column("Name", style="bold")
        table.add_column("Color")
        table.add_column("Items", justify="right")
        table.add_column("Storage key", style="dim")
        for pos, slot in enumerate(board.tiers):
            table.add_row(
                str(pos),
                escape(slot.name),
                escape(slot.color),
                str(len(slot.container)),
                escape(slot.container.key),
            )
        console.print(table)


@tier_app.command("add")
def tier_add_cmd(
    name: Annotated[str, typer.Argument(help="Tier label.")],
    color: Annotated[
        str | None,
        typer.Option("--color", "-c", help="Tier color (default: next preset)."),
    ] = None,
    position: Annotated[
        int | None,
        typer.Option("--position", "-p", help="Insert position (default: bottom)."),
    ] = None,
    db: _DbOption = None,
) -> None:
    """Add a tier."""
    with open_board(db) as board:
        color = color or PRESET_COLORS[len(board.tiers) % len(PRESET_COLORS)]
        try:
            slot = board.add_tier(name, color, position=position)
        except DuplicateTierError:
            console.print(err_tier_exists(color, name))
            raise typer.Exit(1) from None
        except ValueError as exc:
            console.print(f"[red]Error:[/] {escape(str(exc))}")
            raise typer.Exit(1) from None
        except StorageError as exc:
            _storage_failed(exc)
        console.print(f"[green]✓[/] Added tier [bold]{escape(slot.name)}[/] ({escape(slot.color)})")


@tier_app.command("rename")
def tier_rename_cmd(
    tier: Annotated[str, typer.Argument(help="Tier name or id.")],
    name: Annotated[str, typer.Argument(help="New name.")],
    db: _DbOption = None,
) -> None:
    """Rename a tier; its items move to the new storage key."""
    with open_board(db) as board:
        slot = _tier(board, tier)
        try:
            board.rename_tier(slot.id, name)
        except ValueError as exc:
            console.print(f"[red]Error:[/] {escape(str(exc))}")
            raise typer.Exit(1) from None
        except StorageError as exc:
            _storage_failed(exc)
        console.print(f"[green]✓[/] Renamed to [bold]{escape(name)}[/] ({len(slot.container)} items kept)")


@tier_app.command("recolor")
def tier_recolor_cmd(
    tier: Annotated[str, typer.Argument(help="Tier name or id.")],
    color: Annotated[str, typer.Argument(help="New color, e.g. '#FF7F7F'.")],
    db: _DbOption = None,
) -> None:
    """Change a tier's color; its items move to the new storage key."""
    with open_board(db) as board:
        slot = _tier(board, tier)
        try:
            board.recolor_tier(slot.id, color)
        except ValueError as exc:
            console.print(f"[red]Error:[/] {escape(str(exc))}")
            raise typer.Exit(1) from None
        except StorageError as exc:
            _storage_failed(exc)
        console.print(f"[green]✓[/] {escape(slot.name)} is now {escape(color)}")


@tier_app.command("move")
def tier_move_cmd(
    tier: Annotated[str, typer.Argument(help="Tier name or id.")],
    position: Annotated[int, typer.Argument(help="New position (0 = top).")],
    db: _DbOption = None,
) -> None:
    """Reorder tiers."""
    with open_board(db) as board:
        slot = _tier(board, tier)
        try:
            board.move_tier(slot.id, position)
        except StorageError as exc:
            _storage_failed(exc)
        console.print(
            f"[green]✓[/] {escape(slot.name)} is now at position {board.tiers.index(slot)}"
        )


@tier_app.command("remove")
def tier_remove_cmd(
    tier: Annotated[str, typer.Argument(help="Tier name or id.")],
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
    db: _DbOption = None,
) -> None:
    """Delete a tier and every item in it."""
    with open_board(db) as board:
        slot = _tier(board, tier)
        count = len(slot.container)
        if not yes and count:
            if not typer.confirm(
                f"Delete tier '{slot.name}' and its {count} items?", default=False
            ):
                console.print("[dim]Cancelled.[/]")
                raise typer.Exit(0)
        try:
            board.remove_tier(slot.id)
        except StorageError as exc:
            _storage_failed(exc)
        console.print(f"[green]✓[/] Removed tier {escape(slot.name)} ({count} items deleted)")


def _tier(board: BoardContext, ref: str) -> TierSlot:
    try:
        return board.tier(ref)
    except ContainerNotFound:
        console.print(err_tier_not_found(ref, [s.name for s in board.tiers]))
        raise typer.Exit(1) from None


def _storage_failed(exc: StorageError) -> NoReturn:
    notify_console(exc)
    raise typer.Exit(1) from exc
