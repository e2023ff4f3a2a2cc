"""Tierboard rich error messages with actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from tierboard.cli.errors import err_no_board
    console.print(err_no_board(".tierboard.db"))
    raise typer.Exit(1)
"""

from __future__ import annotations

from rich.markup import escape

from tierboard.errors import StorageCapacityExceeded, StorageError


def err_no_board(db_path: str = ".tierboard.db") -> str:
    """No board database at *db_path*."""
    return (
        f"[red]Error:[/] No board found at '{escape(db_path)}'.\n"
        "  Run:  tierboard init"
    )


def err_storage_full(exc: StorageCapacityExceeded) -> str:
    """A save was refused because the store is full.

    The in-memory board is still intact for this session, but whatever
    failed to save will be missing after a reload.
    """
    limit = f"{exc.capacity:,} bytes" if exc.capacity is not None else "the disk limit"
    return (
        f"[red]Storage is full :([/] Could not save '{escape(exc.key)}' "
        f"({exc.required:,} bytes needed, limit {limit}).\n"
        "  Changes since the last successful save will be lost on reload.\n"
        "  Remove some images:  tierboard delete <ID>\n"
        "  or raise storage.capacity_bytes in tierboard.yaml"
    )


def err_storage_failed(exc: StorageError) -> str:
    """The database refused a write for a reason other than capacity."""
    return (
        f"[red]Could not save[/] '{escape(exc.key)}': {escape(str(exc.__cause__ or exc))}\n"
        "  Changes since the last successful save will be lost on reload.\n"
        "  Check the path is writable and no other tierboard process holds the board open."
    )


def err_item_not_found(item_id: int) -> str:
    """Item id is not on the board."""
    return (
        f"[red]Error:[/] Item {item_id} is not on the board.\n"
        "  Run:  tierboard show --details  to list item ids."
    )


def err_duplicate_item(item_id: int, label: str) -> str:
    """Destination already holds an item with the same id."""
    return (
        f"[red]Error:[/] '{escape(label)}' already holds an item with id {item_id}.\n"
        "  Run:  tierboard show --details  and delete one of the two copies."
    )


def err_tier_not_found(ref: str, names: list[str]) -> str:
    """Tier reference did not match any tier."""
    known = ", ".join(escape(n) for n in names) if names else "(none)"
    return (
        f"[red]Error:[/] No tier named '{escape(ref)}'.\n"
        f"  Tiers: {known}  (use 'holding' for the holding area)\n"
        "  Run:  tierboard tier list"
    )


def err_file_not_found(path: str) -> str:
    """Input image path does not exist."""
    return (
        f"[red]Error:[/] File not found: '{escape(path)}'\n"
        "  Check the path and run the command again."
    )


def err_tier_exists(color: str, name: str) -> str:
    """Another tier already uses this colour and name (they form its storage key)."""
    return (
        f"[red]Error:[/] A tier named '{escape(name)}' with color '{escape(color)}' already exists.\n"
        "  Use a different name or color:  tierboard tier add <NAME> --color <COLOR>"
    )


def warn_no_link(item_id: int) -> str:
    """Item has no link to open."""
    return (
        f"[yellow]Item {item_id} has no link.[/]\n"
        f"  Set one:  tierboard link {item_id} <URL>"
    )


def warn_skipped_entries(count: int) -> str:
    """Some pasted/dropped entries were not images or could not be decoded."""
    return (
        f"[yellow]⚠[/] {count} entr{'y' if count == 1 else 'ies'} skipped "
        "(not an image, or the image could not be decoded).\n"
        "  Run with --verbose for details."
    )
