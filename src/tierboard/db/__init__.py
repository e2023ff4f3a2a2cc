"""Tierboard storage layer."""

from tierboard.db.connection import Database
from tierboard.db.migrations import MIGRATIONS, run_migrations
from tierboard.db.models import HOLDING_AREA_KEY, Item, Tier, tier_key
from tierboard.db.schema import initialize
from tierboard.db.store import ItemStore

__all__ = [
    "Database",
    "initialize",
    "run_migrations",
    "MIGRATIONS",
    "HOLDING_AREA_KEY",
    "Item",
    "ItemStore",
    "Tier",
    "tier_key",
]
