"""Board context: the handle every board component is constructed with.

A :class:`BoardContext` owns the item store, the holding area, the ordered
tier list and the drag coordinator. Components receive it explicitly;
building one without a context is a wiring error (MissingBoardContext).

Tier storage keys are derived from colour and name. Editing either migrates
the tier's stored list to the new key so nothing is orphaned.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from pathlib import Path

from tierboard.board.codec import ImageCodec
from tierboard.board.container import SHARED_GROUP, ContainerModel
from tierboard.board.coordinator import DragCoordinator
from tierboard.config import TierboardConfig, TierSeed
from tierboard.db.connection import Database
from tierboard.db.models import HOLDING_AREA_KEY, Item, Tier, tier_key
from tierboard.db.schema import initialize
from tierboard.db.store import ItemStore
from tierboard.errors import (
    ContainerNotFound,
    DuplicateTierError,
    MissingBoardContext,
    StorageError,
)

logger = logging.getLogger(__name__)

HOLDING_PLACEHOLDER = "Drag & Drop or Copy and Paste images in here!"
HOLDING_ALIASES = frozenset({"holding", HOLDING_AREA_KEY})

Notify = Callable[[StorageError], None]


def require_context(context: BoardContext | None, component: str) -> BoardContext:
    """Return *context*, raising MissingBoardContext if it is None."""
    if context is None:
        raise MissingBoardContext(component)
    return context


@dataclass
class TierSlot:
    """A tier's metadata together with the container holding its items."""

    tier: Tier
    container: ContainerModel

    @property
    def id(self) -> str:
        return self.tier.id

    @property
    def name(self) -> str:
        return self.tier.name

    @property
    def color(self) -> str:
        return self.tier.color


class BoardContext:
    """Board-wide state shared by every container and the ingestion pipeline.

    Args:
        store: Item store all containers persist through.
        config: Loaded configuration.
        notify: Surface for storage failures; called once per failed save.
    """

    def __init__(
        self,
        store: ItemStore,
        config: TierboardConfig | None = None,
        notify: Notify | None = None,
    ) -> None:
        self.store = store
        self.config = config or TierboardConfig()
        self.notify = notify or _log_failure
        self.codec = ImageCodec(self.config.codec)
        self.coordinator = DragCoordinator(notify=self.notify)
        self._database: Database | None = None

        self.holding_area = self._make_container(HOLDING_AREA_KEY, placeholder=HOLDING_PLACEHOLDER)
        self.tiers: list[TierSlot] = [
            TierSlot(tier=t, container=self._make_container(t.storage_key))
            for t in store.load_tiers()
        ]

    @classmethod
    def open(
        cls,
        db_path: Path | str,
        config: TierboardConfig | None = None,
        notify: Notify | None = None,
    ) -> BoardContext:
        """Open (or create) the board database at *db_path*."""
        config = config or TierboardConfig()
        database = Database(db_path)
        conn = database.connect()
        try:
            initialize(conn)
            ctx = cls(ItemStore(conn, capacity_bytes=config.storage.capacity_bytes), config, notify)
        except Exception:
            database.close()
            raise
        ctx._database = database
        return ctx

    def close(self) -> None:
        if self._database is not None:
            self._database.close()
            self._database = None

    def __enter__(self) -> BoardContext:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def containers(self) -> list[ContainerModel]:
        """Holding area first, then tiers top to bottom."""
        return [self.holding_area, *(slot.container for slot in self.tiers)]

    def tier(self, ref: str) -> TierSlot:
        """Find a tier by id or (case-sensitive, then case-insensitive) name."""
        for slot in self.tiers:
            if ref in (slot.id, slot.name):
                return slot
        matches = [s for s in self.tiers if s.name.lower() == ref.lower()]
        if len(matches) == 1:
            return matches[0]
        raise ContainerNotFound(f"No tier named '{ref}'")

    def container(self, ref: str) -> ContainerModel:
        """Resolve ``holding`` / ``holding-area`` or a tier reference."""
        if ref in HOLDING_ALIASES:
            return self.holding_area
        return self.tier(ref).container

    def find_item(self, item_id: int) -> tuple[ContainerModel, int]:
        """Return ``(container, index)`` owning *item_id*."""
        for container in self.containers():
            index = container.index_of(item_id)
            if index != -1:
                return container, index
        raise ContainerNotFound(f"Item {item_id} is not on the board")

    def has_item(self, item_id: int) -> bool:
        return any(item_id in container for container in self.containers())

    def get_item(self, item_id: int) -> Item:
        container, index = self.find_item(item_id)
        return container.list()[index]

    # ------------------------------------------------------------------
    # Tier lifecycle (shell-facing)
    # ------------------------------------------------------------------

    def seed_tiers(self, seeds: Iterable[TierSeed] | None = None) -> list[TierSlot]:
        """Create the default tiers when the board has none yet."""
        if self.tiers:
            return []
        seeds = self.config.board.default_tiers if seeds is None else seeds
        return [self.add_tier(s.name, s.color) for s in seeds]

    def add_tier(self, name: str, color: str, position: int | None = None) -> TierSlot:
        """Append (or insert at *position*) a new tier."""
        self._check_identity_free(color, name)
        tier = Tier(id=uuid.uuid4().hex[:12], name=name, color=color)
        index = len(self.tiers) if position is None else max(0, min(position, len(self.tiers)))
        tiers = [slot.tier for slot in self.tiers]
        tiers.insert(index, tier)
        self.store.save_tiers(tiers)
        slot = TierSlot(tier=tier, container=self._make_container(tier.storage_key))
        self.tiers.insert(index, slot)
        logger.info("Added tier %s (%s)", name, color)
        return slot

    def remove_tier(self, ref: str) -> TierSlot:
        """Delete a tier and its stored items."""
        slot = self.tier(ref)
        self.store.save_tiers(
            [s.tier for s in self.tiers if s is not slot], delete=slot.container.key
        )
        self.tiers.remove(slot)
        slot.container.close()
        self.coordinator.unregister(slot.container)
        logger.info("Removed tier %s", slot.name)
        return slot

    def rename_tier(self, ref: str, name: str) -> TierSlot:
        slot = self.tier(ref)
        return self._reidentify(slot, slot.color, name)

    def recolor_tier(self, ref: str, color: str) -> TierSlot:
        slot = self.tier(ref)
        return self._reidentify(slot, color, slot.name)

    def move_tier(self, ref: str, position: int) -> TierSlot:
        """Reorder the tier list."""
        slot = self.tier(ref)
        slots = [s for s in self.tiers if s is not slot]
        slots.insert(max(0, min(position, len(slots))), slot)
        self.store.save_tiers([s.tier for s in slots])
        self.tiers = slots
        return slot

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _make_container(self, key: str, placeholder: str = "") -> ContainerModel:
        container = ContainerModel(
            key, self.store, group=SHARED_GROUP, notify=self.notify, placeholder=placeholder
        )
        self.coordinator.register(container)
        return container

    def _reidentify(self, slot: TierSlot, color: str, name: str) -> TierSlot:
        if (color, name) == (slot.color, slot.name):
            return slot
        self._check_identity_free(color, name, ignore=slot)
        renamed = replace(slot.tier, color=color, name=name)
        old_key, new_key = slot.container.key, renamed.storage_key
        # Record and tier row move together or not at all.
        self.store.save_tiers(
            [renamed if s is slot else s.tier for s in self.tiers],
            rename=(old_key, new_key),
        )
        slot.tier = renamed
        slot.container.rekey(new_key, migrate=False)
        return slot

    def _check_identity_free(self, color: str, name: str, ignore: TierSlot | None = None) -> None:
        if not name:
            raise ValueError("Tier name must not be empty")
        key = tier_key(color, name)
        for slot in self.tiers:
            if slot is not ignore and slot.container.key == key:
                raise DuplicateTierError(color, name)


def _log_failure(exc: StorageError) -> None:
    logger.warning("%s", exc)
