"""In-memory ordered item list for one container, synchronised with the ItemStore.

A container is either the holding area or a tier. It is the sole mutator of
its list: every mutation goes through this class, updates the in-memory list
first, then persists. The in-memory list stays authoritative when a save
fails; the failure is reported once through the ``notify`` callback.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass

from tierboard.db.models import Item
from tierboard.db.store import ItemStore
from tierboard.errors import (
    CorruptRecordError,
    DuplicateItemError,
    StorageError,
    UnknownItemError,
)

logger = logging.getLogger(__name__)

SHARED_GROUP = "shared"
IGNORE_MARKER = "ignore-elements"

Notify = Callable[[StorageError], None]
Listener = Callable[["ContainerModel"], None]


@dataclass(frozen=True)
class Slot:
    """One rendered entry of a container.

    Real items are draggable; the empty-state placeholder carries
    IGNORE_MARKER and is never picked up or dropped on as payload.
    """

    item: Item | None
    text: str = ""
    markers: frozenset[str] = frozenset()

    @property
    def draggable(self) -> bool:
        return self.item is not None and IGNORE_MARKER not in self.markers


def _log_failure(exc: StorageError) -> None:
    logger.warning("%s", exc)


class ContainerModel:
    """Ordered items of one container plus the key they persist under.

    Args:
        key: Storage key (``holding-area`` or ``tier_<color>_<name>``).
        store: Item store shared by every container on the board.
        group: Drag-and-drop group; containers in the same group exchange items.
        notify: Called once per failed save with the storage error.
        placeholder: Empty-state text rendered as an ignored slot.
    """

    def __init__(
        self,
        key: str,
        store: ItemStore,
        *,
        group: str | None = SHARED_GROUP,
        notify: Notify | None = None,
        placeholder: str = "",
    ) -> None:
        self.key = key
        self.group = group
        self.placeholder = placeholder
        self._store = store
        self._notify = notify or _log_failure
        self._listeners: list[Listener] = []
        self._closed = False
        self._items: list[Item] = self._load()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list(self) -> list[Item]:
        """Return a copy of the items in rendering order."""
        return list(self._items)

    def get(self, item_id: int) -> Item | None:
        return next((i for i in self._items if i.id == item_id), None)

    def index_of(self, item_id: int) -> int:
        """Return the position of *item_id*, or -1 if absent."""
        for index, item in enumerate(self._items):
            if item.id == item_id:
                return index
        return -1

    def slots(self) -> list[Slot]:
        """Return the rendered entries: items, or the placeholder when empty."""
        if not self._items and self.placeholder:
            return [Slot(item=None, text=self.placeholder, markers=frozenset({IGNORE_MARKER}))]
        return [Slot(item=i) for i in self._items]

    @property
    def store(self) -> ItemStore:
        return self._store

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Item]:
        return iter(list(self._items))

    def __contains__(self, item_id: object) -> bool:
        return any(i.id == item_id for i in self._items)

    def __repr__(self) -> str:
        return f"ContainerModel(key={self.key!r}, items={len(self._items)})"

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def append(self, item: Item) -> bool:
        """Add *item* at the end. Returns False if the save failed."""
        if item.id in self:
            raise DuplicateItemError(item.id, self.key)
        self._items = [*self._items, item]
        return self._commit()

    def remove_by_id(self, item_id: int) -> Item | None:
        """Remove and return the item with *item_id*; no-op (None) if absent."""
        index = self.index_of(item_id)
        if index == -1:
            return None
        removed = self._items[index]
        self._items = self._items[:index] + self._items[index + 1:]
        self._commit()
        return removed

    def update_field(self, item_id: int, field: str, value: str | None) -> Item:
        """Set ``linkUrl`` or ``notes`` on *item_id*, keeping its position.

        Raises:
            UnknownItemError: No item with *item_id* in this container.
            ValueError: *field* is not an editable field.
        """
        index = self.index_of(item_id)
        if index == -1:
            raise UnknownItemError(f"Item {item_id} is not in container '{self.key}'")
        updated = self._items[index].with_field(field, value)
        items = list(self._items)
        items[index] = updated
        self._items = items
        self._commit()
        return updated

    def replace_all(self, items: Sequence[Item]) -> bool:
        """Swap the whole ordered list in one step. Returns False if the save failed."""
        new_items = list(items)
        _check_unique(new_items, self.key)
        self._items = new_items
        return self._commit()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call *listener* after every change; returns an unsubscribe callable."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def rekey(self, new_key: str, *, migrate: bool = True) -> None:
        """Persist under *new_key* from now on.

        With ``migrate`` the stored record is moved to *new_key* first; pass
        False when the caller already moved it.
        """
        if new_key == self.key:
            return
        if migrate and not self._closed:
            self._store.rename(self.key, new_key)
        logger.debug("Container %s rekeyed to %s", self.key, new_key)
        self.key = new_key

    def close(self) -> None:
        """Stop persisting. Later mutations only change the in-memory list."""
        self._closed = True

    def persist(self) -> bool:
        """Save the current list. Returns False (after notifying) on failure."""
        if self._closed:
            return True
        try:
            self._store.save(self.key, self._items)
        except StorageError as exc:
            self._notify(exc)
            return False
        return True

    # ------------------------------------------------------------------
    # Helpers shared with the drag coordinator
    # ------------------------------------------------------------------

    def _load(self) -> list[Item]:
        try:
            items = self._store.load(self.key)
            _check_unique(items, self.key)
        except (CorruptRecordError, DuplicateItemError) as exc:
            logger.warning("Container %s starts empty: %s", self.key, exc)
            try:
                self._store.quarantine(self.key)
            except StorageError as store_exc:
                self._notify(store_exc)
            return []
        return items

    def _swap(self, items: list[Item]) -> None:
        self._items = items

    def _changed(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def _commit(self) -> bool:
        saved = self.persist()
        self._changed()
        return saved


def _check_unique(items: Sequence[Item], key: str) -> None:
    seen: set[int] = set()
    for item in items:
        if item.id in seen:
            raise DuplicateItemError(item.id, key)
        seen.add(item.id)
