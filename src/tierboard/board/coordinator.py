"""Cross-container drag-and-drop coordination.

Containers that declare the same group may exchange items through a single
drag gesture. A gesture is a :class:`DragSession`: it starts on a draggable
slot of a source container, tracks the container and index under the pointer
while it moves, and commits on drop.

A drop is applied as one logical step: both containers' lists are swapped
before any listener runs, and both records are written in one store
transaction, so neither observers nor the database ever see the item in both
containers or in neither.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from tierboard.board.container import ContainerModel
from tierboard.db.models import Item
from tierboard.errors import DuplicateItemError, StorageError, UnknownItemError

logger = logging.getLogger(__name__)

Notify = Callable[[StorageError], None]


@dataclass
class DragSession:
    """An in-progress drag gesture.

    ``destination`` and ``destination_index`` start at the source position
    and follow :meth:`hover` until :meth:`drop` or :meth:`cancel`.
    """

    coordinator: DragCoordinator
    source: ContainerModel
    source_index: int
    item: Item
    destination: ContainerModel
    destination_index: int
    finished: bool = False

    def hover(self, container: ContainerModel, index: int) -> bool:
        """Track the pointer over *container* at *index*.

        Returns False (and keeps the previous target) when *container* does
        not share the source's group.
        """
        self._check_open()
        if not self.coordinator.compatible(self.source, container):
            return False
        self.destination = container
        self.destination_index = self.coordinator.clamp_index(self.source, container, index)
        return True

    def drop(self) -> Item:
        """Commit the move at the last hovered position."""
        self._check_open()
        self.finished = True
        return self.coordinator.move(
            self.source, self.source_index, self.destination, self.destination_index
        )

    def cancel(self) -> None:
        self._check_open()
        self.finished = True

    def _check_open(self) -> None:
        if self.finished:
            raise RuntimeError("Drag session already finished")


class DragCoordinator:
    """Registry of drag groups plus the move operation between their members."""

    def __init__(self, notify: Notify | None = None) -> None:
        self._groups: dict[str, list[ContainerModel]] = {}
        self._notify = notify

    # ------------------------------------------------------------------
    # Group membership
    # ------------------------------------------------------------------

    def register(self, container: ContainerModel) -> None:
        if container.group is None:
            return
        members = self._groups.setdefault(container.group, [])
        if container not in members:
            members.append(container)

    def unregister(self, container: ContainerModel) -> None:
        members = self._groups.get(container.group or "", [])
        if container in members:
            members.remove(container)

    def members(self, group: str) -> list[ContainerModel]:
        return list(self._groups.get(group, []))

    def compatible(self, source: ContainerModel, destination: ContainerModel) -> bool:
        """True if *destination* may receive items dragged out of *source*."""
        if source is destination:
            return True
        return (
            source.group is not None
            and source.group == destination.group
            and destination in self._groups.get(source.group, [])
        )

    # ------------------------------------------------------------------
    # Gestures
    # ------------------------------------------------------------------

    def begin(self, source: ContainerModel, slot_index: int) -> DragSession:
        """Start dragging the slot at *slot_index* of *source*.

        Raises:
            UnknownItemError: The slot does not exist or is not draggable
                (e.g. the empty-state placeholder).
        """
        slots = source.slots()
        if not 0 <= slot_index < len(slots) or not slots[slot_index].draggable:
            raise UnknownItemError(
                f"Slot {slot_index} of container '{source.key}' is not draggable"
            )
        item = slots[slot_index].item
        index = source.index_of(item.id)
        return DragSession(
            coordinator=self,
            source=source,
            source_index=index,
            item=item,
            destination=source,
            destination_index=index,
        )

    @staticmethod
    def clamp_index(source: ContainerModel, destination: ContainerModel, index: int) -> int:
        """Bound *index* to the valid final positions in *destination*."""
        upper = len(destination) - 1 if destination is source else len(destination)
        return max(0, min(index, upper))

    def move(
        self,
        source: ContainerModel,
        source_index: int,
        destination: ContainerModel,
        destination_index: int,
    ) -> Item:
        """Move the item at *source_index* to *destination_index* of *destination*.

        When source and destination are the same container this is a reorder.
        *destination_index* is the final position of the item in the
        destination list and is clamped to the valid range.

        Raises:
            UnknownItemError: *source_index* is out of range.
            DuplicateItemError: *destination* already holds an item with the same id.
            ValueError: The containers do not share a drag group.
        """
        if not 0 <= source_index < len(source):
            raise UnknownItemError(
                f"No item at index {source_index} in container '{source.key}'"
            )
        if not self.compatible(source, destination):
            raise ValueError(
                f"Containers '{source.key}' and '{destination.key}' are not in the same drag group"
            )

        src_items = source.list()
        item = src_items.pop(source_index)
        index = self.clamp_index(source, destination, destination_index)

        if destination is source:
            src_items.insert(index, item)
            source._swap(src_items)
            self._persist(source)
            source._changed()
            logger.debug("Reordered item %s in %s: %d -> %d", item.id, source.key, source_index, index)
            return item

        if item.id in destination:
            raise DuplicateItemError(item.id, destination.key)

        dst_items = destination.list()
        dst_items.insert(index, item)

        # Swap both lists before anyone is told about the change.
        source._swap(src_items)
        destination._swap(dst_items)
        self._persist(source, destination)
        source._changed()
        destination._changed()
        logger.debug(
            "Moved item %s from %s[%d] to %s[%d]",
            item.id, source.key, source_index, destination.key, index,
        )
        return item

    def move_item(self, item_id: int, source: ContainerModel, destination: ContainerModel,
                  destination_index: int | None = None) -> Item:
        """Move by item id; ``destination_index=None`` appends."""
        source_index = source.index_of(item_id)
        if source_index == -1:
            raise UnknownItemError(f"Item {item_id} is not in container '{source.key}'")
        if destination_index is None:
            destination_index = len(destination)
        return self.move(source, source_index, destination, destination_index)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _persist(self, *containers: ContainerModel) -> bool:
        live = [c for c in containers if not c.closed]
        if not live:
            return True
        store = live[0].store
        if any(c.store is not store for c in live):
            # Containers on different stores cannot share a transaction.
            return all([c.persist() for c in live])
        try:
            store.save_many({c.key: c.list() for c in live})
        except StorageError as exc:
            if self._notify is not None:
                self._notify(exc)
            else:
                logger.warning("%s", exc)
            return False
        return True
