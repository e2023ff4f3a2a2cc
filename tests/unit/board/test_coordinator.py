"""Tests for DragCoordinator and DragSession."""

from __future__ import annotations

import pytest

from tierboard.board.container import ContainerModel
from tierboard.board.coordinator import DragCoordinator
from tierboard.db.models import HOLDING_AREA_KEY, Item
from tierboard.db.store import ItemStore
from tierboard.errors import DuplicateItemError, StorageCapacityExceeded, StorageError, UnknownItemError


def _item(id, data="data:image/jpeg;base64,AAAA"):
    return Item(id=id, image_data=data)


def _ids(container):
    return [i.id for i in container.list()]


@pytest.fixture
def coordinator():
    return DragCoordinator()


@pytest.fixture
def holding(store, coordinator):
    container = ContainerModel(HOLDING_AREA_KEY, store, placeholder="Drop images here")
    coordinator.register(container)
    return container


@pytest.fixture
def tier_s(store, coordinator):
    container = ContainerModel("tier_#FF7F7F_S", store)
    coordinator.register(container)
    return container


# ------------------------------------------------------------------
# Cross-container moves
# ------------------------------------------------------------------

def test_move_between_containers(store, coordinator, holding, tier_s):
    for i in (3, 7, 9):
        holding.append(_item(i))

    coordinator.move(holding, 1, tier_s, 0)

    assert _ids(holding) == [3, 9]
    assert _ids(tier_s) == [7]
    assert [i.id for i in store.load(HOLDING_AREA_KEY)] == [3, 9]
    assert [i.id for i in store.load("tier_#FF7F7F_S")] == [7]


def test_listeners_never_see_item_in_both_or_neither(coordinator, holding, tier_s):
    for i in (3, 7, 9):
        holding.append(_item(i))
    snapshots = []

    def observe(_container):
        snapshots.append((_ids(holding), _ids(tier_s)))

    holding.subscribe(observe)
    tier_s.subscribe(observe)

    coordinator.move(holding, 1, tier_s, 0)

    assert snapshots
    for src, dst in snapshots:
        assert (7 in src) != (7 in dst)


def test_move_item_appends_by_default(coordinator, holding, tier_s):
    holding.append(_item(1))
    tier_s.append(_item(2))
    coordinator.move_item(1, holding, tier_s)
    assert _ids(tier_s) == [2, 1]
    assert _ids(holding) == []


def test_move_item_unknown_id(coordinator, holding, tier_s):
    with pytest.raises(UnknownItemError):
        coordinator.move_item(42, holding, tier_s)


def test_destination_index_is_clamped(coordinator, holding, tier_s):
    holding.append(_item(1))
    tier_s.append(_item(2))
    coordinator.move(holding, 0, tier_s, 99)
    assert _ids(tier_s) == [2, 1]


def test_duplicate_id_in_destination_leaves_both_unchanged(coordinator, holding, tier_s):
    holding.append(_item(1))
    tier_s.append(_item(1))
    with pytest.raises(DuplicateItemError):
        coordinator.move(holding, 0, tier_s, 0)
    assert _ids(holding) == [1]
    assert _ids(tier_s) == [1]


def test_source_index_out_of_range(coordinator, holding, tier_s):
    with pytest.raises(UnknownItemError):
        coordinator.move(holding, 0, tier_s, 0)


def test_move_to_other_group_rejected(store, coordinator, holding):
    other = ContainerModel("elsewhere", store, group="private")
    coordinator.register(other)
    holding.append(_item(1))
    with pytest.raises(ValueError):
        coordinator.move(holding, 0, other, 0)
    assert _ids(holding) == [1]


def test_unregistered_container_is_not_compatible(store, coordinator, holding):
    stray = ContainerModel("stray", store)
    assert not coordinator.compatible(holding, stray)
    coordinator.register(stray)
    assert coordinator.compatible(holding, stray)
    coordinator.unregister(stray)
    assert not coordinator.compatible(holding, stray)


# ------------------------------------------------------------------
# Reorder
# ------------------------------------------------------------------

def test_reorder_within_container(store, coordinator, holding):
    for i in (1, 2, 3):
        holding.append(_item(i))
    coordinator.move(holding, 0, holding, 2)
    assert _ids(holding) == [2, 3, 1]
    assert [i.id for i in store.load(HOLDING_AREA_KEY)] == [2, 3, 1]


def test_reorder_index_clamped_to_last(coordinator, holding):
    for i in (1, 2, 3):
        holding.append(_item(i))
    coordinator.move(holding, 0, holding, 10)
    assert _ids(holding) == [2, 3, 1]


# ------------------------------------------------------------------
# Storage failure
# ------------------------------------------------------------------

def test_failed_save_notifies_once_and_keeps_memory(tmp_db):
    failures = []
    coordinator = DragCoordinator(notify=failures.append)
    store = ItemStore(tmp_db, capacity_bytes=None)
    holding = ContainerModel(HOLDING_AREA_KEY, store)
    tier = ContainerModel("tier_#FF7F7F_S", store)
    coordinator.register(holding)
    coordinator.register(tier)
    holding.append(_item(1, data="x" * 500))

    store.capacity_bytes = 100
    coordinator.move(holding, 0, tier, 0)

    assert len(failures) == 1
    assert isinstance(failures[0], StorageCapacityExceeded)
    assert _ids(holding) == []
    assert _ids(tier) == [1]
    assert [i.id for i in store.load(HOLDING_AREA_KEY)] == [1]
    assert store.load("tier_#FF7F7F_S") == []


# ------------------------------------------------------------------
# Drag sessions
# ------------------------------------------------------------------

def test_session_drop_moves_to_hovered_position(coordinator, holding, tier_s):
    for i in (1, 2):
        holding.append(_item(i))
    tier_s.append(_item(9))

    session = coordinator.begin(holding, 1)
    assert session.item.id == 2
    assert session.hover(tier_s, 0)
    moved = session.drop()

    assert moved.id == 2
    assert _ids(tier_s) == [2, 9]
    assert _ids(holding) == [1]


def test_session_without_hover_is_noop_reorder(coordinator, holding):
    for i in (1, 2):
        holding.append(_item(i))
    coordinator.begin(holding, 0).drop()
    assert _ids(holding) == [1, 2]


def test_placeholder_slot_is_not_draggable(coordinator, holding):
    with pytest.raises(UnknownItemError):
        coordinator.begin(holding, 0)


def test_hover_over_incompatible_container_is_ignored(store, coordinator, holding, tier_s):
    holding.append(_item(1))
    other = ContainerModel("elsewhere", store, group="private")
    session = coordinator.begin(holding, 0)
    assert session.hover(tier_s, 0)
    assert not session.hover(other, 0)
    assert session.destination is tier_s


def test_cancel_leaves_lists_alone(coordinator, holding, tier_s):
    holding.append(_item(1))
    session = coordinator.begin(holding, 0)
    session.hover(tier_s, 0)
    session.cancel()
    assert _ids(holding) == [1]
    assert _ids(tier_s) == []


def test_finished_session_cannot_be_reused(coordinator, holding, tier_s):
    holding.append(_item(1))
    session = coordinator.begin(holding, 0)
    session.hover(tier_s, 0)
    session.drop()
    with pytest.raises(RuntimeError):
        session.drop()
    with pytest.raises(RuntimeError):
        session.hover(holding, 0)


def test_readonly_database_move_stays_in_memory(tmp_db):
    failures = []
    coordinator = DragCoordinator(notify=failures.append)
    store = ItemStore(tmp_db, capacity_bytes=None)
    holding = ContainerModel(HOLDING_AREA_KEY, store)
    tier = ContainerModel("tier_#FF7F7F_S", store)
    coordinator.register(holding)
    coordinator.register(tier)
    holding.append(_item(1))
    tmp_db.execute("PRAGMA query_only = ON")

    coordinator.move(holding, 0, tier, 0)

    assert len(failures) == 1
    assert isinstance(failures[0], StorageError)
    assert _ids(holding) == []
    assert _ids(tier) == [1]
    tmp_db.execute("PRAGMA query_only = OFF")
    assert [i.id for i in store.load(HOLDING_AREA_KEY)] == [1]
    assert store.load("tier_#FF7F7F_S") == []
