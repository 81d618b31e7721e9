"""Tests for domain models."""

from dataclasses import replace

import pytest

from space_tree.core.state import Snapshot, TreeState
from space_tree.core.tree.builder import build_tree
from space_tree.models.drag import RowRect
from space_tree.models.node import Entity, EntityKind
from space_tree.models.space import SortMode, Space, SpaceFilters
from tests.unit.fakes import make_entity


def test_entity_is_frozen() -> None:
    entity = make_entity(1)
    with pytest.raises(AttributeError):
        entity.title = "changed"  # type: ignore[misc]


def test_entity_kind_values_match_service() -> None:
    assert EntityKind("folder") is EntityKind.FOLDER
    assert make_entity(1, folder=True).is_folder
    assert not make_entity(2).is_folder


def test_sort_mode_wire_values() -> None:
    assert SortMode("updatedAt_desc") is SortMode.UPDATED_DESC
    assert str(SortMode.CREATED_ASC) == "createdAt_asc"


def test_space_defaults() -> None:
    space = Space(id=1, name="s")
    assert space.default_sort is SortMode.DEFAULT
    assert space.default_filters == SpaceFilters()


def test_row_rect_center() -> None:
    assert RowRect(rect_top=100, rect_bottom=130, height=30).center == 115


def test_snapshot_is_isolated_from_state(sample_entities: list[Entity]) -> None:
    state = TreeState(
        tree=build_tree(sample_entities, {1}),
        entities=list(sample_entities),
        expanded_ids={1},
    )
    snapshot = Snapshot.capture(state)

    state.tree[0].children.clear()
    state.entities.pop()
    state.expanded_ids.add(4)
    state.has_trash = True

    snapshot.restore_into(state)
    assert [n.id for n in state.tree[0].children] == [2, 3, 4]
    assert state.entities == sample_entities
    assert state.expanded_ids == {1}
    assert state.has_trash is False

    # Restoring again still yields the captured state
    state.tree[0].entity = replace(state.tree[0].entity, title="x")
    snapshot.restore_into(state)
    assert state.tree[0].entity.title == "Guides"
