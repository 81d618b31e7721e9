"""Tests for optimistic mutations and rollback."""

import asyncio

import pytest

from space_tree.core.state import TreeState
from space_tree.core.tree.builder import build_tree
from space_tree.core.tree.edits import find_node
from space_tree.core.write.controller import OptimisticMutationController
from space_tree.models.drag import Direction, DropPosition
from space_tree.models.node import Entity, TreeNode
from tests.unit.fakes import FakeSpaceService


def _ids(nodes: list[TreeNode]) -> list[int]:
    return [n.id for n in nodes]


def _make(
    service: FakeSpaceService, entities: list[Entity], expanded: set[int] | None = None
) -> OptimisticMutationController:
    expanded = expanded if expanded is not None else {1}
    state = TreeState(
        tree=build_tree(entities, expanded),
        entities=list(entities),
        expanded_ids=set(expanded),
    )
    return OptimisticMutationController(service, state, space_id=1)


def test_rename_updates_tree_before_confirmation(
    service: FakeSpaceService, sample_entities: list[Entity]
) -> None:
    controller = _make(service, sample_entities)

    async def scenario() -> None:
        release = service.hold("rename")
        task = asyncio.create_task(controller.rename(3, "New Title"))
        await asyncio.sleep(0)
        # Applied locally while the service call is still pending
        assert find_node(controller.state.tree, 3).entity.title == "New Title"
        assert controller.has_snapshot
        release.set()
        renamed = await task
        assert renamed.title == "New Title"

    asyncio.run(scenario())
    assert not controller.has_snapshot
    assert next(e for e in controller.state.entities if e.id == 3).title == "New Title"


def test_rename_rolls_back_and_reraises(
    service: FakeSpaceService, sample_entities: list[Entity]
) -> None:
    controller = _make(service, sample_entities)
    service.fail("rename", RuntimeError("conflict"))

    with pytest.raises(RuntimeError, match="conflict"):
        asyncio.run(controller.rename(3, "New Title"))

    assert find_node(controller.state.tree, 3).entity.title == "Beta"
    assert next(e for e in controller.state.entities if e.id == 3).title == "Beta"
    assert not controller.has_snapshot


def test_soft_delete_removes_subtree_and_flags_trash(
    service: FakeSpaceService, sample_entities: list[Entity]
) -> None:
    controller = _make(service, sample_entities)

    async def scenario() -> None:
        release = service.hold("soft_delete")
        task = asyncio.create_task(controller.soft_delete(1))
        await asyncio.sleep(0)
        assert _ids(controller.state.tree) == [6, 7]
        assert {e.id for e in controller.state.entities} == {6, 7}
        assert controller.state.has_trash is True
        release.set()
        await task

    asyncio.run(scenario())
    assert service.calls_to("soft_delete") == [(1,)]


def test_soft_delete_reconciles_trash_flag_in_background(
    service: FakeSpaceService, sample_entities: list[Entity]
) -> None:
    controller = _make(service, sample_entities)
    service.trash_flag = False

    async def scenario() -> None:
        await controller.soft_delete(6)
        await controller.wait_background()

    asyncio.run(scenario())
    assert service.calls_to("has_trash") == [(1,)]
    assert controller.state.has_trash is False


def test_soft_delete_failure_restores_every_node(
    service: FakeSpaceService, sample_entities: list[Entity]
) -> None:
    controller = _make(service, sample_entities, {1, 4})
    before = build_tree(sample_entities, {1, 4})
    service.fail("soft_delete")

    with pytest.raises(RuntimeError):
        asyncio.run(controller.soft_delete(1))

    assert controller.state.tree == before
    assert controller.state.entities == sample_entities
    assert controller.state.has_trash is False
    assert service.calls_to("has_trash") == []


def test_reorder_first_child_up_is_noop(
    service: FakeSpaceService, sample_entities: list[Entity]
) -> None:
    controller = _make(service, sample_entities)
    before = build_tree(sample_entities, {1})

    asyncio.run(controller.reorder_adjacent(2, Direction.UP))
    asyncio.run(controller.reorder_adjacent(4, Direction.DOWN))

    assert controller.state.tree == before
    assert service.calls == []


def test_reorder_adjacent_swaps_siblings(
    service: FakeSpaceService, sample_entities: list[Entity]
) -> None:
    controller = _make(service, sample_entities)
    asyncio.run(controller.reorder_adjacent(3, Direction.UP))
    assert _ids(controller.state.tree[0].children) == [3, 2, 4]
    assert service.calls_to("reorder_adjacent") == [(3, Direction.UP)]


def test_reorder_adjacent_failure_restores_order(
    service: FakeSpaceService, sample_entities: list[Entity]
) -> None:
    controller = _make(service, sample_entities)
    service.fail("reorder_adjacent")
    with pytest.raises(RuntimeError):
        asyncio.run(controller.reorder_adjacent(3, Direction.DOWN))
    assert _ids(controller.state.tree[0].children) == [2, 3, 4]


def test_move_to_rewrites_parent_and_expands_target(
    service: FakeSpaceService, sample_entities: list[Entity]
) -> None:
    controller = _make(service, sample_entities)
    asyncio.run(controller.move_to(6, 7))

    empty = find_node(controller.state.tree, 7)
    assert _ids(empty.children) == [6]
    assert empty.expanded is True
    assert 7 in controller.state.expanded_ids
    assert empty.children[0].entity.parent_id == 7
    assert next(e for e in controller.state.entities if e.id == 6).parent_id == 7
    assert service.calls_to("move") == [(6, 7, None, None)]


def test_move_to_relative_to_reference(
    service: FakeSpaceService, sample_entities: list[Entity]
) -> None:
    controller = _make(service, sample_entities)
    asyncio.run(controller.move_to(6, 1, 3, DropPosition.BEFORE))
    assert _ids(controller.state.tree[0].children) == [2, 6, 3, 4]
    assert _ids(controller.state.tree) == [1, 7]


def test_move_to_root(service: FakeSpaceService, sample_entities: list[Entity]) -> None:
    controller = _make(service, sample_entities)
    asyncio.run(controller.move_to(2, None))
    assert _ids(controller.state.tree) == [1, 6, 7, 2]


def test_move_into_own_descendant_is_rejected(
    service: FakeSpaceService, sample_entities: list[Entity]
) -> None:
    controller = _make(service, sample_entities)
    with pytest.raises(ValueError, match="descendant"):
        asyncio.run(controller.move_to(1, 4))
    with pytest.raises(ValueError):
        asyncio.run(controller.move_to(1, 1))
    assert service.calls == []
    assert not controller.has_snapshot


def test_move_failure_restores_expansion(
    service: FakeSpaceService, sample_entities: list[Entity]
) -> None:
    controller = _make(service, sample_entities)
    service.fail("move")
    with pytest.raises(RuntimeError):
        asyncio.run(controller.move_to(6, 7))
    assert controller.state.expanded_ids == {1}
    assert _ids(controller.state.tree) == [1, 6, 7]
    assert next(e for e in controller.state.entities if e.id == 6).parent_id is None


def test_reorder_at_reference(service: FakeSpaceService, sample_entities: list[Entity]) -> None:
    controller = _make(service, sample_entities)
    asyncio.run(controller.reorder_at(4, 2, DropPosition.BEFORE))
    assert _ids(controller.state.tree[0].children) == [4, 2, 3]

    asyncio.run(controller.reorder_at(4, None))
    assert _ids(controller.state.tree[0].children) == [2, 3, 4]
    assert service.calls_to("reorder_at") == [
        (4, 2, DropPosition.BEFORE),
        (4, None, None),
    ]


def test_second_mutation_in_flight_rolls_back_to_first_edit(
    service: FakeSpaceService, sample_entities: list[Entity]
) -> None:
    """Only one snapshot slot exists.

    The second mutation snapshots the state after the first local edit, so its
    rollback keeps the first edit.
    """
    controller = _make(service, sample_entities)

    async def scenario() -> None:
        release_rename = service.hold("rename")
        first = asyncio.create_task(controller.rename(2, "Renamed"))
        await asyncio.sleep(0)

        service.fail("reorder_adjacent")
        with pytest.raises(RuntimeError):
            await controller.reorder_adjacent(3, Direction.UP)

        assert find_node(controller.state.tree, 2).entity.title == "Renamed"
        assert _ids(controller.state.tree[0].children) == [2, 3, 4]

        release_rename.set()
        await first

    asyncio.run(scenario())
    assert find_node(controller.state.tree, 2).entity.title == "Renamed"
    assert not controller.has_snapshot
