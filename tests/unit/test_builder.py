"""Tests for building the hierarchy from a flat entity list."""

from space_tree.core.tree.builder import build_tree, group_by_parent
from space_tree.models.node import Entity, TreeNode
from space_tree.models.space import SortMode
from tests.unit.fakes import make_entity


def _shape(nodes: list[TreeNode]) -> list:
    return [(n.id, _shape(n.children)) if n.children else n.id for n in nodes]


def _count(nodes: list[TreeNode]) -> int:
    return sum(1 + _count(n.children) for n in nodes)


def test_group_by_parent(sample_entities: list[Entity]) -> None:
    groups = group_by_parent(sample_entities)
    assert [e.id for e in groups[None]] == [1, 6, 7]
    assert [e.id for e in groups[1]] == [2, 3, 4]
    assert [e.id for e in groups[4]] == [5]


def test_builds_one_node_per_entity(sample_entities: list[Entity]) -> None:
    tree = build_tree(sample_entities, set())
    assert _count(tree) == len(sample_entities)
    assert _shape(tree) == [(1, [2, 3, (4, [5])]), 6, 7]


def test_input_order_does_not_matter(sample_entities: list[Entity]) -> None:
    tree = build_tree(list(reversed(sample_entities)), set())
    assert _shape(tree) == [(1, [2, 3, (4, [5])]), 6, 7]


def test_expanded_flag_follows_expanded_ids(sample_entities: list[Entity]) -> None:
    tree = build_tree(sample_entities, {1})
    assert tree[0].expanded is True
    assert tree[0].children[2].expanded is False


def test_each_sibling_group_is_sorted(sample_entities: list[Entity]) -> None:
    tree = build_tree(sample_entities, set(), SortMode.ALPHABETICAL_DESC)
    assert [n.entity.title for n in tree] == ["Readme", "Guides", "Empty"]
    assert [n.entity.title for n in tree[1].children] == ["Nested", "Beta", "Alpha"]


def test_entity_with_missing_parent_is_dropped() -> None:
    """A parent removed by filtering takes its subtree with it."""
    entities = [make_entity(1), make_entity(2, 99), make_entity(3, 2)]
    assert _shape(build_tree(entities, set())) == [1]


def test_parent_cycle_terminates() -> None:
    entities = [make_entity(1), make_entity(2, 3), make_entity(3, 2)]
    assert _shape(build_tree(entities, set())) == [1]


def test_empty_input() -> None:
    assert build_tree([], set()) == []
