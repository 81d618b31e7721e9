"""In-place edit primitives over a forest of TreeNodes."""

import copy
from collections.abc import Iterable
from dataclasses import replace

from space_tree.core.sorting import Comparator
from space_tree.models.drag import DropPosition
from space_tree.models.node import Entity, TreeNode


def clone_tree(nodes: list[TreeNode]) -> list[TreeNode]:
    """Deep copy a forest; the copy shares no nodes or lists with the original."""
    return copy.deepcopy(nodes)


def find_node(nodes: list[TreeNode], node_id: int) -> TreeNode | None:
    for node in nodes:
        if node.id == node_id:
            return node
        found = find_node(node.children, node_id)
        if found is not None:
            return found
    return None


def siblings_and_index(nodes: list[TreeNode], node_id: int) -> tuple[list[TreeNode], int] | None:
    """Return the sibling list that holds ``node_id`` and its index in it."""
    for index, node in enumerate(nodes):
        if node.id == node_id:
            return nodes, index
        found = siblings_and_index(node.children, node_id)
        if found is not None:
            return found
    return None


def remove_node(nodes: list[TreeNode], node_id: int) -> TreeNode | None:
    """Detach a node (with its whole subtree) and return it."""
    found = siblings_and_index(nodes, node_id)
    if found is None:
        return None
    siblings, index = found
    return siblings.pop(index)


def insert_node_at_position(
    nodes: list[TreeNode],
    parent_id: int | None,
    node: TreeNode,
    reference_id: int | None = None,
    position: DropPosition | None = None,
) -> bool:
    """Insert ``node`` under ``parent_id`` relative to a reference sibling.

    Without a reference, or when the reference is not among the target's
    children, the node is appended. Returns False if the parent is not in the tree.
    """
    if parent_id is None:
        siblings = nodes
    else:
        parent = find_node(nodes, parent_id)
        if parent is None:
            return False
        siblings = parent.children

    ref_index = next(
        (i for i, sibling in enumerate(siblings) if sibling.id == reference_id),
        None,
    )
    if reference_id is None or ref_index is None:
        siblings.append(node)
    elif position == DropPosition.BEFORE:
        siblings.insert(ref_index, node)
    else:
        siblings.insert(ref_index + 1, node)
    return True


def update_title(nodes: list[TreeNode], node_id: int, title: str) -> bool:
    node = find_node(nodes, node_id)
    if node is None:
        return False
    node.entity = replace(node.entity, title=title)
    return True


def update_node_expanded(nodes: list[TreeNode], node_id: int, expanded: bool) -> bool:
    node = find_node(nodes, node_id)
    if node is None:
        return False
    node.expanded = expanded
    return True


def add_node_to_tree(
    nodes: list[TreeNode],
    entity: Entity,
    parent_id: int | None,
    comparator: Comparator,
    expanded_ids: set[int] | frozenset[int],
) -> bool:
    """Insert a new leaf for ``entity`` at its sorted position under ``parent_id``.

    The node lands before the first sibling that sorts strictly after it, so
    equal keys keep insertion order. Returns False if the parent is not in the tree.
    """
    if parent_id is None:
        siblings = nodes
    else:
        parent = find_node(nodes, parent_id)
        if parent is None:
            return False
        siblings = parent.children

    new_node = TreeNode(entity=entity, expanded=entity.id in expanded_ids)
    index = next(
        (i for i, sibling in enumerate(siblings) if comparator(entity, sibling.entity) < 0),
        len(siblings),
    )
    siblings.insert(index, new_node)
    return True


def collect_descendant_ids(entities: Iterable[Entity], root_id: int) -> set[int]:
    """Collect ``root_id`` and every entity transitively parented under it."""
    children: dict[int | None, list[int]] = {}
    for entity in entities:
        children.setdefault(entity.parent_id, []).append(entity.id)

    collected = {root_id}
    todo = [root_id]
    while todo:
        for child_id in children.get(todo.pop(), ()):
            if child_id not in collected:
                collected.add(child_id)
                todo.append(child_id)
    return collected
