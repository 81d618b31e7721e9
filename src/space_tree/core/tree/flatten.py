"""Flatten the hierarchy into visible rows for drag target resolution."""

from collections.abc import Iterator

from space_tree.models.node import FlattenedItem, TreeNode


def _index_descendants(nodes: list[TreeNode], into: dict[int, frozenset[int]]) -> frozenset[int]:
    """Post-order pass: record each node's transitive descendant ids."""
    collected: set[int] = set()
    for node in nodes:
        below = _index_descendants(node.children, into)
        into[node.id] = below
        collected.add(node.id)
        collected |= below
    return frozenset(collected)


def iter_flattened(nodes: list[TreeNode]) -> Iterator[FlattenedItem]:
    """Yield visible rows in pre-order.

    Children are visited only for expanded folders. Descendant sets cover the
    full subtree, collapsed parts included.
    """
    descendants: dict[int, frozenset[int]] = {}
    _index_descendants(nodes, descendants)

    def walk(items: list[TreeNode], parent_id: int | None, depth: int) -> Iterator[FlattenedItem]:
        for index, node in enumerate(items):
            is_folder = node.entity.is_folder
            yield FlattenedItem(
                id=node.id,
                entity=node.entity,
                depth=depth,
                parent_id=parent_id,
                index=index,
                is_folder=is_folder,
                expanded=node.expanded,
                descendant_ids=descendants[node.id],
            )
            if is_folder and node.expanded and node.children:
                yield from walk(node.children, node.id, depth + 1)

    yield from walk(nodes, None, 0)


def flatten_tree(nodes: list[TreeNode]) -> list[FlattenedItem]:
    return list(iter_flattened(nodes))


def find_item(items: list[FlattenedItem], item_id: int) -> FlattenedItem | None:
    return next((item for item in items if item.id == item_id), None)


def items_at_parent(items: list[FlattenedItem], parent_id: int | None) -> list[FlattenedItem]:
    return [item for item in items if item.parent_id == parent_id]


def is_descendant(items: list[FlattenedItem], source_id: int, target_id: int) -> bool:
    """True iff ``target_id`` lies anywhere below ``source_id``."""
    source = find_item(items, source_id)
    if source is None:
        return False
    return target_id in source.descendant_ids
