"""Build the sorted, expansion-annotated hierarchy from a flat entity list."""

from collections import defaultdict
from collections.abc import Iterable

from space_tree.core.sorting import sort_entities
from space_tree.models.node import Entity, TreeNode
from space_tree.models.space import SortMode


def group_by_parent(entities: Iterable[Entity]) -> dict[int | None, list[Entity]]:
    """Group entities into sibling groups keyed by parent id (None = root)."""
    groups: dict[int | None, list[Entity]] = defaultdict(list)
    for entity in entities:
        groups[entity.parent_id].append(entity)
    return groups


def build_tree(
    entities: Iterable[Entity],
    expanded_ids: set[int] | frozenset[int],
    sort_mode: SortMode | str = SortMode.DEFAULT,
) -> list[TreeNode]:
    """Build the forest rooted at entities without a parent.

    Each sibling group is sorted once with the comparator for ``sort_mode``.
    Only entities reachable from the root level are included: an entity whose
    parent is absent from the input (for example filtered out) is dropped
    together with its subtree, and so is any group caught in a parent cycle.
    """
    groups = {
        parent_id: sort_entities(children, sort_mode)
        for parent_id, children in group_by_parent(entities).items()
    }

    def build_nodes(parent_id: int | None) -> list[TreeNode]:
        return [
            TreeNode(
                entity=entity,
                children=build_nodes(entity.id),
                expanded=entity.id in expanded_ids,
            )
            for entity in groups.get(parent_id, ())
        ]

    return build_nodes(None)
