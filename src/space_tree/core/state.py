"""Mutable per-space tree state."""

import copy
from dataclasses import dataclass, field

from space_tree.models.node import Entity, TreeNode


@dataclass
class TreeState:
    """What the UI observes: the built forest plus the data it was built from."""

    tree: list[TreeNode] = field(default_factory=list)
    entities: list[Entity] = field(default_factory=list)
    expanded_ids: set[int] = field(default_factory=set)
    has_trash: bool = False


@dataclass(frozen=True)
class Snapshot:
    """Deep copy of a TreeState taken before an optimistic edit."""

    tree: list[TreeNode]
    entities: list[Entity]
    expanded_ids: frozenset[int]
    has_trash: bool

    @classmethod
    def capture(cls, state: TreeState) -> "Snapshot":
        return cls(
            tree=copy.deepcopy(state.tree),
            entities=list(state.entities),
            expanded_ids=frozenset(state.expanded_ids),
            has_trash=state.has_trash,
        )

    def restore_into(self, state: TreeState) -> None:
        # Copy again so the restored state never aliases the snapshot
        state.tree = copy.deepcopy(self.tree)
        state.entities = list(self.entities)
        state.expanded_ids = set(self.expanded_ids)
        state.has_trash = self.has_trash
