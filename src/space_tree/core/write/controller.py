"""Optimistic mutations with snapshot rollback.

Every mutation follows the same steps: snapshot the state, apply the edit
locally so callers see it at once, confirm with the service, then either drop
the snapshot or restore it and re-raise.

There is a single snapshot slot. A mutation issued while another one is still
awaiting confirmation snapshots the already-edited state, so rolling the
second one back returns to the state right after the first edit, not to the
state before both.
"""

import asyncio
from collections.abc import Awaitable
from dataclasses import replace
from typing import TypeVar

from loguru import logger

from space_tree.core.state import Snapshot, TreeState
from space_tree.core.tree.edits import (
    collect_descendant_ids,
    find_node,
    insert_node_at_position,
    remove_node,
    siblings_and_index,
    update_title,
)
from space_tree.models.drag import Direction, DropPosition
from space_tree.models.node import Entity
from space_tree.protocols import SpaceServiceProtocol

T = TypeVar("T")


class OptimisticMutationController:
    """Apply tree edits locally before the service confirms them."""

    def __init__(
        self,
        service: SpaceServiceProtocol,
        state: TreeState,
        *,
        space_id: int | None = None,
    ) -> None:
        self.service = service
        self.state = state
        self.space_id = space_id
        self._snapshot: Snapshot | None = None
        self._background: set[asyncio.Task[None]] = set()

    @property
    def has_snapshot(self) -> bool:
        return self._snapshot is not None

    def _save_snapshot(self) -> None:
        if self._snapshot is not None:
            logger.debug("Replacing snapshot of a mutation still in flight")
        self._snapshot = Snapshot.capture(self.state)

    def _clear_snapshot(self) -> None:
        self._snapshot = None

    def _rollback(self) -> None:
        if self._snapshot is None:
            logger.warning("No snapshot to roll back to, keeping local state")
            return
        self._snapshot.restore_into(self.state)
        self._snapshot = None

    async def _confirm(self, action: str, entity_id: int, remote: Awaitable[T]) -> T:
        try:
            result = await remote
        except Exception:
            logger.exception("Failed to {} entity {}, rolling back", action, entity_id)
            self._rollback()
            raise
        self._clear_snapshot()
        logger.debug("Confirmed {} of entity {}", action, entity_id)
        return result

    async def rename(self, entity_id: int, title: str) -> Entity:
        """Rename an entity; returns the entity as stored by the service."""
        self._save_snapshot()

        update_title(self.state.tree, entity_id, title)
        self.state.entities = [
            replace(e, title=title) if e.id == entity_id else e for e in self.state.entities
        ]

        return await self._confirm("rename", entity_id, self.service.rename(entity_id, title))

    async def soft_delete(self, entity_id: int) -> None:
        """Move an entity and its whole subtree to the trash."""
        self._save_snapshot()

        remove_node(self.state.tree, entity_id)
        if any(e.id == entity_id for e in self.state.entities):
            removed = collect_descendant_ids(self.state.entities, entity_id)
            self.state.entities = [e for e in self.state.entities if e.id not in removed]
        # The exact trash state is reconciled by a background check once confirmed
        self.state.has_trash = True

        await self._confirm("delete", entity_id, self.service.soft_delete(entity_id))
        self._schedule_trash_check()

    async def reorder_adjacent(self, entity_id: int, direction: Direction) -> None:
        """Swap an entity with its previous or next sibling.

        Moving the first sibling up or the last one down does nothing.
        """
        found = siblings_and_index(self.state.tree, entity_id)
        if found is None:
            logger.debug("Entity {} not in tree, nothing to reorder", entity_id)
            return
        siblings, index = found
        target = index - 1 if direction == Direction.UP else index + 1
        if not 0 <= target < len(siblings):
            logger.debug("Entity {} already at boundary, not moving {}", entity_id, direction)
            return

        self._save_snapshot()
        siblings[index], siblings[target] = siblings[target], siblings[index]

        await self._confirm(
            "reorder", entity_id, self.service.reorder_adjacent(entity_id, Direction(direction))
        )

    async def move_to(
        self,
        entity_id: int,
        parent_id: int | None,
        reference_id: int | None = None,
        position: DropPosition | None = None,
    ) -> None:
        """Move an entity under a new parent (None = root level).

        Without a reference the entity goes to the end of the target folder.
        """
        if parent_id is not None and (
            parent_id == entity_id
            or parent_id in collect_descendant_ids(self.state.entities, entity_id)
        ):
            msg = f"Cannot move entity {entity_id} into itself or its descendant {parent_id}"
            raise ValueError(msg)

        self._save_snapshot()

        node = remove_node(self.state.tree, entity_id)
        if node is not None:
            node.entity = replace(node.entity, parent_id=parent_id)
            if not insert_node_at_position(
                self.state.tree, parent_id, node, reference_id, position
            ):
                logger.debug("Target parent {} not in tree, entity {} hidden", parent_id, entity_id)

        if parent_id is not None:
            target = find_node(self.state.tree, parent_id)
            if target is not None:
                target.expanded = True
            self.state.expanded_ids.add(parent_id)

        self.state.entities = [
            replace(e, parent_id=parent_id) if e.id == entity_id else e
            for e in self.state.entities
        ]

        await self._confirm(
            "move",
            entity_id,
            self.service.move(entity_id, parent_id, reference_id, position),
        )

    async def reorder_at(
        self,
        entity_id: int,
        reference_id: int | None = None,
        position: DropPosition | None = None,
    ) -> None:
        """Place an entity before/after a sibling, or at the end without a reference."""
        self._save_snapshot()

        found = siblings_and_index(self.state.tree, entity_id)
        if found is not None:
            siblings, index = found
            node = siblings.pop(index)
            ref_index = next(
                (i for i, sibling in enumerate(siblings) if sibling.id == reference_id), None
            )
            if reference_id is None or ref_index is None:
                siblings.append(node)
            elif position == DropPosition.BEFORE:
                siblings.insert(ref_index, node)
            else:
                siblings.insert(ref_index + 1, node)

        await self._confirm(
            "reorder",
            entity_id,
            self.service.reorder_at(entity_id, reference_id, position),
        )

    def _schedule_trash_check(self) -> None:
        if self.space_id is None:
            return
        task = asyncio.get_running_loop().create_task(self._check_has_trash(self.space_id))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _check_has_trash(self, space_id: int) -> None:
        try:
            self.state.has_trash = await self.service.has_trash(space_id)
        except Exception:
            logger.exception("Failed to check trash status for space {}", space_id)

    async def wait_background(self) -> None:
        """Wait for background checks started by confirmed mutations."""
        if self._background:
            await asyncio.gather(*list(self._background))
