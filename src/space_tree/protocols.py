"""Protocols for dependency injection in the space tree."""

from typing import Any, Protocol, runtime_checkable

from space_tree.models.drag import Direction, DropPosition, RowRect
from space_tree.models.node import Entity, EntityDraft
from space_tree.models.space import SpacePreferences


@runtime_checkable
class SpaceServiceProtocol(Protocol):
    """Persistence operations the tree depends on.

    Every call may fail; callers decide whether a failure is rolled back,
    logged, or propagated.
    """

    async def get_tree_content(self, space_id: int) -> list[Entity]: ...

    async def get_trash_content(self, space_id: int) -> list[Entity]: ...

    async def has_trash(self, space_id: int) -> bool: ...

    async def get_preferences(self, space_id: int) -> SpacePreferences: ...

    async def update_preferences(self, space_id: int, changes: dict[str, Any]) -> None: ...

    async def create_entity(self, draft: EntityDraft) -> Entity: ...

    async def soft_delete(self, entity_id: int) -> None: ...

    async def restore(self, entity_id: int) -> None: ...

    async def rename(self, entity_id: int, title: str) -> Entity: ...

    async def move(
        self,
        entity_id: int,
        parent_id: int | None,
        reference_id: int | None = None,
        position: DropPosition | None = None,
    ) -> None: ...

    async def reorder_adjacent(self, entity_id: int, direction: Direction) -> None: ...

    async def reorder_at(
        self,
        entity_id: int,
        reference_id: int | None = None,
        position: DropPosition | None = None,
    ) -> None: ...


@runtime_checkable
class RowGeometryProtocol(Protocol):
    """Live row geometry, queried when no layout cache entry is available."""

    def folder_header_rect(self, folder_id: int) -> RowRect | None:
        """Return the header row of an expanded folder, or None if not rendered."""
        ...

    def row_rect(self, item_id: int) -> RowRect | None:
        """Return the row of an item, or None if not rendered."""
        ...
