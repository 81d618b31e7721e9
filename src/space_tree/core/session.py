"""Session state for the tree of one selected space."""

from collections.abc import Callable
from datetime import datetime

from loguru import logger

from space_tree.core import filters as filtering
from space_tree.core.drag.projection import get_projection
from space_tree.core.preferences.sync import PreferenceSync
from space_tree.core.sorting import get_sort_comparator
from space_tree.core.state import TreeState
from space_tree.core.tree.builder import build_tree
from space_tree.core.tree.edits import add_node_to_tree, update_node_expanded
from space_tree.core.tree.flatten import flatten_tree
from space_tree.core.write.controller import OptimisticMutationController
from space_tree.models.drag import (
    Direction,
    DragLayoutCache,
    DropPosition,
    DropProjection,
)
from space_tree.models.node import Entity, EntityDraft, EntityKind, FlattenedItem, TreeNode
from space_tree.models.space import DEFAULT_SPACE_FILTERS, SortMode, Space, SpaceFilters
from space_tree.protocols import RowGeometryProtocol, SpaceServiceProtocol


class SpaceTreeSession:
    """Owns the tree, cache, expansion and view settings of the selected space.

    Reads started for a space are discarded if another space was selected
    before they completed. Debounced writes (sort, filters, expanded folders)
    schedule tasks on the running loop, so the methods that trigger them must
    be called from within it.
    """

    def __init__(
        self,
        service: SpaceServiceProtocol,
        *,
        clock: Callable[[], datetime] | None = None,
        preference_delays: dict[str, float] | None = None,
    ) -> None:
        self.service = service
        self._clock = clock
        self._preference_delays = preference_delays or {}

        self.space: Space | None = None
        self.state = TreeState()
        self.trash: list[Entity] = []
        self.loading = False
        self.selected_id: int | None = None
        self.show_trash = False
        self.search_query = ""
        self.sort_mode = SortMode.DEFAULT
        self.filters = DEFAULT_SPACE_FILTERS

        self._scope_token = 0
        self._creating_document = False
        self._preferences: PreferenceSync | None = None
        self._controller = OptimisticMutationController(service, self.state)

    # -- observed state ------------------------------------------------------

    @property
    def tree(self) -> list[TreeNode]:
        return self.state.tree

    @property
    def expanded_ids(self) -> set[int]:
        return self.state.expanded_ids

    @property
    def has_trash(self) -> bool:
        return self.state.has_trash

    @property
    def is_searching(self) -> bool:
        return bool(self.search_query.strip())

    @property
    def is_default_sort(self) -> bool:
        """Manual reordering is only possible in default sort mode."""
        return self.sort_mode == SortMode.DEFAULT

    @property
    def is_matching_space_default(self) -> bool:
        default = self.space.default_sort if self.space else SortMode.DEFAULT
        return self.sort_mode == default

    @property
    def filter_count(self) -> int:
        return filtering.filter_count(self.filters)

    @property
    def is_matching_space_default_filters(self) -> bool:
        default = self.space.default_filters if self.space else None
        return filtering.filters_equal(self.filters, filtering.normalize_filters(default))

    def flattened(self) -> list[FlattenedItem]:
        return flatten_tree(self.state.tree)

    def project_drop(
        self,
        active_id: int,
        over_id: int,
        drag_offset: float = 0.0,
        pointer_y: float | None = None,
        layout: DragLayoutCache | None = None,
        geometry: RowGeometryProtocol | None = None,
    ) -> DropProjection | None:
        return get_projection(
            self.flattened(),
            active_id,
            over_id,
            drag_offset,
            self.is_default_sort,
            pointer_y,
            layout,
            geometry,
        )

    # -- space selection and loading -----------------------------------------

    async def select_space(self, space: Space | None) -> None:
        """Switch to ``space`` (None = deselect) and load its preferences and tree."""
        if space is not None and self.space is not None and space.id == self.space.id:
            return

        if self._preferences is not None:
            self._preferences.cancel_pending()
        self._scope_token += 1
        token = self._scope_token

        self.space = space
        self.state = TreeState()
        self.trash = []
        self.selected_id = None
        self.show_trash = False
        self.search_query = ""
        self._controller = OptimisticMutationController(
            self.service, self.state, space_id=space.id if space else None
        )

        if space is None:
            self._preferences = None
            self.sort_mode = SortMode.DEFAULT
            self.filters = DEFAULT_SPACE_FILTERS
            return

        logger.info("Selected space {} ({})", space.id, space.name)
        self._preferences = PreferenceSync(self.service, space, **self._preference_delays)
        self.sort_mode = space.default_sort
        self.filters = filtering.normalize_filters(space.default_filters)

        await self._load_preferences(space, token)
        if token != self._scope_token:
            return
        await self.load_tree()
        if token != self._scope_token:
            return
        await self.check_has_trash()

    async def _load_preferences(self, space: Space, token: int) -> None:
        try:
            prefs = await self.service.get_preferences(space.id)
        except Exception:
            if token == self._scope_token:
                logger.exception("Failed to load preferences for space {}, using defaults", space.id)
            return
        if token != self._scope_token:
            logger.debug("Discarding preferences of superseded space {}", space.id)
            return

        self.sort_mode = SortMode(prefs.sort) if prefs.sort else space.default_sort
        saved = filtering.normalize_filters(prefs.filters)
        if filtering.filter_count(saved):
            self.filters = saved
        # Without saved state folders start collapsed
        if prefs.expanded_folders:
            self.state.expanded_ids = set(prefs.expanded_folders)

    def _rebuild(self) -> None:
        now = self._clock() if self._clock else None
        visible = filtering.apply_filters(self.state.entities, self.filters, now=now)
        self.state.tree = build_tree(visible, self.state.expanded_ids, self.sort_mode)

    async def load_tree(self) -> None:
        space = self.space
        if space is None:
            return
        token = self._scope_token
        # Background reloads keep the current tree visible
        if not self.state.entities:
            self.loading = True
        try:
            entities = await self.service.get_tree_content(space.id)
        except Exception:
            logger.exception("Failed to load tree for space {}", space.id)
            return
        finally:
            if token == self._scope_token:
                self.loading = False

        if token != self._scope_token:
            logger.debug("Discarding tree of superseded space {}", space.id)
            return
        self.state.entities = list(entities)
        self._rebuild()
        logger.debug("Loaded {} entities for space {}", len(entities), space.id)

    async def load_trash(self) -> None:
        space = self.space
        if space is None:
            return
        token = self._scope_token
        try:
            trash = await self.service.get_trash_content(space.id)
        except Exception:
            logger.exception("Failed to load trash for space {}", space.id)
            return
        if token == self._scope_token:
            self.trash = list(trash)

    async def check_has_trash(self) -> None:
        space = self.space
        if space is None:
            return
        token = self._scope_token
        try:
            has_trash = await self.service.has_trash(space.id)
        except Exception:
            logger.exception("Failed to check trash status for space {}", space.id)
            return
        if token == self._scope_token:
            self.state.has_trash = has_trash

    async def refresh_tree(self) -> None:
        await self.load_tree()
        await self.check_has_trash()

    # -- view state ------------------------------------------------------------

    def toggle_expanded(self, entity_id: int) -> bool:
        """Flip a folder's expansion; returns the new state."""
        expanded = entity_id not in self.state.expanded_ids
        if expanded:
            self.state.expanded_ids.add(entity_id)
        else:
            self.state.expanded_ids.discard(entity_id)
        update_node_expanded(self.state.tree, entity_id, expanded)
        if self._preferences is not None:
            self._preferences.save_expanded(set(self.state.expanded_ids))
        return expanded

    def select(self, entity_id: int | None) -> None:
        self.selected_id = entity_id

    def set_show_trash(self, show: bool) -> None:
        self.show_trash = show

    def set_search_query(self, query: str) -> None:
        self.search_query = query

    def clear_search(self) -> None:
        self.search_query = ""

    def set_sort_mode(self, sort_mode: SortMode | str) -> None:
        self.sort_mode = SortMode(sort_mode)
        self._rebuild()
        if self._preferences is not None:
            self._preferences.save_sort(self.sort_mode)

    async def reset_to_default_sort(self) -> None:
        self.sort_mode = self.space.default_sort if self.space else SortMode.DEFAULT
        self._rebuild()
        if self._preferences is not None:
            await self._preferences.reset_sort()

    def set_filters(self, filters: SpaceFilters | dict | None) -> None:
        self.filters = filtering.normalize_filters(filters)
        self._rebuild()
        if self._preferences is not None:
            self._preferences.save_filters(self.filters)

    async def reset_to_default_filters(self) -> None:
        default = self.space.default_filters if self.space else None
        self.filters = filtering.normalize_filters(default)
        self._rebuild()
        if self._preferences is not None:
            await self._preferences.reset_filters()

    # -- creation ----------------------------------------------------------------

    def _handle_created(self, entity: Entity, parent_id: int | None) -> None:
        self.state.entities.append(entity)
        if parent_id is not None:
            self.state.expanded_ids.add(parent_id)
            update_node_expanded(self.state.tree, parent_id, True)
        add_node_to_tree(
            self.state.tree,
            entity,
            parent_id,
            get_sort_comparator(self.sort_mode),
            self.state.expanded_ids,
        )
        self.selected_id = entity.id

    async def _create(self, draft: EntityDraft) -> Entity | None:
        token = self._scope_token
        try:
            entity = await self.service.create_entity(draft)
        except Exception:
            logger.exception("Failed to create {} {!r}", draft.kind, draft.title)
            return None
        if token == self._scope_token:
            self._handle_created(entity, draft.parent_id)
        logger.info("Created {} {} {!r}", draft.kind, entity.id, entity.title)
        return entity

    async def create_folder(self, parent_id: int | None, name: str) -> Entity | None:
        if self.space is None:
            return None
        draft = EntityDraft(
            space_id=self.space.id,
            parent_id=parent_id,
            kind=EntityKind.FOLDER,
            title=name,
            content_type="folder",
        )
        return await self._create(draft)

    async def create_document(
        self, parent_id: int | None, name: str, content_type: str = "text/markdown"
    ) -> Entity | None:
        """Create a document; ignored while another document creation is in flight."""
        if self.space is None or self._creating_document:
            return None
        self._creating_document = True
        try:
            content = "" if content_type.startswith("application/") else f"# {name}\n\n"
            draft = EntityDraft(
                space_id=self.space.id,
                parent_id=parent_id,
                kind=EntityKind.DOCUMENT,
                title=name,
                content=content,
                content_type=content_type,
            )
            return await self._create(draft)
        finally:
            self._creating_document = False

    async def restore(self, entity_id: int) -> bool:
        """Restore an entity from the trash, then reload tree and trash."""
        try:
            await self.service.restore(entity_id)
        except Exception:
            logger.exception("Failed to restore entity {}", entity_id)
            return False
        await self.load_tree()
        await self.load_trash()
        await self.check_has_trash()
        return True

    # -- optimistic mutations ------------------------------------------------------

    async def rename(self, entity_id: int, title: str) -> Entity:
        return await self._controller.rename(entity_id, title)

    async def soft_delete(self, entity_id: int) -> None:
        await self._controller.soft_delete(entity_id)

    async def reorder_adjacent(self, entity_id: int, direction: Direction | str) -> None:
        await self._controller.reorder_adjacent(entity_id, Direction(direction))

    async def move_to(
        self,
        entity_id: int,
        parent_id: int | None,
        reference_id: int | None = None,
        position: DropPosition | str | None = None,
    ) -> None:
        await self._controller.move_to(
            entity_id, parent_id, reference_id, DropPosition(position) if position else None
        )

    async def reorder_at(
        self,
        entity_id: int,
        reference_id: int | None = None,
        position: DropPosition | str | None = None,
    ) -> None:
        await self._controller.reorder_at(
            entity_id, reference_id, DropPosition(position) if position else None
        )

    async def close(self) -> None:
        """Drop pending preference writes and wait for background checks."""
        if self._preferences is not None:
            self._preferences.cancel_pending()
        await self._controller.wait_background()
