"""Debounced persistence of per-space view preferences."""

from typing import Any

from loguru import logger

from space_tree.config import EXPANDED_SAVE_DEBOUNCE, FILTER_SAVE_DEBOUNCE, SORT_SAVE_DEBOUNCE
from space_tree.core.filters import filters_equal, filters_to_json, normalize_filters
from space_tree.core.preferences.debounce import Debouncer
from space_tree.models.space import DEFAULT_SPACE_FILTERS, SortMode, Space, SpaceFilters
from space_tree.protocols import SpaceServiceProtocol


class PreferenceSync:
    """Save sort mode, filters and expanded folders for one space.

    Save failures are logged and swallowed: local state stays authoritative
    and the next load reconciles.
    """

    def __init__(
        self,
        service: SpaceServiceProtocol,
        space: Space,
        *,
        debouncer: Debouncer | None = None,
        sort_delay: float = SORT_SAVE_DEBOUNCE,
        filter_delay: float = FILTER_SAVE_DEBOUNCE,
        expanded_delay: float = EXPANDED_SAVE_DEBOUNCE,
    ) -> None:
        self.service = service
        self.space = space
        self.debouncer = debouncer or Debouncer()
        self.sort_delay = sort_delay
        self.filter_delay = filter_delay
        self.expanded_delay = expanded_delay

    async def _write(self, what: str, changes: dict[str, Any]) -> bool:
        try:
            await self.service.update_preferences(self.space.id, changes)
        except Exception:
            logger.exception("Failed to save {} preference for space {}", what, self.space.id)
            return False
        logger.debug("Saved {} preference for space {}", what, self.space.id)
        return True

    def save_sort(self, sort_mode: SortMode) -> None:
        # The space default is stored as null so later default changes apply
        value = None if sort_mode == self.space.default_sort else str(sort_mode)
        changes = {"sort": value}
        self.debouncer.schedule("sort", self.sort_delay, lambda: self._save("sort", changes))

    async def reset_sort(self) -> bool:
        self.debouncer.cancel("sort")
        return await self._write("sort", {"sort": None})

    def save_filters(self, filters: SpaceFilters) -> None:
        if filters_equal(filters, normalize_filters(self.space.default_filters)):
            filters = DEFAULT_SPACE_FILTERS
        changes = {"filters": filters_to_json(filters)}
        self.debouncer.schedule(
            "filters", self.filter_delay, lambda: self._save("filters", changes)
        )

    async def reset_filters(self) -> bool:
        self.debouncer.cancel("filters")
        return await self._write("filters", {"filters": filters_to_json(DEFAULT_SPACE_FILTERS)})

    def save_expanded(self, expanded_ids: set[int] | frozenset[int]) -> None:
        changes = {"expandedFolders": sorted(expanded_ids)}
        self.debouncer.schedule(
            "expanded", self.expanded_delay, lambda: self._save("expanded folders", changes)
        )

    async def _save(self, what: str, changes: dict[str, Any]) -> None:
        await self._write(what, changes)

    def cancel_pending(self) -> None:
        self.debouncer.cancel_all()
