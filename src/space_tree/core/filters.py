"""Entity filters: Updated time window and Creator.

Folders stay visible while any descendant matches, so a filtered tree never
hides a matching document behind a missing ancestor.
"""

from collections import defaultdict
from collections.abc import Callable
from datetime import UTC, date, datetime, time, timedelta
from typing import Any

from loguru import logger

from space_tree.models.node import Entity
from space_tree.models.space import (
    DEFAULT_SPACE_FILTERS,
    AfterDate,
    SpaceFilters,
    UpdatedFilter,
    UpdatedPreset,
)

_PRESET_WINDOWS: dict[UpdatedPreset, timedelta] = {
    UpdatedPreset.LAST_7_DAYS: timedelta(days=7),
    UpdatedPreset.LAST_30_DAYS: timedelta(days=30),
    UpdatedPreset.LAST_3_MONTHS: timedelta(days=90),
}


def get_filter_cutoff(updated: UpdatedFilter, *, now: datetime | None = None) -> datetime | None:
    """Return the earliest update time that passes the filter, or None for no filter."""
    now = now or datetime.now(tz=UTC)
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)

    if isinstance(updated, AfterDate):
        return datetime.combine(updated.date, time.min, tzinfo=now.tzinfo)

    if updated is UpdatedPreset.TODAY:
        return now.replace(hour=0, minute=0, second=0, microsecond=0)

    window = _PRESET_WINDOWS.get(updated)
    if window is None:
        return None
    return now - window


def _filter_with_descendants(
    entities: list[Entity], matches: Callable[[Entity], bool]
) -> list[Entity]:
    children_by_parent: dict[int | None, list[Entity]] = defaultdict(list)
    for entity in entities:
        children_by_parent[entity.parent_id].append(entity)

    memo: dict[int, bool] = {}

    def has_match(entity: Entity) -> bool:
        if entity.id not in memo:
            memo[entity.id] = matches(entity) or any(
                has_match(child) for child in children_by_parent.get(entity.id, ())
            )
        return memo[entity.id]

    return [e for e in entities if (has_match(e) if e.is_folder else matches(e))]


def filter_by_updated(
    entities: list[Entity], updated: UpdatedFilter, *, now: datetime | None = None
) -> list[Entity]:
    """Keep entities updated after the cutoff, plus folders with a matching descendant."""
    cutoff = get_filter_cutoff(updated, now=now)
    if cutoff is None:
        return entities
    return _filter_with_descendants(entities, lambda e: e.updated_at >= cutoff)


def filter_by_creator(entities: list[Entity], creator: str) -> list[Entity]:
    """Keep entities whose creator contains the query (case-insensitive)."""
    query = creator.strip().lower()
    if not query:
        return entities
    return _filter_with_descendants(
        entities, lambda e: query in (e.created_by or "").lower()
    )


def apply_filters(
    entities: list[Entity], filters: SpaceFilters | None, *, now: datetime | None = None
) -> list[Entity]:
    """Apply every active filter condition."""
    if filters is None:
        return entities
    filtered = filter_by_updated(entities, filters.updated, now=now)
    return filter_by_creator(filtered, filters.creator)


def filter_count(filters: SpaceFilters) -> int:
    """Number of active filter conditions."""
    count = 0
    if filters.updated != UpdatedPreset.ANY_TIME:
        count += 1
    if filters.creator.strip():
        count += 1
    return count


def filters_equal(a: SpaceFilters, b: SpaceFilters) -> bool:
    return a.updated == b.updated and a.creator.strip() == b.creator.strip()


def _parse_updated(raw: Any) -> UpdatedFilter:
    if isinstance(raw, UpdatedPreset | AfterDate):
        return raw
    if isinstance(raw, str):
        try:
            return UpdatedPreset(raw)
        except ValueError:
            logger.debug("Unknown updated filter {!r}, using any_time", raw)
            return UpdatedPreset.ANY_TIME
    if isinstance(raw, dict) and raw.get("type") == "after_date" and raw.get("date"):
        try:
            return AfterDate(date.fromisoformat(str(raw["date"])[:10]))
        except ValueError:
            logger.debug("Bad after_date filter {!r}, using any_time", raw)
    return UpdatedPreset.ANY_TIME


def normalize_filters(raw: SpaceFilters | dict[str, Any] | None) -> SpaceFilters:
    """Return a complete SpaceFilters from a partial, legacy or missing payload."""
    if raw is None:
        return DEFAULT_SPACE_FILTERS
    if isinstance(raw, SpaceFilters):
        return raw
    creator = raw.get("creator")
    return SpaceFilters(
        updated=_parse_updated(raw.get("updated")),
        creator=creator if isinstance(creator, str) else "",
    )


def filters_to_json(filters: SpaceFilters) -> dict[str, Any]:
    updated: Any = filters.updated
    if isinstance(updated, AfterDate):
        updated = {"type": "after_date", "date": updated.date.isoformat()}
    else:
        updated = str(updated)
    return {"updated": updated, "creator": filters.creator}
