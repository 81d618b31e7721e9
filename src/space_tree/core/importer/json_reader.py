"""Parse service JSON payloads and exports into domain models."""

from datetime import UTC, datetime
from typing import Any

from loguru import logger

from space_tree.core.filters import normalize_filters
from space_tree.models.drag import DragLayoutCache, RowRect
from space_tree.models.node import Entity, EntityKind
from space_tree.models.space import SortMode, Space, SpacePreferences

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def _first(raw: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return None


def parse_timestamp(value: Any) -> datetime:
    """Accept ISO strings or epoch milliseconds; missing values map to the epoch."""
    if value is None or value == "":
        return EPOCH
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if isinstance(value, int | float):
        return datetime.fromtimestamp(value / 1000, tz=UTC)
    parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def entity_from_json(raw: dict[str, Any]) -> Entity:
    """Build an Entity from service-style (camelCase) or snake_case keys."""
    kind_raw = _first(raw, "docType", "doc_type", "kind") or EntityKind.DOCUMENT
    try:
        kind = EntityKind(kind_raw)
    except ValueError:
        msg = f"Unknown entity kind {kind_raw!r} for id {raw.get('id')!r}"
        raise ValueError(msg) from None

    metadata = raw.get("contentMetadata") or {}
    title = _first(metadata, "title") if isinstance(metadata, dict) else None
    if title is None:
        title = raw.get("title")

    parent_id = _first(raw, "parentId", "parent_id")
    return Entity(
        id=int(raw["id"]),
        parent_id=int(parent_id) if parent_id is not None else None,
        kind=kind,
        title=str(title) if title is not None else "",
        sort_order=float(_first(raw, "sortOrder", "sort_order") or 0),
        created_at=parse_timestamp(_first(raw, "createdAt", "created_at")),
        updated_at=parse_timestamp(_first(raw, "updatedAt", "updated_at")),
        created_by=_first(raw, "createdBy", "created_by"),
        content_type=_first(raw, "contentType", "content_type"),
    )


def parse_entities(data: list[dict[str, Any]] | dict[str, Any]) -> list[Entity]:
    """Parse an entity export (a list, or an object with an ``entities`` list).

    Raises:
        ValueError: On duplicate ids, unknown kinds or parents that do not exist.
    """
    raw_entities = data.get("entities", []) if isinstance(data, dict) else data
    entities = [entity_from_json(raw) for raw in raw_entities]

    seen: set[int] = set()
    duplicates: set[int] = set()
    for entity in entities:
        if entity.id in seen:
            duplicates.add(entity.id)
        seen.add(entity.id)
    if duplicates:
        msg = f"Duplicate entity ids: {sorted(duplicates)!r}"
        raise ValueError(msg)

    orphans = sorted(e.id for e in entities if e.parent_id is not None and e.parent_id not in seen)
    if orphans:
        msg = f"Orphaned entities: {orphans!r}"
        raise ValueError(msg)

    return entities


def space_from_json(raw: dict[str, Any]) -> Space:
    default_sort = _first(raw, "defaultSort", "default_sort")
    return Space(
        id=int(raw["id"]),
        name=str(raw.get("name") or ""),
        default_sort=SortMode(default_sort) if default_sort else SortMode.DEFAULT,
        default_filters=normalize_filters(_first(raw, "defaultFilters", "default_filters")),
    )


def _parse_sort(raw: Any) -> SortMode | None:
    if not raw:
        return None
    try:
        return SortMode(raw)
    except ValueError:
        logger.debug("Unknown stored sort {!r}, using the space default", raw)
        return None


def preferences_from_json(raw: dict[str, Any] | None) -> SpacePreferences:
    """Parse stored preferences; absent or unknown values stay None so defaults apply."""
    raw = raw or {}
    filters = raw.get("filters")
    expanded = _first(raw, "expandedFolders", "expanded_folders") or []
    return SpacePreferences(
        sort=_parse_sort(raw.get("sort")),
        filters=normalize_filters(filters) if filters is not None else None,
        expanded_folders=tuple(int(i) for i in expanded),
    )


def _parent_key(key: str | int | None) -> int | None:
    if key is None or key in ("", "null", "root"):
        return None
    return int(key)


def layout_from_json(raw: dict[str, Any]) -> DragLayoutCache:
    """Parse a captured drag layout.

    Children are keyed by parent id, with ``null``/``root`` for the root level.
    Row rects accept ``top``, ``height``, ``rectTop`` and ``rectBottom``.
    """
    children = _first(raw, "childrenByParent", "children_by_parent") or {}
    rects = _first(raw, "itemRects", "item_rects") or {}
    item_rects: dict[int, RowRect] = {}
    for key, rect in rects.items():
        height = float(rect.get("height") or 0)
        rect_top = float(_first(rect, "rectTop", "rect_top") or 0)
        rect_bottom = _first(rect, "rectBottom", "rect_bottom")
        top = rect.get("top")
        item_rects[int(key)] = RowRect(
            rect_top=rect_top,
            rect_bottom=float(rect_bottom) if rect_bottom is not None else rect_top + height,
            height=height,
            top=float(top) if top is not None else None,
        )
    return DragLayoutCache(
        children_by_parent={
            _parent_key(key): [int(i) for i in ids] for key, ids in children.items()
        },
        item_rects=item_rects,
        container_top=float(_first(raw, "containerTop", "container_top") or 0),
        scroll_top=float(_first(raw, "scrollTop", "scroll_top") or 0),
        scroll_left=float(_first(raw, "scrollLeft", "scroll_left") or 0),
    )
