"""Project a drag gesture onto a concrete drop location.

The projection answers "insert before/after sibling X inside parent P" for the
current pointer position, or returns None when dropping would not move
anything. Row geometry comes from a layout cache captured at drag start, with
a live geometry provider as fallback for rows the cache does not know.
"""

import math
from dataclasses import dataclass

from space_tree.config import INDENTATION_WIDTH
from space_tree.core.tree.flatten import find_item
from space_tree.models.drag import (
    DragLayoutCache,
    DropIndicator,
    DropPosition,
    DropProjection,
    IndicatorPosition,
)
from space_tree.models.node import FlattenedItem
from space_tree.protocols import RowGeometryProtocol


@dataclass(frozen=True)
class Positioning:
    """Drop location before validation."""

    target_parent_id: int | None
    reference_id: int | None
    position: DropPosition
    is_on_folder_header: bool


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _append_to(container_id: int | None, *, on_header: bool) -> Positioning:
    return Positioning(
        target_parent_id=container_id,
        reference_id=None,
        position=DropPosition.AFTER,
        is_on_folder_header=on_header,
    )


def _calculate_drop_position(
    container_id: int | None,
    pointer_y: float | None,
    items: list[FlattenedItem],
    active_id: int,
    layout: DragLayoutCache | None,
    geometry: RowGeometryProtocol | None,
) -> Positioning | None:
    """Find the insertion point among a container's children.

    Returns None when the computed spot is the dragged item's current spot.
    """
    # Cached rects are in content coordinates so scrolling does not invalidate them.
    pointer_in_content: float | None = None
    if layout is not None and pointer_y is not None and math.isfinite(layout.container_top):
        pointer_in_content = pointer_y - layout.container_top + layout.scroll_top

    if layout is not None and container_id in layout.children_by_parent:
        children_ids = list(layout.children_by_parent[container_id])
    else:
        children_ids = [item.id for item in items if item.parent_id == container_id]

    active_index = children_ids.index(active_id) if active_id in children_ids else -1

    if container_id is not None and pointer_y is not None:
        cached = layout.item_rects.get(container_id) if layout is not None else None
        if cached is not None and cached.top is not None and pointer_in_content is not None:
            if pointer_in_content <= cached.top + cached.height:
                return _append_to(container_id, on_header=True)
        elif geometry is not None:
            header = geometry.folder_header_rect(container_id)
            if header is not None and pointer_y <= header.rect_bottom:
                return _append_to(container_id, on_header=True)

    if pointer_y is None or not children_ids:
        return _append_to(
            container_id, on_header=container_id is not None and not children_ids
        )

    last_id: int | None = None
    last_index = -1
    for index, child_id in enumerate(children_ids):
        cached = layout.item_rects.get(child_id) if layout is not None else None
        if cached is not None and cached.top is not None and pointer_in_content is not None:
            center = cached.top + cached.height / 2
            compare_y = pointer_in_content
        elif geometry is not None:
            rect = geometry.row_rect(child_id)
            if rect is None:
                continue
            center = rect.center
            compare_y = pointer_y
        else:
            continue

        if compare_y < center:
            # "before my next sibling" and "before myself" leave the order unchanged
            if active_index != -1 and index == active_index + 1:
                return None
            if child_id == active_id:
                return None
            return Positioning(
                target_parent_id=container_id,
                reference_id=child_id,
                position=DropPosition.BEFORE,
                is_on_folder_header=False,
            )

        last_id = child_id
        last_index = index

    if last_id is not None:
        # "after my previous sibling" and "after myself" leave the order unchanged
        if active_index != -1 and last_index == active_index - 1:
            return None
        if last_id == active_id:
            return None
        return Positioning(
            target_parent_id=container_id,
            reference_id=last_id,
            position=DropPosition.AFTER,
            is_on_folder_header=False,
        )

    # No geometry for any child
    return _append_to(container_id, on_header=container_id is not None)


def build_projected_drop(
    positioning: Positioning,
    active_item: FlattenedItem,
    projected_depth: int,
    is_default_sort: bool,
) -> DropProjection:
    """Attach depth and validity to a drop location."""
    is_same_parent = positioning.target_parent_id == active_item.parent_id
    is_valid = True
    if not is_default_sort and is_same_parent:
        # Manual ordering only exists in default sort mode
        is_valid = False
    elif active_item.is_folder and positioning.target_parent_id == active_item.id:
        is_valid = False

    return DropProjection(
        target_parent_id=positioning.target_parent_id,
        reference_id=positioning.reference_id,
        position=positioning.position,
        depth=projected_depth,
        is_same_parent=is_same_parent,
        is_valid=is_valid,
        is_on_folder_header=positioning.is_on_folder_header,
    )


def get_projection(
    items: list[FlattenedItem],
    active_id: int,
    over_id: int,
    drag_offset: float = 0.0,
    is_default_sort: bool = True,
    pointer_y: float | None = None,
    layout: DragLayoutCache | None = None,
    geometry: RowGeometryProtocol | None = None,
    *,
    indentation_width: int = INDENTATION_WIDTH,
) -> DropProjection | None:
    """Compute where dropping ``active_id`` while hovering ``over_id`` would land.

    Args:
        items: Flattened visible rows.
        active_id: The dragged item.
        over_id: The hovered item.
        drag_offset: Horizontal drag offset in pixels (depth re-projection).
        is_default_sort: Whether manual sibling ordering is allowed.
        pointer_y: Pointer vertical coordinate, None for keyboard/fallback drops.
        layout: Row geometry captured at drag start.
        geometry: Live geometry for rows missing from ``layout``.

    Returns:
        The projection, or None when the gesture would not move anything.
        Hovering a descendant of the dragged item yields an invalid projection.
    """
    active_item = find_item(items, active_id)
    over_item = find_item(items, over_id)
    if active_item is None or over_item is None or active_id == over_id:
        return None

    if over_id in active_item.descendant_ids:
        return DropProjection(
            target_parent_id=None,
            reference_id=None,
            position=DropPosition.AFTER,
            depth=0,
            is_same_parent=False,
            is_valid=False,
            is_on_folder_header=False,
        )

    depth_change = _round_half_up(drag_offset / indentation_width)
    projected_depth = max(0, over_item.depth + depth_change)

    if over_item.is_folder and not over_item.expanded:
        return build_projected_drop(
            _append_to(over_item.id, on_header=True), active_item, projected_depth, is_default_sort
        )

    if pointer_y is None:
        if over_item.is_folder:
            positioning = _append_to(over_item.id, on_header=True)
        else:
            positioning = Positioning(
                target_parent_id=over_item.parent_id,
                reference_id=over_item.id,
                position=DropPosition.AFTER,
                is_on_folder_header=False,
            )
        return build_projected_drop(positioning, active_item, projected_depth, is_default_sort)

    container_id = over_item.id if over_item.is_folder else over_item.parent_id
    positioning = _calculate_drop_position(
        container_id, pointer_y, items, active_id, layout, geometry
    )
    if positioning is None:
        return None

    # Dropping onto the header of the folder the item already lives in moves nothing
    if positioning.is_on_folder_header and positioning.target_parent_id == active_item.parent_id:
        return None

    return build_projected_drop(positioning, active_item, projected_depth, is_default_sort)


def get_drop_indicator(
    items: list[FlattenedItem],
    active_id: int,
    over_id: int,
    pointer_y: float,
    over_top: float | None,
    over_height: float,
    is_default_sort: bool,
) -> DropIndicator | None:
    """Row-relative drop feedback.

    Folders split into thirds (before / inside / after), documents into halves.
    """
    active_item = find_item(items, active_id)
    over_item = find_item(items, over_id)
    if active_item is None or over_item is None or over_top is None or active_id == over_id:
        return None

    relative_y = pointer_y - over_top
    threshold = over_height / 3

    target_parent_id: int | None = over_item.parent_id
    if over_item.is_folder:
        if relative_y < threshold:
            position = IndicatorPosition.BEFORE
        elif relative_y > over_height - threshold:
            position = IndicatorPosition.AFTER
        else:
            position = IndicatorPosition.INSIDE
            target_parent_id = over_item.id
    elif relative_y < over_height / 2:
        position = IndicatorPosition.BEFORE
    else:
        position = IndicatorPosition.AFTER

    is_same_parent = target_parent_id == active_item.parent_id
    is_valid = over_id not in active_item.descendant_ids and (is_default_sort or not is_same_parent)
    return DropIndicator(
        position=position,
        over_item=over_item,
        depth=over_item.depth + 1 if position is IndicatorPosition.INSIDE else over_item.depth,
        is_valid=is_valid,
    )
