"""Drag-and-drop geometry and projection models."""

from dataclasses import dataclass, field
from enum import StrEnum

from space_tree.models.node import FlattenedItem


class DropPosition(StrEnum):
    BEFORE = "before"
    AFTER = "after"


class IndicatorPosition(StrEnum):
    BEFORE = "before"
    AFTER = "after"
    INSIDE = "inside"


class Direction(StrEnum):
    UP = "up"
    DOWN = "down"


@dataclass(frozen=True)
class RowRect:
    """Vertical geometry of a rendered row.

    ``top`` is in content coordinates (scroll independent) and is only set for
    rectangles captured into a layout cache. ``rect_top``/``rect_bottom`` are
    viewport coordinates.
    """

    rect_top: float
    rect_bottom: float
    height: float
    top: float | None = None

    @property
    def center(self) -> float:
        return self.rect_top + self.height / 2


@dataclass(frozen=True)
class DragLayoutCache:
    """Row geometry captured at drag start so frames need no layout queries."""

    children_by_parent: dict[int | None, list[int]] = field(default_factory=dict)
    item_rects: dict[int, RowRect] = field(default_factory=dict)
    container_top: float = 0.0
    scroll_top: float = 0.0
    scroll_left: float = 0.0


@dataclass(frozen=True)
class DropProjection:
    """Where a dragged item would land if dropped now."""

    target_parent_id: int | None
    reference_id: int | None
    position: DropPosition
    depth: int
    is_same_parent: bool
    is_valid: bool
    is_on_folder_header: bool


@dataclass(frozen=True)
class DropIndicator:
    """Row-relative drop feedback."""

    position: IndicatorPosition
    over_item: FlattenedItem
    depth: int
    is_valid: bool
