"""Sibling ordering by sort mode."""

from collections.abc import Callable, Iterable
from functools import cmp_to_key

from space_tree.models.node import Entity
from space_tree.models.space import SortMode

Comparator = Callable[[Entity, Entity], int]


def _cmp(a: object, b: object) -> int:
    return (a > b) - (a < b)  # type: ignore[operator]


def _title(entity: Entity) -> str:
    return entity.title or ""


def get_sort_comparator(sort_mode: SortMode | str) -> Comparator:
    """Return a three-way comparator for the given sort mode.

    Titles compare case-sensitively, a missing title counts as the empty string.
    Ties compare equal so a stable sort keeps their input order.
    """
    match SortMode(sort_mode):
        case SortMode.ALPHABETICAL_ASC:
            return lambda a, b: _cmp(_title(a), _title(b))
        case SortMode.ALPHABETICAL_DESC:
            return lambda a, b: _cmp(_title(b), _title(a))
        case SortMode.UPDATED_ASC:
            return lambda a, b: _cmp(a.updated_at, b.updated_at)
        case SortMode.UPDATED_DESC:
            return lambda a, b: _cmp(b.updated_at, a.updated_at)
        case SortMode.CREATED_ASC:
            return lambda a, b: _cmp(a.created_at, b.created_at)
        case SortMode.CREATED_DESC:
            return lambda a, b: _cmp(b.created_at, a.created_at)
        case _:
            return lambda a, b: _cmp(a.sort_order, b.sort_order)


def sort_entities(entities: Iterable[Entity], sort_mode: SortMode | str) -> list[Entity]:
    """Return a new list ordered by ``sort_mode`` (stable)."""
    return sorted(entities, key=cmp_to_key(get_sort_comparator(sort_mode)))
