"""Space, sort and filter models."""

from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum


class SortMode(StrEnum):
    """Ordering applied within each sibling group.

    Values match what the document service stores in preferences.
    """

    DEFAULT = "default"
    ALPHABETICAL_ASC = "alphabetical_asc"
    ALPHABETICAL_DESC = "alphabetical_desc"
    UPDATED_ASC = "updatedAt_asc"
    UPDATED_DESC = "updatedAt_desc"
    CREATED_ASC = "createdAt_asc"
    CREATED_DESC = "createdAt_desc"


class UpdatedPreset(StrEnum):
    """Preset time windows for the Updated filter."""

    ANY_TIME = "any_time"
    TODAY = "today"
    LAST_7_DAYS = "last_7_days"
    LAST_30_DAYS = "last_30_days"
    LAST_3_MONTHS = "last_3_months"


@dataclass(frozen=True)
class AfterDate:
    """Custom Updated filter: entities updated on or after a calendar date."""

    date: date


UpdatedFilter = UpdatedPreset | AfterDate


@dataclass(frozen=True)
class SpaceFilters:
    """Active filter conditions for a space."""

    updated: UpdatedFilter = UpdatedPreset.ANY_TIME
    creator: str = ""


DEFAULT_SPACE_FILTERS = SpaceFilters()


@dataclass(frozen=True)
class Space:
    """A collection of documents and folders."""

    id: int
    name: str
    default_sort: SortMode = SortMode.DEFAULT
    default_filters: SpaceFilters = field(default_factory=SpaceFilters)


@dataclass(frozen=True)
class SpacePreferences:
    """Per-user view preferences stored for a space."""

    sort: SortMode | None = None
    filters: SpaceFilters | None = None
    expanded_folders: tuple[int, ...] = ()
