"""Domain models for the space tree."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum


class EntityKind(StrEnum):
    """Kind of entry stored in a space."""

    FOLDER = "folder"
    DOCUMENT = "document"


@dataclass(frozen=True)
class Entity:
    """A document or folder as stored by the document service."""

    id: int
    parent_id: int | None
    kind: EntityKind
    title: str
    sort_order: float
    created_at: datetime
    updated_at: datetime
    created_by: str | None = None
    content_type: str | None = None

    @property
    def is_folder(self) -> bool:
        return self.kind is EntityKind.FOLDER


@dataclass
class TreeNode:
    """A node of the derived hierarchy.

    Children are owned exclusively by their parent node. Nodes are rebuilt from
    the entity list on every rebuild; only the mutation controller edits them in
    place.
    """

    entity: Entity
    children: list["TreeNode"] = field(default_factory=list)
    expanded: bool = False

    @property
    def id(self) -> int:
        return self.entity.id


@dataclass(frozen=True)
class FlattenedItem:
    """A visible row of the flattened tree."""

    id: int
    entity: Entity
    depth: int
    parent_id: int | None
    index: int
    is_folder: bool
    expanded: bool
    descendant_ids: frozenset[int] = frozenset()


@dataclass(frozen=True)
class EntityDraft:
    """Everything the service needs to create a new entity."""

    space_id: int
    parent_id: int | None
    kind: EntityKind
    title: str
    content: str = ""
    content_type: str = "text/markdown"
