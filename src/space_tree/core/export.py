"""JSON-ready views of tree models for the CLI and the MCP tools."""

from typing import Any

from space_tree.models.drag import DropProjection
from space_tree.models.node import Entity, FlattenedItem


def entity_to_dict(entity: Entity) -> dict[str, Any]:
    return {
        "id": entity.id,
        "parent_id": entity.parent_id,
        "kind": str(entity.kind),
        "title": entity.title,
        "sort_order": entity.sort_order,
        "created_at": entity.created_at.isoformat(),
        "updated_at": entity.updated_at.isoformat(),
        "created_by": entity.created_by,
    }


def item_to_dict(item: FlattenedItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "title": item.entity.title,
        "depth": item.depth,
        "parent_id": item.parent_id,
        "index": item.index,
        "is_folder": item.is_folder,
        "expanded": item.expanded,
        "descendant_count": len(item.descendant_ids),
    }


def projection_to_dict(projection: DropProjection | None) -> dict[str, Any] | None:
    if projection is None:
        return None
    return {
        "target_parent_id": projection.target_parent_id,
        "reference_id": projection.reference_id,
        "position": str(projection.position),
        "depth": projection.depth,
        "is_same_parent": projection.is_same_parent,
        "is_valid": projection.is_valid,
        "is_on_folder_header": projection.is_on_folder_header,
    }
