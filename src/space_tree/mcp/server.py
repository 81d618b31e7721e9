"""MCP server exposing space tree navigation and mutation tools."""

from collections.abc import AsyncIterator, Awaitable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

from loguru import logger
from mcp.server.fastmcp import Context, FastMCP

from space_tree.api import SpaceClient
from space_tree.config import DEFAULT_SPACE_ID
from space_tree.core.export import entity_to_dict, item_to_dict, projection_to_dict
from space_tree.core.session import SpaceTreeSession
from space_tree.core.tree.markdown import render_tree_as_markdown
from space_tree.models.drag import Direction, DropPosition
from space_tree.models.space import SortMode, Space

_NO_SPACE = {"error": "No space selected. Call space_select_tool first."}


async def _mutation(action: str, operation: Awaitable[Any]) -> dict[str, Any]:
    """Run a mutation; on failure the local tree has already been rolled back."""
    try:
        result = await operation
    except ValueError as e:
        return {"success": False, "error": str(e)}
    except Exception as e:
        logger.warning("{} failed: {}", action, e)
        return {"success": False, "error": f"{action} failed: {e}"}
    output: dict[str, Any] = {"success": True}
    if result is not None:
        output["entity"] = entity_to_dict(result)
    return output


# --- Core functions (testable without MCP context) ---


async def space_select(session: SpaceTreeSession, space: Space) -> dict[str, Any]:
    """Select a space and load its preferences and tree."""
    await session.select_space(space)
    return {
        "space": {"id": space.id, "name": space.name},
        "entity_count": len(session.state.entities),
        "sort_mode": str(session.sort_mode),
        "filter_count": session.filter_count,
        "has_trash": session.has_trash,
    }


def space_outline(
    session: SpaceTreeSession,
    *,
    max_depth: int | None = None,
    show_collapsed: bool = False,
) -> dict[str, Any]:
    """Render the current tree as a markdown outline with entity ids.

    Args:
        max_depth: Max depth levels (None = unlimited).
        show_collapsed: Include children of collapsed folders.
    """
    if session.space is None:
        return _NO_SPACE
    md = render_tree_as_markdown(
        session.tree, max_depth=max_depth, show_collapsed=show_collapsed, show_ids=True
    )
    return {
        "content": md,
        "space": session.space.name,
        "sort_mode": str(session.sort_mode),
        "estimated_tokens": len(md) // 4,
    }


def space_flatten(session: SpaceTreeSession) -> dict[str, Any]:
    """List visible rows in drag order."""
    if session.space is None:
        return _NO_SPACE
    items = [item_to_dict(item) for item in session.flattened()]
    return {"items": items, "count": len(items)}


def space_project_drop(
    session: SpaceTreeSession,
    *,
    active_id: int,
    over_id: int,
    drag_offset: float = 0.0,
    pointer_y: float | None = None,
) -> dict[str, Any]:
    """Compute where dropping ``active_id`` over ``over_id`` would land.

    A null projection means the drop would not move anything.
    """
    if session.space is None:
        return _NO_SPACE
    projection = session.project_drop(active_id, over_id, drag_offset, pointer_y)
    return {"projection": projection_to_dict(projection)}


def space_toggle_folder(session: SpaceTreeSession, *, folder_id: int) -> dict[str, Any]:
    if session.space is None:
        return _NO_SPACE
    return {"folder_id": folder_id, "expanded": session.toggle_expanded(folder_id)}


def space_set_sort(session: SpaceTreeSession, *, sort_mode: str) -> dict[str, Any]:
    """Change the sort mode; the preference is saved after a short delay."""
    if session.space is None:
        return _NO_SPACE
    try:
        session.set_sort_mode(sort_mode)
    except ValueError:
        return {"error": f"Unknown sort mode '{sort_mode}'.", "valid": [str(m) for m in SortMode]}
    return {"sort_mode": str(session.sort_mode), "is_default_sort": session.is_default_sort}


async def space_rename(session: SpaceTreeSession, *, entity_id: int, title: str) -> dict[str, Any]:
    if session.space is None:
        return _NO_SPACE
    return await _mutation("Rename", session.rename(entity_id, title))


async def space_move(
    session: SpaceTreeSession,
    *,
    entity_id: int,
    parent_id: int | None,
    reference_id: int | None = None,
    position: str | None = None,
) -> dict[str, Any]:
    """Move an entity into another folder (None = root level).

    Args:
        entity_id: Entity to move.
        parent_id: Target folder id, None for root level.
        reference_id: Sibling to place next to (None = end of folder).
        position: "before" or "after" the reference.
    """
    if session.space is None:
        return _NO_SPACE
    if position is not None and position not in tuple(DropPosition):
        return {"success": False, "error": f"Invalid position '{position}'."}
    return await _mutation(
        "Move", session.move_to(entity_id, parent_id, reference_id, position)
    )


async def space_reorder(
    session: SpaceTreeSession,
    *,
    entity_id: int,
    direction: str | None = None,
    reference_id: int | None = None,
    position: str | None = None,
) -> dict[str, Any]:
    """Reorder within the current folder, by one step or relative to a sibling.

    Manual order only shows in default sort mode.
    """
    if session.space is None:
        return _NO_SPACE
    if direction is not None:
        if direction not in tuple(Direction):
            return {"success": False, "error": f"Invalid direction '{direction}'."}
        return await _mutation("Reorder", session.reorder_adjacent(entity_id, direction))
    if position is not None and position not in tuple(DropPosition):
        return {"success": False, "error": f"Invalid position '{position}'."}
    return await _mutation("Reorder", session.reorder_at(entity_id, reference_id, position))


async def space_soft_delete(session: SpaceTreeSession, *, entity_id: int) -> dict[str, Any]:
    """Move an entity and everything below it to the trash."""
    if session.space is None:
        return _NO_SPACE
    return await _mutation("Delete", session.soft_delete(entity_id))


async def space_create(
    session: SpaceTreeSession,
    *,
    title: str,
    parent_id: int | None = None,
    folder: bool = False,
) -> dict[str, Any]:
    if session.space is None:
        return _NO_SPACE
    if folder:
        entity = await session.create_folder(parent_id, title)
    else:
        entity = await session.create_document(parent_id, title)
    if entity is None:
        return {"success": False, "error": "Create failed."}
    return {"success": True, "entity": entity_to_dict(entity)}


async def space_restore(session: SpaceTreeSession, *, entity_id: int) -> dict[str, Any]:
    if session.space is None:
        return _NO_SPACE
    if not await session.restore(entity_id):
        return {"success": False, "error": f"Restore of {entity_id} failed."}
    return {"success": True, "has_trash": session.has_trash}


# --- MCP Server Setup ---


@dataclass
class ServerContext:
    """Shared resources for the MCP server lifetime."""

    client: SpaceClient
    session: SpaceTreeSession


@asynccontextmanager
async def server_lifespan(_server: FastMCP) -> AsyncIterator[ServerContext]:
    """Connect to the service on startup, flush background work on shutdown."""
    client = SpaceClient()
    session = SpaceTreeSession(client)
    if DEFAULT_SPACE_ID is not None:
        try:
            await session.select_space(await client.get_space(DEFAULT_SPACE_ID))
        except Exception:
            logger.exception("Failed to open default space {}", DEFAULT_SPACE_ID)
    try:
        yield ServerContext(client=client, session=session)
    finally:
        await session.close()


mcp_server = FastMCP(
    "space-tree",
    instructions="""\
A space is a tree of folders and documents.

1. Call space_select_tool with a space id (unless one is preselected).
2. Use space_outline_tool to see the tree with entity ids.
3. Use space_move_tool / space_reorder_tool to rearrange. Manual order only
   applies in the "default" sort mode.

Mutations apply immediately and are rolled back if the service rejects them;
a failed mutation returns success=false with the error.
""",
    lifespan=server_lifespan,
)


def _ctx(mcp_ctx: Context) -> ServerContext:
    return mcp_ctx.request_context.lifespan_context  # type: ignore[return-value]


# --- MCP Tool Wrappers ---


@mcp_server.tool()
async def space_select_tool(ctx: Context, space_id: int) -> dict[str, Any]:
    """Select the space to work on and load its tree.

    Args:
        space_id: Space id.
    """
    try:
        space = await _ctx(ctx).client.get_space(space_id)
    except Exception as e:
        return {"error": f"Space {space_id} not available: {e}"}
    return await space_select(_ctx(ctx).session, space)


@mcp_server.tool()
async def space_outline_tool(
    ctx: Context, max_depth: int | None = None, show_collapsed: bool = False
) -> dict[str, Any]:
    """Show the current tree as a markdown outline with entity ids.

    Args:
        max_depth: Max depth levels (None = unlimited).
        show_collapsed: Include children of collapsed folders.
    """
    return space_outline(_ctx(ctx).session, max_depth=max_depth, show_collapsed=show_collapsed)


@mcp_server.tool()
async def space_flatten_tool(ctx: Context) -> dict[str, Any]:
    """List visible rows (depth, parent, position) in display order."""
    return space_flatten(_ctx(ctx).session)


@mcp_server.tool()
async def space_project_drop_tool(
    ctx: Context,
    active_id: int,
    over_id: int,
    drag_offset: float = 0.0,
    pointer_y: float | None = None,
) -> dict[str, Any]:
    """Preview where dragging one entity over another would drop it.

    Args:
        active_id: Dragged entity id.
        over_id: Hovered entity id.
        drag_offset: Horizontal offset in pixels (changes target depth).
        pointer_y: Pointer vertical coordinate, if known.
    """
    return space_project_drop(
        _ctx(ctx).session,
        active_id=active_id,
        over_id=over_id,
        drag_offset=drag_offset,
        pointer_y=pointer_y,
    )


@mcp_server.tool()
async def space_toggle_folder_tool(ctx: Context, folder_id: int) -> dict[str, Any]:
    """Expand or collapse a folder.

    Args:
        folder_id: Folder id.
    """
    return space_toggle_folder(_ctx(ctx).session, folder_id=folder_id)


@mcp_server.tool()
async def space_set_sort_tool(ctx: Context, sort_mode: str) -> dict[str, Any]:
    """Change the sort mode of the tree.

    Args:
        sort_mode: default, alphabetical_asc, alphabetical_desc, updatedAt_asc,
            updatedAt_desc, createdAt_asc or createdAt_desc.
    """
    return space_set_sort(_ctx(ctx).session, sort_mode=sort_mode)


@mcp_server.tool()
async def space_rename_tool(ctx: Context, entity_id: int, title: str) -> dict[str, Any]:
    """Rename a document or folder.

    Args:
        entity_id: Entity id.
        title: New title.
    """
    return await space_rename(_ctx(ctx).session, entity_id=entity_id, title=title)


@mcp_server.tool()
async def space_move_tool(
    ctx: Context,
    entity_id: int,
    parent_id: int | None = None,
    reference_id: int | None = None,
    position: str | None = None,
) -> dict[str, Any]:
    """Move a document or folder into another folder.

    Args:
        entity_id: Entity to move.
        parent_id: Target folder id (None = root level).
        reference_id: Sibling to place next to (None = end of folder).
        position: "before" or "after" the reference.
    """
    return await space_move(
        _ctx(ctx).session,
        entity_id=entity_id,
        parent_id=parent_id,
        reference_id=reference_id,
        position=position,
    )


@mcp_server.tool()
async def space_reorder_tool(
    ctx: Context,
    entity_id: int,
    direction: str | None = None,
    reference_id: int | None = None,
    position: str | None = None,
) -> dict[str, Any]:
    """Reorder an entity among its siblings.

    Pass direction ("up"/"down") for a single step, or reference_id and
    position ("before"/"after") to place it next to a sibling.
    """
    return await space_reorder(
        _ctx(ctx).session,
        entity_id=entity_id,
        direction=direction,
        reference_id=reference_id,
        position=position,
    )


@mcp_server.tool()
async def space_soft_delete_tool(ctx: Context, entity_id: int) -> dict[str, Any]:
    """Move a document or folder (with its contents) to the trash.

    Args:
        entity_id: Entity id.
    """
    return await space_soft_delete(_ctx(ctx).session, entity_id=entity_id)


@mcp_server.tool()
async def space_create_tool(
    ctx: Context, title: str, parent_id: int | None = None, folder: bool = False
) -> dict[str, Any]:
    """Create a document (or a folder with folder=true).

    Args:
        title: Title of the new entity.
        parent_id: Folder to create it in (None = root level).
        folder: Create a folder instead of a document.
    """
    return await space_create(_ctx(ctx).session, title=title, parent_id=parent_id, folder=folder)


@mcp_server.tool()
async def space_restore_tool(ctx: Context, entity_id: int) -> dict[str, Any]:
    """Restore an entity from the trash.

    Args:
        entity_id: Entity id.
    """
    return await space_restore(_ctx(ctx).session, entity_id=entity_id)


def run_mcp_server() -> None:
    """Run the MCP server with stdio transport."""
    from space_tree.logging_config import configure_logging

    configure_logging(verbose=False)
    mcp_server.run(transport="stdio")
