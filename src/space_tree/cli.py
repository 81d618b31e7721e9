"""CLI for space-tree (outline, flatten, drop projection, MCP server)."""

import json
from datetime import date
from pathlib import Path
from typing import Annotated, Any

import typer
from loguru import logger

from space_tree.core.drag.projection import get_projection
from space_tree.core.export import item_to_dict, projection_to_dict
from space_tree.core.filters import apply_filters
from space_tree.core.importer.json_reader import layout_from_json, parse_entities
from space_tree.core.tree.builder import build_tree
from space_tree.core.tree.flatten import flatten_tree
from space_tree.core.tree.markdown import render_tree_as_markdown
from space_tree.logging_config import configure_logging
from space_tree.models.node import TreeNode
from space_tree.models.space import AfterDate, SortMode, SpaceFilters, UpdatedPreset

app = typer.Typer(help="Space tree: inspect and project drops on a document/folder hierarchy.")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    configure_logging(verbose=verbose)


def _read_json(path: Path) -> Any:
    if not path.exists():
        logger.error("File not found: {}", path)
        raise typer.Exit(1)
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        logger.error("Invalid JSON in {}: {}", path, e)
        raise typer.Exit(1) from e


def _parse_filters(updated: str, creator: str) -> SpaceFilters:
    try:
        window = UpdatedPreset(updated)
    except ValueError:
        try:
            return SpaceFilters(updated=AfterDate(date.fromisoformat(updated)), creator=creator)
        except ValueError as e:
            logger.error("Unknown --updated value {!r}: use a preset or YYYY-MM-DD", updated)
            raise typer.Exit(1) from e
    return SpaceFilters(updated=window, creator=creator)


def _load_tree(
    file: Path,
    *,
    sort: str,
    updated: str,
    creator: str,
    expand: list[int] | None,
    expand_all: bool,
) -> list[TreeNode]:
    try:
        sort_mode = SortMode(sort)
    except ValueError as e:
        logger.error("Unknown sort mode {!r}, expected one of {}", sort, [str(m) for m in SortMode])
        raise typer.Exit(1) from e

    try:
        entities = parse_entities(_read_json(file))
    except ValueError as e:
        logger.error("Cannot import {}: {}", file, e)
        raise typer.Exit(1) from e

    expanded = {e.id for e in entities if e.is_folder} if expand_all else set(expand or [])
    visible = apply_filters(entities, _parse_filters(updated, creator))
    logger.debug("{} of {} entities pass the filters", len(visible), len(entities))
    return build_tree(visible, expanded, sort_mode)


_FileArg = Annotated[Path, typer.Argument(help="JSON export of the space's entities")]
_SortOpt = Annotated[str, typer.Option("--sort", "-s", help="Sort mode")]
_UpdatedOpt = Annotated[
    str, typer.Option("--updated", "-u", help="Updated filter preset or YYYY-MM-DD")
]
_CreatorOpt = Annotated[str, typer.Option("--creator", "-c", help="Creator filter")]
_ExpandOpt = Annotated[
    list[int] | None, typer.Option("--expand", "-e", help="Folder id to expand (repeatable)")
]
_ExpandAllOpt = Annotated[bool, typer.Option("--expand-all", "-a", help="Expand every folder")]


@app.command()
def outline(
    file: _FileArg,
    sort: _SortOpt = "default",
    updated: _UpdatedOpt = "any_time",
    creator: _CreatorOpt = "",
    expand: _ExpandOpt = None,
    expand_all: _ExpandAllOpt = False,
    max_depth: Annotated[
        int | None,
        typer.Option("--max-depth", "-m", help="Max depth levels to render"),
    ] = None,
    show_ids: bool = typer.Option(False, "--ids", help="Show entity ids"),
) -> None:
    """Print the tree as a markdown outline."""
    tree = _load_tree(
        file, sort=sort, updated=updated, creator=creator, expand=expand, expand_all=expand_all
    )
    md = render_tree_as_markdown(tree, max_depth=max_depth, show_ids=show_ids)
    typer.echo(md.rstrip("\n") if md else "(empty)")


@app.command()
def flatten(
    file: _FileArg,
    sort: _SortOpt = "default",
    updated: _UpdatedOpt = "any_time",
    creator: _CreatorOpt = "",
    expand: _ExpandOpt = None,
    expand_all: _ExpandAllOpt = False,
    output_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """List the visible rows in drag order."""
    tree = _load_tree(
        file, sort=sort, updated=updated, creator=creator, expand=expand, expand_all=expand_all
    )
    items = flatten_tree(tree)
    if output_json:
        typer.echo(json.dumps([item_to_dict(item) for item in items], indent=2))
        return
    for item in items:
        marker = "/" if item.is_folder else ""
        typer.echo(f"{'  ' * item.depth}{item.entity.title}{marker}  [id={item.id}]")


@app.command()
def project(
    file: _FileArg,
    active_id: int = typer.Argument(..., help="Dragged entity id"),
    over_id: int = typer.Argument(..., help="Hovered entity id"),
    sort: _SortOpt = "default",
    expand: _ExpandOpt = None,
    expand_all: _ExpandAllOpt = False,
    offset: float = typer.Option(0.0, "--offset", "-x", help="Horizontal drag offset (px)"),
    pointer_y: Annotated[
        float | None,
        typer.Option("--pointer-y", "-y", help="Pointer vertical coordinate (px)"),
    ] = None,
    layout: Annotated[
        Path | None,
        typer.Option("--layout", "-l", help="JSON drag layout captured at drag start"),
    ] = None,
) -> None:
    """Compute where dropping ACTIVE_ID over OVER_ID would land (JSON, null = no-op)."""
    tree = _load_tree(
        file, sort=sort, updated="any_time", creator="", expand=expand, expand_all=expand_all
    )
    layout_cache = None
    if layout:
        try:
            layout_cache = layout_from_json(_read_json(layout))
        except (ValueError, TypeError, AttributeError) as e:
            logger.error("Cannot read drag layout {}: {}", layout, e)
            raise typer.Exit(1) from e
    projection = get_projection(
        flatten_tree(tree),
        active_id,
        over_id,
        offset,
        SortMode(sort) == SortMode.DEFAULT,
        pointer_y,
        layout_cache,
    )
    typer.echo(json.dumps(projection_to_dict(projection), indent=2))


@app.command()
def serve() -> None:
    """Start the MCP server (stdio transport)."""
    from space_tree.mcp.server import run_mcp_server

    run_mcp_server()
