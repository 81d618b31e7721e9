"""Render a space tree as a markdown outline."""

import io

from space_tree.models.node import TreeNode


def _count_subtree(node: TreeNode) -> int:
    return sum(1 + _count_subtree(child) for child in node.children)


def render_tree_as_markdown(
    nodes: list[TreeNode],
    *,
    max_depth: int | None = None,
    show_collapsed: bool = False,
    show_ids: bool = False,
) -> str:
    """Render the forest as indented markdown.

    Args:
        nodes: Root-level nodes.
        max_depth: Max levels below the roots to include (None = unlimited).
        show_collapsed: Render children of collapsed folders too.
        show_ids: Append each entity id to its line.

    Returns:
        Markdown string with bullet-list hierarchy. Folders end with ``/``.
    """
    out = io.StringIO()

    def write(items: list[TreeNode], depth: int) -> None:
        indent = "    " * depth
        for node in items:
            entity = node.entity
            title = entity.title or "(untitled)"
            suffix = "/" if entity.is_folder else ""
            id_part = f"  [id={entity.id}]" if show_ids else ""
            out.write(f"{indent}- {title}{suffix}{id_part}\n")

            if not node.children:
                continue

            # Truncation indicator when children are hidden by collapse or max_depth
            hidden_by_collapse = entity.is_folder and not node.expanded and not show_collapsed
            hidden_by_depth = max_depth is not None and depth >= max_depth
            if hidden_by_collapse or hidden_by_depth:
                count = _count_subtree(node)
                noun = "item" if count == 1 else "items"
                out.write(f"{indent}    - ... ({count} more {noun}, id={entity.id})\n")
                continue

            write(node.children, depth + 1)

    write(nodes, 0)
    return out.getvalue()
