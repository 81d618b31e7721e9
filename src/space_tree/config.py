"""Configuration constants for space-tree."""

import os
from pathlib import Path

# API token location. First file found is used, SPACE_TREE_TOKEN wins over all of them.
API_TOKEN_FILES: list[Path] = [
    Path("~/.config/space-tree-token.txt").expanduser(),
    Path("~/.config/secret/space-tree-token.txt").expanduser(),
]

# Base URL of the document service.
API_BASE_URL: str = os.environ.get("SPACE_TREE_URL", "http://localhost:8034")

# Space served by the MCP server when none is given explicitly.
DEFAULT_SPACE_ID: int | None = (
    int(os.environ["SPACE_TREE_SPACE_ID"]) if os.environ.get("SPACE_TREE_SPACE_ID") else None
)

# Quiet windows for persisting view preferences (seconds).
SORT_SAVE_DEBOUNCE: float = 0.5
FILTER_SAVE_DEBOUNCE: float = 0.5
EXPANDED_SAVE_DEBOUNCE: float = 2.0

# Indentation width in pixels per depth level; drives depth re-projection while dragging.
INDENTATION_WIDTH: int = 24
