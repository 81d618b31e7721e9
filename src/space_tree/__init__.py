"""Space tree: hierarchy, drag projection and optimistic mutations for document spaces."""

from space_tree.api import SpaceClient
from space_tree.core.session import SpaceTreeSession
from space_tree.protocols import RowGeometryProtocol, SpaceServiceProtocol

__all__ = ["RowGeometryProtocol", "SpaceClient", "SpaceServiceProtocol", "SpaceTreeSession"]
