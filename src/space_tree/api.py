"""HTTP client for the document service."""

import asyncio
import os
from typing import Any

import requests
from loguru import logger

from space_tree.config import API_BASE_URL, API_TOKEN_FILES
from space_tree.core.importer.json_reader import (
    entity_from_json,
    preferences_from_json,
    space_from_json,
)
from space_tree.models.drag import Direction, DropPosition
from space_tree.models.node import Entity, EntityDraft
from space_tree.models.space import Space, SpacePreferences


def _read_token() -> tuple[str, str]:
    token = os.environ.get("SPACE_TREE_TOKEN")
    if token:
        return token.strip(), "SPACE_TREE_TOKEN"
    for token_path in API_TOKEN_FILES:
        try:
            return token_path.read_text(encoding="utf-8").strip(), str(token_path)
        except FileNotFoundError:
            pass
    msg = f"Cannot find space-tree token, set SPACE_TREE_TOKEN or create one of {API_TOKEN_FILES!r}"
    raise RuntimeError(msg)


class SpaceClient:
    """Document service operations over HTTP.

    Requests run in a worker thread so callers on the event loop are not
    blocked. HTTP errors propagate as ``requests.HTTPError``.
    """

    def __init__(self, *, base_url: str = API_BASE_URL, timeout: float = 30.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.sess = requests.Session()

        api_token, token_source = _read_token()
        self.sess.headers["Authorization"] = f"Bearer {api_token}"
        logger.debug("API ready: {} (token from {!r})", self.base_url, token_source)

    def call(self, method: str, path: str, payload: dict[str, Any] | None = None) -> Any:
        """Invoke the service synchronously, return decoded JSON (None for empty bodies)."""
        logger.debug("Making request: {} {} {}", method, path, repr(payload)[:64])
        r = self.sess.request(method, f"{self.base_url}{path}", json=payload, timeout=self.timeout)
        r.raise_for_status()
        if not r.content:
            return None
        return r.json()

    async def _call(self, method: str, path: str, payload: dict[str, Any] | None = None) -> Any:
        return await asyncio.to_thread(self.call, method, path, payload)

    async def get_space(self, space_id: int) -> Space:
        return space_from_json(await self._call("GET", f"/api/spaces/{space_id}"))

    async def get_tree_content(self, space_id: int) -> list[Entity]:
        data = await self._call("GET", f"/api/spaces/{space_id}/tree")
        return [entity_from_json(raw) for raw in data or []]

    async def get_trash_content(self, space_id: int) -> list[Entity]:
        data = await self._call("GET", f"/api/spaces/{space_id}/trash")
        return [entity_from_json(raw) for raw in data or []]

    async def has_trash(self, space_id: int) -> bool:
        data = await self._call("GET", f"/api/spaces/{space_id}/has-trash")
        if isinstance(data, dict):
            return bool(data.get("hasTrash"))
        return bool(data)

    async def get_preferences(self, space_id: int) -> SpacePreferences:
        return preferences_from_json(await self._call("GET", f"/api/spaces/{space_id}/preferences"))

    async def update_preferences(self, space_id: int, changes: dict[str, Any]) -> None:
        await self._call("PUT", f"/api/spaces/{space_id}/preferences", changes)

    async def create_entity(self, draft: EntityDraft) -> Entity:
        payload = {
            "spaceId": draft.space_id,
            "parentId": draft.parent_id,
            "docType": str(draft.kind),
            "contentType": draft.content_type,
            "content": draft.content,
            "contentMetadata": {"title": draft.title},
        }
        return entity_from_json(await self._call("POST", "/api/docs", payload))

    async def soft_delete(self, entity_id: int) -> None:
        await self._call("POST", f"/api/docs/by-id/{entity_id}/soft-delete")

    async def restore(self, entity_id: int) -> None:
        await self._call("POST", f"/api/docs/by-id/{entity_id}/restore")

    async def rename(self, entity_id: int, title: str) -> Entity:
        data = await self._call("POST", f"/api/docs/by-id/{entity_id}/rename", {"title": title})
        return entity_from_json(data)

    async def move(
        self,
        entity_id: int,
        parent_id: int | None,
        reference_id: int | None = None,
        position: DropPosition | None = None,
    ) -> None:
        payload = {
            "parentId": parent_id,
            "referenceDocId": reference_id,
            "position": str(position) if position else None,
        }
        await self._call("POST", f"/api/docs/by-id/{entity_id}/move", payload)

    async def reorder_adjacent(self, entity_id: int, direction: Direction) -> None:
        await self._call(
            "POST", f"/api/docs/by-id/{entity_id}/reorder", {"direction": str(direction)}
        )

    async def reorder_at(
        self,
        entity_id: int,
        reference_id: int | None = None,
        position: DropPosition | None = None,
    ) -> None:
        payload = {
            "referenceDocId": reference_id,
            "position": str(position) if position else None,
        }
        await self._call("POST", f"/api/docs/by-id/{entity_id}/reorder-at", payload)
