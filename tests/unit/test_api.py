"""Tests for SpaceClient, the HTTP client for the document service."""

import asyncio
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
import requests

from space_tree.api import SpaceClient
from space_tree.models.drag import Direction, DropPosition
from space_tree.models.node import EntityDraft, EntityKind
from space_tree.models.space import SortMode


@pytest.fixture
def client_with_mock_session(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> tuple[SpaceClient, MagicMock]:
    """Create a SpaceClient with a real token file and mocked requests.Session."""
    token_file = tmp_path / "token.txt"
    token_file.write_text("test-token\n")
    monkeypatch.delenv("SPACE_TREE_TOKEN", raising=False)
    monkeypatch.setattr("space_tree.api.API_TOKEN_FILES", [token_file])

    with patch("space_tree.api.requests.Session") as mock_session_cls:
        mock_session = MagicMock()
        mock_session.headers = {}
        mock_session_cls.return_value = mock_session
        client = SpaceClient(base_url="http://docs.test/")

    return client, mock_session


def _make_response(data: Any) -> MagicMock:
    response = MagicMock()
    response.json.return_value = data
    response.content = b"{}" if data is not None else b""
    return response


def test_init_reads_token_from_first_found_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    token_file = tmp_path / "token.txt"
    token_file.write_text("my-secret-token\n")
    monkeypatch.delenv("SPACE_TREE_TOKEN", raising=False)
    monkeypatch.setattr("space_tree.api.API_TOKEN_FILES", [tmp_path / "missing.txt", token_file])

    client = SpaceClient()

    assert client.sess.headers["Authorization"] == "Bearer my-secret-token"


def test_env_token_wins(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SPACE_TREE_TOKEN", "from-env")
    monkeypatch.setattr("space_tree.api.API_TOKEN_FILES", [tmp_path / "missing.txt"])
    client = SpaceClient()
    assert client.sess.headers["Authorization"] == "Bearer from-env"


def test_init_raises_when_no_token_found(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("SPACE_TREE_TOKEN", raising=False)
    monkeypatch.setattr("space_tree.api.API_TOKEN_FILES", [tmp_path / "a.txt", tmp_path / "b.txt"])

    with pytest.raises(RuntimeError, match="Cannot find space-tree token"):
        SpaceClient()


def test_get_tree_content_parses_entities(
    client_with_mock_session: tuple[SpaceClient, MagicMock],
) -> None:
    client, session = client_with_mock_session
    session.request.return_value = _make_response(
        [
            {"id": 1, "docType": "folder", "contentMetadata": {"title": "Guides"}},
            {"id": 2, "parentId": 1, "docType": "document", "sortOrder": 1},
        ]
    )

    entities = asyncio.run(client.get_tree_content(5))

    assert [e.id for e in entities] == [1, 2]
    assert entities[0].title == "Guides"
    session.request.assert_called_once_with(
        "GET", "http://docs.test/api/spaces/5/tree", json=None, timeout=30.0
    )


def test_has_trash_accepts_object_or_bool(
    client_with_mock_session: tuple[SpaceClient, MagicMock],
) -> None:
    client, session = client_with_mock_session
    session.request.return_value = _make_response({"hasTrash": True})
    assert asyncio.run(client.has_trash(5)) is True
    session.request.return_value = _make_response(False)
    assert asyncio.run(client.has_trash(5)) is False


def test_get_preferences(client_with_mock_session: tuple[SpaceClient, MagicMock]) -> None:
    client, session = client_with_mock_session
    session.request.return_value = _make_response({"sort": "alphabetical_desc"})
    prefs = asyncio.run(client.get_preferences(5))
    assert prefs.sort is SortMode.ALPHABETICAL_DESC


def test_update_preferences_puts_changes(
    client_with_mock_session: tuple[SpaceClient, MagicMock],
) -> None:
    client, session = client_with_mock_session
    session.request.return_value = _make_response(None)
    asyncio.run(client.update_preferences(5, {"sort": None}))
    session.request.assert_called_once_with(
        "PUT", "http://docs.test/api/spaces/5/preferences", json={"sort": None}, timeout=30.0
    )


def test_create_entity_payload(client_with_mock_session: tuple[SpaceClient, MagicMock]) -> None:
    client, session = client_with_mock_session
    session.request.return_value = _make_response(
        {"id": 9, "parentId": 1, "docType": "folder", "contentMetadata": {"title": "New"}}
    )
    draft = EntityDraft(
        space_id=5, parent_id=1, kind=EntityKind.FOLDER, title="New", content_type="folder"
    )

    entity = asyncio.run(client.create_entity(draft))

    assert entity.id == 9
    assert session.request.call_args.kwargs["json"] == {
        "spaceId": 5,
        "parentId": 1,
        "docType": "folder",
        "contentType": "folder",
        "content": "",
        "contentMetadata": {"title": "New"},
    }


def test_move_and_reorder_payloads(
    client_with_mock_session: tuple[SpaceClient, MagicMock],
) -> None:
    client, session = client_with_mock_session
    session.request.return_value = _make_response(None)

    asyncio.run(client.move(3, 1, 2, DropPosition.BEFORE))
    asyncio.run(client.reorder_adjacent(3, Direction.UP))
    asyncio.run(client.reorder_at(3))

    calls = [(c.args[1], c.kwargs["json"]) for c in session.request.call_args_list]
    assert calls == [
        (
            "http://docs.test/api/docs/by-id/3/move",
            {"parentId": 1, "referenceDocId": 2, "position": "before"},
        ),
        ("http://docs.test/api/docs/by-id/3/reorder", {"direction": "up"}),
        (
            "http://docs.test/api/docs/by-id/3/reorder-at",
            {"referenceDocId": None, "position": None},
        ),
    ]


def test_http_errors_propagate(client_with_mock_session: tuple[SpaceClient, MagicMock]) -> None:
    client, session = client_with_mock_session
    response = _make_response(None)
    response.raise_for_status.side_effect = requests.HTTPError("409 Conflict")
    session.request.return_value = response

    with pytest.raises(requests.HTTPError):
        asyncio.run(client.soft_delete(3))
