"""Shared test fixtures."""

import pytest

from space_tree.models.node import Entity
from space_tree.models.space import Space

from tests.unit.fakes import FakeSpaceService, make_entity


@pytest.fixture
def sample_entities() -> list[Entity]:
    """A small space.

    Guides/ (1)
        Alpha (2)
        Beta (3)
        Nested/ (4)
            Deep (5)
    Readme (6)
    Empty/ (7)
    """
    return [
        make_entity(1, folder=True, title="Guides", sort_order=1, updated_days=1),
        make_entity(2, 1, title="Alpha", sort_order=1, updated_days=10, created_by="Ada"),
        make_entity(3, 1, title="Beta", sort_order=2, updated_days=2, created_by="Bob"),
        make_entity(4, 1, folder=True, title="Nested", sort_order=3, updated_days=3),
        make_entity(5, 4, title="Deep", sort_order=1, updated_days=20, created_by="ada.l"),
        make_entity(6, title="Readme", sort_order=2, updated_days=5, created_by="Bob"),
        make_entity(7, folder=True, title="Empty", sort_order=3, updated_days=4),
    ]


@pytest.fixture
def space() -> Space:
    return Space(id=1, name="Handbook")


@pytest.fixture
def service(sample_entities: list[Entity]) -> FakeSpaceService:
    return FakeSpaceService(sample_entities)
