"""Shared fixtures for conflation tests."""

import pytest
from shapely.geometry import LineString

from .db.lines import Collection, LineStore
from .spatial.engine import ShapelyEngine


@pytest.fixture
def store(tmp_path):
    """Empty LineStore in a temporary database."""
    line_store = LineStore.open(tmp_path / 'conflate.db')
    yield line_store
    line_store.close()


@pytest.fixture
def engine():
    return ShapelyEngine()


@pytest.fixture
def add_line(store):
    """Insert a road line from a coordinate list, returning its id."""
    def _add(collection, coords, line_id=None, category='residential', name=None):
        return store.insert(
            Collection(collection),
            LineString(coords),
            category=category,
            name=name,
            line_id=line_id,
        )
    return _add
