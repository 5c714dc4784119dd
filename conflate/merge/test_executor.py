#!/usr/bin/env python3
"""
Tests for the resolution executor mutations.
"""

import pytest
from shapely.geometry import LineString, MultiLineString, Point

from ..db.lines import Collection
from ..spatial.shapes import decode_intersection
from .classifier import Resolution, Rule
from .context import RunContext
from .executor import ResolutionExecutor
from .finder import IntersectionCandidate


def coords(store, collection, line_id):
    return list(store.get(collection, line_id).geometry.coords)


def test_delete_is_idempotent(store, engine, add_line):
    executor = ResolutionExecutor(store, engine)
    line_id = add_line('incoming', [(0, 0), (1, 0)])

    assert executor.delete(line_id)
    assert not executor.delete(line_id)


def test_insert_node_mid_segment(store, engine, add_line):
    executor = ResolutionExecutor(store, engine)
    line_id = add_line('main', [(0, 0), (2, 0), (10, 0)])

    assert executor.insert_node(line_id, Point(5, 0), Collection.MAIN)
    assert coords(store, Collection.MAIN, line_id) == [(0.0, 0.0), (2.0, 0.0), (5.0, 0.0), (10.0, 0.0)]

    # Same point again does not duplicate the vertex
    assert not executor.insert_node(line_id, Point(5, 0), Collection.MAIN)
    assert len(coords(store, Collection.MAIN, line_id)) == 4


def test_insert_node_at_existing_ends(store, engine, add_line):
    executor = ResolutionExecutor(store, engine)
    line_id = add_line('incoming', [(0, 0), (10, 0)])

    assert not executor.insert_node(line_id, Point(0, 0), Collection.INCOMING)
    assert not executor.insert_node(line_id, Point(10, 0), Collection.INCOMING)
    assert coords(store, Collection.INCOMING, line_id) == [(0.0, 0.0), (10.0, 0.0)]


def test_insert_node_skips_without_linear_reference(store, engine):
    executor = ResolutionExecutor(store, engine)
    line_id = store.insert(
        Collection.MAIN,
        MultiLineString([[(0, 0), (1, 0)], [(5, 0), (6, 0)]]),
        category='residential',
    )

    assert not executor.insert_node(line_id, Point(0.5, 0), Collection.MAIN)
    assert not executor.insert_node(999, Point(0.5, 0), Collection.MAIN)


def test_split_line_keeps_attributes(store, engine):
    executor = ResolutionExecutor(store, engine)
    store.insert(
        Collection.INCOMING,
        LineString([(0, 0), (10, 0)]),
        category='secondary',
        name='Ring Road',
        tags={'lanes': '2'},
        line_id=100,
    )

    fragment_ids = executor.split_line(100, LineString([(3, 0), (6, 0)]))

    assert len(fragment_ids) == 3
    assert store.get(Collection.INCOMING, 100) is None
    for fragment_id in fragment_ids:
        record = store.get(Collection.INCOMING, fragment_id)
        assert record.category == 'secondary'
        assert record.name == 'Ring Road'
        assert record.tags == {'lanes': '2'}

    # Original is gone, a second split is a no-op
    assert executor.split_line(100, LineString([(3, 0), (6, 0)])) == []


def test_split_that_does_not_cut_is_noop(store, engine, add_line):
    executor = ResolutionExecutor(store, engine)
    line_id = add_line('incoming', [(0, 0), (10, 0)])

    assert executor.split_line(line_id, Point(10, 0)) == []
    assert store.get(Collection.INCOMING, line_id) is not None


def test_merge_keeps_main_id(store, engine, add_line):
    executor = ResolutionExecutor(store, engine)
    main_id = add_line('main', [(0, 0), (10, 0)], line_id=1)
    incoming_id = add_line('incoming', [(10.0005, 0), (20, 0)], line_id=2)

    assert executor.merge_lines(main_id, incoming_id)

    merged = store.get(Collection.MAIN, main_id).geometry
    assert store.get(Collection.INCOMING, incoming_id) is None
    assert merged.length == pytest.approx(10 + 9.9995)
    assert not executor.merge_lines(main_id, incoming_id)


def test_apply_marks_deleted(store, engine, add_line):
    executor = ResolutionExecutor(store, engine)
    add_line('main', [(0, 0), (10, 0)], line_id=1)
    add_line('incoming', [(0, 0), (10, 0)], line_id=2)
    geometry = LineString([(0, 0), (10, 0)])
    candidate = IntersectionCandidate(1, 2, geometry, geometry, decode_intersection(geometry))
    context = RunContext()

    assert executor.apply(candidate, Resolution(Rule.DELETE_DUPLICATE), context)
    assert context.deleted_ids == {2}
    assert not executor.apply(candidate, Resolution(Rule.DELETE_DUPLICATE), context)
