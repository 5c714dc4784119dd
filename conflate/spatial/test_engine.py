#!/usr/bin/env python3
"""
Tests for the shapely spatial engine and WKB codec.
"""

import pytest
import shapely
from shapely.errors import GEOSException
from shapely.geometry import LineString, MultiLineString, Point

from ..errors import GeometryDecodeError
from .codec import decode_geometry, encode_geometry
from .engine import ShapelyEngine


def test_codec_drops_z_and_roundtrips_2d():
    line = LineString([(0, 0, 5), (10, 0, 7)])
    decoded = decode_geometry(encode_geometry(line))
    assert not decoded.has_z
    assert list(decoded.coords) == [(0.0, 0.0), (10.0, 0.0)]


def test_decode_rejects_garbage():
    with pytest.raises(GeometryDecodeError):
        decode_geometry(b'not wkb at all')
    with pytest.raises(GeometryDecodeError):
        decode_geometry(None)


def test_equality_is_exact():
    engine = ShapelyEngine()
    line = LineString([(0, 0), (10, 0)])
    assert engine.equals(line, LineString([(0, 0), (10, 0)]))
    assert not engine.equals(line, LineString([(0, 0), (10, 0.0001)]))


def test_locate_fraction_and_prefix_vertex_count():
    engine = ShapelyEngine()
    line = LineString([(0, 0), (2, 0), (10, 0)])

    assert engine.locate_fraction(Point(5, 0), line) == 0.5
    assert engine.locate_fraction(Point(0, 0), line) == 0.0
    # prefix (0,0) (2,0) (5,0)
    assert engine.count_vertices(line, 0.5) == 3
    assert engine.count_vertices(line, 1.0) == 3


def test_locate_fraction_absent_for_disjoint_multiline():
    engine = ShapelyEngine()
    multi = MultiLineString([[(0, 0), (1, 0)], [(5, 0), (6, 0)]])
    assert engine.locate_fraction(Point(0.5, 0), multi) is None
    assert engine.count_vertices(multi, 0.5) is None


def test_locate_fraction_on_mergeable_multiline():
    engine = ShapelyEngine()
    multi = MultiLineString([[(0, 0), (5, 0)], [(5, 0), (10, 0)]])
    assert engine.locate_fraction(Point(5, 0), multi) == 0.5


def test_add_vertex():
    engine = ShapelyEngine()
    line = LineString([(0, 0), (10, 0)])
    updated = engine.add_vertex(line, Point(5, 0), 1)
    assert list(updated.coords) == [(0.0, 0.0), (5.0, 0.0), (10.0, 0.0)]

    with pytest.raises(ValueError):
        engine.add_vertex(line, Point(5, 0), 5)


def test_split_by_overlapping_line():
    engine = ShapelyEngine()
    line = LineString([(0, 0), (10, 0)])
    overlap = LineString([(3, 0), (6, 0)])

    fragments = engine.split(line, overlap)

    assert [list(f.coords) for f in fragments] == [
        [(0.0, 0.0), (3.0, 0.0)],
        [(3.0, 0.0), (6.0, 0.0)],
        [(6.0, 0.0), (10.0, 0.0)],
    ]


def test_split_by_point_and_at_endpoint():
    engine = ShapelyEngine()
    line = LineString([(0, 0), (10, 0)])

    assert len(engine.split(line, Point(4, 0))) == 2
    # Cutting at an end point leaves the line whole
    assert len(engine.split(line, Point(10, 0))) == 1
    # Splitter off the line does not cut
    assert len(engine.split(line, Point(4, 3))) == 1


def test_simplify_is_noop_without_tolerance():
    engine = ShapelyEngine()
    line = LineString([(0, 0), (5, 0.001), (10, 0)])
    assert engine.simplify(line, 0) is line
    assert len(engine.simplify(line, 0.01).coords) == 2


def test_overlay_failure_raises_geometry_error(monkeypatch):
    def fail(a, b):
        raise GEOSException("TopologyException: side location conflict")

    monkeypatch.setattr(shapely, 'union', fail)
    monkeypatch.setattr(shapely, 'intersection', fail)
    engine = ShapelyEngine()
    a = LineString([(0, 0), (10, 0)])
    b = LineString([(5, -5), (5, 5)])

    with pytest.raises(GeometryDecodeError):
        engine.union(a, b)
    with pytest.raises(GeometryDecodeError):
        engine.intersection(a, b)
