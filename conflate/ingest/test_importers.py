#!/usr/bin/env python3
"""
Tests for the line importers.
"""

import json
import subprocess

import pytest

from ..db.lines import Collection
from ..errors import ImportFailed
from .geojson_lines import GeoJSONImporter
from .osm import OsmImporter


def create_sample_roads():
    """Sample incoming road data."""
    return {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "id": 501,
                "geometry": {"type": "LineString", "coordinates": [[0, 0], [10, 0]]},
                "properties": {"highway": "residential", "name": "Main Street", "surface": "asphalt"}
            },
            {
                "type": "Feature",
                "geometry": {"type": "MultiLineString", "coordinates": [[[0, 5], [5, 5]], [[5, 5], [9, 7]]]},
                "properties": {"highway": "service", "osm_id": "502"}
            },
            {
                "type": "Feature",
                "geometry": {"type": "LineString", "coordinates": [[0, 9], [3, 9]]},
                "properties": {"waterway": "stream"}
            },
            {
                "type": "Feature",
                "geometry": {"type": "Point", "coordinates": [4, 4]},
                "properties": {"amenity": "bench"}
            }
        ]
    }


def write_json(path, data):
    path.write_text(json.dumps(data))
    return path


def test_geojson_import(tmp_path, store):
    source = write_json(tmp_path / 'roads.geojson', create_sample_roads())

    result = GeoJSONImporter(store, source).load()

    assert result['count'] == 3
    assert result['skipped'] == 1
    assert store.count(Collection.INCOMING) == 3

    street = store.get(Collection.INCOMING, 501)
    assert street.category == 'residential'
    assert street.name == 'Main Street'
    assert street.tags == {'surface': 'asphalt'}
    assert store.get(Collection.INCOMING, 502).geometry.geom_type == 'MultiLineString'

    stream = [r for r in store.iter_records(Collection.INCOMING) if r.line_id not in (501, 502)]
    assert len(stream) == 1
    assert stream[0].category is None


def test_import_replaces_collection(tmp_path, store, add_line):
    add_line('incoming', [(100, 100), (200, 100)], line_id=9)
    source = write_json(tmp_path / 'roads.geojson', create_sample_roads())

    assert GeoJSONImporter(store, source).run()

    assert store.get(Collection.INCOMING, 9) is None


def test_import_into_main(tmp_path, store):
    source = write_json(tmp_path / 'roads.geojson', create_sample_roads())

    GeoJSONImporter(store, source, collection=Collection.MAIN).load()

    assert store.count(Collection.MAIN) == 3
    assert store.count(Collection.INCOMING) == 0


def test_import_failures(tmp_path, store):
    with pytest.raises(ImportFailed):
        GeoJSONImporter(store, tmp_path / 'missing.geojson').load()

    not_collection = write_json(tmp_path / 'point.geojson', {"type": "Point", "coordinates": [0, 0]})
    with pytest.raises(ImportFailed):
        GeoJSONImporter(store, not_collection).load()
    assert not GeoJSONImporter(store, not_collection).run()


def test_osm_import_reports_missing_ogr2ogr(tmp_path, store, monkeypatch):
    source = tmp_path / 'extract.osm.pbf'
    source.write_bytes(b'')

    def missing_tool(*args, **kwargs):
        raise FileNotFoundError('ogr2ogr')

    monkeypatch.setattr(subprocess, 'run', missing_tool)

    with pytest.raises(ImportFailed):
        OsmImporter(store, source).load()


def test_osm_import_loads_converted_lines(tmp_path, store, monkeypatch):
    source = tmp_path / 'extract.osm.pbf'
    source.write_bytes(b'')
    style = tmp_path / 'osmconf.ini'
    style.write_text('[lines]\nattributes=name,highway\n')
    calls = []

    def fake_ogr2ogr(cmd, capture_output, text, env):
        calls.append((cmd, env))
        with open(cmd[5], 'w') as f:
            json.dump(create_sample_roads(), f)
        return subprocess.CompletedProcess(cmd, 0, '', '')

    monkeypatch.setattr(subprocess, 'run', fake_ogr2ogr)

    result = OsmImporter(store, source, style_path=style, srid=3857).load()

    assert result['count'] == 3
    cmd, env = calls[0]
    assert cmd[:5] == ['ogr2ogr', '-f', 'GeoJSON', '-t_srs', 'EPSG:3857']
    assert cmd[-1] == 'lines'
    assert env['OSM_CONFIG_FILE'] == str(style)
