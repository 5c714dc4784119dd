#!/usr/bin/env python3
"""
Tests for configuration loading.
"""

import json

import pytest

from . import constants
from .config import load_config
from .errors import ConfigError


def write_config(tmp_path, data):
    path = tmp_path / 'conflate.json'
    path.write_text(json.dumps(data))
    return path


def test_defaults_and_relative_paths(tmp_path):
    path = write_config(tmp_path, {
        'database': {'path': 'db/conflate.db'},
        'resolution': {},
    })

    config = load_config(path)

    assert config.database.path == tmp_path / 'db' / 'conflate.db'
    assert config.database.srid == constants.SRID
    assert config.resolution.proximity_distance == constants.PROXIMITY_DISTANCE
    assert config.resolution.adjacency_tolerance == constants.ADJACENCY_TOLERANCE
    assert config.resolution.revisit_mutated is False
    assert config.resolution.max_iterations is None
    assert config.importer.enabled is False


def test_full_config(tmp_path):
    path = write_config(tmp_path, {
        'database': {
            'path': '/data/run.db',
            'main_table': 'roads_main',
            'incoming_table': 'roads_new',
            'srid': 25832,
            'main_source': 'main.geojson',
        },
        'resolution': {
            'proximity_distance': 250,
            'adjacency_tolerance': 0.01,
            'batch_size': 50,
            'revisit_mutated': True,
            'max_iterations': 20,
        },
        'import': {
            'enabled': True,
            'path': 'extract.osm.pbf',
            'format': 'osm',
            'style': 'osmconf.ini',
        },
        'export': {'main_path': 'out/main.geojson'},
    })

    config = load_config(path)

    assert config.database.main_table == 'roads_main'
    assert config.database.main_source == tmp_path / 'main.geojson'
    assert config.resolution.batch_size == 50
    assert config.resolution.revisit_mutated is True
    assert config.resolution.max_iterations == 20
    assert config.importer.format == 'osm'
    assert config.importer.style == tmp_path / 'osmconf.ini'
    assert config.export.main_path == tmp_path / 'out' / 'main.geojson'
    assert config.export.incoming_path is None


@pytest.mark.parametrize('data', [
    {'resolution': {}},
    {'database': {}, 'resolution': {}},
    {'database': {'path': 'x.db'}},
    {'database': {'path': 'x.db', 'main_table': 't', 'incoming_table': 't'}, 'resolution': {}},
    {'database': {'path': 'x.db'}, 'resolution': {'proximity_distance': 0}},
    {'database': {'path': 'x.db'}, 'resolution': {'batch_size': 'many'}},
    {'database': {'path': 'x.db'}, 'resolution': {}, 'import': {'enabled': True}},
    {'database': {'path': 'x.db'}, 'resolution': {}, 'import': {'format': 'shp'}},
])
def test_invalid_configs(tmp_path, data):
    with pytest.raises(ConfigError):
        load_config(write_config(tmp_path, data))


def test_missing_and_malformed_files(tmp_path):
    with pytest.raises(ConfigError):
        load_config(tmp_path / 'nope.json')

    bad = tmp_path / 'bad.json'
    bad.write_text('{not json')
    with pytest.raises(ConfigError):
        load_config(bad)
