#!/usr/bin/env python3
"""
GeoJSON line importer.

Loads LineString / MultiLineString features from a FeatureCollection file.
Feature ids come from the feature id or an osm_id property; the road category
comes from the configured property (highway by default).
"""

import logging
from typing import Any, Dict, Iterator

import geojson

from ..errors import ImportFailed
from .base import BaseImporter

logger = logging.getLogger(__name__)


class GeoJSONImporter(BaseImporter):
    """Importer for GeoJSON FeatureCollection files."""

    def read_geojson(self, path) -> Iterator[Dict[str, Any]]:
        with open(path) as f:
            try:
                data = geojson.load(f)
            except ValueError as e:
                raise ImportFailed(f"{path} is not valid GeoJSON: {e}") from e

        if data.get('type') != 'FeatureCollection':
            raise ImportFailed(f"{path} is a {data.get('type')}, expected a FeatureCollection")

        features = data.get('features', [])
        logger.debug(f"Read {len(features)} features from {path}")
        yield from features

    def read_features(self) -> Iterator[Dict[str, Any]]:
        return self.read_geojson(self.source_path)
