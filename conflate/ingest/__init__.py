"""
Import modules for populating line collections.

Each importer:
1. Reads line features from a source file (converting it first if needed)
2. Keeps LineString / MultiLineString features only
3. Writes them into the incoming (or main) collection
"""

from .base import BaseImporter
from .geojson_lines import GeoJSONImporter
from .osm import OsmImporter
