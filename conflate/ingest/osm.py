#!/usr/bin/env python3
"""
OpenStreetMap extract importer.

Converts the lines layer of an .osm / .osm.pbf extract to GeoJSON with
ogr2ogr, using an OSM style definition (OSM_CONFIG_FILE) to pick the exported
tags, then loads it like any GeoJSON file.
"""

import logging
import os
import subprocess
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

from .. import constants
from ..errors import ImportFailed
from .geojson_lines import GeoJSONImporter

logger = logging.getLogger(__name__)


class OsmImporter(GeoJSONImporter):
    """Importer for OSM extracts via ogr2ogr."""

    def __init__(self, *args, style_path: Optional[Path] = None, srid: int = constants.SRID, **kwargs):
        super().__init__(*args, **kwargs)
        self.style_path = Path(style_path) if style_path else None
        self.srid = srid

    def build_command(self, output_path: Path) -> list:
        return [
            'ogr2ogr',
            '-f', 'GeoJSON',
            '-t_srs', f'EPSG:{self.srid}',
            str(output_path),
            str(self.source_path),
            'lines',
        ]

    def convert(self, output_path: Path) -> None:
        """Run ogr2ogr, raising ImportFailed if it is missing or fails."""
        env = dict(os.environ)
        if self.style_path:
            if not self.style_path.exists():
                raise ImportFailed(f"Style definition not found: {self.style_path}")
            env['OSM_CONFIG_FILE'] = str(self.style_path)

        cmd = self.build_command(output_path)
        logger.info(f"Converting {self.source_path.name} with ogr2ogr...")
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, env=env)
        except FileNotFoundError as e:
            raise ImportFailed("ogr2ogr not found. Install GDAL to import OSM extracts") from e

        if result.returncode != 0:
            raise ImportFailed(f"ogr2ogr failed (code={result.returncode}): {result.stderr.strip()}")

    def read_features(self) -> Iterator[Dict[str, Any]]:
        with tempfile.TemporaryDirectory() as tmp:
            output_path = Path(tmp) / 'lines.geojson'
            self.convert(output_path)
            yield from self.read_geojson(output_path)
