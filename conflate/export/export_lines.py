#!/usr/bin/env python3
"""
Export a line collection to GeoJSON.

Writes one Feature per stored line with its id, category, name and tags,
plus a legacy crs member naming the run SRID.
"""

import logging
from pathlib import Path

import geojson
from shapely.geometry import mapping

from .. import constants
from ..db.lines import Collection, LineRecord, LineStore

logger = logging.getLogger(__name__)


def record_to_feature(record: LineRecord, category_field: str = constants.CATEGORY_FIELD) -> geojson.Feature:
    """Transform a stored line to a GeoJSON feature, category under category_field."""
    properties = dict(record.tags)
    properties['line_id'] = record.line_id
    properties[category_field] = record.category
    if record.name:
        properties['name'] = record.name

    return geojson.Feature(
        id=record.line_id,
        geometry=mapping(record.geometry),
        properties=properties,
    )


def export_collection(
    store: LineStore,
    collection: Collection,
    output_path: Path,
    srid: int = constants.SRID,
    category_field: str = constants.CATEGORY_FIELD
) -> int:
    """
    Export every line of a collection.

    Returns:
        Number of features written
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    features = [record_to_feature(r, category_field) for r in store.iter_records(collection)]
    feature_collection = geojson.FeatureCollection(
        features,
        crs={'type': 'name', 'properties': {'name': f'EPSG:{srid}'}},
    )

    with open(output_path, 'w') as f:
        geojson.dump(feature_collection, f)

    logger.info(f"Exported {len(features)} {Collection(collection).value} lines to {output_path}")
    return len(features)
