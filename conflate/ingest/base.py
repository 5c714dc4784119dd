#!/usr/bin/env python3
"""
Base class for line imports.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

from shapely.geometry import shape

from .. import constants
from ..db.lines import Collection, LineStore
from ..errors import ConflationError, ImportFailed

logger = logging.getLogger(__name__)

LINE_TYPES = ('LineString', 'MultiLineString')
ID_PROPERTIES = ('osm_id', 'line_id', 'id')


class BaseImporter(ABC):
    """Base class for source-specific line importers."""

    def __init__(
        self,
        store: LineStore,
        source_path: Path,
        collection: Collection = Collection.INCOMING,
        category_field: str = constants.CATEGORY_FIELD,
        replace: bool = True
    ):
        self.store = store
        self.source_path = Path(source_path)
        self.collection = Collection(collection)
        self.category_field = category_field
        self.replace = replace

    @abstractmethod
    def read_features(self) -> Iterator[Dict[str, Any]]:
        """Yield GeoJSON-like feature mappings from the source."""
        pass

    def _feature_id(self, feature: Dict[str, Any]) -> Optional[int]:
        props = feature.get('properties') or {}
        candidates = [feature.get('id')] + [props.get(key) for key in ID_PROPERTIES]
        for value in candidates:
            if value is None or value == '':
                continue
            try:
                return int(value)
            except (TypeError, ValueError):
                continue
        return None

    def store_feature(self, feature: Dict[str, Any]) -> Optional[int]:
        """Store one feature if it is a line. Returns the stored id or None."""
        raw_geometry = feature.get('geometry')
        if not raw_geometry:
            return None

        geometry = shape(raw_geometry)
        if geometry.is_empty or geometry.geom_type not in LINE_TYPES:
            return None

        props = dict(feature.get('properties') or {})
        category = props.pop(self.category_field, None)
        name = props.pop('name', None)
        for key in ID_PROPERTIES:
            props.pop(key, None)

        return self.store.insert(
            self.collection,
            geometry,
            category=str(category) if category is not None else None,
            name=name,
            tags={k: v for k, v in props.items() if v is not None},
            line_id=self._feature_id(feature),
        )

    def load(self) -> Dict[str, Any]:
        """
        Perform the import.

        Returns:
            Dict with keys:
                - count: int - number of lines stored
                - skipped: int - non-line features ignored
                - message: str - status message
        """
        if not self.source_path.exists():
            raise ImportFailed(f"Source file not found: {self.source_path}")

        if self.replace:
            removed = self.store.clear(self.collection)
            logger.info(f"Cleared {removed} lines from {self.collection.value}")

        count = 0
        skipped = 0
        for feature in self.read_features():
            if self.store_feature(feature) is None:
                skipped += 1
            else:
                count += 1

        return {
            'count': count,
            'skipped': skipped,
            'message': f"Imported {count} lines into {self.collection.value} from {self.source_path.name}",
        }

    def run(self) -> bool:
        """Run the import and log the outcome."""
        logger.info(f"Importing {self.source_path} into {self.collection.value}...")

        try:
            result = self.load()
        except ConflationError as e:
            logger.error(f"Import failed: {e}")
            return False

        logger.info(result['message'])
        if result['skipped']:
            logger.info(f"Skipped {result['skipped']} non-line features")
        return True
