#!/usr/bin/env python3
"""
Find conflicting pairs between the main and incoming collections.

A main line and an incoming line form a candidate when:
- their ids differ
- both carry a road category
- they lie within the proximity distance of each other
- they intersect, or are closer than the near-adjacency tolerance

Candidates are recomputed on every loop iteration because geometries change
between iterations. Reads are streamed in bounded batches.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List

from shapely.geometry.base import BaseGeometry

from .. import constants
from ..db.lines import Collection, LineStore
from ..spatial.engine import SpatialEngine
from ..spatial.shapes import IntersectionShape, ShapeKind, decode_intersection

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IntersectionCandidate:
    """One main/incoming pair that may need resolving."""
    main_id: int
    incoming_id: int
    main_geometry: BaseGeometry
    incoming_geometry: BaseGeometry
    intersection: IntersectionShape


class IntersectionFinder:
    """Read-only query for candidate conflicts."""

    def __init__(
        self,
        store: LineStore,
        engine: SpatialEngine,
        proximity_distance: float = constants.PROXIMITY_DISTANCE,
        adjacency_tolerance: float = constants.ADJACENCY_TOLERANCE,
        simplify_tolerance: float = constants.SIMPLIFY_TOLERANCE,
        batch_size: int = constants.FETCH_BATCH_SIZE
    ):
        self.store = store
        self.engine = engine
        self.proximity_distance = proximity_distance
        self.adjacency_tolerance = adjacency_tolerance
        self.simplify_tolerance = simplify_tolerance
        self.batch_size = batch_size

    def _within_proximity(self, main_probe: BaseGeometry, incoming: BaseGeometry) -> bool:
        # Simplified shapes may drift by up to the tolerance on each side
        probe = self.engine.simplify(incoming, self.simplify_tolerance)
        slack = 2 * self.simplify_tolerance
        return self.engine.is_within_distance(main_probe, probe, self.proximity_distance + slack)

    def find(self) -> Dict[int, List[IntersectionCandidate]]:
        """
        Collect candidates grouped by main line id.

        Returns:
            Dict mapping main id -> candidates, in main id then incoming id order
        """
        candidates: Dict[int, List[IntersectionCandidate]] = {}
        pair_count = 0

        for main in self.store.iter_records(Collection.MAIN, roads_only=True, batch_size=self.batch_size):
            main_geom = self.engine.force_2d(main.geometry)
            main_probe = self.engine.simplify(main_geom, self.simplify_tolerance)

            nearby = self.store.iter_within(
                Collection.INCOMING,
                main_geom.bounds,
                self.proximity_distance,
                roads_only=True,
                batch_size=self.batch_size,
            )
            for incoming in nearby:
                if incoming.line_id == main.line_id:
                    continue

                incoming_geom = self.engine.force_2d(incoming.geometry)
                if not self._within_proximity(main_probe, incoming_geom):
                    continue

                # Exact geometries from here on
                if self.engine.intersects(main_geom, incoming_geom):
                    shape = decode_intersection(self.engine.intersection(main_geom, incoming_geom))
                elif self.engine.is_within_distance(main_geom, incoming_geom, self.adjacency_tolerance):
                    shape = IntersectionShape(ShapeKind.EMPTY, self.engine.intersection(main_geom, incoming_geom))
                else:
                    continue

                candidates.setdefault(main.line_id, []).append(IntersectionCandidate(
                    main_id=main.line_id,
                    incoming_id=incoming.line_id,
                    main_geometry=main_geom,
                    incoming_geometry=incoming_geom,
                    intersection=shape,
                ))
                pair_count += 1
                logger.debug(
                    f"Candidate main={main.line_id} incoming={incoming.line_id} "
                    f"intersection={shape.kind.value}"
                )

        logger.info(f"Found {pair_count} candidate pairs for {len(candidates)} main lines")
        return candidates
