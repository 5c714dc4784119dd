#!/usr/bin/env python3
"""
Decide which resolution rule applies to a candidate pair.

Rules are evaluated in strict priority order, first match wins:
1. Exact match            -> delete incoming
2. Main contains incoming -> delete incoming
3. True intersection      -> by intersection shape:
   - single point         -> insert node into both lines
   - several points       -> insert each node into both lines
   - linear               -> split incoming at the intersection
4. Near-adjacent          -> merge incoming into main
5. Otherwise              -> no action
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from shapely.geometry import Point
from shapely.geometry.base import BaseGeometry

from .. import constants
from ..spatial.engine import SpatialEngine
from ..spatial.shapes import ShapeKind
from .finder import IntersectionCandidate

logger = logging.getLogger(__name__)


class Rule(str, Enum):
    """Resolution rules."""
    DELETE_DUPLICATE = "delete_duplicate"
    DELETE_CONTAINED = "delete_contained"
    INSERT_NODE = "insert_node"
    INSERT_NODES = "insert_nodes"
    SPLIT = "split"
    MERGE = "merge"
    NONE = "none"


@dataclass(frozen=True)
class Resolution:
    """Chosen rule plus the geometry it acts with."""
    rule: Rule
    points: Tuple[Point, ...] = ()
    splitter: Optional[BaseGeometry] = None


NO_ACTION = Resolution(Rule.NONE)


class ConflictClassifier:
    """Pure decision over one candidate; never touches storage."""

    def __init__(self, engine: SpatialEngine, adjacency_tolerance: float = constants.ADJACENCY_TOLERANCE):
        self.engine = engine
        self.adjacency_tolerance = adjacency_tolerance

    def _classify_intersection(self, candidate: IntersectionCandidate) -> Resolution:
        shape = candidate.intersection
        if shape.kind is ShapeKind.POINT:
            return Resolution(Rule.INSERT_NODE, points=shape.points)
        elif shape.kind is ShapeKind.MULTI_POINT:
            return Resolution(Rule.INSERT_NODES, points=shape.points)
        elif shape.kind is ShapeKind.LINEAR:
            return Resolution(Rule.SPLIT, splitter=shape.geometry)
        elif shape.kind is ShapeKind.EMPTY:
            # Predicate and overlay disagree on a grazing touch
            logger.debug(
                f"main={candidate.main_id} incoming={candidate.incoming_id} "
                "intersect but have an empty intersection"
            )
            return NO_ACTION
        raise ValueError(f"Unknown intersection kind: {shape.kind}")

    def classify(self, candidate: IntersectionCandidate) -> Resolution:
        main = candidate.main_geometry
        incoming = candidate.incoming_geometry

        if self.engine.equals(main, incoming):
            return Resolution(Rule.DELETE_DUPLICATE)
        if self.engine.contains(main, incoming):
            return Resolution(Rule.DELETE_CONTAINED)
        if self.engine.intersects(main, incoming):
            return self._classify_intersection(candidate)
        if self.engine.is_within_distance(main, incoming, self.adjacency_tolerance):
            return Resolution(Rule.MERGE)
        return NO_ACTION
