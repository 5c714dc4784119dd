#!/usr/bin/env python3
"""
Apply resolution rules to the line collections.

This is the only component that writes to the LineStore. Main lines are
authoritative: they gain nodes and absorb merged lines but are never split
or deleted. Every operation tolerates lines that disappeared earlier in the
run (for example an incoming line already consumed by a split).
"""

import logging
from typing import List

from shapely.geometry import Point
from shapely.geometry.base import BaseGeometry

from .. import constants
from ..db.lines import Collection, LineStore
from ..spatial.engine import SpatialEngine
from .classifier import Resolution, Rule
from .context import RunContext
from .finder import IntersectionCandidate

logger = logging.getLogger(__name__)


class ResolutionExecutor:
    """Applies one resolution at a time; each storage write is atomic."""

    def __init__(
        self,
        store: LineStore,
        engine: SpatialEngine,
        vertex_tolerance: float = constants.VERTEX_TOLERANCE
    ):
        self.store = store
        self.engine = engine
        self.vertex_tolerance = vertex_tolerance

    def apply(self, candidate: IntersectionCandidate, resolution: Resolution, context: RunContext) -> bool:
        """
        Execute a resolution for a candidate.

        Returns:
            True if storage was modified
        """
        rule = resolution.rule
        main_id = candidate.main_id
        incoming_id = candidate.incoming_id

        if rule in (Rule.DELETE_DUPLICATE, Rule.DELETE_CONTAINED):
            context.mark_deleted(incoming_id)
            return self.delete(incoming_id)

        elif rule in (Rule.INSERT_NODE, Rule.INSERT_NODES):
            changed = False
            for point in resolution.points:
                changed |= self.insert_node(main_id, point, Collection.MAIN)
                changed |= self.insert_node(incoming_id, point, Collection.INCOMING)
            return changed

        elif rule is Rule.SPLIT:
            fragment_ids = self.split_line(incoming_id, resolution.splitter)
            if fragment_ids:
                context.mark_deleted(incoming_id)
            return bool(fragment_ids)

        elif rule is Rule.MERGE:
            merged = self.merge_lines(main_id, incoming_id)
            context.mark_deleted(incoming_id)
            return merged

        elif rule is Rule.NONE:
            return False

        raise ValueError(f"Unknown rule: {rule}")

    def delete(self, line_id: int) -> bool:
        """Delete an incoming line; a missing line is a no-op."""
        deleted = self.store.delete(Collection.INCOMING, line_id)
        if deleted:
            logger.debug(f"Deleted incoming line {line_id}")
        return deleted

    def _vertex_present(self, coords, index: int, point: Point) -> bool:
        for i in (index - 1, index):
            if 0 <= i < len(coords):
                x, y = coords[i]
                if abs(x - point.x) <= self.vertex_tolerance and abs(y - point.y) <= self.vertex_tolerance:
                    return True
        return False

    def insert_node(self, line_id: int, point: Point, collection: Collection) -> bool:
        """
        Insert point as a vertex of a line at its linear-reference position.

        The insertion index is 0 at the line start, otherwise one less than the
        vertex count of the line prefix ending at the point. Inserting a point
        that is already a vertex at that position changes nothing.

        Returns:
            True if the line geometry was updated
        """
        record = self.store.get(collection, line_id)
        if record is None:
            logger.debug(f"Node insert skipped, {collection.value} line {line_id} is gone")
            return False

        geometry = record.geometry
        fraction = self.engine.locate_fraction(point, geometry)
        if fraction is None:
            logger.warning(
                f"No linear reference for {point.wkt} on {collection.value} line {line_id}, skipping node"
            )
            return False

        if fraction == 0.0:
            index = 0
        else:
            count = self.engine.count_vertices(geometry, fraction)
            if count is None:
                logger.warning(
                    f"No vertex count at fraction {fraction} on {collection.value} line {line_id}, skipping node"
                )
                return False
            index = count - 1

        coords = self.engine.vertices(geometry)
        if coords is None or self._vertex_present(coords, index, point):
            return False

        updated = self.engine.add_vertex(geometry, point, index)
        self.store.update_geometry(collection, line_id, updated)
        logger.debug(f"Added node {point.wkt} to {collection.value} line {line_id} at index {index}")
        return True

    def split_line(self, incoming_id: int, splitter: BaseGeometry) -> List[int]:
        """
        Replace an incoming line by its fragments split at splitter.

        Fragments inherit category, name and tags; the original is deleted
        after all fragments are stored.

        Returns:
            Ids of the new fragment lines; empty if nothing was split
        """
        record = self.store.get(Collection.INCOMING, incoming_id)
        if record is None:
            logger.debug(f"Split skipped, incoming line {incoming_id} is gone")
            return []

        fragments = self.engine.split(record.geometry, splitter)
        if len(fragments) < 2:
            logger.debug(f"Splitter does not cut incoming line {incoming_id}")
            return []

        fragment_ids = [
            self.store.insert(
                Collection.INCOMING,
                fragment,
                category=record.category,
                name=record.name,
                tags=record.tags,
            )
            for fragment in fragments
        ]
        self.store.delete(Collection.INCOMING, incoming_id)
        logger.debug(f"Split incoming line {incoming_id} into {fragment_ids}")
        return fragment_ids

    def merge_lines(self, main_id: int, incoming_id: int) -> bool:
        """
        Merge an incoming line into a main line.

        The union is stored under the main id; the incoming line is removed.
        """
        main = self.store.get(Collection.MAIN, main_id)
        incoming = self.store.get(Collection.INCOMING, incoming_id)
        if main is None or incoming is None:
            logger.debug(f"Merge skipped, main={main_id} or incoming={incoming_id} is gone")
            return False

        merged = self.engine.union(main.geometry, incoming.geometry)
        self.store.update_geometry(Collection.MAIN, main_id, merged)
        self.store.delete(Collection.INCOMING, incoming_id)
        logger.debug(f"Merged incoming line {incoming_id} into main line {main_id}")
        return True
