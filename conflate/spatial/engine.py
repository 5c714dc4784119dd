#!/usr/bin/env python3
"""
Spatial engine contract and its shapely implementation.

The conflation core consumes a fixed set of geometric predicates and
operations (distance, equality, containment, set operations, splitting,
linear referencing, vertex insertion). SpatialEngine names that
surface; ShapelyEngine computes it in-process with shapely.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

import shapely
from shapely.errors import GEOSException
from shapely.geometry import LineString, Point
from shapely.geometry.base import BaseGeometry
from shapely.ops import linemerge, substring

from .. import constants
from ..errors import GeometryDecodeError


class SpatialEngine(ABC):
    """Geometric capabilities required by the conflation core."""

    @abstractmethod
    def distance(self, a: BaseGeometry, b: BaseGeometry) -> float:
        """Minimum cartesian distance between two geometries."""
        pass

    def is_within_distance(self, a: BaseGeometry, b: BaseGeometry, threshold: float) -> bool:
        return self.distance(a, b) <= threshold

    @abstractmethod
    def intersects(self, a: BaseGeometry, b: BaseGeometry) -> bool:
        pass

    @abstractmethod
    def equals(self, a: BaseGeometry, b: BaseGeometry) -> bool:
        """Exact (vertex-by-vertex, unsimplified) equality."""
        pass

    @abstractmethod
    def contains(self, a: BaseGeometry, b: BaseGeometry) -> bool:
        pass

    @abstractmethod
    def union(self, a: BaseGeometry, b: BaseGeometry) -> BaseGeometry:
        pass

    @abstractmethod
    def intersection(self, a: BaseGeometry, b: BaseGeometry) -> BaseGeometry:
        pass

    @abstractmethod
    def split(self, line: BaseGeometry, splitter: BaseGeometry) -> List[LineString]:
        """
        Split a line by a point or linear splitter.

        Returns:
            Ordered list of fragments; a single fragment when nothing was cut
        """
        pass

    @abstractmethod
    def simplify(self, geometry: BaseGeometry, tolerance: float) -> BaseGeometry:
        pass

    @abstractmethod
    def force_2d(self, geometry: BaseGeometry) -> BaseGeometry:
        pass

    @abstractmethod
    def locate_fraction(self, point: Point, line: BaseGeometry) -> Optional[float]:
        """
        Fractional position (0..1) of the point projected onto the line.

        Returns:
            None when the line has no single linear reference
        """
        pass

    @abstractmethod
    def count_vertices(self, line: BaseGeometry, fraction: float) -> Optional[int]:
        """Vertex count of the line substring from the start up to fraction."""
        pass

    @abstractmethod
    def add_vertex(self, line: BaseGeometry, point: Point, index: int) -> LineString:
        """Return a copy of the line with point inserted before vertex index."""
        pass

    @abstractmethod
    def vertices(self, line: BaseGeometry) -> Optional[List[Tuple[float, float]]]:
        pass


def _members(geometry: BaseGeometry) -> List[BaseGeometry]:
    """Flatten multi-part geometries and collections into simple members."""
    if geometry.is_empty:
        return []
    if hasattr(geometry, 'geoms'):
        members = []
        for part in geometry.geoms:
            members.extend(_members(part))
        return members
    return [geometry]


class ShapelyEngine(SpatialEngine):
    """SpatialEngine backed by shapely 2.x."""

    def __init__(self, tolerance: float = constants.VERTEX_TOLERANCE):
        self.tolerance = tolerance

    def distance(self, a, b):
        return a.distance(b)

    def intersects(self, a, b):
        return a.intersects(b)

    def equals(self, a, b):
        return a.equals_exact(b, 0.0)

    def contains(self, a, b):
        return a.contains(b)

    def union(self, a, b):
        try:
            return shapely.union(a, b)
        except GEOSException as e:
            raise GeometryDecodeError(f"Union failed: {e}") from e

    def intersection(self, a, b):
        try:
            return shapely.intersection(a, b)
        except GEOSException as e:
            raise GeometryDecodeError(f"Intersection failed: {e}") from e

    def simplify(self, geometry, tolerance):
        if tolerance <= 0:
            return geometry
        return geometry.simplify(tolerance, preserve_topology=True)

    def force_2d(self, geometry):
        return shapely.force_2d(geometry)

    def _single_line(self, geometry: BaseGeometry) -> Optional[LineString]:
        if geometry.geom_type == 'LineString':
            return geometry
        if geometry.geom_type == 'MultiLineString':
            merged = linemerge(geometry)
            if merged.geom_type == 'LineString':
                return merged
        return None

    def locate_fraction(self, point, line):
        part = self._single_line(line)
        if part is None or part.length == 0:
            return None
        return part.project(point, normalized=True)

    def count_vertices(self, line, fraction):
        part = self._single_line(line)
        if part is None:
            return None
        prefix = substring(part, 0.0, fraction, normalized=True)
        return len(prefix.coords)

    def vertices(self, line):
        part = self._single_line(line)
        if part is None:
            return None
        return [(c[0], c[1]) for c in part.coords]

    def add_vertex(self, line, point, index):
        part = self._single_line(line)
        if part is None:
            raise ValueError(f"Cannot add a vertex to a {line.geom_type}")
        coords = [(c[0], c[1]) for c in part.coords]
        if not 0 <= index <= len(coords):
            raise ValueError(f"Vertex index {index} out of range for {len(coords)} vertices")
        coords.insert(index, (point.x, point.y))
        return LineString(coords)

    def _cut_points(self, splitter: BaseGeometry) -> List[Point]:
        points = []
        for member in _members(splitter):
            if member.geom_type == 'Point':
                points.append(member)
            elif member.geom_type in ('LineString', 'LinearRing'):
                # Cut at the ends of an overlapping stretch, never along it
                points.extend(_members(member.boundary))
        return points

    def _cut_line(self, part: LineString, points: List[Point]) -> List[LineString]:
        length = part.length
        distances = set()
        for point in points:
            if part.distance(point) > self.tolerance:
                continue
            d = part.project(point)
            if self.tolerance < d < length - self.tolerance:
                distances.add(d)

        cuts = [0.0] + sorted(distances) + [length]
        return [
            substring(part, start, end)
            for start, end in zip(cuts, cuts[1:])
            if end - start > self.tolerance
        ]

    def split(self, line, splitter):
        points = self._cut_points(splitter)
        fragments = []
        for part in _members(line):
            if part.geom_type != 'LineString':
                continue
            fragments.extend(self._cut_line(part, points))
        return fragments
