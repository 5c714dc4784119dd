"""
Intersection shape variant.

The intersection of two road lines is decoded once into an IntersectionShape
so the classifier can dispatch on a closed set of kinds instead of inspecting
shapely types.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple

from shapely.geometry import Point
from shapely.geometry.base import BaseGeometry

from ..errors import GeometryDecodeError

POINT_TYPES = ('Point', 'MultiPoint')
LINEAR_TYPES = ('LineString', 'LinearRing', 'MultiLineString')


class ShapeKind(str, Enum):
    """Kinds of intersection between two lines."""
    EMPTY = "empty"
    POINT = "point"
    MULTI_POINT = "multi_point"
    LINEAR = "linear"


@dataclass(frozen=True)
class IntersectionShape:
    """Decoded intersection geometry."""
    kind: ShapeKind
    geometry: BaseGeometry
    points: Tuple[Point, ...] = ()


def _flatten(geometry: BaseGeometry) -> List[BaseGeometry]:
    if geometry.is_empty:
        return []
    if geometry.geom_type in ('GeometryCollection', 'MultiPoint', 'MultiLineString'):
        parts = []
        for part in geometry.geoms:
            parts.extend(_flatten(part))
        return parts
    return [geometry]


def decode_intersection(geometry: BaseGeometry) -> IntersectionShape:
    """
    Decode an intersection geometry into its shape kind.

    Any linear member makes the whole shape LINEAR; otherwise the number of
    distinct points decides between POINT and MULTI_POINT.

    Raises:
        GeometryDecodeError: for areal or otherwise unexpected members
    """
    parts = _flatten(geometry)
    if not parts:
        return IntersectionShape(ShapeKind.EMPTY, geometry)

    points = []
    linear = False
    for part in parts:
        if part.geom_type in LINEAR_TYPES:
            linear = True
        elif part.geom_type == 'Point':
            if not any(part.equals(p) for p in points):
                points.append(part)
        else:
            raise GeometryDecodeError(
                f"Unexpected {part.geom_type} in line intersection"
            )

    if linear:
        return IntersectionShape(ShapeKind.LINEAR, geometry, tuple(points))
    if len(points) == 1:
        return IntersectionShape(ShapeKind.POINT, geometry, tuple(points))
    return IntersectionShape(ShapeKind.MULTI_POINT, geometry, tuple(points))
