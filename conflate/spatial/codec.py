"""
WKB encoding and decoding of geometries.

Everything written to storage is forced to 2D first so the coordinate
dimension is fixed for the whole run.
"""

import shapely
from shapely import wkb
from shapely.errors import ShapelyError
from shapely.geometry.base import BaseGeometry

from ..errors import GeometryDecodeError


def encode_geometry(geometry: BaseGeometry) -> bytes:
    """Encode a geometry as 2D WKB."""
    return wkb.dumps(shapely.force_2d(geometry))


def decode_geometry(data) -> BaseGeometry:
    """
    Decode WKB bytes into a shapely geometry.

    Raises:
        GeometryDecodeError: if the payload is missing or not valid WKB
    """
    if data is None:
        raise GeometryDecodeError("Geometry payload is NULL")
    try:
        return wkb.loads(bytes(data))
    except (ShapelyError, TypeError, ValueError) as e:
        raise GeometryDecodeError(f"Invalid WKB geometry: {e}") from e
