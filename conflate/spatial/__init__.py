"""
Spatial engine layer.

The conflation core never computes geometry itself; it asks a SpatialEngine.
ShapelyEngine is the in-process implementation used by the pipeline.
"""

from .codec import encode_geometry, decode_geometry
from .engine import SpatialEngine, ShapelyEngine
from .shapes import ShapeKind, IntersectionShape, decode_intersection
