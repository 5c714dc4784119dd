"""
Centralized constants for the road network conflation pipeline.

Import from here to ensure the finder, executor and config defaults agree.
"""

# Coordinate reference system of both collections (Web Mercator)
SRID = 3857

# Proximity parameters (map units of SRID)
PROXIMITY_DISTANCE = 1000.0  # Bounding distance for candidate pairs
ADJACENCY_TOLERANCE = 0.001  # Lines closer than this without touching get merged
SIMPLIFY_TOLERANCE = 0.0  # Only used for the proximity pre-filter, 0 = off

# Two vertices closer than this are the same vertex
VERTEX_TOLERANCE = 1e-9

# Streaming reads
FETCH_BATCH_SIZE = 1000

# Road filter attribute (osm2pgsql style "highway" column)
CATEGORY_FIELD = 'highway'

# Default table names for the two collections
MAIN_TABLE = 'main_lines'
INCOMING_TABLE = 'incoming_lines'
