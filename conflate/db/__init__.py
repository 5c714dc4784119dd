"""
Database module for the two line collections.

Provides SQLite-based storage for:
- The authoritative main road network
- The incoming road network being conflated into it
"""

from .schema import init_db, get_connection
from .lines import Collection, LineRecord, LineStore
