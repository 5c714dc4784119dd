#!/usr/bin/env python3
"""
Line record management for the main and incoming collections.

Every write runs in its own transaction, so a failure part way through a
conflation run leaves both tables valid and the run can simply be repeated.
"""

import json
import logging
import sqlite3
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

from shapely.geometry.base import BaseGeometry

from .. import constants
from ..errors import GeometryDecodeError, StorageError
from ..spatial.codec import decode_geometry, encode_geometry
from .schema import check_identifier, init_db

logger = logging.getLogger(__name__)

LINE_TYPES = ('LineString', 'MultiLineString')


class Collection(str, Enum):
    """The two named line collections."""
    MAIN = "main"
    INCOMING = "incoming"


@dataclass
class LineRecord:
    """Identified line geometry."""
    line_id: int
    geometry: BaseGeometry
    collection: Collection
    category: Optional[str] = None
    name: Optional[str] = None
    tags: Dict[str, Any] = field(default_factory=dict)


class LineStore:
    """SQLite-backed storage for both line collections."""

    def __init__(
        self,
        conn: sqlite3.Connection,
        main_table: str = constants.MAIN_TABLE,
        incoming_table: str = constants.INCOMING_TABLE
    ):
        self.conn = conn
        self.tables = {
            Collection.MAIN: check_identifier(main_table),
            Collection.INCOMING: check_identifier(incoming_table),
        }

    @classmethod
    def open(
        cls,
        db_path: Path,
        main_table: str = constants.MAIN_TABLE,
        incoming_table: str = constants.INCOMING_TABLE,
        srid: int = constants.SRID
    ) -> 'LineStore':
        """Open (creating if needed) the database at db_path."""
        conn = init_db(db_path, main_table, incoming_table, srid)
        return cls(conn, main_table, incoming_table)

    def close(self) -> None:
        self.conn.close()

    def table(self, collection: Collection) -> str:
        return self.tables[Collection(collection)]

    def _row_to_record(self, row: sqlite3.Row, collection: Collection) -> LineRecord:
        try:
            geometry = decode_geometry(row['geometry_wkb'])
        except GeometryDecodeError as e:
            raise GeometryDecodeError(
                f"{collection.value} line {row['line_id']}: {e}"
            ) from e

        tags = {}
        if row['tags_json']:
            try:
                tags = json.loads(row['tags_json'])
            except ValueError as e:
                raise StorageError(
                    f"{collection.value} line {row['line_id']}: unreadable tags: {e}"
                ) from e

        return LineRecord(
            line_id=row['line_id'],
            geometry=geometry,
            collection=collection,
            category=row['category'],
            name=row['name'],
            tags=tags,
        )

    def _read(self, sql: str, params: Tuple = ()) -> sqlite3.Cursor:
        try:
            return self.conn.execute(sql, params)
        except sqlite3.Error as e:
            raise StorageError(f"Read failed: {e}") from e

    def _write(self, sql: str, params: Tuple = ()) -> sqlite3.Cursor:
        try:
            with self.conn:
                return self.conn.execute(sql, params)
        except sqlite3.Error as e:
            raise StorageError(f"Write failed: {e}") from e

    def _stream(
        self,
        cursor: sqlite3.Cursor,
        collection: Collection,
        batch_size: int
    ) -> Iterator[LineRecord]:
        while True:
            try:
                rows = cursor.fetchmany(batch_size)
            except sqlite3.Error as e:
                raise StorageError(f"Read failed: {e}") from e
            if not rows:
                break
            for row in rows:
                yield self._row_to_record(row, collection)

    def get(self, collection: Collection, line_id: int) -> Optional[LineRecord]:
        """Get a line by id, or None if it does not exist."""
        collection = Collection(collection)
        row = self._read(
            f"SELECT * FROM {self.table(collection)} WHERE line_id = ?",
            (line_id,)
        ).fetchone()
        if not row:
            return None
        return self._row_to_record(row, collection)

    def count(self, collection: Collection) -> int:
        row = self._read(f"SELECT COUNT(*) AS n FROM {self.table(collection)}").fetchone()
        return row['n']

    def ids(self, collection: Collection) -> List[int]:
        rows = self._read(
            f"SELECT line_id FROM {self.table(collection)} ORDER BY line_id"
        ).fetchall()
        return [row['line_id'] for row in rows]

    def iter_records(
        self,
        collection: Collection,
        roads_only: bool = False,
        batch_size: int = constants.FETCH_BATCH_SIZE
    ) -> Iterator[LineRecord]:
        """Stream all lines of a collection in id order."""
        collection = Collection(collection)
        sql = f"SELECT * FROM {self.table(collection)}"
        if roads_only:
            sql += " WHERE category IS NOT NULL AND category != ''"
        sql += " ORDER BY line_id"
        return self._stream(self._read(sql), collection, batch_size)

    def iter_within(
        self,
        collection: Collection,
        bounds: Tuple[float, float, float, float],
        distance: float,
        roads_only: bool = False,
        batch_size: int = constants.FETCH_BATCH_SIZE
    ) -> Iterator[LineRecord]:
        """
        Stream lines whose bounding box lies within distance of bounds.

        This is a bounding box filter only; callers check exact distances.
        """
        collection = Collection(collection)
        min_x, min_y, max_x, max_y = bounds
        sql = f"""
            SELECT * FROM {self.table(collection)}
            WHERE max_x >= ? AND min_x <= ? AND max_y >= ? AND min_y <= ?
        """
        if roads_only:
            sql += " AND category IS NOT NULL AND category != ''"
        sql += " ORDER BY line_id"
        params = (min_x - distance, max_x + distance, min_y - distance, max_y + distance)
        return self._stream(self._read(sql, params), collection, batch_size)

    def next_id(self) -> int:
        """
        Next unused id across both collections.

        sqlite_sequence keeps the highest id ever handed out per table, so
        generated ids never collide with the other collection or with lines
        deleted earlier.
        """
        row = self._read(
            "SELECT MAX(seq) AS seq FROM sqlite_sequence WHERE name IN (?, ?)",
            tuple(self.tables.values())
        ).fetchone()
        return (row['seq'] or 0) + 1

    def insert(
        self,
        collection: Collection,
        geometry: BaseGeometry,
        category: Optional[str] = None,
        name: Optional[str] = None,
        tags: Optional[Dict[str, Any]] = None,
        line_id: Optional[int] = None
    ) -> int:
        """Insert a line and return its id (generated unless line_id is given)."""
        if geometry.is_empty or geometry.geom_type not in LINE_TYPES:
            raise GeometryDecodeError(
                f"Refusing to store {'empty ' if geometry.is_empty else ''}{geometry.geom_type} as a line"
            )

        if line_id is None:
            line_id = self.next_id()
        min_x, min_y, max_x, max_y = geometry.bounds
        cursor = self._write(f"""
            INSERT INTO {self.table(collection)}
            (line_id, geometry_wkb, category, name, tags_json, min_x, min_y, max_x, max_y)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            line_id, encode_geometry(geometry), category, name,
            json.dumps(tags) if tags else None,
            min_x, min_y, max_x, max_y,
        ))
        return cursor.lastrowid

    def update_geometry(self, collection: Collection, line_id: int, geometry: BaseGeometry) -> bool:
        """Replace a line's geometry. Returns False if the line does not exist."""
        if geometry.is_empty or geometry.geom_type not in LINE_TYPES:
            raise GeometryDecodeError(
                f"Refusing to store {geometry.geom_type} as line {line_id}"
            )

        min_x, min_y, max_x, max_y = geometry.bounds
        cursor = self._write(f"""
            UPDATE {self.table(collection)}
            SET geometry_wkb = ?, min_x = ?, min_y = ?, max_x = ?, max_y = ?,
                updated_at = CURRENT_TIMESTAMP
            WHERE line_id = ?
        """, (encode_geometry(geometry), min_x, min_y, max_x, max_y, line_id))
        return cursor.rowcount > 0

    def delete(self, collection: Collection, line_id: int) -> bool:
        """Delete a line. Deleting a missing id is a no-op returning False."""
        cursor = self._write(
            f"DELETE FROM {self.table(collection)} WHERE line_id = ?",
            (line_id,)
        )
        if cursor.rowcount == 0:
            logger.debug(f"Line {line_id} already absent from {Collection(collection).value}")
            return False
        return True

    def clear(self, collection: Collection) -> int:
        """Delete every line in a collection. Returns the number removed."""
        cursor = self._write(f"DELETE FROM {self.table(collection)}")
        return cursor.rowcount
