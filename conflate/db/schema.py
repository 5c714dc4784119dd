#!/usr/bin/env python3
"""
SQLite database schema for the line collections.

Tables:
- conflate_meta: Run-wide metadata (SRID)
- <main_table>: Authoritative road lines
- <incoming_table>: Imported road lines being conflated
"""

import re
import sqlite3
from pathlib import Path

from .. import constants
from ..errors import ConfigError

IDENTIFIER_RE = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')


def check_identifier(name: str) -> str:
    """Table names are interpolated into SQL, so only plain identifiers pass."""
    if not IDENTIFIER_RE.match(name or ''):
        raise ConfigError(f"Invalid table name: {name!r}")
    return name


def get_connection(db_path: Path) -> sqlite3.Connection:
    """Get database connection with row factory."""
    path = Path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode = WAL")
    return conn


def create_line_table(conn: sqlite3.Connection, table: str) -> None:
    """Create one line collection table and its bounding box index."""
    table = check_identifier(table)

    # AUTOINCREMENT so ids of deleted lines are never handed out again
    conn.execute(f"""
        CREATE TABLE IF NOT EXISTS {table} (
            line_id INTEGER PRIMARY KEY AUTOINCREMENT,

            -- 2D WKB geometry (LineString or MultiLineString)
            geometry_wkb BLOB NOT NULL,

            -- Road filter attribute, NULL = not a road
            category TEXT,
            name TEXT,
            tags_json TEXT,

            -- Bounding box for proximity pre-filtering
            min_x REAL NOT NULL,
            min_y REAL NOT NULL,
            max_x REAL NOT NULL,
            max_y REAL NOT NULL,

            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)
    conn.execute(f"CREATE INDEX IF NOT EXISTS idx_{table}_bbox ON {table}(min_x, max_x, min_y, max_y)")
    conn.execute(f"CREATE INDEX IF NOT EXISTS idx_{table}_category ON {table}(category)")


def init_db(
    db_path: Path,
    main_table: str = constants.MAIN_TABLE,
    incoming_table: str = constants.INCOMING_TABLE,
    srid: int = constants.SRID
) -> sqlite3.Connection:
    """
    Initialize database with schema.

    The SRID is recorded on first initialization; reopening the database with a
    different SRID is refused so coordinates never mix within a run.
    """
    conn = get_connection(db_path)

    conn.execute("""
        CREATE TABLE IF NOT EXISTS conflate_meta (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        )
    """)
    create_line_table(conn, main_table)
    create_line_table(conn, incoming_table)

    row = conn.execute("SELECT value FROM conflate_meta WHERE key = 'srid'").fetchone()
    if row is None:
        conn.execute("INSERT INTO conflate_meta (key, value) VALUES ('srid', ?)", (str(srid),))
    elif int(row['value']) != srid:
        conn.close()
        raise ConfigError(f"Database was created with SRID {row['value']}, config asks for {srid}")

    conn.commit()
    return conn
