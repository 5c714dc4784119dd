#!/usr/bin/env python3
"""
Configuration loading for conflation runs.

Configuration is a JSON file with the sections:
- database: SQLite path, table names, SRID, optional main network source
- resolution: thresholds and loop policies
- import: optional import of the incoming network before conflation
- export: optional GeoJSON output paths

Relative paths are resolved against the directory holding the config file.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from . import constants
from .errors import ConfigError

REQUIRED_SECTIONS = ['database', 'resolution']
IMPORT_FORMATS = ('geojson', 'osm')


@dataclass
class DatabaseConfig:
    """Where the two collections live."""
    path: Path
    main_table: str = constants.MAIN_TABLE
    incoming_table: str = constants.INCOMING_TABLE
    srid: int = constants.SRID
    main_source: Optional[Path] = None


@dataclass
class ResolutionConfig:
    """Thresholds and policies for the convergence loop."""
    proximity_distance: float = constants.PROXIMITY_DISTANCE
    adjacency_tolerance: float = constants.ADJACENCY_TOLERANCE
    simplify_tolerance: float = constants.SIMPLIFY_TOLERANCE
    batch_size: int = constants.FETCH_BATCH_SIZE
    revisit_mutated: bool = False
    max_iterations: Optional[int] = None


@dataclass
class ImportConfig:
    """Import of the incoming collection."""
    enabled: bool = False
    path: Optional[Path] = None
    format: str = 'geojson'
    style: Optional[Path] = None
    category_field: str = constants.CATEGORY_FIELD
    replace: bool = True


@dataclass
class ExportConfig:
    """GeoJSON outputs written after conflation."""
    main_path: Optional[Path] = None
    incoming_path: Optional[Path] = None


@dataclass
class ConflateConfig:
    """Complete run configuration."""
    database: DatabaseConfig
    resolution: ResolutionConfig = field(default_factory=ResolutionConfig)
    importer: ImportConfig = field(default_factory=ImportConfig)
    export: ExportConfig = field(default_factory=ExportConfig)


def _resolve_path(value: Optional[str], base_dir: Path) -> Optional[Path]:
    if not value:
        return None
    path = Path(value)
    if not path.is_absolute():
        path = base_dir / path
    return path


def _positive(section: str, key: str, value, allow_zero: bool = False):
    if value < 0 or (value == 0 and not allow_zero):
        raise ConfigError(f"{section}.{key} must be {'non-negative' if allow_zero else 'positive'}, got {value}")
    return value


def parse_config(data: Dict, base_dir: Path) -> ConflateConfig:
    """Build a ConflateConfig from an already-parsed JSON document."""
    if not isinstance(data, dict):
        raise ConfigError("Config root must be a JSON object")

    for section in REQUIRED_SECTIONS:
        if section not in data:
            raise ConfigError(f"Missing required config section: {section}")

    db = data['database']
    if not db.get('path'):
        raise ConfigError("Missing required config field: database.path")

    database = DatabaseConfig(
        path=_resolve_path(db['path'], base_dir),
        main_table=db.get('main_table', constants.MAIN_TABLE),
        incoming_table=db.get('incoming_table', constants.INCOMING_TABLE),
        srid=int(db.get('srid', constants.SRID)),
        main_source=_resolve_path(db.get('main_source'), base_dir),
    )
    if database.main_table == database.incoming_table:
        raise ConfigError("database.main_table and database.incoming_table must differ")

    res = data['resolution']
    try:
        max_iterations = res.get('max_iterations')
        resolution = ResolutionConfig(
            proximity_distance=float(res.get('proximity_distance', constants.PROXIMITY_DISTANCE)),
            adjacency_tolerance=float(res.get('adjacency_tolerance', constants.ADJACENCY_TOLERANCE)),
            simplify_tolerance=float(res.get('simplify_tolerance', constants.SIMPLIFY_TOLERANCE)),
            batch_size=int(res.get('batch_size', constants.FETCH_BATCH_SIZE)),
            revisit_mutated=bool(res.get('revisit_mutated', False)),
            max_iterations=int(max_iterations) if max_iterations is not None else None,
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid resolution settings: {e}") from e

    _positive('resolution', 'proximity_distance', resolution.proximity_distance)
    _positive('resolution', 'adjacency_tolerance', resolution.adjacency_tolerance, allow_zero=True)
    _positive('resolution', 'simplify_tolerance', resolution.simplify_tolerance, allow_zero=True)
    _positive('resolution', 'batch_size', resolution.batch_size)
    if resolution.max_iterations is not None:
        _positive('resolution', 'max_iterations', resolution.max_iterations)

    imp = data.get('import', {})
    importer = ImportConfig(
        enabled=bool(imp.get('enabled', False)),
        path=_resolve_path(imp.get('path'), base_dir),
        format=imp.get('format', 'geojson'),
        style=_resolve_path(imp.get('style'), base_dir),
        category_field=imp.get('category_field', constants.CATEGORY_FIELD),
        replace=bool(imp.get('replace', True)),
    )
    if importer.format not in IMPORT_FORMATS:
        raise ConfigError(f"import.format must be one of {IMPORT_FORMATS}, got {importer.format!r}")
    if importer.enabled and importer.path is None:
        raise ConfigError("import.path is required when import is enabled")

    exp = data.get('export', {})
    export = ExportConfig(
        main_path=_resolve_path(exp.get('main_path'), base_dir),
        incoming_path=_resolve_path(exp.get('incoming_path'), base_dir),
    )

    return ConflateConfig(
        database=database,
        resolution=resolution,
        importer=importer,
        export=export,
    )


def load_config(config_path: Path) -> ConflateConfig:
    """Load and validate a conflation configuration file."""
    config_path = Path(config_path)
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Config file is not valid JSON: {e}") from e

    return parse_config(data, config_path.parent)
