#!/usr/bin/env python3
"""
Main pipeline orchestrator.

Runs the conflation pipeline:
1. Load main - Populate the main collection from a GeoJSON file (optional)
2. Import - Populate the incoming collection (optional)
3. Conflate - Resolve conflicts until quiescent or livelocked
4. Export - Write both collections to GeoJSON (optional)

Usage:
    conflate --config conflate.json
    conflate --config conflate.json --stage conflate --verbose

Exit status is 0 when conflation finishes (quiescent or livelocked) and 1 on
any configuration, import, geometry or storage error.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Callable, Optional

from .config import ConflateConfig, load_config
from .db.lines import Collection, LineStore
from .errors import ConflationError
from .export.export_lines import export_collection
from .ingest import GeoJSONImporter, OsmImporter
from .merge import (
    ConflictClassifier,
    ConvergenceLoop,
    IntersectionFinder,
    ResolutionEvent,
    ResolutionExecutor,
    RunResult,
)
from .spatial.engine import ShapelyEngine, SpatialEngine

logger = logging.getLogger(__name__)

STAGES = ['load-main', 'import', 'conflate', 'export', 'all']


def open_store(config: ConflateConfig) -> LineStore:
    db = config.database
    return LineStore.open(db.path, db.main_table, db.incoming_table, db.srid)


def build_loop(
    store: LineStore,
    config: ConflateConfig,
    engine: Optional[SpatialEngine] = None,
    observer: Optional[Callable[[ResolutionEvent], None]] = None
) -> ConvergenceLoop:
    """Wire finder, classifier and executor from the resolution settings."""
    engine = engine or ShapelyEngine()
    res = config.resolution

    finder = IntersectionFinder(
        store,
        engine,
        proximity_distance=res.proximity_distance,
        adjacency_tolerance=res.adjacency_tolerance,
        simplify_tolerance=res.simplify_tolerance,
        batch_size=res.batch_size,
    )
    classifier = ConflictClassifier(engine, adjacency_tolerance=res.adjacency_tolerance)
    executor = ResolutionExecutor(store, engine)
    return ConvergenceLoop(
        finder,
        classifier,
        executor,
        revisit_mutated=res.revisit_mutated,
        max_iterations=res.max_iterations,
        observer=observer,
    )


def run_load_main(store: LineStore, config: ConflateConfig) -> bool:
    """Load the main network from database.main_source, if configured."""
    source = config.database.main_source
    if source is None:
        logger.info("No database.main_source configured, keeping existing main lines")
        return True

    importer = GeoJSONImporter(
        store,
        source,
        collection=Collection.MAIN,
        category_field=config.importer.category_field,
        replace=True,
    )
    return importer.run()


def run_import(store: LineStore, config: ConflateConfig) -> bool:
    """Populate the incoming collection, if import is enabled."""
    imp = config.importer
    if not imp.enabled:
        logger.info("Import disabled, using existing incoming lines")
        return True

    kwargs = dict(
        collection=Collection.INCOMING,
        category_field=imp.category_field,
        replace=imp.replace,
    )
    if imp.format == 'osm':
        importer = OsmImporter(store, imp.path, style_path=imp.style, srid=config.database.srid, **kwargs)
    else:
        importer = GeoJSONImporter(store, imp.path, **kwargs)
    return importer.run()


def run_conflate(store: LineStore, config: ConflateConfig) -> RunResult:
    """Run the convergence loop to completion."""
    logger.info(
        f"Conflating: {store.count(Collection.MAIN)} main lines, "
        f"{store.count(Collection.INCOMING)} incoming lines"
    )
    result = build_loop(store, config).run()
    logger.info(f"Rule counts: {result.rule_counts}")
    return result


def run_export(store: LineStore, config: ConflateConfig) -> bool:
    """Export both collections to the configured paths."""
    exp = config.export
    srid = config.database.srid
    category_field = config.importer.category_field
    if exp.main_path:
        export_collection(store, Collection.MAIN, exp.main_path, srid, category_field)
    if exp.incoming_path:
        export_collection(store, Collection.INCOMING, exp.incoming_path, srid, category_field)
    if not (exp.main_path or exp.incoming_path):
        logger.info("No export paths configured")
    return True


def run_stage(stage: str, config: ConflateConfig) -> bool:
    """
    Run a pipeline stage.

    Args:
        stage: One of 'load-main', 'import', 'conflate', 'export', 'all'
        config: Loaded configuration

    Returns:
        True if successful

    Raises:
        ConflationError: on fatal geometry or storage errors
    """
    store = open_store(config)
    try:
        if stage == 'load-main':
            return run_load_main(store, config)
        elif stage == 'import':
            return run_import(store, config)
        elif stage == 'conflate':
            run_conflate(store, config)
            return True
        elif stage == 'export':
            return run_export(store, config)
        elif stage == 'all':
            if not run_load_main(store, config):
                return False
            if not run_import(store, config):
                return False
            run_conflate(store, config)
            return run_export(store, config)
        else:
            logger.error(f"Unknown stage: {stage}")
            return False
    finally:
        store.close()


def main(argv=None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description='Conflate an incoming road network into the main network',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument(
        '--config',
        type=Path,
        required=True,
        help='Path to the JSON configuration file'
    )
    parser.add_argument(
        '--stage',
        choices=STAGES,
        default='all',
        help='Pipeline stage to run (default: all)'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable verbose logging'
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(name)s - %(message)s'
    )

    try:
        config = load_config(args.config)
        success = run_stage(args.stage, config)
    except ConflationError as e:
        logger.error(f"Conflation aborted: {e}")
        return 1

    return 0 if success else 1


if __name__ == '__main__':
    sys.exit(main())
