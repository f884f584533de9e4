"""Command line interface for the station migration engine."""

import argparse
import json
import logging
import sys
from datetime import date
from pathlib import Path
from typing import List, Optional

from .db.schema import create_all
from .errors import DatabaseNotInitializedError, MigrationError
from .extractors.rtdb_export import ExportSplitter, print_split_summary
from .loaders.sql_store import SQLTargetStore
from .models.migration import EntityType, MigrationConfig
from .orchestrator import MigrationOrchestrator
from .services.analyzer import DataAnalyzer, latest_export_dir, print_analysis_summary
from .services.rollback import ROLLBACK_ORDER, RollbackTool, print_rollback_banner
from .services.validator import MigrationValidator, all_passed, print_validation_report

logger = logging.getLogger(__name__)

ENTITY_CHOICES = [e.value for e in EntityType]


def load_config(args) -> MigrationConfig:
    """Build the config from `--config` (if given) and the command line."""
    config = MigrationConfig()
    if args.config:
        with open(args.config) as f:
            config = MigrationConfig.from_dict(json.load(f))
    if args.database_url:
        config.database_url = args.database_url
    return config


def todays_export_dir(config: MigrationConfig) -> str:
    return str(Path(config.exports_root) / date.today().isoformat())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="station-etl",
        description="Station ETL - Migrate the legacy bus-station export into the relational target",
    )
    parser.add_argument("--database-url", help="Target database URL (overrides DATABASE_URL)")
    parser.add_argument("--config", help="Path to a JSON migration config file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Split a raw export
    parse_parser = subparsers.add_parser("parse", help="Split a raw export into per-entity files")
    parse_parser.add_argument("input", help="Path to the raw export JSON file")
    parse_parser.add_argument("output_dir", help="Directory to write the per-entity files into")

    # Analyze data quality
    analyze_parser = subparsers.add_parser("analyze", help="Report data quality issues in an export")
    analyze_parser.add_argument("export_dir", nargs="?", help="Export directory (default: latest dated export)")

    # Create the target schema
    subparsers.add_parser("init-db", help="Create the target tables if they do not exist")

    # Run every importer
    run_parser = subparsers.add_parser("run", help="Import every entity in dependency order")
    run_parser.add_argument("export_dir", help="Export directory")
    run_parser.add_argument("--only", nargs="+", choices=ENTITY_CHOICES, help="Import only these entities")
    run_parser.add_argument("--no-batch", action="store_true", help="Use per-record inserts everywhere")
    run_parser.add_argument("--batch-size", type=int, help="Rows per grouped insert")
    run_parser.add_argument("--reset-fk-report", action="store_true", help="Start a fresh invalid-FK report")

    # Import a single entity
    import_parser = subparsers.add_parser("import", help="Import a single entity")
    import_parser.add_argument("entity", choices=ENTITY_CHOICES, help="Entity to import")
    import_parser.add_argument("export_dir", help="Export directory")
    import_parser.add_argument("--no-batch", action="store_true", help="Use per-record inserts")

    # Validate counts
    validate_parser = subparsers.add_parser("validate", help="Compare source and target counts")
    validate_parser.add_argument("export_dir", nargs="?", help="Export directory (default: today's export)")
    validate_parser.add_argument("--tolerance", type=float, help="Allowed discrepancy ratio (default: 0.10)")

    # Roll back
    rollback_parser = subparsers.add_parser("rollback", help="Delete all migrated data from the target")
    rollback_parser.add_argument("--confirm", action="store_true", help="Actually delete the data")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Set up logging
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    commands = {
        "parse": run_parse,
        "analyze": run_analyze,
        "init-db": run_init_db,
        "run": run_all,
        "import": run_import,
        "validate": run_validation,
        "rollback": run_rollback,
    }
    command = commands.get(args.command)
    if command is None:
        parser.print_help()
        return 1

    try:
        return command(args)
    except DatabaseNotInitializedError as e:
        logger.error(str(e))
        print(f"\n✗ {e}")
        return 1
    except MigrationError as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"\n✗ {e}")
        return 1


def run_parse(args) -> int:
    """Split a raw export into per-entity files."""
    print(f"Parsing export: {args.input}")
    print(f"Output directory: {args.output_dir}\n")

    results = ExportSplitter().split(args.input, args.output_dir)
    print_split_summary(results)
    return 0


def run_analyze(args) -> int:
    """Analyze an export for data quality issues."""
    config = load_config(args)
    export_dir = args.export_dir
    if not export_dir:
        latest = latest_export_dir(config.exports_root)
        if latest is None:
            print(f"No export directories found in {config.exports_root}")
            return 1
        export_dir = str(latest)

    print(f"Analyzing export: {export_dir}")
    analyzer = DataAnalyzer(export_dir)
    report = analyzer.analyze()
    path = analyzer.write_report(report)
    print(f"\nReport saved to: {path}")
    print_analysis_summary(report)
    return 1 if report.total_issues > 0 else 0


def run_init_db(args) -> int:
    """Create the target schema."""
    config = load_config(args)
    store = SQLTargetStore.from_url(config.database_url)
    create_all(store.engine)
    print(f"✓ Target schema ready ({store.dialect})")
    return 0


def run_all(args) -> int:
    """Run every importer in dependency order."""
    config = load_config(args)
    if args.only:
        config.only = args.only
    if args.no_batch:
        config.use_batch_importers = False
    if args.batch_size:
        config.batch_size = args.batch_size
    if args.reset_fk_report:
        config.reset_fk_report = True

    orchestrator = MigrationOrchestrator(config)
    run = orchestrator.run_migration(args.export_dir)
    return run.exit_code


def run_import(args) -> int:
    """Import a single entity."""
    config = load_config(args)
    if args.no_batch:
        config.use_batch_importers = False

    orchestrator = MigrationOrchestrator(config)
    orchestrator.ensure_connection()
    result = orchestrator.import_entity(EntityType(args.entity), args.export_dir)
    if not result.success:
        return 1

    print(f"\n✓ {args.entity}: {result.imported} imported, {result.skipped} skipped")
    return 0


def run_validation(args) -> int:
    """Validate migrated counts against the export."""
    config = load_config(args)
    if args.tolerance is not None:
        config.validation_tolerance = args.tolerance
    export_dir = args.export_dir or todays_export_dir(config)

    store = SQLTargetStore.from_url(config.database_url)
    validator = MigrationValidator(
        store,
        tolerance=config.validation_tolerance,
        tolerance_overrides=config.tolerance_overrides,
    )
    rows = validator.validate(export_dir)
    print_validation_report(rows, export_dir)

    return 0 if all_passed(rows) else 1


def run_rollback(args) -> int:
    """Truncate every migrated table."""
    config = load_config(args)
    print_rollback_banner(ROLLBACK_ORDER, args.confirm)
    if not args.confirm:
        return 0

    store = SQLTargetStore.from_url(config.database_url)
    result = RollbackTool(store).rollback()
    if result.success:
        print("\n✓ Rollback complete")
        return 0
    print(f"\n✗ Rollback incomplete: {', '.join(result.failed)}")
    return 1


if __name__ == "__main__":
    sys.exit(main())
