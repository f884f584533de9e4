#!/usr/bin/env python3
"""
Example: Legacy export to PostgreSQL

Runs the whole pipeline: split the raw export, analyze it, import every
entity in dependency order, then validate the counts.

Usage:
    # Demo with a small generated export against a local SQLite file
    python run_migration.py --demo

    # Full migration (DATABASE_URL must point at the target)
    python run_migration.py --input exports/firebase-export.json

    # With custom config
    python run_migration.py --input export.json --config my_config.json
"""

import argparse
import json
import logging
import sys
from datetime import date
from pathlib import Path

from station_etl.db import create_all
from station_etl.extractors import ExportSplitter
from station_etl.extractors.rtdb_export import print_split_summary
from station_etl.loaders import SQLTargetStore
from station_etl.models import MigrationConfig
from station_etl.orchestrator import MigrationOrchestrator
from station_etl.services import DataAnalyzer, MigrationValidator, all_passed
from station_etl.services.analyzer import print_analysis_summary
from station_etl.services.validator import print_validation_report

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(),
        logging.FileHandler('migration.log')
    ]
)
logger = logging.getLogger(__name__)


def sample_export() -> dict:
    """A tiny export with one record per core collection."""
    return {
        "operators": {
            "op1": {"name": "Phuong Trang", "code": "PT", "phone": "0909 123 456"},
        },
        "vehicle_types": {
            "vt1": {"name": "Giuong nam", "code": "GN40", "seat_capacity": 40},
        },
        "routes": {
            "r1": {"route_code": "SG-DL", "departure_station": "Mien Dong", "arrival_station": "Da Lat"},
        },
        "vehicles": {
            "v1": {"plate_number": "51B-12345", "operator_id": "op1", "vehicle_type_id": "vt1", "seat_count": "40"},
        },
        "drivers": {
            "d1": {"full_name": "Nguyen Van A", "operator_id": "op1", "phone": "0912-000-111"},
        },
        "datasheet": {
            "Xe": {
                "x1": {"plate_number": "51B-12345", "seat_count": 40},
            },
        },
        "dispatch_records": {
            "dr1": {
                "vehicle_id": "v1",
                "driver_id": "d1",
                "route_id": "r1",
                "operator_id": "op1",
                "entry_time": "2024-05-01T06:30:00Z",
                "current_status": "departed",
            },
        },
        "invoices": {
            "inv1": {"dispatch_id": "dr1", "operator_id": "op1", "amount": 150000, "status": "paid"},
        },
    }


def run_pipeline(input_path: str, export_dir: str, config: MigrationConfig) -> int:
    """Split, analyze, import and validate. Returns the process exit code."""
    logger.info("=== Splitting export ===")
    results = ExportSplitter().split(input_path, export_dir)
    print_split_summary(results)

    logger.info("=== Analyzing data quality ===")
    analyzer = DataAnalyzer(export_dir)
    report = analyzer.analyze()
    analyzer.write_report(report)
    print_analysis_summary(report)

    logger.info("=== Importing ===")
    store = SQLTargetStore.from_url(config.database_url)
    create_all(store.engine)
    run = MigrationOrchestrator(config, store=store).run_migration(export_dir)

    logger.info("=== Validating ===")
    validator = MigrationValidator(
        store,
        tolerance=config.validation_tolerance,
        tolerance_overrides=config.tolerance_overrides,
    )
    rows = validator.validate(export_dir)
    print_validation_report(rows, export_dir)

    if run.exit_code != 0 or not all_passed(rows):
        return 1
    return 0


def demo_with_sample_data() -> int:
    """Run the pipeline on a generated export against a local SQLite file."""
    demo_dir = Path(__file__).parent / "demo_output"
    demo_dir.mkdir(exist_ok=True)

    input_path = demo_dir / "firebase-export.json"
    with open(input_path, "w", encoding="utf-8") as f:
        json.dump(sample_export(), f, ensure_ascii=False, indent=2)

    db_path = demo_dir / "station.db"
    if db_path.exists():
        db_path.unlink()

    config = MigrationConfig(name="Demo Migration", database_url=f"sqlite:///{db_path}")
    exit_code = run_pipeline(str(input_path), str(demo_dir / "export"), config)

    logger.info("\nDemo complete! Check demo_output/ for the split files and reports.")
    return exit_code


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Legacy export to PostgreSQL migration"
    )
    parser.add_argument(
        "--demo",
        action="store_true",
        help="Run demo with sample data (no database needed)"
    )
    parser.add_argument(
        "--input",
        help="Path to the raw export JSON file"
    )
    parser.add_argument(
        "--config",
        help="Path to JSON config file"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output"
    )

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.demo:
        sys.exit(demo_with_sample_data())

    if not args.input:
        logger.error("--input is required unless --demo is given")
        sys.exit(1)

    config = MigrationConfig()
    if args.config:
        with open(args.config) as f:
            config = MigrationConfig.from_dict(json.load(f))

    export_dir = Path(config.exports_root) / date.today().isoformat()
    sys.exit(run_pipeline(args.input, str(export_dir), config))


if __name__ == "__main__":
    main()
