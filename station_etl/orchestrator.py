"""Migration orchestrator - runs the entity importers in dependency order."""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from .errors import DatabaseNotInitializedError
from .importers import get_importer_class
from .importers.base import EntityImporter
from .importers.batch import BatchEntityImporter
from .loaders.base import TargetStore
from .loaders.sql_store import SQLTargetStore
from .models.migration import (
    DEPENDENCY_LEVELS,
    EntityImportResult,
    EntityType,
    MigrationConfig,
    MigrationRun,
)
from .services.fk_reporter import InvalidFKReporter
from .services.id_mapping import IdMappingStore

logger = logging.getLogger(__name__)

LEVEL_TITLES = {
    1: "Base Tables (No Dependencies)",
    2: "Depends on Operators/Vehicle Types",
    3: "Depends on Vehicles/Drivers",
    4: "Final",
}


class MigrationOrchestrator:
    """
    Orchestrates a complete import run.

    Handles:
    - Target connection check (fatal if it fails)
    - Level-by-level execution; importers inside a level run in order
    - Per-entity failure containment
    - Run summary and exit code
    """

    def __init__(self, config: MigrationConfig, store: Optional[TargetStore] = None):
        """
        Initialize the orchestrator.

        Args:
            config: Migration configuration
            store: Target store (built from config/environment if omitted)
        """
        self.config = config
        self.store = store or SQLTargetStore.from_url(config.database_url)
        self.mappings = IdMappingStore(self.store)
        self.run: Optional[MigrationRun] = None

    def selected_levels(self) -> List[List[EntityType]]:
        """Dependency levels restricted to `config.only`. A level may come back empty."""
        only = {EntityType(name) for name in self.config.only}
        levels = []
        for level in DEPENDENCY_LEVELS:
            entities = [e for e in level if not only or e in only]
            levels.append(entities)
        return levels

    def ensure_connection(self) -> None:
        if not self.store.validate_connection():
            raise DatabaseNotInitializedError(
                "Database not initialized. Check DATABASE_URL environment variable."
            )

    def create_importer(self, entity: EntityType) -> EntityImporter:
        importer_class = get_importer_class(entity, use_batch=self.config.use_batch_importers)
        if issubclass(importer_class, BatchEntityImporter):
            return importer_class(self.store, mappings=self.mappings, batch_size=self.config.batch_size)
        return importer_class(self.store, mappings=self.mappings)

    def import_entity(self, entity: EntityType, export_dir: str) -> EntityImportResult:
        """Run one importer, containing any failure in the result."""
        started_at = datetime.now(timezone.utc)
        try:
            stats = self.create_importer(entity).run(export_dir)
        except Exception as e:
            logger.error(f"{entity.value} import failed: {e}")
            print(f"  ✗ {entity.value} failed: {e}")
            result = EntityImportResult(table=entity.value, success=False, error=str(e))
        else:
            result = EntityImportResult.from_stats(entity.value, stats)
        result.started_at = started_at
        result.completed_at = datetime.now(timezone.utc)
        return result

    def run_migration(self, export_dir: str) -> MigrationRun:
        """
        Run every selected importer against `export_dir`.

        Raises:
            DatabaseNotInitializedError: if the target is not reachable
        """
        self.ensure_connection()

        if self.config.reset_fk_report:
            InvalidFKReporter(export_dir).reset()

        self.run = MigrationRun(export_dir=export_dir)
        self.run.start()

        print("\n========================================")
        print("    ETL Master Import")
        print("========================================\n")
        print(f"Source directory: {export_dir}")

        levels = self.selected_levels()
        total = sum(len(level) for level in levels)
        position = 0

        for number, entities in enumerate(levels, start=1):
            if not entities:
                continue
            logger.info(f"=== LEVEL {number} ===")
            print(f"\n--- Level {number}: {LEVEL_TITLES[number]} ---")

            for entity in entities:
                position += 1
                print(f"\n[{position}/{total}] {entity.value}")
                result = self.import_entity(entity, export_dir)
                self.run.results.append(result)

        self.run.finish()
        self._save_report(export_dir)
        print_run_summary(self.run)
        return self.run

    def _save_report(self, export_dir: str) -> None:
        """Save the run report next to the export."""
        stamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        path = Path(export_dir) / f"migration_report_{stamp}.json"
        try:
            with open(path, "w", encoding="utf-8") as f:
                json.dump(self.run.to_dict(), f, indent=2, default=str)
        except OSError as e:
            logger.warning(f"Could not save migration report: {e}")
            return
        logger.info(f"Saved migration report to {path}")


def print_run_summary(run: MigrationRun) -> None:
    print("\n========================================")
    print("             ETL Summary")
    print("========================================\n")

    for r in run.results:
        icon = "✓" if r.success else "✗"
        line = f"  {icon} {r.table:<18} {r.imported:>7} imported {r.skipped:>7} skipped"
        if r.failed:
            line += f" ({r.failed} failed)"
        print(line)

    successful = [r for r in run.results if r.success]
    print(f"\nTables: {len(successful)}/{len(run.results)} successful")
    print(f"Total records imported: {run.total_imported}")
    truncated = sum(r.truncated for r in run.results)
    if truncated:
        print(f"Values truncated: {truncated}")
    invalid_fks = sum(r.invalid_fks for r in run.results)
    if invalid_fks:
        print(f"Unresolved foreign keys: {invalid_fks} (see invalid-fk-report.json)")

    if run.failed_entities:
        print("\nFailed tables:")
        for r in run.failed_entities:
            print(f"  - {r.table}: {r.error}")

    if run.duration_seconds is not None:
        print(f"\nDuration: {run.duration_seconds:.1f}s")
    print("\n========================================\n")
