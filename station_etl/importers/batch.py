"""
Batch insert strategy for the large entities.

Database round trips drop from one per record to one per batch: the
target's existing natural keys and legacy IDs are preloaded, duplicates are
filtered in memory, and the remainder goes in as grouped inserts. A batch
whose grouped insert fails is retried record by record, so one bad row
costs only itself.
"""

from abc import abstractmethod
from typing import Any, Dict, List, Optional, Set, Tuple
import logging

from .base import EntityImporter
from ..errors import DuplicateKeyError, DuplicateMappingError, TargetStoreError
from ..loaders.base import TargetStore
from ..models.migration import EntityType, ImportStats
from ..models.record import ImportUnit, RecordStatus
from ..services.id_mapping import IdMappingStore
from ..services.progress import ProgressReporter

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 100

PendingRow = Tuple[ImportUnit, Dict[str, Any]]


class BatchInsertOptimizer:
    """Writes prepared rows in grouped inserts with per-record fallback."""

    def __init__(
        self,
        store: TargetStore,
        mappings: IdMappingStore,
        entity_type: EntityType,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ):
        self.store = store
        self.mappings = mappings
        self.entity_type = entity_type
        self.batch_size = max(1, batch_size)

    @property
    def table(self) -> str:
        return self.entity_type.value

    def insert_all(
        self,
        pending: List[PendingRow],
        stats: ImportStats,
        progress: Optional[ProgressReporter] = None,
    ) -> ImportStats:
        """Insert every pending row, batch by batch."""
        for start in range(0, len(pending), self.batch_size):
            batch = pending[start:start + self.batch_size]
            self.insert_batch(batch, stats, batch_number=start // self.batch_size + 1)
            if progress is not None:
                progress.advance(len(batch))
        return stats

    def insert_batch(self, batch: List[PendingRow], stats: ImportStats, batch_number: int = 1) -> None:
        try:
            target_ids = self.store.insert_many(self.table, [values for _, values in batch])
        except TargetStoreError as e:
            logger.warning(
                f"{self.table} batch {batch_number} insert failed, retrying one by one: {e}"
            )
            self.insert_one_by_one(batch, stats)
            return

        for (unit, _), target_id in zip(batch, target_ids):
            unit.target_id = target_id
            unit.status = RecordStatus.LOADED
        stats.imported += len(target_ids)

        entries = [(unit.legacy_id, target_id) for (unit, _), target_id in zip(batch, target_ids)]
        try:
            self.mappings.record_many(entries, self.entity_type)
        except TargetStoreError as e:
            logger.warning(
                f"{self.table} batch {batch_number} mapping write failed, recording one by one: {e}"
            )
            self.record_one_by_one(entries)

    def insert_one_by_one(self, batch: List[PendingRow], stats: ImportStats) -> None:
        for unit, values in batch:
            try:
                target_id = self.store.insert(self.table, values)
            except DuplicateKeyError:
                unit.status = RecordStatus.DUPLICATE
                stats.skipped += 1
                continue
            except TargetStoreError as e:
                unit.status = RecordStatus.FAILED
                unit.error = str(e)
                stats.skipped += 1
                stats.failed += 1
                logger.warning(f"Failed to import {self.table} {unit.legacy_id}: {e}")
                continue

            unit.target_id = target_id
            unit.status = RecordStatus.LOADED
            stats.imported += 1
            self.record_one_by_one([(unit.legacy_id, target_id)])

    def record_one_by_one(self, entries: List[Tuple[str, Any]]) -> None:
        for legacy_id, target_id in entries:
            try:
                self.mappings.record(legacy_id, target_id, self.entity_type)
            except DuplicateMappingError:
                continue
            except TargetStoreError as e:
                logger.error(f"Could not record {self.table} mapping for {legacy_id}: {e}")


class BatchEntityImporter(EntityImporter):
    """
    Entity importer that filters duplicates in memory and writes through a
    BatchInsertOptimizer.

    Subclasses name the natural key column and derive the key from a record.
    """

    natural_key_column: str = ""

    def __init__(
        self,
        store: TargetStore,
        mappings: Optional[IdMappingStore] = None,
        show_progress: bool = True,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ):
        super().__init__(store, mappings=mappings, show_progress=show_progress)
        self.batch_size = batch_size
        self.optimizer = BatchInsertOptimizer(store, self.mappings, self.entity_type, batch_size)

    @abstractmethod
    def natural_key(self, unit: ImportUnit) -> Optional[str]:
        """The record's natural key as stored, or None if it has none."""
        pass

    def load_existing(self) -> Tuple[Set[str], Set[str]]:
        """Existing natural keys and legacy IDs of the target table."""
        rows = self.store.select(self.table, columns=[self.natural_key_column, "legacy_id"])
        keys = {row[self.natural_key_column] for row in rows if row[self.natural_key_column]}
        legacy_ids = {row["legacy_id"] for row in rows if row["legacy_id"]}
        legacy_ids |= self._imported_ids
        logger.info(f"Found {len(keys)} existing {self.table} keys and {len(legacy_ids)} legacy IDs")
        return keys, legacy_ids

    def select_pending(self, records: List[Dict[str, Any]], stats: ImportStats) -> List[PendingRow]:
        """
        Filter records down to the ones that must be inserted, prepared.

        Each accepted key and legacy ID is marked seen at once, so two
        records sharing either are never both inserted.
        """
        existing_keys, existing_legacy_ids = self.load_existing()
        pending: List[PendingRow] = []
        skipped_no_key = 0
        skipped_duplicate = 0

        for raw in records:
            unit = self.build_unit(raw)
            if unit is None:
                stats.skipped += 1
                continue

            if self.should_skip(unit):
                stats.skipped += 1
                continue

            key = self.natural_key(unit)
            if not key:
                skipped_no_key += 1
                stats.skipped += 1
                continue

            if key in existing_keys or unit.legacy_id in existing_legacy_ids:
                unit.status = RecordStatus.DUPLICATE
                skipped_duplicate += 1
                stats.skipped += 1
                continue

            existing_keys.add(key)
            existing_legacy_ids.add(unit.legacy_id)
            unit.natural_key = key

            try:
                values = self.prepare(unit, stats)
            except Exception as e:
                stats.skipped += 1
                stats.failed += 1
                logger.warning(f"Failed to transform {self.table} {unit.legacy_id}: {e}")
                continue

            values[self.natural_key_column] = key
            pending.append((unit, values))

        print(f"  Skipped {skipped_no_key} (no key) + {skipped_duplicate} (duplicates)")
        print(f"  Ready to insert: {len(pending)} {self.display_name.lower()}")
        return pending

    def run(self, export_dir: str) -> ImportStats:
        stats = ImportStats()
        records = self.extract(export_dir)
        if not records:
            logger.warning(f"No {self.table} data found in {export_dir}, skipping")
            return stats

        print(f"  Total: {len(records)} {self.display_name.lower()} to process")
        self.begin_run(export_dir)
        pending = self.select_pending(records, stats)
        if not pending:
            print(f"  ✓ No new {self.display_name.lower()} to import")
            return stats

        print(f"  Batch inserting ({self.batch_size} per batch)...")
        with ProgressReporter(
            self.table, len(pending), every=self.progress_every, enabled=self.show_progress
        ) as progress:
            self.optimizer.insert_all(pending, stats, progress)

        elapsed = progress.elapsed
        rate = stats.imported / elapsed if elapsed > 0 else 0.0
        self.print_summary(stats)
        print(f"  Rate: {rate:.1f} records/second")
        return stats
