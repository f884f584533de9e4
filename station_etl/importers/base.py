"""Base entity importer."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set, Tuple
import logging
import uuid

from ..db.schema import LEGACY_ID_MAX_LENGTH
from ..errors import DuplicateKeyError, DuplicateMappingError, TargetStoreError
from ..extractors.base import ORIGIN_KEY
from ..extractors.json_extractor import JSONExportExtractor
from ..loaders.base import TargetStore
from ..models.migration import ENTITY_SOURCES, EntityType, ImportStats
from ..models.record import ImportUnit, RecordStatus
from ..services.fk_reporter import InvalidFKReporter
from ..services.id_mapping import IdMappingStore
from ..services.normalizers import as_text, parse_bool, parse_date, truncate
from ..services.progress import ProgressReporter

logger = logging.getLogger(__name__)

DEFAULT_SOURCE = "firebase_migration"


@dataclass(frozen=True)
class ForeignKeyRef:
    """A legacy FK field resolved through the mapping store into a target column."""
    column: str
    target: EntityType
    source_fields: Tuple[str, ...]


class EntityImporter(ABC):
    """
    Imports one entity type from the export directory into the target store.

    Per record: extract the legacy ID, skip it if already mapped, normalize
    scalars, resolve foreign keys (reporting misses without blocking),
    truncate strings to column limits, insert, then record the mapping.
    Failures are contained to the record; the importer always moves on.

    Subclasses declare their entity and implement `transform`.
    """

    entity_type: EntityType
    label: str = ""
    progress_every: int = 100
    field_limits: Dict[str, int] = {}
    foreign_keys: Tuple[ForeignKeyRef, ...] = ()
    default_source: str = DEFAULT_SOURCE
    # Origin files; defaults to every origin of the entity
    source_files: Tuple[str, ...] = ()

    def __init__(
        self,
        store: TargetStore,
        mappings: Optional[IdMappingStore] = None,
        show_progress: bool = True,
    ):
        self.store = store
        self.mappings = mappings or IdMappingStore(store)
        self.show_progress = show_progress
        self.fk_reporter: Optional[InvalidFKReporter] = None
        self._fk_cache: Dict[EntityType, Dict[str, uuid.UUID]] = {}
        self._imported_ids: Set[str] = set()

    @property
    def table(self) -> str:
        return self.entity_type.value

    @property
    def origins(self) -> Tuple[str, ...]:
        return self.source_files or ENTITY_SOURCES[self.entity_type]

    @property
    def display_name(self) -> str:
        return self.label or self.table.replace("_", " ").title()

    # ------------------------------------------------------------------
    # Extraction
    # ------------------------------------------------------------------

    def extract(self, export_dir: str) -> List[Dict[str, Any]]:
        extractor = JSONExportExtractor(self.table, export_dir, self.origins)
        return extractor.extract().records

    def build_unit(self, raw: Dict[str, Any]) -> Optional[ImportUnit]:
        """Wrap a raw record, or return None if it carries no usable legacy ID."""
        legacy_id = None
        for name in ("_firebase_id", "id"):
            value = raw.get(name)
            if value is not None and str(value).strip() != "":
                legacy_id = value
                break
        if legacy_id is None:
            logger.warning(f"Skipping {self.table} record without an id")
            return None
        if len(str(legacy_id)) > LEGACY_ID_MAX_LENGTH:
            logger.warning(
                f"Skipping {self.table} record: legacy id longer than {LEGACY_ID_MAX_LENGTH} characters"
            )
            return None
        return ImportUnit(
            legacy_id=str(legacy_id),
            entity_type=self.table,
            raw=raw,
            origin=raw.get(ORIGIN_KEY),
        )

    def should_skip(self, unit: ImportUnit) -> bool:
        """Entity-specific filter for records that must never be imported."""
        return False

    # ------------------------------------------------------------------
    # Transformation
    # ------------------------------------------------------------------

    @abstractmethod
    def transform(self, unit: ImportUnit) -> Dict[str, Any]:
        """
        Build the target row (without foreign keys) for one record.

        Must not raise on malformed legacy data.
        """
        pass

    def common_values(self, unit: ImportUnit) -> Dict[str, Any]:
        """Columns every migrated table carries."""
        now = datetime.now(timezone.utc)
        metadata = unit.raw.get("metadata")
        return {
            "legacy_id": unit.legacy_id,
            "is_active": parse_bool(unit.raw.get("is_active")),
            "metadata": metadata if isinstance(metadata, (dict, list)) else None,
            "synced_at": parse_date(unit.raw.get("synced_at")),
            "source": as_text(unit.raw.get("source")) or self.default_source,
            "created_at": parse_date(unit.raw.get("created_at")) or now,
            "updated_at": parse_date(unit.raw.get("updated_at")) or now,
        }

    def lookup(self, legacy_id: str, target: EntityType) -> Optional[uuid.UUID]:
        """Resolve through the run-scoped preload cache, falling back to the store."""
        if target in self._fk_cache:
            return self._fk_cache[target].get(legacy_id)
        return self.mappings.resolve(legacy_id, target)

    def preload(self, *targets: EntityType) -> None:
        for target in targets:
            if target not in self._fk_cache:
                self._fk_cache[target] = self.mappings.preload_all(target)

    def resolve_foreign_keys(self, unit: ImportUnit, stats: ImportStats) -> Dict[str, Optional[uuid.UUID]]:
        """
        Resolve every declared FK.

        A present legacy value that does not resolve is reported and left
        as None; the record is still imported.
        """
        resolved: Dict[str, Optional[uuid.UUID]] = {}
        for ref in self.foreign_keys:
            field_name = next((f for f in ref.source_fields if unit.get(f) is not None), ref.source_fields[0])
            legacy_value = as_text(unit.get(field_name))
            if legacy_value is None:
                resolved[ref.column] = None
                continue

            target_id = self.lookup(legacy_value, ref.target)
            if target_id is None:
                stats.invalid_fks += 1
                if self.fk_reporter is not None:
                    self.fk_reporter.report(
                        self.table, unit.record_id, field_name, legacy_value, ref.target.value
                    )
            resolved[ref.column] = target_id

        unit.foreign_keys = resolved
        return resolved

    def apply_limits(self, unit: ImportUnit, values: Dict[str, Any], stats: ImportStats) -> Dict[str, Any]:
        """Cut string columns to their limits, counting each cut."""
        for column, limit in self.field_limits.items():
            if column not in values:
                continue
            values[column], cut = truncate(values[column], limit)
            if cut:
                stats.truncated += 1
                logger.debug(f"Truncated {self.table}.{column} to {limit} chars for {unit.legacy_id}")
        return values

    def finalize(self, unit: ImportUnit, values: Dict[str, Any]) -> Dict[str, Any]:
        """Hook for columns derived from resolved foreign keys."""
        return values

    def prepare(self, unit: ImportUnit, stats: ImportStats) -> Dict[str, Any]:
        """Transform, resolve FKs and apply limits. Returns the insertable row."""
        values = self.common_values(unit)
        values.update(self.transform(unit))
        values.update(self.resolve_foreign_keys(unit, stats))
        values = self.finalize(unit, values)
        values = self.apply_limits(unit, values, stats)
        unit.values = values
        unit.status = RecordStatus.TRANSFORMED
        return values

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def record_mapping(self, unit: ImportUnit, target_id: uuid.UUID) -> None:
        try:
            self.mappings.record(unit.legacy_id, target_id, self.entity_type)
        except DuplicateMappingError:
            logger.debug(f"{self.table} mapping for {unit.legacy_id} already recorded")
        except TargetStoreError as e:
            logger.error(f"Inserted {self.table} {unit.legacy_id} but could not record its mapping: {e}")

    def write(self, unit: ImportUnit, values: Dict[str, Any], stats: ImportStats) -> bool:
        """Insert one row and record its mapping. Returns True if written."""
        try:
            target_id = self.store.insert(self.table, values)
        except DuplicateKeyError:
            unit.status = RecordStatus.DUPLICATE
            stats.skipped += 1
            return False
        except TargetStoreError as e:
            unit.status = RecordStatus.FAILED
            unit.error = str(e)
            stats.skipped += 1
            stats.failed += 1
            logger.warning(f"Failed to import {self.table} {unit.legacy_id}: {e}")
            return False

        self.record_mapping(unit, target_id)
        unit.target_id = target_id
        unit.status = RecordStatus.LOADED
        self._imported_ids.add(unit.legacy_id)
        stats.imported += 1
        return True

    def import_one(self, raw: Dict[str, Any], stats: ImportStats) -> None:
        unit = self.build_unit(raw)
        if unit is None:
            stats.skipped += 1
            return

        if self.should_skip(unit) or unit.legacy_id in self._imported_ids:
            unit.status = RecordStatus.SKIPPED
            stats.skipped += 1
            return

        try:
            values = self.prepare(unit, stats)
        except Exception as e:
            stats.skipped += 1
            stats.failed += 1
            logger.warning(f"Failed to transform {self.table} {unit.legacy_id}: {e}")
            return

        self.write(unit, values, stats)

    def begin_run(self, export_dir: str) -> None:
        """Reset run-scoped state and warm the caches."""
        self.fk_reporter = InvalidFKReporter(export_dir)
        self._fk_cache = {}
        self.preload(*{ref.target for ref in self.foreign_keys})
        self._imported_ids = set(self.mappings.preload_all(self.entity_type))

    def run(self, export_dir: str) -> ImportStats:
        """
        Import every record of the entity found in `export_dir`.

        Returns:
            ImportStats for this call. A missing source file yields zero counts.
        """
        stats = ImportStats()
        records = self.extract(export_dir)
        if not records:
            logger.warning(f"No {self.table} data found in {export_dir}, skipping")
            return stats

        self.begin_run(export_dir)
        print(f"  Importing {len(records)} {self.display_name.lower()}...")

        with ProgressReporter(
            self.table, len(records), every=self.progress_every, enabled=self.show_progress
        ) as progress:
            for raw in records:
                self.import_one(raw, stats)
                progress.advance()

        self.print_summary(stats)
        return stats

    def print_summary(self, stats: ImportStats) -> None:
        line = f"  ✓ {self.display_name}: {stats.imported} imported, {stats.skipped} skipped"
        if stats.failed:
            line += f" ({stats.failed} failed)"
        print(line)
        if stats.truncated:
            print(f"    {stats.truncated} values truncated to column limits")
        if stats.invalid_fks:
            print(f"    {stats.invalid_fks} unresolved foreign keys reported")
