"""Post-migration count validation."""

import logging
from typing import Dict, List, Optional

from ..extractors.json_extractor import JSONExportExtractor
from ..errors import UnknownTableError
from ..loaders.base import TargetStore
from ..models.migration import (
    ENTITY_SOURCES,
    EntityType,
    ValidationRow,
    ValidationStatus,
    import_order,
)
from .id_mapping import IdMappingStore

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = 0.10

STATUS_ICONS = {
    ValidationStatus.PASS: "✓",
    ValidationStatus.WARN: "⚠",
    ValidationStatus.FAIL: "✗",
}


def classify(source_count: int, target_count: int, tolerance: float = DEFAULT_TOLERANCE) -> ValidationStatus:
    """
    Classify one entity's counts.

    - source unreadable (-1): WARN
    - both empty: PASS
    - source has rows, target has none: FAIL
    - difference above `tolerance` of source: WARN
    - otherwise: PASS
    """
    if source_count == -1:
        return ValidationStatus.WARN
    if source_count == 0 and target_count == 0:
        return ValidationStatus.PASS
    if target_count == 0 and source_count > 0:
        return ValidationStatus.FAIL
    if abs(source_count - target_count) > source_count * tolerance:
        return ValidationStatus.WARN
    return ValidationStatus.PASS


class MigrationValidator:
    """
    Compares source, target and mapping counts per entity.

    Source counts sum every origin file the entity is imported from.
    """

    def __init__(
        self,
        store: TargetStore,
        tolerance: float = DEFAULT_TOLERANCE,
        tolerance_overrides: Optional[Dict[str, float]] = None,
    ):
        self.store = store
        self.mappings = IdMappingStore(store)
        self.tolerance = tolerance
        self.tolerance_overrides = tolerance_overrides or {}

    def tolerance_for(self, entity: EntityType) -> float:
        return self.tolerance_overrides.get(entity.value, self.tolerance)

    def validate_entity(self, export_dir: str, entity) -> ValidationRow:
        try:
            entity = EntityType(entity)
        except ValueError:
            raise UnknownTableError(f"Invalid entity type: {entity}") from None

        table = entity.value
        source_count = JSONExportExtractor(table, export_dir, ENTITY_SOURCES[entity]).extract().source_count
        target_count = self.store.count(table)
        mapping_count = self.mappings.count(entity)

        status = classify(source_count, target_count, self.tolerance_for(entity))
        logger.debug(
            f"{table}: source={source_count} target={target_count} "
            f"mapped={mapping_count} -> {status.value}"
        )
        return ValidationRow(
            table=table,
            source_count=source_count,
            target_count=target_count,
            mapping_count=mapping_count,
            status=status,
        )

    def validate(self, export_dir: str, entities: Optional[List[EntityType]] = None) -> List[ValidationRow]:
        """Validate every entity (or the given subset) against `export_dir`."""
        return [self.validate_entity(export_dir, entity) for entity in (entities or import_order())]


def all_passed(rows: List[ValidationRow]) -> bool:
    """True unless some row FAILed. WARN rows do not fail validation."""
    return not any(row.status == ValidationStatus.FAIL for row in rows)


def print_validation_report(rows: List[ValidationRow], export_dir: str) -> None:
    print("=" * 60)
    print("Migration Validation")
    print(f"Export directory: {export_dir}")
    print("=" * 60)

    print("\nValidation Results:")
    print("-" * 60)
    print("Table                | Source  | Target  | Mapped  | Status")
    print("-" * 60)
    for row in rows:
        icon = STATUS_ICONS[row.status]
        print(
            f"{icon} {row.table:<18} | {row.source_display:>7} | {row.target_count:>7} | "
            f"{row.mapping_count:>7} | {row.status.value}"
        )
    print("-" * 60)

    passed = sum(1 for r in rows if r.status == ValidationStatus.PASS)
    warned = sum(1 for r in rows if r.status == ValidationStatus.WARN)
    failed = sum(1 for r in rows if r.status == ValidationStatus.FAIL)
    print(f"\nSummary: {passed} PASS, {warned} WARN, {failed} FAIL")

    if all_passed(rows):
        print("\n✓ All validations passed!")
    else:
        print("\n✗ Some validations failed. Review the results above.")
