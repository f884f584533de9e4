"""Data models for the migration engine."""

from .migration import (
    DEPENDENCY_LEVELS,
    ENTITY_SOURCES,
    EntityType,
    EntityImportResult,
    ImportStats,
    MigrationConfig,
    MigrationRun,
    MigrationStatus,
    ValidationRow,
    ValidationStatus,
    import_order,
)
from .record import (
    ImportUnit,
    InvalidFKRecord,
    RecordStatus,
)

__all__ = [
    "DEPENDENCY_LEVELS",
    "ENTITY_SOURCES",
    "EntityType",
    "EntityImportResult",
    "ImportStats",
    "MigrationConfig",
    "MigrationRun",
    "MigrationStatus",
    "ValidationRow",
    "ValidationStatus",
    "import_order",
    "ImportUnit",
    "InvalidFKRecord",
    "RecordStatus",
]
