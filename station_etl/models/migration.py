"""Migration execution models."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from enum import Enum
from datetime import datetime, timezone
import uuid


class EntityType(str, Enum):
    """Logical entity types. Each value is also the target table name."""
    OPERATORS = "operators"
    VEHICLE_TYPES = "vehicle_types"
    SHIFTS = "shifts"
    USERS = "users"
    ROUTES = "routes"
    VEHICLES = "vehicles"
    DRIVERS = "drivers"
    VEHICLE_BADGES = "vehicle_badges"
    DISPATCH_RECORDS = "dispatch_records"
    INVOICES = "invoices"


# Each level depends only on entities in strictly earlier levels
DEPENDENCY_LEVELS: Tuple[Tuple[EntityType, ...], ...] = (
    (
        EntityType.OPERATORS,
        EntityType.VEHICLE_TYPES,
        EntityType.SHIFTS,
        EntityType.USERS,
        EntityType.ROUTES,
    ),
    (EntityType.VEHICLES, EntityType.DRIVERS),
    (EntityType.VEHICLE_BADGES, EntityType.DISPATCH_RECORDS),
    (EntityType.INVOICES,),
)

# Every origin file an entity can be exported to, app-authored first
ENTITY_SOURCES: Dict[EntityType, Tuple[str, ...]] = {
    EntityType.OPERATORS: ("operators.json", "datasheet_operators.json"),
    EntityType.VEHICLE_TYPES: ("vehicle_types.json",),
    EntityType.SHIFTS: ("shifts.json",),
    EntityType.USERS: ("users.json",),
    EntityType.ROUTES: ("routes.json", "datasheet_routes.json"),
    EntityType.VEHICLES: ("vehicles.json", "datasheet_vehicles.json"),
    EntityType.DRIVERS: ("drivers.json",),
    EntityType.VEHICLE_BADGES: ("vehicle_badges.json", "datasheet_vehicle_badges.json"),
    EntityType.DISPATCH_RECORDS: ("dispatch_records.json",),
    EntityType.INVOICES: ("invoices.json",),
}


def import_order() -> List[EntityType]:
    """Flatten the dependency levels into a single import order."""
    return [entity for level in DEPENDENCY_LEVELS for entity in level]


class MigrationStatus(str, Enum):
    """Status of a migration run."""
    PENDING = "pending"
    IMPORTING = "importing"
    COMPLETED = "completed"
    COMPLETED_WITH_ERRORS = "completed_with_errors"
    FAILED = "failed"


class ValidationStatus(str, Enum):
    """Outcome of comparing source and target counts."""
    PASS = "PASS"
    WARN = "WARN"
    FAIL = "FAIL"


@dataclass
class ImportStats:
    """
    Counts returned by a single importer call.

    `skipped` covers every record that was not written. `failed` is the
    subset of skipped records whose write failed for a reason other than
    a duplicate.
    """
    imported: int = 0
    skipped: int = 0
    failed: int = 0
    truncated: int = 0
    invalid_fks: int = 0

    @property
    def duplicates(self) -> int:
        return self.skipped - self.failed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "imported": self.imported,
            "skipped": self.skipped,
            "failed": self.failed,
            "duplicates": self.duplicates,
            "truncated": self.truncated,
            "invalid_fks": self.invalid_fks,
        }


@dataclass
class EntityImportResult:
    """Result of importing one entity within a run."""
    table: str
    imported: int = 0
    success: bool = False
    error: Optional[str] = None
    skipped: int = 0
    failed: int = 0
    truncated: int = 0
    invalid_fks: int = 0
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @classmethod
    def from_stats(cls, table: str, stats: ImportStats) -> "EntityImportResult":
        """Build a successful result from importer counts."""
        return cls(
            table=table,
            imported=stats.imported,
            success=True,
            skipped=stats.skipped,
            failed=stats.failed,
            truncated=stats.truncated,
            invalid_fks=stats.invalid_fks,
        )

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "table": self.table,
            "imported": self.imported,
            "success": self.success,
            "error": self.error,
            "skipped": self.skipped,
            "failed": self.failed,
            "truncated": self.truncated,
            "invalid_fks": self.invalid_fks,
            "duration_seconds": self.duration_seconds,
        }


@dataclass
class MigrationRun:
    """A complete migration run across all dependency levels."""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    export_dir: str = ""
    status: MigrationStatus = MigrationStatus.PENDING

    # Timing
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    results: List[EntityImportResult] = field(default_factory=list)

    @property
    def total_imported(self) -> int:
        return sum(r.imported for r in self.results)

    @property
    def total_skipped(self) -> int:
        return sum(r.skipped for r in self.results)

    @property
    def failed_entities(self) -> List[EntityImportResult]:
        return [r for r in self.results if not r.success]

    @property
    def succeeded(self) -> bool:
        """True when no entity failed outright. Skipped records do not count."""
        return not self.failed_entities

    @property
    def exit_code(self) -> int:
        return 0 if self.succeeded else 1

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def start(self) -> None:
        self.started_at = datetime.now(timezone.utc)
        self.status = MigrationStatus.IMPORTING

    def finish(self) -> None:
        self.completed_at = datetime.now(timezone.utc)
        self.status = (
            MigrationStatus.COMPLETED if self.succeeded
            else MigrationStatus.COMPLETED_WITH_ERRORS
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "export_dir": self.export_dir,
            "status": self.status.value,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
            "total_imported": self.total_imported,
            "total_skipped": self.total_skipped,
            "results": [r.to_dict() for r in self.results],
        }


@dataclass
class ValidationRow:
    """Source vs target comparison for one entity."""
    table: str
    source_count: int
    target_count: int
    mapping_count: int
    status: ValidationStatus

    @property
    def source_display(self) -> str:
        return "N/A" if self.source_count == -1 else str(self.source_count)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "table": self.table,
            "source_count": self.source_count,
            "target_count": self.target_count,
            "mapping_count": self.mapping_count,
            "status": self.status.value,
        }


@dataclass
class MigrationConfig:
    """Configuration for a migration run."""
    name: str = "legacy-export"

    # Target
    database_url: Optional[str] = None

    # Execution options
    batch_size: int = 100
    use_batch_importers: bool = True
    reset_fk_report: bool = False
    only: List[str] = field(default_factory=list)  # Entity subset; empty means all

    # Validation
    validation_tolerance: float = 0.10
    tolerance_overrides: Dict[str, float] = field(default_factory=dict)

    # Layout
    exports_root: str = "./exports"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "name": self.name,
            "batch_size": self.batch_size,
            "use_batch_importers": self.use_batch_importers,
            "reset_fk_report": self.reset_fk_report,
            "only": self.only,
            "validation_tolerance": self.validation_tolerance,
            "tolerance_overrides": self.tolerance_overrides,
            "exports_root": self.exports_root,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MigrationConfig":
        """Create from dictionary representation."""
        return cls(
            name=data.get("name", "legacy-export"),
            database_url=data.get("database_url"),
            batch_size=int(data.get("batch_size", 100)),
            use_batch_importers=data.get("use_batch_importers", True),
            reset_fk_report=data.get("reset_fk_report", False),
            only=list(data.get("only", [])),
            validation_tolerance=float(data.get("validation_tolerance", 0.10)),
            tolerance_overrides={
                k: float(v) for k, v in data.get("tolerance_overrides", {}).items()
            },
            exports_root=data.get("exports_root", "./exports"),
        )
