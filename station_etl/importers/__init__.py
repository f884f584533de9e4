"""Entity importers and the registry the orchestrator builds them from."""

from typing import Dict, Type

from .base import EntityImporter, ForeignKeyRef
from .batch import BatchEntityImporter, BatchInsertOptimizer
from .catalog import RouteImporter, VehicleTypeImporter
from .fleet import (
    DriverImporter,
    VehicleBadgeBatchImporter,
    VehicleBadgeImporter,
    VehicleBatchImporter,
    VehicleImporter,
)
from .operations import DispatchRecordImporter, InvoiceImporter
from .organization import OperatorImporter, ShiftImporter, UserImporter
from ..errors import UnknownTableError
from ..models.migration import EntityType

IMPORTERS: Dict[EntityType, Type[EntityImporter]] = {
    EntityType.OPERATORS: OperatorImporter,
    EntityType.VEHICLE_TYPES: VehicleTypeImporter,
    EntityType.SHIFTS: ShiftImporter,
    EntityType.USERS: UserImporter,
    EntityType.ROUTES: RouteImporter,
    EntityType.VEHICLES: VehicleImporter,
    EntityType.DRIVERS: DriverImporter,
    EntityType.VEHICLE_BADGES: VehicleBadgeImporter,
    EntityType.DISPATCH_RECORDS: DispatchRecordImporter,
    EntityType.INVOICES: InvoiceImporter,
}

BATCH_IMPORTERS: Dict[EntityType, Type[BatchEntityImporter]] = {
    EntityType.VEHICLES: VehicleBatchImporter,
    EntityType.VEHICLE_BADGES: VehicleBadgeBatchImporter,
}


def get_importer_class(entity, use_batch: bool = True) -> Type[EntityImporter]:
    """Pick the importer for an entity, preferring the batch strategy if enabled."""
    try:
        entity = EntityType(entity)
    except ValueError:
        raise UnknownTableError(f"Unknown entity: {entity}") from None

    if use_batch and entity in BATCH_IMPORTERS:
        return BATCH_IMPORTERS[entity]
    return IMPORTERS[entity]


__all__ = [
    "BATCH_IMPORTERS",
    "IMPORTERS",
    "BatchEntityImporter",
    "BatchInsertOptimizer",
    "DispatchRecordImporter",
    "DriverImporter",
    "EntityImporter",
    "ForeignKeyRef",
    "InvoiceImporter",
    "OperatorImporter",
    "RouteImporter",
    "ShiftImporter",
    "UserImporter",
    "VehicleBadgeBatchImporter",
    "VehicleBadgeImporter",
    "VehicleBatchImporter",
    "VehicleImporter",
    "VehicleTypeImporter",
    "get_importer_class",
]
