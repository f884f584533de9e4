"""Importers for vehicles, drivers and vehicle badges (levels 2 and 3)."""

from typing import Any, Dict, Optional
import uuid

from .base import EntityImporter, ForeignKeyRef
from .batch import BatchEntityImporter
from ..models.migration import ENTITY_SOURCES, EntityType
from ..models.record import ImportUnit
from ..services.normalizers import (
    as_text,
    clean_phone,
    normalize_plate_number,
    parse_ddmmyyyy,
    parse_int,
)

PLATE_LIMIT = 20
BADGE_NUMBER_LIMIT = 50
REVOKED_STATUS = "Thu hồi"

# Spreadsheet columns kept in badge metadata
DATASHEET_BADGE_FIELDS = (
    "badge_type",
    "badge_color",
    "route_ref",
    "business_license_ref",
    "issuing_authority_ref",
    "issue_type",
    "status",
    "revoke_date",
    "revoke_decision",
    "revoke_reason",
    "file_number",
    "old_badge_number",
    "replacement_vehicle",
    "vehicle_replaced",
    "notes",
)


def is_datasheet_origin(unit: ImportUnit) -> bool:
    return (unit.origin or "").startswith("datasheet_")


# ---------------------------------------------------------------------------
# Vehicles
# ---------------------------------------------------------------------------


class VehicleImporter(EntityImporter):
    """
    Vehicles from the app table, one insert per record.

    Placeholder vehicles the legacy app created for badges and historical
    entries (ids prefixed `legacy_` / `badge_`) are never imported.
    """

    entity_type = EntityType.VEHICLES
    label = "Vehicles"
    progress_every = 500
    source_files = ("vehicles.json",)
    foreign_keys = (
        ForeignKeyRef("operator_id", EntityType.OPERATORS, ("operator_id",)),
        ForeignKeyRef("vehicle_type_id", EntityType.VEHICLE_TYPES, ("vehicle_type_id",)),
    )
    field_limits = {
        "plate_number": PLATE_LIMIT,
        "brand": 100,
        "model": 100,
        "color": 50,
        "chassis_number": 50,
        "engine_number": 50,
        "registration_expiry": 20,
        "insurance_expiry": 20,
        "road_worthiness_expiry": 20,
        "image_url": 500,
        "gps_provider": 100,
        "province": 100,
        "notes": 500,
        "operational_status": 50,
        "operator_name": 255,
        "operator_code": 50,
        "source": 50,
    }

    def should_skip(self, unit: ImportUnit) -> bool:
        return unit.record_id.startswith(("legacy_", "badge_"))

    def plate_number(self, unit: ImportUnit) -> str:
        return normalize_plate_number(unit.get("plate_number", "biensoxe") or unit.record_id)

    def transform(self, unit: ImportUnit) -> Dict[str, Any]:
        notes = as_text(unit.get("notes")) or ""
        registration_info = as_text(unit.get("registration_info"))
        if registration_info:
            notes = f"{notes}\n\n{registration_info}" if notes else registration_info

        return {
            "plate_number": self.plate_number(unit),
            "seat_count": parse_int(unit.get("seat_count", "soghe", "seat_capacity")),
            "bed_capacity": parse_int(unit.get("bed_capacity", "load_capacity")),
            "brand": as_text(unit.get("brand", "manufacturer")),
            "model": as_text(unit.get("model")),
            "year_of_manufacture": parse_int(unit.get("manufacture_year", "year_of_manufacture")),
            "color": as_text(unit.get("color")),
            "chassis_number": as_text(unit.get("chassis_number")),
            "engine_number": as_text(unit.get("engine_number")),
            "registration_expiry": as_text(unit.get("registration_expiry")),
            "insurance_expiry": as_text(unit.get("insurance_expiry", "insurance_expiry_date")),
            "road_worthiness_expiry": as_text(unit.get("inspection_expiry_date")),
            "image_url": as_text(unit.get("image_url")),
            "gps_provider": as_text(unit.get("gps_provider")),
            "province": as_text(unit.get("province")),
            "notes": notes or None,
            "operational_status": as_text(unit.get("operational_status")) or "active",
            "operator_name": as_text(unit.get("operator_name", "owner_name")),
            "operator_code": as_text(unit.get("operator_code")),
        }


class VehicleBatchImporter(BatchEntityImporter, VehicleImporter):
    """Vehicles from the app table and the datasheet, in grouped inserts keyed by plate."""

    source_files = ENTITY_SOURCES[EntityType.VEHICLES]
    natural_key_column = "plate_number"

    def should_skip(self, unit: ImportUnit) -> bool:
        return False

    def natural_key(self, unit: ImportUnit) -> Optional[str]:
        plate = normalize_plate_number(unit.get("plate_number", "biensoxe"))
        return plate[:PLATE_LIMIT] or None


# ---------------------------------------------------------------------------
# Drivers
# ---------------------------------------------------------------------------


class DriverImporter(EntityImporter):
    entity_type = EntityType.DRIVERS
    label = "Drivers"
    progress_every = 100
    foreign_keys = (
        ForeignKeyRef("operator_id", EntityType.OPERATORS, ("operator_id",)),
    )
    field_limits = {
        "name": 255,
        "phone": 20,
        "license_number": 50,
        "license_expiry": 20,
        "source": 50,
    }

    def transform(self, unit: ImportUnit) -> Dict[str, Any]:
        return {
            "name": as_text(unit.get("full_name", "name")) or f"Driver_{unit.record_id}",
            "phone": clean_phone(unit.get("phone")),
            "license_number": as_text(unit.get("license_number")),
            "license_expiry": as_text(unit.get("license_expiry")),
        }


# ---------------------------------------------------------------------------
# Vehicle badges
# ---------------------------------------------------------------------------


class VehicleBadgeImporter(EntityImporter):
    """
    Vehicle badges from the app table and the badge datasheet.

    Datasheet rows use DD/MM/YYYY dates, keep their extra spreadsheet
    columns in metadata and are inactive once revoked. Each badge's plate
    comes from the vehicle it resolves to.
    """

    entity_type = EntityType.VEHICLE_BADGES
    label = "Vehicle Badges"
    progress_every = 500
    foreign_keys = (
        ForeignKeyRef("vehicle_id", EntityType.VEHICLES, ("vehicle_id",)),
    )
    field_limits = {
        "badge_number": BADGE_NUMBER_LIMIT,
        "plate_number": PLATE_LIMIT,
        "issue_date": 20,
        "expiry_date": 20,
        "source": 50,
    }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._vehicle_plates: Dict[uuid.UUID, str] = {}

    def begin_run(self, export_dir: str) -> None:
        super().begin_run(export_dir)
        rows = self.store.select("vehicles", columns=["id", "plate_number"])
        self._vehicle_plates = {row["id"]: row["plate_number"] for row in rows}

    def badge_number(self, unit: ImportUnit) -> str:
        return str(unit.get("badge_number", "SOPHUHIEU") or unit.record_id)

    def transform(self, unit: ImportUnit) -> Dict[str, Any]:
        values: Dict[str, Any] = {"badge_number": self.badge_number(unit)}

        if not is_datasheet_origin(unit):
            values.update({
                "issue_date": as_text(unit.get("issue_date")),
                "expiry_date": as_text(unit.get("expiry_date")),
            })
            return values

        metadata = {name: unit.raw[name] for name in DATASHEET_BADGE_FIELDS if unit.get(name) is not None}
        values.update({
            "issue_date": parse_ddmmyyyy(unit.get("issue_date")),
            "expiry_date": parse_ddmmyyyy(unit.get("expiry_date")),
            "is_active": unit.raw.get("status") != REVOKED_STATUS,
            "metadata": metadata or None,
            "source": as_text(unit.get("source")) or "google_sheets",
        })
        return values

    def finalize(self, unit: ImportUnit, values: Dict[str, Any]) -> Dict[str, Any]:
        vehicle_id = values.get("vehicle_id")
        plate = self._vehicle_plates.get(vehicle_id) if vehicle_id else None
        if not plate:
            legacy_plate = unit.get("BIENSOXE")
            plate = normalize_plate_number(legacy_plate) if legacy_plate else f"UNKNOWN_{unit.record_id}"
        values["plate_number"] = plate
        return values


class VehicleBadgeBatchImporter(BatchEntityImporter, VehicleBadgeImporter):
    """Vehicle badges in grouped inserts keyed by badge number."""

    natural_key_column = "badge_number"

    def natural_key(self, unit: ImportUnit) -> Optional[str]:
        return self.badge_number(unit)[:BADGE_NUMBER_LIMIT] or None
