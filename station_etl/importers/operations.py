"""Importers for dispatch records and invoices (levels 3 and 4)."""

from datetime import datetime, timezone
from typing import Any, Dict

from .base import EntityImporter, ForeignKeyRef
from ..models.migration import EntityType
from ..models.record import ImportUnit
from ..services.normalizers import (
    as_text,
    normalize_status,
    parse_date,
    parse_decimal,
    parse_int,
)


class DispatchRecordImporter(EntityImporter):
    """Vehicle entries and departures at the station."""

    entity_type = EntityType.DISPATCH_RECORDS
    label = "Dispatch Records"
    progress_every = 500
    foreign_keys = (
        ForeignKeyRef("vehicle_id", EntityType.VEHICLES, ("vehicle_id",)),
        ForeignKeyRef("driver_id", EntityType.DRIVERS, ("driver_id",)),
        ForeignKeyRef("route_id", EntityType.ROUTES, ("route_id",)),
        ForeignKeyRef("operator_id", EntityType.OPERATORS, ("operator_id",)),
        ForeignKeyRef("user_id", EntityType.USERS, ("user_id",)),
        ForeignKeyRef("shift_id", EntityType.SHIFTS, ("shift_id",)),
    )
    field_limits = {
        "status": 50,
        "permit_status": 50,
        "permit_number": 50,
        "vehicle_plate_number": 20,
        "operator_name": 255,
        "driver_name": 255,
        "route_name": 255,
        "route_code": 50,
        "source": 50,
    }

    def transform(self, unit: ImportUnit) -> Dict[str, Any]:
        return {
            "status": normalize_status(unit.get("current_status", "status"), "entered"),
            "entry_time": parse_date(unit.get("entry_time")) or datetime.now(timezone.utc),
            "passenger_drop_time": parse_date(unit.get("passenger_drop_time")),
            "boarding_permit_time": parse_date(unit.get("boarding_permit_time")),
            "payment_time": parse_date(unit.get("payment_time")),
            "exit_time": parse_date(unit.get("exit_time")),
            "passengers_arrived": parse_int(unit.get("passengers_arrived")),
            "passengers_boarding": parse_int(unit.get("passengers_boarding")),
            "passengers_total": parse_int(unit.get("passengers_total")),
            "payment_amount": parse_decimal(unit.get("payment_amount")),
            "fee_amount": parse_decimal(unit.get("fee_amount")),
            "permit_status": as_text(unit.get("permit_status")),
            "permit_number": as_text(unit.get("permit_number")),
            # Denormalized copies kept for reporting
            "vehicle_plate_number": as_text(unit.get("vehicle_plate_number")),
            "vehicle_seat_count": parse_int(unit.get("vehicle_seat_count")),
            "operator_name": as_text(unit.get("operator_name")),
            "driver_name": as_text(unit.get("driver_full_name", "driver_name")),
            "route_name": as_text(unit.get("route_name")),
            "route_code": as_text(unit.get("route_code")),
            "notes": as_text(unit.get("notes")),
        }


class InvoiceImporter(EntityImporter):
    entity_type = EntityType.INVOICES
    label = "Invoices"
    progress_every = 100
    foreign_keys = (
        ForeignKeyRef("dispatch_record_id", EntityType.DISPATCH_RECORDS, ("dispatch_id", "dispatch_record_id")),
        ForeignKeyRef("operator_id", EntityType.OPERATORS, ("operator_id",)),
    )
    field_limits = {
        "invoice_number": 50,
        "payment_status": 50,
        "status": 50,
        "source": 50,
    }

    def transform(self, unit: ImportUnit) -> Dict[str, Any]:
        amount = parse_decimal(unit.get("amount"))
        status = unit.get("status")
        return {
            "invoice_number": as_text(unit.get("invoice_number")) or f"INV-{unit.record_id}",
            "invoice_date": parse_date(unit.get("issued_at")),
            "subtotal": amount,
            "tax": parse_decimal(unit.get("tax_amount")),
            "total_amount": parse_decimal(unit.get("total_amount")) or amount,
            "payment_status": normalize_status(status, "pending"),
            "paid_at": parse_date(unit.get("paid_at")),
            "status": normalize_status(status, "draft"),
            "notes": as_text(unit.get("notes")),
        }
