"""Level 1 importers for operators, users and shifts."""

from typing import Any, Dict

from .base import EntityImporter
from ..models.migration import EntityType
from ..models.record import ImportUnit
from ..services.normalizers import as_text, clean_phone, parse_date


class OperatorImporter(EntityImporter):
    """Transport operators, from the app table and the bulk datasheet."""

    entity_type = EntityType.OPERATORS
    label = "Operators"
    progress_every = 100
    field_limits = {
        "code": 50,
        "name": 255,
        "short_name": 100,
        "phone": 20,
        "email": 255,
        "tax_code": 20,
        "representative": 255,
        "business_license": 100,
        "source": 50,
    }

    def transform(self, unit: ImportUnit) -> Dict[str, Any]:
        record_id = unit.record_id
        name = as_text(unit.get("name", "TENDV", "DONVIVANTAI")) or f"Operator_{record_id}"
        code = as_text(unit.get("code", "DONVIVANTAI")) or record_id[:20]

        return {
            "code": code,
            "name": name,
            "short_name": as_text(unit.get("short_name")),
            "address": as_text(unit.get("address", "DIADV")),
            "phone": clean_phone(unit.get("phone", "DIENTHOAI")),
            "email": as_text(unit.get("email")),
            "tax_code": as_text(unit.get("tax_code")),
            "representative": as_text(unit.get("representative")),
            "business_license": as_text(unit.get("business_license")),
        }


class UserImporter(EntityImporter):
    entity_type = EntityType.USERS
    label = "Users"
    progress_every = 50
    field_limits = {
        "email": 255,
        "name": 255,
        "phone": 20,
        "role": 50,
        "source": 50,
    }

    def transform(self, unit: ImportUnit) -> Dict[str, Any]:
        return {
            "email": as_text(unit.get("email")) or f"{unit.record_id}@migration.local",
            "password_hash": as_text(unit.get("password_hash")) or "MIGRATION_PLACEHOLDER",
            "name": as_text(unit.get("full_name", "username")),
            "phone": as_text(unit.get("phone")),
            "role": as_text(unit.get("role")) or "user",
            "last_login_at": parse_date(unit.get("last_login")),
        }


class ShiftImporter(EntityImporter):
    entity_type = EntityType.SHIFTS
    label = "Shifts"
    progress_every = 50
    field_limits = {"name": 100, "source": 50}

    def transform(self, unit: ImportUnit) -> Dict[str, Any]:
        start_time = as_text(unit.get("start_time"))
        end_time = as_text(unit.get("end_time"))
        return {
            "name": as_text(unit.get("name")) or f"Shift_{unit.record_id}",
            # "HH:MM" strings
            "start_time": start_time[:10] if start_time else None,
            "end_time": end_time[:10] if end_time else None,
        }
