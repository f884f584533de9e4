"""
station_etl/db/schema.py

Declarative description of the target relational schema.

The production schema is owned by the application; these models back the
store's Core statements and materialize scratch databases.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


LEGACY_ID_MAX_LENGTH = 100


class Base(DeclarativeBase):
    """Declarative base for every target table."""


class UUIDPrimaryKeyMixin:
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=lambda: datetime.now(timezone.utc),
    )


class LegacyRecordMixin(UUIDPrimaryKeyMixin, TimestampMixin):
    """
    Columns shared by every migrated table.

    `legacy_id` keeps the source key next to the row so a table can be
    reconciled against the export without going through `id_mappings`.
    """

    legacy_id: Mapped[str | None] = mapped_column(String(LEGACY_ID_MAX_LENGTH), unique=True, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    metadata_json: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSON, nullable=True)
    synced_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    source: Mapped[str | None] = mapped_column(String(50), nullable=True)


class IdMapping(Base, UUIDPrimaryKeyMixin):
    __tablename__ = "id_mappings"

    legacy_id: Mapped[str] = mapped_column(String(LEGACY_ID_MAX_LENGTH), nullable=False)
    target_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        UniqueConstraint("legacy_id", "entity_type", name="uq_id_mappings_legacy_entity"),
        Index("ix_id_mappings_entity_type", "entity_type"),
    )


# ---------------------------------------------------------------------------
# Level 1
# ---------------------------------------------------------------------------


class Operator(Base, LegacyRecordMixin):
    __tablename__ = "operators"

    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    short_name: Mapped[str | None] = mapped_column(String(100))
    address: Mapped[str | None] = mapped_column(Text)
    phone: Mapped[str | None] = mapped_column(String(20))
    email: Mapped[str | None] = mapped_column(String(255))
    tax_code: Mapped[str | None] = mapped_column(String(20))
    representative: Mapped[str | None] = mapped_column(String(255))
    business_license: Mapped[str | None] = mapped_column(String(100))


class VehicleType(Base, LegacyRecordMixin):
    __tablename__ = "vehicle_types"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    code: Mapped[str | None] = mapped_column(String(50), unique=True)
    description: Mapped[str | None] = mapped_column(Text)
    seat_capacity: Mapped[int | None] = mapped_column(Integer)


class Shift(Base, LegacyRecordMixin):
    __tablename__ = "shifts"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    start_time: Mapped[str | None] = mapped_column(String(10))
    end_time: Mapped[str | None] = mapped_column(String(10))


class User(Base, LegacyRecordMixin):
    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str | None] = mapped_column(String(255))
    phone: Mapped[str | None] = mapped_column(String(20))
    role: Mapped[str] = mapped_column(String(50), nullable=False, default="user")
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


class Route(Base, LegacyRecordMixin):
    __tablename__ = "routes"

    route_code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    departure_province: Mapped[str | None] = mapped_column(String(100))
    departure_station: Mapped[str | None] = mapped_column(String(255))
    departure_station_ref: Mapped[str | None] = mapped_column(String(20))
    arrival_province: Mapped[str | None] = mapped_column(String(100))
    arrival_station: Mapped[str | None] = mapped_column(String(255))
    arrival_station_ref: Mapped[str | None] = mapped_column(String(20))
    distance_km: Mapped[int | None] = mapped_column(Integer)
    itinerary: Mapped[str | None] = mapped_column(Text)
    route_type: Mapped[str | None] = mapped_column(String(50))
    total_trips_per_month: Mapped[int | None] = mapped_column(Integer)
    trips_operated: Mapped[int | None] = mapped_column(Integer)
    remaining_capacity: Mapped[int | None] = mapped_column(Integer)
    min_interval_minutes: Mapped[int | None] = mapped_column(Integer)
    decision_number: Mapped[str | None] = mapped_column(String(100))
    decision_date: Mapped[str | None] = mapped_column(String(20))
    issuing_authority: Mapped[str | None] = mapped_column(String(255))
    operation_status: Mapped[str | None] = mapped_column(String(50))


# ---------------------------------------------------------------------------
# Level 2
# ---------------------------------------------------------------------------


class Vehicle(Base, LegacyRecordMixin):
    __tablename__ = "vehicles"

    plate_number: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    operator_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("operators.id"))
    vehicle_type_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("vehicle_types.id"))
    seat_count: Mapped[int | None] = mapped_column(Integer)
    bed_capacity: Mapped[int | None] = mapped_column(Integer)
    brand: Mapped[str | None] = mapped_column(String(100))
    model: Mapped[str | None] = mapped_column(String(100))
    year_of_manufacture: Mapped[int | None] = mapped_column(Integer)
    color: Mapped[str | None] = mapped_column(String(50))
    chassis_number: Mapped[str | None] = mapped_column(String(50))
    engine_number: Mapped[str | None] = mapped_column(String(50))
    registration_expiry: Mapped[str | None] = mapped_column(String(20))
    insurance_expiry: Mapped[str | None] = mapped_column(String(20))
    road_worthiness_expiry: Mapped[str | None] = mapped_column(String(20))
    image_url: Mapped[str | None] = mapped_column(String(500))
    gps_provider: Mapped[str | None] = mapped_column(String(100))
    province: Mapped[str | None] = mapped_column(String(100))
    notes: Mapped[str | None] = mapped_column(String(500))
    operational_status: Mapped[str | None] = mapped_column(String(50), default="active")
    operator_name: Mapped[str | None] = mapped_column(String(255))
    operator_code: Mapped[str | None] = mapped_column(String(50))

    __table_args__ = (
        Index("ix_vehicles_operator_id", "operator_id"),
    )


class Driver(Base, LegacyRecordMixin):
    __tablename__ = "drivers"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(20))
    license_number: Mapped[str | None] = mapped_column(String(50))
    license_expiry: Mapped[str | None] = mapped_column(String(20))
    operator_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("operators.id"))


# ---------------------------------------------------------------------------
# Level 3
# ---------------------------------------------------------------------------


class VehicleBadge(Base, LegacyRecordMixin):
    __tablename__ = "vehicle_badges"

    badge_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    plate_number: Mapped[str] = mapped_column(String(20), nullable=False)
    vehicle_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("vehicles.id"))
    issue_date: Mapped[str | None] = mapped_column(String(20))
    expiry_date: Mapped[str | None] = mapped_column(String(20))

    __table_args__ = (
        Index("ix_vehicle_badges_plate_number", "plate_number"),
    )


class DispatchRecord(Base, LegacyRecordMixin):
    __tablename__ = "dispatch_records"

    vehicle_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("vehicles.id"))
    driver_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("drivers.id"))
    route_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("routes.id"))
    operator_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("operators.id"))
    user_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("users.id"))
    shift_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("shifts.id"))

    status: Mapped[str] = mapped_column(String(50), nullable=False, default="entered")

    entry_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    passenger_drop_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    boarding_permit_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    payment_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    exit_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    passengers_arrived: Mapped[int | None] = mapped_column(Integer)
    passengers_boarding: Mapped[int | None] = mapped_column(Integer)
    passengers_total: Mapped[int | None] = mapped_column(Integer)

    payment_amount: Mapped[Decimal | None] = mapped_column(Numeric(14, 2))
    fee_amount: Mapped[Decimal | None] = mapped_column(Numeric(14, 2))

    permit_status: Mapped[str | None] = mapped_column(String(50))
    permit_number: Mapped[str | None] = mapped_column(String(50))

    vehicle_plate_number: Mapped[str | None] = mapped_column(String(20))
    vehicle_seat_count: Mapped[int | None] = mapped_column(Integer)
    operator_name: Mapped[str | None] = mapped_column(String(255))
    driver_name: Mapped[str | None] = mapped_column(String(255))
    route_name: Mapped[str | None] = mapped_column(String(255))
    route_code: Mapped[str | None] = mapped_column(String(50))

    notes: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (
        Index("ix_dispatch_records_vehicle_id", "vehicle_id"),
        Index("ix_dispatch_records_entry_time", "entry_time"),
    )


# ---------------------------------------------------------------------------
# Level 4
# ---------------------------------------------------------------------------


class Invoice(Base, LegacyRecordMixin):
    __tablename__ = "invoices"

    dispatch_record_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("dispatch_records.id"))
    operator_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("operators.id"))
    invoice_number: Mapped[str | None] = mapped_column(String(50), unique=True)
    invoice_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    subtotal: Mapped[Decimal | None] = mapped_column(Numeric(14, 2))
    tax: Mapped[Decimal | None] = mapped_column(Numeric(14, 2))
    total_amount: Mapped[Decimal | None] = mapped_column(Numeric(14, 2))
    payment_status: Mapped[str | None] = mapped_column(String(50))
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    status: Mapped[str | None] = mapped_column(String(50))
    notes: Mapped[str | None] = mapped_column(Text)


# Only these identifiers may be interpolated into raw SQL.
ALLOWED_TABLES = frozenset(Base.metadata.tables.keys())


def get_table(name: str):
    """Return the Core Table for an allow-listed name, or None."""
    if name not in ALLOWED_TABLES:
        return None
    return Base.metadata.tables[name]


def create_all(engine: Engine) -> None:
    """Materialize the schema. Used for local scratch databases and tests."""
    Base.metadata.create_all(engine)
